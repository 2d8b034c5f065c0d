"""HTTP client for the external follow-up scheduler."""
from typing import Dict, Any, Optional

import requests
from flask import current_app


class FollowUpSchedulerClient:
    """
    Client for the follow-up scheduler service.

    The scheduler owns the follow-up cadence (stage 1, 2, 3 reminders) and
    writes the quote_follow_ups rows itself. Calls are fire-and-forget from
    the caller's point of view: every method returns True/False and never
    raises.
    """

    def __init__(
        self,
        quote_url: Optional[str] = None,
        invoice_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        cfg = current_app.config
        self.quote_url = quote_url or cfg.get('FOLLOWUPS_SCHEDULER_URL')
        self.invoice_url = invoice_url or cfg.get('INVOICE_FOLLOWUPS_SCHEDULER_URL')
        self.timeout = timeout or cfg.get('FOLLOWUPS_SCHEDULER_TIMEOUT', 10)

        token = token or cfg.get('FOLLOWUPS_SCHEDULER_TOKEN')
        self.headers = {'Content-Type': 'application/json'}
        if token:
            self.headers['Authorization'] = f'Bearer {token}'

    def create_followup_for_quote(self, quote_id: str, status: str = 'sent',
                                  replace_existing: bool = True) -> bool:
        """Ask the scheduler to start a new follow-up chain for a sent quote."""
        return self._post(self.quote_url, {
            'action': 'create_followup_for_quote',
            'quote_id': quote_id,
            'status': status,
            'replace_existing': replace_existing,
        })

    def mark_quote_viewed(self, quote_id: str) -> bool:
        """Notify the scheduler that the client opened the quote."""
        return self._post(self.quote_url, {
            'action': 'mark_quote_viewed',
            'quote_id': quote_id,
        })

    def create_followup_for_invoice(self, invoice_id: str) -> bool:
        """Start the payment reminder chain for a new invoice."""
        return self._post(self.invoice_url, {
            'action': 'create_followup_for_invoice',
            'invoice_id': invoice_id,
        })

    def _post(self, url: Optional[str], payload: Dict[str, Any]) -> bool:
        action = payload.get('action')
        if not url:
            current_app.logger.warning(f"[FOLLOWUPS DISABLED] {action} skipped (no scheduler URL)")
            return False

        current_app.logger.info(f"[FOLLOWUPS] {action} -> {url}")

        try:
            response = requests.post(url, json=payload, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            current_app.logger.info(f"[FOLLOWUPS] {action} OK ({response.status_code})")
            return True

        except requests.HTTPError as e:
            current_app.logger.warning(f"[FOLLOWUPS] {action} failed: {e.response.status_code} {e.response.text}")
            return False
        except requests.RequestException as e:
            current_app.logger.warning(f"[FOLLOWUPS] {action} unreachable: {e}")
            return False
