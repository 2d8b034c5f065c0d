"""Follow-up chain management and quote event log."""
import logging
from datetime import datetime, timezone
from typing import Optional

from quoteflow.models import QuoteFollowUp, QuoteEvent, FollowUpStatus, ACTIVE_FOLLOW_UP_STATUSES
from quoteflow.services.followup_scheduler_client import FollowUpSchedulerClient

logger = logging.getLogger(__name__)

# Stop reasons written to quote_follow_ups.meta.reason
REASON_REPLACED = 'replaced_with_new_followup'
REASON_VIEWED = 'quote_viewed_status_change'
REASON_EXPIRED = 'quote_expired'


def get_scheduler_client() -> FollowUpSchedulerClient:
    """Scheduler client bound to the current app config."""
    return FollowUpSchedulerClient()


def stop_active_follow_ups(session, quote_id: str, reason: str) -> int:
    """
    Stop every pending/scheduled follow-up of a quote.

    Commits immediately so the stop is durable before any new chain is
    requested from the scheduler.

    Returns:
        Number of follow-ups stopped
    """
    now = datetime.now(timezone.utc)
    active = (
        session.query(QuoteFollowUp)
        .filter(
            QuoteFollowUp.quote_id == quote_id,
            QuoteFollowUp.status.in_(ACTIVE_FOLLOW_UP_STATUSES)
        )
        .all()
    )

    for follow_up in active:
        follow_up.status = FollowUpStatus.STOPPED.value
        follow_up.updated_at = now
        follow_up.meta = {**(follow_up.meta or {}), 'reason': reason, 'stopped_at': now.isoformat()}

    try:
        session.commit()
    except Exception:
        session.rollback()
        raise

    if active:
        logger.info(f"[FOLLOWUPS] Stopped {len(active)} follow-up(s) for quote {quote_id} ({reason})")
    return len(active)


def request_followup_for_sent_quote(session, quote_id: str) -> bool:
    """Replace the quote's follow-up chain: stop the old one, then ask for a new one."""
    stop_active_follow_ups(session, quote_id, REASON_REPLACED)
    return get_scheduler_client().create_followup_for_quote(quote_id, status='sent', replace_existing=True)


def request_followup_for_viewed_quote(session, quote_id: str) -> bool:
    """Stop the current chain and let the scheduler create the post-view chain."""
    stop_active_follow_ups(session, quote_id, REASON_VIEWED)
    return get_scheduler_client().mark_quote_viewed(quote_id)


def request_followup_for_invoice(invoice_id: str) -> bool:
    return get_scheduler_client().create_followup_for_invoice(invoice_id)


def log_quote_event(session, quote_id: str, user_id: Optional[str], event_type: str,
                    meta: Optional[dict] = None) -> QuoteEvent:
    """Append an event to the quote's log and commit."""
    event = QuoteEvent(
        quote_id=quote_id,
        user_id=user_id,
        type=event_type,
        meta=meta or {},
        timestamp=datetime.now(timezone.utc),
    )
    session.add(event)
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    return event
