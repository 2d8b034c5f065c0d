"""
Tests for the collaborators around the quote lifecycle: leads, the
scheduler HTTP client, the email dispatcher and the CLI sweep.
"""

import pytest
import requests
from datetime import date

from quoteflow.models import Quote
from quoteflow.exceptions import BusinessLogicError, NotFoundError
from quoteflow.services import email_service, lead_service
from quoteflow.services.followup_scheduler_client import FollowUpSchedulerClient


class TestLeads:

    def test_assign_then_convert(self, session, user_id, lead, monkeypatch):
        notified = []
        monkeypatch.setattr(lead_service, 'send_lead_assignment_email',
                            lambda to, row: notified.append(to) or True)

        assigned = lead_service.assign_lead(session, lead.id, user_id, notify_email='artisan@example.com')
        assert assigned.status == 'assigned'
        assert notified == ['artisan@example.com']

        converted = lead_service.convert_lead_to_quote(session, lead.id, 'quote-1', user_id)
        assert converted.status == 'quote_sent'
        assert converted.converted_quote_id == 'quote-1'

    def test_lead_of_another_artisan(self, session, user_id, other_user_id, lead):
        lead_service.assign_lead(session, lead.id, other_user_id)
        with pytest.raises(BusinessLogicError):
            lead_service.convert_lead_to_quote(session, lead.id, 'quote-1', user_id)

    def test_closed_lead_cannot_be_assigned(self, session, user_id, lead):
        lead.status = 'closed'
        session.commit()
        with pytest.raises(BusinessLogicError):
            lead_service.assign_lead(session, lead.id, user_id)

    def test_unknown_lead(self, session, user_id):
        with pytest.raises(NotFoundError):
            lead_service.get_lead(session, 'missing')


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code
        self.text = 'error body'

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(response=self)


class TestFollowUpSchedulerClient:

    def test_disabled_without_url(self, app):
        with app.app_context():
            assert FollowUpSchedulerClient().create_followup_for_quote('q1') is False

    def test_posts_action_with_bearer_token(self, app, monkeypatch):
        captured = {}

        def fake_post(url, json=None, headers=None, timeout=None):
            captured.update(url=url, json=json, headers=headers)
            return FakeResponse()

        monkeypatch.setattr(requests, 'post', fake_post)
        with app.app_context():
            client = FollowUpSchedulerClient(quote_url='https://scheduler.test/followups', token='secret')
            assert client.mark_quote_viewed('q1') is True

        assert captured['json'] == {'action': 'mark_quote_viewed', 'quote_id': 'q1'}
        assert captured['headers']['Authorization'] == 'Bearer secret'

    def test_http_error_returns_false(self, app, monkeypatch):
        monkeypatch.setattr(requests, 'post', lambda *a, **kw: FakeResponse(502))
        with app.app_context():
            client = FollowUpSchedulerClient(invoice_url='https://scheduler.test/invoices')
            assert client.create_followup_for_invoice('inv-1') is False

    def test_network_error_returns_false(self, app, monkeypatch):
        def unreachable(*args, **kwargs):
            raise requests.ConnectionError('refused')

        monkeypatch.setattr(requests, 'post', unreachable)
        with app.app_context():
            client = FollowUpSchedulerClient(quote_url='https://scheduler.test/followups')
            assert client.create_followup_for_quote('q1') is False


class TestEmailService:

    def test_no_recipient(self, session, make_quote):
        quote = make_quote(status='sent')
        result = email_service.send_quote_sent_email(quote, None)
        assert result['success'] is False
        assert result['error']

    def test_suppressed_mail_counts_as_sent(self, session, make_quote, client_row):
        quote = make_quote(status='sent')
        result = email_service.send_quote_updated_email(quote, client_row, email_override='lead@example.com')
        assert result == {'success': True, 'error': None}

    def test_share_url(self, app):
        with app.app_context():
            assert email_service.share_url('abc').endswith('/share/abc')


class TestExpireQuotesCommand:

    def test_cli_sweep(self, app, session, make_quote):
        quote_id = make_quote(status='sent', valid_until=date(2020, 1, 1), quote_number='Q-2020-001').id

        result = app.test_cli_runner().invoke(args=['expire-quotes'])

        assert result.exit_code == 0
        assert 'Q-2020-001' in result.output
        assert session.query(Quote).filter_by(id=quote_id).one().status == 'expired'
