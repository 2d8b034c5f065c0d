import pytest
from datetime import datetime, timezone
import uuid

from quoteflow import create_app
from quoteflow import database
from quoteflow.database import Base, get_session
from quoteflow.models import Client, CompanyProfile, Quote, QuoteFollowUp, LeadRequest
from quoteflow.services import email_service, followup_service


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing (SQLite in memory)."""
    app = create_app('config.TestConfig')
    with app.app_context():
        database.create_all()
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session inside an app context; every table is emptied afterwards."""
    ctx = app.app_context()
    ctx.push()
    db = get_session()
    yield db
    db.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        db.execute(table.delete())
    db.commit()
    db.remove()
    ctx.pop()


@pytest.fixture(scope='function')
def user_id():
    return str(uuid.uuid4())


@pytest.fixture(scope='function')
def other_user_id():
    return str(uuid.uuid4())


@pytest.fixture(scope='function')
def client_row(session, user_id):
    """Client of the test user."""
    suffix = str(uuid.uuid4())[:8]
    row = Client(
        user_id=user_id,
        name=f'Client {suffix}',
        email=f'client-{suffix}@example.com',
        address='12 rue des Lilas',
        city='Liège',
        country='BE'
    )
    session.add(row)
    session.commit()
    return row


@pytest.fixture(scope='function')
def company_profile(session, user_id):
    profile = CompanyProfile(
        user_id=user_id,
        company_name='Menuiserie Dupont',
        email='contact@menuiserie-dupont.be',
        vat_number='BE0123456789',
        is_default=True
    )
    session.add(profile)
    session.commit()
    return profile


@pytest.fixture(scope='function')
def lead(session):
    row = LeadRequest(
        client_name='Marie Lambert',
        client_email='marie.lambert@example.com',
        project_description='Rénovation cuisine',
        city='Namur'
    )
    session.add(row)
    session.commit()
    return row


@pytest.fixture(scope='function')
def make_quote(session, user_id, client_row):
    """Insert a quote row directly (no side effects)."""
    counter = {'n': 0}

    def _make(status='draft', valid_until=None, **kwargs):
        counter['n'] += 1
        quote = Quote(
            user_id=kwargs.pop('owner_id', user_id),
            client_id=kwargs.pop('client_id', client_row.id),
            quote_number=kwargs.pop('quote_number', f'Q-TEST-{counter["n"]:03d}'),
            share_token=uuid.uuid4().hex,
            status=status,
            valid_until=valid_until,
            is_public=status != 'draft',
            **kwargs
        )
        session.add(quote)
        session.commit()
        return quote

    return _make


class FakeSchedulerClient:
    """
    Stands in for the follow-up scheduler: records calls and, like the real
    service, writes one pending follow-up per chain it creates.
    """

    def __init__(self, session):
        self.session = session
        self.calls = []

    def _insert_follow_up(self, quote_id, trigger):
        quote = self.session.query(Quote).filter(Quote.id == quote_id).first()
        self.session.add(QuoteFollowUp(
            quote_id=quote_id,
            user_id=quote.user_id,
            stage=1,
            status='pending',
            scheduled_at=datetime.now(timezone.utc),
            meta={'trigger': trigger},
        ))
        self.session.commit()

    def create_followup_for_quote(self, quote_id, status='sent', replace_existing=True):
        self.calls.append(('create_followup_for_quote', quote_id))
        self._insert_follow_up(quote_id, 'sent')
        return True

    def mark_quote_viewed(self, quote_id):
        self.calls.append(('mark_quote_viewed', quote_id))
        self._insert_follow_up(quote_id, 'viewed')
        return True

    def create_followup_for_invoice(self, invoice_id):
        self.calls.append(('create_followup_for_invoice', invoice_id))
        return True

    def count(self, action):
        return sum(1 for name, _ in self.calls if name == action)


@pytest.fixture(scope='function')
def scheduler(session, monkeypatch):
    fake = FakeSchedulerClient(session)
    monkeypatch.setattr(followup_service, 'get_scheduler_client', lambda: fake)
    return fake


@pytest.fixture(scope='function')
def sent_emails(monkeypatch):
    """Capture quote notifications instead of sending them."""
    sent = []

    def _capture(kind):
        def _send(quote, client, company_profile=None, email_override=None):
            sent.append({
                'kind': kind,
                'quote_id': quote.id,
                'to': email_override or (client.email if client else None),
            })
            return {'success': True, 'error': None}
        return _send

    monkeypatch.setattr(email_service, 'send_quote_sent_email', _capture('sent'))
    monkeypatch.setattr(email_service, 'send_quote_updated_email', _capture('updated'))
    return sent


@pytest.fixture(scope='function')
def authenticated_client(client, session, user_id):
    """Test client logged in as the test user."""
    with client.session_transaction() as sess:
        sess['user_id'] = user_id
    return client
