"""Models package - exports all SQLAlchemy models."""
# Tenant-owned reference data
from quoteflow.models.client import Client
from quoteflow.models.company_profile import CompanyProfile
from quoteflow.models.lead_request import LeadRequest, LeadStatus

# Quote aggregate
from quoteflow.models.quote import Quote, QuoteStatus, OPEN_STATUSES, EXPIRABLE_STATUSES
from quoteflow.models.quote_task import QuoteTask, QuoteMaterial
from quoteflow.models.quote_file import QuoteFile
from quoteflow.models.quote_financial_config import QuoteFinancialConfig
from quoteflow.models.quote_follow_up import QuoteFollowUp, FollowUpStatus, ACTIVE_FOLLOW_UP_STATUSES
from quoteflow.models.quote_event import QuoteEvent, QuoteEventType
from quoteflow.models.quote_share import QuoteShare, QuoteAccessLog
from quoteflow.models.quote_draft import QuoteDraft

# Billing
from quoteflow.models.invoice import Invoice, InvoiceStatus

__all__ = [
    'Client', 'CompanyProfile', 'LeadRequest', 'LeadStatus',
    'Quote', 'QuoteStatus', 'OPEN_STATUSES', 'EXPIRABLE_STATUSES',
    'QuoteTask', 'QuoteMaterial', 'QuoteFile', 'QuoteFinancialConfig',
    'QuoteFollowUp', 'FollowUpStatus', 'ACTIVE_FOLLOW_UP_STATUSES',
    'QuoteEvent', 'QuoteEventType', 'QuoteShare', 'QuoteAccessLog', 'QuoteDraft',
    'Invoice', 'InvoiceStatus',
]
