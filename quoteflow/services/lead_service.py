"""Lead request handling: assignment to an artisan and conversion to a quote."""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from quoteflow.models import LeadRequest, LeadStatus
from quoteflow.exceptions import NotFoundError, BusinessLogicError
from quoteflow.services.email_service import send_lead_assignment_email

logger = logging.getLogger(__name__)


def get_lead(session: Session, lead_id: str) -> LeadRequest:
    lead = session.query(LeadRequest).filter(LeadRequest.id == lead_id).first()
    if not lead:
        raise NotFoundError('Demande introuvable.')
    return lead


def convert_lead_to_quote(session: Session, lead_id: str, quote_id: str, user_id: str) -> LeadRequest:
    """
    Mark a lead as answered by a quote.

    Sets status quote_sent and converted_quote_id. A lead already assigned to
    another artisan cannot be converted by this user.
    """
    lead = get_lead(session, lead_id)
    if lead.user_id and lead.user_id != user_id:
        raise BusinessLogicError('Cette demande est attribuée à un autre artisan.')

    lead.user_id = user_id
    lead.status = LeadStatus.QUOTE_SENT.value
    lead.converted_quote_id = quote_id
    lead.updated_at = datetime.now(timezone.utc)

    try:
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[LEAD] Lead {lead_id} converted to quote {quote_id}")
    return lead


def assign_lead(session: Session, lead_id: str, user_id: str, notify_email: Optional[str] = None) -> LeadRequest:
    """Assign a new lead to an artisan and notify them by email."""
    lead = get_lead(session, lead_id)
    if lead.status not in (LeadStatus.NEW.value, LeadStatus.ASSIGNED.value):
        raise BusinessLogicError('Cette demande ne peut plus être attribuée.')

    lead.user_id = user_id
    lead.status = LeadStatus.ASSIGNED.value
    lead.updated_at = datetime.now(timezone.utc)

    try:
        session.commit()
    except Exception:
        session.rollback()
        raise

    if notify_email and not send_lead_assignment_email(notify_email, lead):
        logger.warning(f"[LEAD] Assignment email failed for lead {lead_id}")

    return lead
