"""Quote service: quote aggregate persistence and lifecycle transitions."""
import logging
import secrets
import string
from datetime import datetime, date, timedelta, timezone
from decimal import Decimal
from typing import Dict, Any, List, Optional

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quoteflow.database import new_id
from quoteflow.models import (
    Quote, QuoteTask, QuoteMaterial, QuoteFile, QuoteFinancialConfig, QuoteShare,
    QuoteAccessLog, Client, CompanyProfile, LeadRequest, Invoice, QuoteStatus, QuoteEventType
)
from quoteflow.exceptions import BusinessLogicError, ValidationError, NotFoundError, InvalidTransitionError
from quoteflow.blueprints.metrics import quote_transitions_total
from quoteflow.services import email_service, followup_service, lead_service
from quoteflow.services.financial_config import FinancialConfig
from quoteflow.services.numbering_service import generate_quote_number
from quoteflow.services.quote_draft_service import delete_quote_draft_by_quote_number
from quoteflow.services.side_effects import SideEffects
from quoteflow.utils.formatters import truncate
from quoteflow.utils.number_format import parse_amount, parse_optional_amount, parse_quantity

logger = logging.getLogger(__name__)

# Column limits; longer input is clamped, never rejected
QUOTE_NUMBER_MAX = 50
TITLE_MAX = 255
NAME_MAX = 255
UNIT_MAX = 50
DURATION_UNIT_MAX = 20
FILE_NAME_MAX = 255
CATEGORY_MAX = 255

SHARE_TOKEN_LENGTH = 32
SHARE_TOKEN_ALPHABET = string.ascii_letters + string.digits

# Statuses only reachable through their dedicated operations
SYSTEM_ONLY_STATUSES = (QuoteStatus.EXPIRED.value, QuoteStatus.CONVERTED_TO_INVOICE.value)
CREATABLE_STATUSES = (QuoteStatus.DRAFT.value, QuoteStatus.SENT.value)


def generate_share_token() -> str:
    """Random 32-char alphanumeric token for the public quote link."""
    return ''.join(secrets.choice(SHARE_TOKEN_ALPHABET) for _ in range(SHARE_TOKEN_LENGTH))


def _now():
    return datetime.now(timezone.utc)


def _parse_date_input(value, field='valid_until') -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f'Date invalide pour {field}', field=field)


def _commit(session: Session):
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise


def _get_owned_quote(session: Session, quote_id: str, user_id: str) -> Quote:
    if not user_id:
        raise ValidationError('Identifiant utilisateur requis.', field='user_id')
    quote = session.query(Quote).filter(Quote.id == quote_id, Quote.user_id == user_id).first()
    if not quote:
        raise NotFoundError(f'Devis {quote_id} introuvable.')
    return quote


def _get_owned_client(session: Session, client_id: str, user_id: str) -> Client:
    client = session.query(Client).filter(Client.id == client_id, Client.user_id == user_id).first()
    if not client:
        raise NotFoundError('Client introuvable.')
    return client


# ---------------------------------------------------------------------------
# Children
# ---------------------------------------------------------------------------

def _line_total(item: Dict[str, Any], quantity: Decimal, unit_price: Decimal, field: str) -> Decimal:
    explicit = parse_optional_amount(item.get('total_price'), field=f'{field}.total_price')
    if explicit is not None:
        return explicit
    return parse_amount(quantity * unit_price, field=f'{field}.total_price')


def _build_tasks(quote_id: str, tasks_data: List[Dict[str, Any]]) -> List[QuoteTask]:
    tasks = []
    for index, item in enumerate(tasks_data or []):
        field = f'tasks[{index}]'
        quantity = parse_quantity(item.get('quantity'), field=f'{field}.quantity')
        unit_price = parse_amount(item.get('unit_price'), field=f'{field}.unit_price')
        task = QuoteTask(
            id=new_id(),
            quote_id=quote_id,
            name=truncate(item.get('name') or item.get('description') or 'Prestation', NAME_MAX),
            description=item.get('description'),
            quantity=quantity,
            unit=truncate(item.get('unit'), UNIT_MAX),
            unit_price=unit_price,
            total_price=_line_total(item, quantity, unit_price, field),
            duration=parse_optional_amount(item.get('duration'), field=f'{field}.duration'),
            duration_unit=truncate(item.get('duration_unit'), DURATION_UNIT_MAX),
            pricing_type=truncate(item.get('pricing_type'), 20),
            hourly_rate=parse_optional_amount(item.get('hourly_rate'), field=f'{field}.hourly_rate'),
            order_index=item.get('order_index', index),
        )

        for m_index, material in enumerate(item.get('materials') or []):
            m_field = f'{field}.materials[{m_index}]'
            m_quantity = parse_quantity(material.get('quantity'), field=f'{m_field}.quantity')
            m_price = parse_amount(material.get('unit_price'), field=f'{m_field}.unit_price')
            task.materials.append(QuoteMaterial(
                id=new_id(),
                quote_id=quote_id,
                name=truncate(material.get('name') or 'Fourniture', NAME_MAX),
                description=material.get('description'),
                quantity=m_quantity,
                unit=truncate(material.get('unit'), UNIT_MAX),
                unit_price=m_price,
                total_price=_line_total(material, m_quantity, m_price, m_field),
                order_index=material.get('order_index', m_index),
            ))

        tasks.append(task)
    return tasks


def _build_files(quote_id: str, files_data: List[Dict[str, Any]], user_id: str) -> List[QuoteFile]:
    files = []
    for item in files_data or []:
        if not item.get('file_path'):
            raise ValidationError('Chemin de fichier requis.', field='files.file_path')
        files.append(QuoteFile(
            quote_id=quote_id,
            file_name=truncate(item.get('file_name') or item['file_path'].rsplit('/', 1)[-1], FILE_NAME_MAX),
            file_path=item['file_path'],
            file_size=item.get('file_size'),
            mime_type=item.get('mime_type'),
            file_category=truncate(item.get('file_category'), 50),
            custom_category=truncate(item.get('custom_category'), CATEGORY_MAX),
            uploaded_by=item.get('uploaded_by') or user_id,
        ))
    return files


def _apply_financial_config(quote: Quote, config_data: Optional[Dict[str, Any]]) -> None:
    """Upsert the single financial config row of a quote."""
    columns = FinancialConfig.from_dict(config_data).columns()
    if quote.financial_config is None:
        quote.financial_config = QuoteFinancialConfig(quote_id=quote.id, **columns)
    else:
        for name, value in columns.items():
            setattr(quote.financial_config, name, value)


def _apply_children(quote: Quote, data: Dict[str, Any], user_id: str) -> None:
    """Replace owned children wholesale for every collection present in data."""
    if 'tasks' in data:
        quote.tasks = _build_tasks(quote.id, data.get('tasks'))
    if 'files' in data:
        quote.files = _build_files(quote.id, data.get('files'), user_id)
    if 'financial_config' in data:
        _apply_financial_config(quote, data.get('financial_config'))


def _apply_amounts(quote: Quote, data: Dict[str, Any]) -> None:
    for field in ('total_amount', 'tax_amount', 'discount_amount', 'final_amount'):
        if field in data:
            setattr(quote, field, parse_amount(data.get(field), field=field))


# ---------------------------------------------------------------------------
# Side effects
# ---------------------------------------------------------------------------

def _create_share(session: Session, quote: Quote) -> bool:
    existing = session.query(QuoteShare).filter(
        QuoteShare.quote_id == quote.id,
        QuoteShare.share_token == quote.share_token
    ).first()
    if existing:
        return True
    session.add(QuoteShare(
        quote_id=quote.id,
        user_id=quote.user_id,
        share_token=quote.share_token,
        access_count=0,
        is_active=True,
    ))
    _commit(session)
    return True


def _lead_email(session: Session, quote: Quote) -> Optional[str]:
    if not quote.lead_id:
        return None
    lead = session.query(LeadRequest).filter(LeadRequest.id == quote.lead_id).first()
    return lead.client_email if lead else None


def _notify_client(session: Session, quote: Quote, updated: bool) -> bool:
    """
    Single notification call site for sent quotes.

    A quote created from a lead is mailed to the lead's address.
    """
    email_override = _lead_email(session, quote)
    company_profile = quote.company_profile
    if company_profile is None:
        company_profile = session.query(CompanyProfile).filter(
            CompanyProfile.user_id == quote.user_id,
            CompanyProfile.is_default.is_(True)
        ).first()

    send = email_service.send_quote_updated_email if updated else email_service.send_quote_sent_email
    result = send(quote, quote.client, company_profile, email_override=email_override)
    if not result.get('success'):
        logger.warning(f"[EMAIL] Notification failed for quote {quote.quote_number}: {result.get('error')}")
        return False

    followup_service.log_quote_event(
        session, quote.id, quote.user_id, QuoteEventType.EMAIL_SENT.value,
        {'kind': 'quote_updated' if updated else 'quote_sent',
         'recipient': email_override or (quote.client.email if quote.client else None)}
    )
    return True


def _queue_first_send(effects: SideEffects, session: Session, quote: Quote) -> None:
    """Effects of a real non-sent -> sent edge, in order."""
    if quote.lead_id:
        effects.add('lead_conversion', lead_service.convert_lead_to_quote,
                    session, quote.lead_id, quote.id, quote.user_id)
    effects.add('share', _create_share, session, quote)
    effects.add('followup', followup_service.request_followup_for_sent_quote, session, quote.id)
    effects.add('notification', _notify_client, session, quote, False)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def create_quote(session: Session, user_id: str, data: Dict[str, Any]) -> Quote:
    """
    Create a quote with its tasks, materials, files and financial config.

    The quote and its children are written in one transaction. When the
    quote is created directly as sent, the send side effects run after the
    commit. The matching draft, if any, is removed.

    Raises:
        ValidationError: missing user_id/client_id, invalid status or amount
        NotFoundError: client does not belong to the user
    """
    if not user_id:
        raise ValidationError('Identifiant utilisateur requis.', field='user_id')

    client_id = data.get('client_id') or (data.get('client') or {}).get('id')
    if not client_id:
        raise ValidationError('Client requis.', field='client_id')

    status = data.get('status') or QuoteStatus.DRAFT.value
    if status not in CREATABLE_STATUSES:
        raise ValidationError(f'Statut invalide à la création : {status}', field='status')

    _get_owned_client(session, client_id, user_id)

    quote_number = truncate(data.get('quote_number'), QUOTE_NUMBER_MAX) or generate_quote_number(session, user_id)

    if 'valid_until' in data:
        valid_until = _parse_date_input(data.get('valid_until'))
    else:
        valid_until = date.today() + timedelta(days=current_app.config.get('QUOTE_VALID_DAYS', 30))

    quote = Quote(
        id=new_id(),
        user_id=user_id,
        profile_id=data.get('profile_id'),
        company_profile_id=data.get('company_profile_id'),
        client_id=client_id,
        lead_id=data.get('lead_id'),
        quote_number=quote_number,
        title=truncate(data.get('title'), TITLE_MAX),
        description=data.get('description'),
        status=status,
        valid_until=valid_until,
        share_token=generate_share_token(),
        is_public=False,
    )
    _apply_amounts(quote, data)

    if status == QuoteStatus.SENT.value:
        quote.sent_at = _now()
        quote.is_public = True

    try:
        session.add(quote)
        _apply_children(quote, data, user_id)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f"Le numéro de devis {quote_number} existe déjà.")
    except Exception:
        session.rollback()
        raise

    quote_transitions_total.labels(status=status).inc()
    logger.info(f"[QUOTE] Created {quote.quote_number} ({status}) for user {user_id}")

    effects = SideEffects(session, context=f"quote={quote.id}")
    if status == QuoteStatus.SENT.value:
        _queue_first_send(effects, session, quote)
    effects.add('draft_cleanup', delete_quote_draft_by_quote_number,
                session, user_id, quote.quote_number, quote.profile_id)
    effects.run()

    return quote


def update_quote(session: Session, quote_id: str, user_id: str, data: Dict[str, Any]) -> Quote:
    """
    Update quote fields and replace children present in data.

    A status in data is applied afterwards through update_quote_status, so
    re-saving a sent quote with status 'sent' sends the update notification.
    """
    quote = _get_owned_quote(session, quote_id, user_id)

    target_status = data.get('status')
    if target_status and target_status not in QuoteStatus.values():
        raise ValidationError(f'Statut invalide : {target_status}', field='status')
    if target_status in SYSTEM_ONLY_STATUSES:
        raise InvalidTransitionError(quote.status, target_status)

    try:
        if 'client_id' in data and data['client_id'] != quote.client_id:
            _get_owned_client(session, data['client_id'], user_id)
            quote.client_id = data['client_id']
        if data.get('quote_number'):
            quote.quote_number = truncate(data['quote_number'], QUOTE_NUMBER_MAX)
        if 'title' in data:
            quote.title = truncate(data.get('title'), TITLE_MAX)
        for field in ('description', 'lead_id', 'profile_id', 'company_profile_id'):
            if field in data:
                setattr(quote, field, data.get(field))
        if 'valid_until' in data:
            quote.valid_until = _parse_date_input(data.get('valid_until'))
        _apply_amounts(quote, data)
        _apply_children(quote, data, user_id)
        quote.updated_at = _now()
        session.commit()
    except IntegrityError:
        session.rollback()
        raise BusinessLogicError(f"Le numéro de devis {data.get('quote_number')} existe déjà.")
    except Exception:
        session.rollback()
        raise

    if target_status and (target_status != quote.status or target_status == QuoteStatus.SENT.value):
        return update_quote_status(session, quote.id, user_id, target_status)
    return quote


def update_quote_status(session: Session, quote_id: str, user_id: str, status: str) -> Quote:
    """
    Move a quote to a new status and run the transition's side effects.

    - sent (already sent): update notification only; sent_at untouched,
      no new follow-up chain
    - sent (first time or re-send from another status): sent_at set once,
      public link enabled, share row, follow-up chain replaced,
      "quote ready" notification
    - viewed: follow-up chain replaced by the post-view chain
    - draft/accepted/rejected: status write only
    - expired/converted_to_invoice: rejected, owned by the sweeper and the
      invoice conversion

    Raises:
        ValidationError: unknown status
        InvalidTransitionError: expired or converted_to_invoice requested
        NotFoundError: quote not owned by user
    """
    if status not in QuoteStatus.values():
        raise ValidationError(f'Statut invalide : {status}', field='status')

    quote = _get_owned_quote(session, quote_id, user_id)
    previous = quote.status

    if status in SYSTEM_ONLY_STATUSES:
        raise InvalidTransitionError(previous, status)

    effects = SideEffects(session, context=f"quote={quote.id}")

    if status == QuoteStatus.SENT.value and previous == QuoteStatus.SENT.value:
        effects.add('notification', _notify_client, session, quote, True)
        effects.run()
        return quote

    quote.status = status
    quote.updated_at = _now()
    if status == QuoteStatus.SENT.value:
        if quote.sent_at is None:
            quote.sent_at = _now()
        quote.is_public = True
    _commit(session)

    quote_transitions_total.labels(status=status).inc()
    logger.info(f"[QUOTE] {quote.quote_number}: {previous} -> {status}")

    if status == QuoteStatus.SENT.value:
        _queue_first_send(effects, session, quote)
    elif status == QuoteStatus.VIEWED.value:
        effects.add('followup', followup_service.request_followup_for_viewed_quote, session, quote.id)

    effects.run()
    return quote


def mark_quote_viewed_by_token(session: Session, share_token: str, ip_address: Optional[str] = None,
                               user_agent: Optional[str] = None) -> Quote:
    """
    Public link open: log the access and move sent/viewed quotes to viewed.

    Every open of a sent or viewed quote replaces the follow-up chain.
    """
    quote = session.query(Quote).filter(Quote.share_token == share_token).first()
    if not quote or not quote.is_public:
        raise NotFoundError('Devis introuvable.')

    now = _now()
    session.add(QuoteAccessLog(
        quote_id=quote.id,
        share_token=share_token,
        action='viewed',
        ip_address=truncate(ip_address, 45),
        user_agent=truncate(user_agent, 255),
        accessed_at=now,
    ))
    share = session.query(QuoteShare).filter(
        QuoteShare.quote_id == quote.id,
        QuoteShare.share_token == share_token
    ).first()
    if share:
        if not share.is_active:
            session.rollback()
            raise NotFoundError('Ce lien de partage est désactivé.')
        share.access_count = (share.access_count or 0) + 1
        share.last_accessed_at = now
    _commit(session)

    if quote.status in (QuoteStatus.SENT.value, QuoteStatus.VIEWED.value):
        previous = quote.status
        update_quote_status(session, quote.id, quote.user_id, QuoteStatus.VIEWED.value)
        effects = SideEffects(session, context=f"quote={quote.id}")
        effects.add('event', followup_service.log_quote_event, session, quote.id, quote.user_id,
                    QuoteEventType.QUOTE_VIEWED.value, {'previous_status': previous, 'source': 'share_link'})
        effects.run()

    return quote


def delete_quote(session: Session, quote_id: str, user_id: str) -> None:
    """Delete a quote and everything it owns. Invoices keep their quote_number."""
    quote = _get_owned_quote(session, quote_id, user_id)
    try:
        session.query(Invoice).filter(Invoice.quote_id == quote.id).update(
            {Invoice.quote_id: None}, synchronize_session=False
        )
        session.query(LeadRequest).filter(LeadRequest.converted_quote_id == quote.id).update(
            {LeadRequest.converted_quote_id: None}, synchronize_session=False
        )
        session.delete(quote)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info(f"[QUOTE] Deleted {quote_id} for user {user_id}")


def fetch_quote(session: Session, quote_id: str, user_id: str) -> Quote:
    """Quote aggregate (children loaded through relationships)."""
    return _get_owned_quote(session, quote_id, user_id)


def fetch_quotes(session: Session, user_id: str, status: Optional[str] = None) -> List[Quote]:
    if not user_id:
        raise ValidationError('Identifiant utilisateur requis.', field='user_id')
    query = session.query(Quote).filter(Quote.user_id == user_id)
    if status:
        if status not in QuoteStatus.values():
            raise ValidationError(f'Statut invalide : {status}', field='status')
        query = query.filter(Quote.status == status)
    return query.order_by(Quote.created_at.desc()).all()


def get_quote_statistics(session: Session, user_id: str) -> Dict[str, Any]:
    """Count, count per status and summed final amount of a user's quotes."""
    if not user_id:
        raise ValidationError('Identifiant utilisateur requis.', field='user_id')
    rows = (
        session.query(Quote.status, func.count(Quote.id), func.coalesce(func.sum(Quote.final_amount), 0))
        .filter(Quote.user_id == user_id)
        .group_by(Quote.status)
        .all()
    )
    by_status = {s: 0 for s in QuoteStatus.values()}
    total_count = 0
    total_amount = Decimal('0.00')
    for status, count, amount in rows:
        by_status[status] = count
        total_count += count
        total_amount += Decimal(str(amount))
    return {
        'total_count': total_count,
        'by_status': by_status,
        'total_amount': float(total_amount),
    }
