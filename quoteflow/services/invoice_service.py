"""Invoice service: quote-to-invoice conversion and invoice status."""
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Any, Optional, List

from flask import current_app
from sqlalchemy.orm import Session

from quoteflow.models import Quote, Invoice, InvoiceStatus, QuoteStatus
from quoteflow.exceptions import ValidationError, NotFoundError
from quoteflow.blueprints.metrics import quote_transitions_total
from quoteflow.services import followup_service
from quoteflow.services.numbering_service import generate_invoice_number
from quoteflow.services.side_effects import SideEffects
from quoteflow.utils.number_format import parse_amount, parse_optional_amount

logger = logging.getLogger(__name__)

NOT_CONVERTIBLE_STATUSES = (QuoteStatus.DRAFT.value, QuoteStatus.EXPIRED.value)


def _check_convertible(status: Optional[str]) -> None:
    if status in NOT_CONVERTIBLE_STATUSES:
        raise ValidationError(
            f'Un devis au statut « {status} » ne peut pas être converti en facture.',
            field='status'
        )


def _resolve_client_id(quote: Quote) -> Optional[str]:
    """Client of the stored quote: nested relation first, then the flat column."""
    return (quote.client.id if quote.client else None) or quote.client_id


def _net_amount(quote_data: Dict[str, Any], quote: Quote) -> Decimal:
    explicit = parse_optional_amount(quote_data.get('net_amount'), field='net_amount')
    if explicit is not None:
        return explicit
    total = parse_amount(quote.total_amount, field='total_amount')
    discount = parse_amount(quote.discount_amount, field='discount_amount')
    return max(total - discount, Decimal('0.00'))


def _mark_quote_converted(session: Session, quote: Quote) -> None:
    quote.status = QuoteStatus.CONVERTED_TO_INVOICE.value
    quote.updated_at = datetime.now(timezone.utc)
    session.commit()
    quote_transitions_total.labels(status=QuoteStatus.CONVERTED_TO_INVOICE.value).inc()


def convert_quote_to_invoice(session: Session, quote_data: Dict[str, Any], user_id: str) -> Invoice:
    """
    Create one unpaid invoice from a quote.

    quote_data is whatever the caller holds (API payload or quote.to_dict());
    only its id, status and net_amount are used; the aggregate, including
    the client, is re-read from the database.

    After the invoice is committed, the quote is marked converted_to_invoice
    and the invoice follow-up chain is requested; both are best-effort.

    Raises:
        ValidationError: missing ids, or quote is draft/expired (nothing written)
        NotFoundError: quote not owned by user
    """
    if not user_id:
        raise ValidationError('Identifiant utilisateur requis.', field='user_id')
    quote_id = (quote_data or {}).get('id')
    if not quote_id:
        raise ValidationError('Identifiant de devis requis.', field='quote_id')

    _check_convertible(quote_data.get('status'))

    quote = session.query(Quote).filter(Quote.id == quote_id, Quote.user_id == user_id).first()
    if not quote:
        raise NotFoundError(f'Devis {quote_id} introuvable.')
    _check_convertible(quote.status)

    client_id = _resolve_client_id(quote)
    if not client_id:
        raise ValidationError('Client requis pour la facture.', field='client_id')

    invoice_number = generate_invoice_number(session, user_id)
    today = date.today()
    due_days = current_app.config.get('INVOICE_DUE_DAYS', 30)
    net_amount = _net_amount(quote_data, quote)
    tax_amount = parse_amount(quote.tax_amount, field='tax_amount')
    final_amount = parse_amount(quote.final_amount, field='final_amount') or (net_amount + tax_amount)

    payment_terms = None
    if quote.financial_config and quote.financial_config.payment_terms:
        payment_terms = quote.financial_config.payment_terms.get('terms')

    invoice = Invoice(
        user_id=user_id,
        profile_id=quote.profile_id,
        company_profile_id=quote.company_profile_id,
        client_id=client_id,
        quote_id=quote.id,
        quote_number=quote.quote_number,
        invoice_number=invoice_number,
        title=quote.title,
        description=quote.description,
        status=InvoiceStatus.UNPAID.value,
        amount=parse_amount(quote.total_amount, field='total_amount'),
        net_amount=net_amount,
        tax_amount=tax_amount,
        discount_amount=parse_amount(quote.discount_amount, field='discount_amount'),
        final_amount=final_amount,
        issue_date=today,
        due_date=today + timedelta(days=due_days),
        payment_terms=payment_terms or f'Paiement à {due_days} jours',
        notes=f'Facture générée automatiquement depuis le devis {quote.quote_number}',
    )

    try:
        session.add(invoice)
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(f"[INVOICE] {invoice.invoice_number} created from quote {quote.quote_number}")

    # The invoice stays even if these fail
    effects = SideEffects(session, context=f"invoice={invoice.invoice_number}")
    effects.add('quote_status_after_invoice', _mark_quote_converted, session, quote)
    effects.add('invoice_followup', followup_service.request_followup_for_invoice, invoice.id)
    effects.run()

    return invoice


def update_invoice_status(session: Session, invoice_id: str, user_id: str, status: str) -> Invoice:
    """Set invoice status; paid stamps paid_at, any other status clears it."""
    valid = [s.value for s in InvoiceStatus]
    if status not in valid:
        raise ValidationError(f'Statut de facture invalide : {status}', field='status')

    invoice = session.query(Invoice).filter(Invoice.id == invoice_id, Invoice.user_id == user_id).first()
    if not invoice:
        raise NotFoundError('Facture introuvable.')

    invoice.status = status
    invoice.paid_at = datetime.now(timezone.utc) if status == InvoiceStatus.PAID.value else None

    try:
        session.commit()
    except Exception:
        session.rollback()
        raise
    return invoice


def fetch_invoices(session: Session, user_id: str, status: Optional[str] = None) -> List[Invoice]:
    query = session.query(Invoice).filter(Invoice.user_id == user_id)
    if status:
        query = query.filter(Invoice.status == status)
    return query.order_by(Invoice.issue_date.desc(), Invoice.created_at.desc()).all()
