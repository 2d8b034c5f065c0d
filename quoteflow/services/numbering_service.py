"""Sequential document numbers per tenant (Q-2026-001, INV-2026-001)."""
import re
from datetime import date

from flask import current_app
from sqlalchemy import func

from quoteflow.models import Quote, Invoice


def _next_number(session, model, column, user_id: str, prefix: str) -> str:
    year = date.today().year
    head = f"{prefix}-{year}-"

    existing = (
        session.query(column)
        .filter(model.user_id == user_id, column.like(f"{head}%"))
        .all()
    )

    # Highest numeric suffix wins; count is only the fallback for gaps
    highest = 0
    pattern = re.compile(rf"^{re.escape(head)}(\d+)$")
    for (number,) in existing:
        match = pattern.match(number or '')
        if match:
            highest = max(highest, int(match.group(1)))

    count = session.query(func.count(model.id)).filter(model.user_id == user_id,
                                                       column.like(f"{head}%")).scalar() or 0
    sequence = max(highest, count) + 1
    return f"{head}{sequence:03d}"


def generate_quote_number(session, user_id: str) -> str:
    """
    Generate next quote number for a tenant.

    Format: Q-YYYY-NNN (prefix configurable with QUOTE_NUMBER_PREFIX).
    """
    prefix = current_app.config.get('QUOTE_NUMBER_PREFIX', 'Q')
    return _next_number(session, Quote, Quote.quote_number, user_id, prefix)


def generate_invoice_number(session, user_id: str) -> str:
    """Generate next invoice number for a tenant (INV-YYYY-NNN)."""
    prefix = current_app.config.get('INVOICE_NUMBER_PREFIX', 'INV')
    return _next_number(session, Invoice, Invoice.invoice_number, user_id, prefix)
