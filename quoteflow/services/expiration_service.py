"""Quote expiration sweeper."""
import logging
from datetime import datetime, date, time, timezone
from typing import Optional, Dict, Any, Union

from sqlalchemy.orm import Session

from quoteflow.models import Quote, QuoteStatus, QuoteEventType, EXPIRABLE_STATUSES
from quoteflow.exceptions import ValidationError, NotFoundError
from quoteflow.blueprints.metrics import quotes_expired_total, quote_transitions_total
from quoteflow.services import followup_service

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str, None]


def parse_valid_until(value: DateLike) -> Optional[datetime]:
    """
    Parse a valid_until value to a naive local datetime.

    - date or bare 'YYYY-MM-DD' -> that day at local midnight
    - datetime / full ISO timestamp -> converted to local time if aware
    - None or '' -> None

    Raises:
        ValueError: unparseable string
    """
    if value is None or value == '':
        return None

    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return datetime.combine(date.fromisoformat(text), time.min)
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        value = datetime.fromisoformat(text)

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value

    return datetime.combine(value, time.min)


def today_midnight(today: Optional[date] = None) -> datetime:
    """Local midnight of today (or of the given day)."""
    return datetime.combine(today or date.today(), time.min)


def is_quote_expired(valid_until: DateLike, today: Optional[date] = None) -> bool:
    """True iff valid_until is strictly before today's local midnight."""
    deadline = parse_valid_until(valid_until)
    if deadline is None:
        return False
    return deadline < today_midnight(today)


def _iso(value: DateLike) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _expire_quote(session: Session, quote: Quote) -> Dict[str, Any]:
    """
    Expire one quote: status write, then follow-up stop, then event.

    The follow-up stop and the event are only attempted when the status
    write succeeded; their failures are reported, not raised.
    """
    result = {
        'quote_id': quote.id,
        'quote_number': quote.quote_number,
        'success': False,
        'previous_status': quote.status,
        'status_updated': False,
        'followups_stopped': False,
        'event_logged': False,
        'error': None,
    }
    previous_status = quote.status
    valid_until = _iso(quote.valid_until)

    # (a) status, only if nobody moved the quote out of an expirable state meanwhile
    try:
        updated = (
            session.query(Quote)
            .filter(Quote.id == quote.id, Quote.status.in_(EXPIRABLE_STATUSES))
            .update({
                Quote.status: QuoteStatus.EXPIRED.value,
                Quote.updated_at: datetime.now(timezone.utc),
            }, synchronize_session=False)
        )
        session.commit()
    except Exception as e:
        session.rollback()
        logger.warning(f"[EXPIRATION] Status update failed for {quote.quote_number}: {e}")
        result['error'] = str(e)
        return result

    if not updated:
        result['error'] = 'status_changed_concurrently'
        return result

    session.expire(quote)
    result['status_updated'] = True
    quotes_expired_total.inc()
    quote_transitions_total.labels(status=QuoteStatus.EXPIRED.value).inc()

    # (b) follow-ups
    try:
        followup_service.stop_active_follow_ups(session, quote.id, followup_service.REASON_EXPIRED)
        result['followups_stopped'] = True
    except Exception as e:
        session.rollback()
        logger.warning(f"[EXPIRATION] Could not stop follow-ups for {quote.quote_number}: {e}")
        result['error'] = f"followups: {e}"

    # (c) event
    try:
        followup_service.log_quote_event(
            session, quote.id, quote.user_id, QuoteEventType.QUOTE_EXPIRED.value,
            {
                'previous_status': previous_status,
                'valid_until': valid_until,
                'quote_number': result['quote_number'],
            }
        )
        result['event_logged'] = True
    except Exception as e:
        session.rollback()
        logger.warning(f"[EXPIRATION] Could not log event for {result['quote_number']}: {e}")
        result['error'] = f"event: {e}"

    result['success'] = True
    return result


def process_quote_expirations(session: Session, user_id: Optional[str] = None,
                              today: Optional[date] = None) -> Dict[str, Any]:
    """
    Expire every sent/viewed/draft quote whose valid_until is past.

    Drafts are part of the scan as well.

    Args:
        user_id: limit the sweep to one tenant (None = all tenants, cron)
        today: reference day (defaults to the local current date)

    Returns:
        {'processed': int, 'expired': int, 'results': [per-quote dict]}
    """
    query = session.query(Quote).filter(Quote.status.in_(EXPIRABLE_STATUSES))
    if user_id:
        query = query.filter(Quote.user_id == user_id)

    candidates = query.all()
    due = []
    for quote in candidates:
        try:
            if is_quote_expired(quote.valid_until, today):
                due.append(quote)
        except ValueError:
            logger.warning(f"[EXPIRATION] Unparseable valid_until on {quote.quote_number}: {quote.valid_until!r}")

    results = [_expire_quote(session, quote) for quote in due]
    expired = sum(1 for r in results if r['status_updated'])

    logger.info(
        f"[EXPIRATION] Scanned {len(candidates)} quote(s), processed {len(results)}, expired {expired}"
        + (f" for user {user_id}" if user_id else "")
    )
    return {'processed': len(results), 'expired': expired, 'results': results}


def check_and_update_quote_expiration(session: Session, quote_id: str, user_id: str,
                                      today: Optional[date] = None) -> Dict[str, Any]:
    """
    On-demand expiration check for one quote.

    Returns {'is_expired': False, 'reason': ...} when nothing had to change,
    otherwise {'is_expired': True, 'result': per-quote dict}.
    """
    if not user_id:
        raise ValidationError('Identifiant utilisateur requis.', field='user_id')

    quote = session.query(Quote).filter(Quote.id == quote_id, Quote.user_id == user_id).first()
    if not quote:
        raise NotFoundError(f'Devis {quote_id} introuvable.')

    if not quote.valid_until:
        return {'is_expired': False, 'reason': 'no_expiration_date'}
    if quote.status not in EXPIRABLE_STATUSES:
        return {'is_expired': False, 'reason': 'already_in_final_state', 'status': quote.status}
    if not is_quote_expired(quote.valid_until, today):
        return {'is_expired': False, 'reason': 'not_yet_expired'}

    result = _expire_quote(session, quote)
    return {'is_expired': result['status_updated'], 'result': result}
