"""Quote Draft Service - persistent scratch copies of the quote form (multi-tenant)."""
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session

from quoteflow.models import QuoteDraft
from quoteflow.exceptions import ValidationError, NotFoundError
from quoteflow.utils.formatters import truncate

logger = logging.getLogger(__name__)


def _require_user(user_id):
    if not user_id:
        raise ValidationError('Identifiant utilisateur requis.', field='user_id')


def _key_filter(query, user_id: str, profile_id: Optional[str], quote_number: str):
    query = query.filter(QuoteDraft.user_id == user_id, QuoteDraft.quote_number == quote_number)
    # NULL profile_id must match with IS NULL, not "= NULL"
    if profile_id:
        return query.filter(QuoteDraft.profile_id == profile_id)
    return query.filter(QuoteDraft.profile_id.is_(None))


def _commit(session: Session):
    try:
        session.commit()
    except Exception:
        session.rollback()
        raise


def save_quote_draft(
    session: Session,
    user_id: str,
    draft_data: Dict[str, Any],
    profile_id: Optional[str] = None,
    quote_number: Optional[str] = None,
    draft_id: Optional[str] = None
) -> QuoteDraft:
    """
    Save a draft.

    1. draft_id given and found -> update that row.
    2. quote_number given -> update the draft with the same
       (user_id, profile_id, quote_number), or insert one.
    3. Otherwise insert a new draft.

    Store failures are raised; a draft_id that no longer exists falls back
    to the key-based save.
    """
    _require_user(user_id)
    quote_number = truncate(quote_number, 50) or None
    now = datetime.now(timezone.utc)

    draft = None
    if draft_id:
        draft = session.query(QuoteDraft).filter(
            QuoteDraft.id == draft_id,
            QuoteDraft.user_id == user_id
        ).first()
        if draft is None:
            logger.info(f"[DRAFT] Draft {draft_id} not found, falling back to key lookup")

    if draft is None and quote_number:
        draft = _key_filter(session.query(QuoteDraft), user_id, profile_id, quote_number).first()

    if draft is None:
        draft = QuoteDraft(user_id=user_id, profile_id=profile_id, quote_number=quote_number)
        session.add(draft)
    elif quote_number:
        # Renaming onto a key held by another draft: this save wins
        if draft.quote_number != quote_number:
            _key_filter(session.query(QuoteDraft), user_id, draft.profile_id, quote_number).filter(
                QuoteDraft.id != draft.id
            ).delete(synchronize_session=False)
        draft.quote_number = quote_number

    draft.draft_data = dict(draft_data or {})
    draft.last_saved = now
    _commit(session)
    return draft


def load_quote_draft(session: Session, user_id: str, draft_id: str) -> QuoteDraft:
    _require_user(user_id)
    draft = session.query(QuoteDraft).filter(
        QuoteDraft.id == draft_id,
        QuoteDraft.user_id == user_id
    ).first()
    if not draft:
        raise NotFoundError('Brouillon introuvable.')
    return draft


def load_quote_draft_by_quote_number(session: Session, user_id: str, quote_number: str,
                                     profile_id: Optional[str] = None) -> Optional[QuoteDraft]:
    """Draft for the natural key, or None."""
    _require_user(user_id)
    if not quote_number:
        raise ValidationError('Numéro de devis requis.', field='quote_number')
    return _key_filter(session.query(QuoteDraft), user_id, profile_id, quote_number).first()


def delete_quote_draft(session: Session, user_id: str, draft_id: str) -> None:
    draft = load_quote_draft(session, user_id, draft_id)
    session.delete(draft)
    _commit(session)


def delete_quote_draft_by_quote_number(session: Session, user_id: str, quote_number: str,
                                       profile_id: Optional[str] = None) -> int:
    """Delete the draft(s) for a key. Returns the number of rows removed."""
    _require_user(user_id)
    if not quote_number:
        return 0
    deleted = _key_filter(session.query(QuoteDraft), user_id, profile_id, quote_number).delete(
        synchronize_session=False
    )
    _commit(session)
    return deleted


def list_quote_drafts(session: Session, user_id: str, profile_id: Optional[str] = None) -> List[QuoteDraft]:
    _require_user(user_id)
    query = session.query(QuoteDraft).filter(QuoteDraft.user_id == user_id)
    if profile_id:
        query = query.filter(QuoteDraft.profile_id == profile_id)
    return query.order_by(QuoteDraft.last_saved.desc()).all()


def load_recent_quote_drafts(session: Session, user_id: str, limit: int = 5,
                             profile_id: Optional[str] = None) -> List[QuoteDraft]:
    """Most recently saved drafts first."""
    _require_user(user_id)
    query = session.query(QuoteDraft).filter(QuoteDraft.user_id == user_id)
    if profile_id:
        query = query.filter(QuoteDraft.profile_id == profile_id)
    return query.order_by(QuoteDraft.last_saved.desc()).limit(limit).all()
