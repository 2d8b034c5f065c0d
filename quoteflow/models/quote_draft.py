"""Quote Draft model for in-progress quote edits (multi-tenant)."""
from sqlalchemy import Column, String, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class QuoteDraft(Base):
    """
    Quote Draft - scratch copy of the quote creation form.

    Keyed by (user_id, profile_id, quote_number); at most one draft per key
    tuple. The UNIQUE constraint does not cover NULL profile_id rows, the
    draft service enforces that case.
    """

    __tablename__ = 'quote_drafts'
    __table_args__ = (
        UniqueConstraint('user_id', 'profile_id', 'quote_number', name='uq_quote_drafts_key'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    profile_id = Column(String(36), nullable=True)
    quote_number = Column(String(50), nullable=True)
    draft_data = Column(JSON, nullable=False, default=dict)
    last_saved = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<QuoteDraft(id={self.id}, user_id={self.user_id}, quote_number='{self.quote_number}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'profile_id': self.profile_id,
            'quote_number': self.quote_number,
            'draft_data': self.draft_data,
            'last_saved': self.last_saved.isoformat() if self.last_saved else None,
        }
