"""Quote follow-up model (scheduled reminder touchpoints)."""
import enum
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class FollowUpStatus(enum.Enum):
    """Follow-up status enum."""
    PENDING = "pending"
    SCHEDULED = "scheduled"
    STOPPED = "stopped"
    SENT = "sent"


ACTIVE_FOLLOW_UP_STATUSES = (FollowUpStatus.PENDING.value, FollowUpStatus.SCHEDULED.value)


class QuoteFollowUp(Base):
    """
    Follow-up (Relance).

    Rows are written by the external follow-up scheduler and stopped by this
    application. At most one active (pending/scheduled) chain per quote.
    """

    __tablename__ = 'quote_follow_ups'

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    stage = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=FollowUpStatus.PENDING.value)
    scheduled_at = Column(DateTime(timezone=True), nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    quote = relationship('Quote', back_populates='follow_ups')

    def __repr__(self):
        return f"<QuoteFollowUp(id={self.id}, quote_id={self.quote_id}, stage={self.stage}, status='{self.status}')>"

    @property
    def is_active(self):
        return self.status in ACTIVE_FOLLOW_UP_STATUSES
