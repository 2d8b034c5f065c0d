"""Quote event model - append-only lifecycle log."""
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class QuoteEventType(enum.Enum):
    """Quote event types."""
    QUOTE_EXPIRED = "quote_expired"
    EMAIL_SENT = "email_sent"
    QUOTE_VIEWED = "quote_viewed"
    LEAD_CONVERTED = "lead_converted"


class QuoteEvent(Base):
    """
    Quote Event.

    Immutable audit entry recording a lifecycle transition or notification.
    Never updated; deleted only by cascade when the quote is deleted.
    """

    __tablename__ = 'quote_events'

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(36), nullable=True, index=True)
    type = Column(String(50), nullable=False)
    meta = Column(JSON, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    quote = relationship('Quote', back_populates='events')

    def __repr__(self):
        return f"<QuoteEvent(id={self.id}, quote_id={self.quote_id}, type='{self.type}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'quote_id': self.quote_id,
            'type': self.type,
            'meta': self.meta,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }
