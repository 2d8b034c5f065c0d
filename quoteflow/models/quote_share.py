"""Public share link models."""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class QuoteShare(Base):
    """Share link created the first time a quote is sent."""

    __tablename__ = 'quote_shares'

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(String(36), nullable=False)
    share_token = Column(String(64), nullable=False, index=True)
    access_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    quote = relationship('Quote', back_populates='shares')

    def __repr__(self):
        return f"<QuoteShare(id={self.id}, quote_id={self.quote_id}, access_count={self.access_count})>"


class QuoteAccessLog(Base):
    """One row per open of the public share link."""

    __tablename__ = 'quote_access_logs'

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, index=True)
    share_token = Column(String(64), nullable=False)
    action = Column(String(30), nullable=False, default='viewed')
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(255), nullable=True)
    accessed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    quote = relationship('Quote', back_populates='access_logs')
