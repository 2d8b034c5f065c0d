"""Financial configuration attached to a quote (one row per quote)."""
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class QuoteFinancialConfig(Base):
    """
    VAT / advance / discount / payment terms / marketing banner settings.

    Each column holds the JSON form of one section record
    (see quoteflow.services.financial_config). Upserted, never duplicated.
    """

    __tablename__ = 'quote_financial_configs'

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, unique=True)
    vat_config = Column(JSON, nullable=True)
    advance_config = Column(JSON, nullable=True)
    discount_config = Column(JSON, nullable=True)
    payment_terms = Column(JSON, nullable=True)
    marketing_banner = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    quote = relationship('Quote', back_populates='financial_config')

    def to_dict(self):
        return {
            'id': self.id,
            'vat_config': self.vat_config,
            'advance_config': self.advance_config,
            'discount_config': self.discount_config,
            'payment_terms': self.payment_terms,
            'marketing_banner': self.marketing_banner,
        }
