"""Client invoice model."""
import enum
from sqlalchemy import Column, String, Date, Numeric, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class InvoiceStatus(enum.Enum):
    """Invoice status enum."""
    UNPAID = "unpaid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


def _amount(value):
    return float(value) if value is not None else None


class Invoice(Base):
    """Invoice (Facture). Created from an accepted/sent quote or manually."""

    __tablename__ = 'invoices'
    __table_args__ = (
        UniqueConstraint('user_id', 'invoice_number', name='uq_invoices_user_invoice_number'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    profile_id = Column(String(36), nullable=True)
    company_profile_id = Column(String(36), ForeignKey('company_profiles.id', ondelete='SET NULL'), nullable=True)
    client_id = Column(String(36), ForeignKey('clients.id'), nullable=False)
    quote_id = Column(String(36), ForeignKey('quotes.id', ondelete='SET NULL'), nullable=True)
    invoice_number = Column(String(50), nullable=False)
    quote_number = Column(String(50), nullable=True)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=InvoiceStatus.UNPAID.value)
    amount = Column(Numeric(14, 2), nullable=False, default=0)
    net_amount = Column(Numeric(14, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(14, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(14, 2), nullable=False, default=0)
    final_amount = Column(Numeric(14, 2), nullable=False, default=0)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    payment_method = Column(String(50), nullable=True)
    payment_terms = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    # Relationships
    client = relationship('Client')
    company_profile = relationship('CompanyProfile')
    quote = relationship('Quote', foreign_keys=[quote_id])

    def __repr__(self):
        return f"<Invoice(id={self.id}, invoice_number='{self.invoice_number}', status={self.status})>"

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'client_id': self.client_id,
            'quote_id': self.quote_id,
            'invoice_number': self.invoice_number,
            'quote_number': self.quote_number,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'amount': _amount(self.amount),
            'net_amount': _amount(self.net_amount),
            'tax_amount': _amount(self.tax_amount),
            'discount_amount': _amount(self.discount_amount),
            'final_amount': _amount(self.final_amount),
            'issue_date': self.issue_date.isoformat() if self.issue_date else None,
            'due_date': self.due_date.isoformat() if self.due_date else None,
            'payment_method': self.payment_method,
            'payment_terms': self.payment_terms,
            'notes': self.notes,
            'paid_at': self.paid_at.isoformat() if self.paid_at else None,
        }
