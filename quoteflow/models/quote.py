"""Quote model for devis (priced proposals sent to clients)."""
import enum
from sqlalchemy import (
    Column, String, Numeric, DateTime, Date, Text, Boolean, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class QuoteStatus(enum.Enum):
    """Quote status enum."""
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CONVERTED_TO_INVOICE = "converted_to_invoice"

    @classmethod
    def values(cls):
        return [s.value for s in cls]


# Statuses that still have an open follow-up lifecycle
OPEN_STATUSES = (QuoteStatus.DRAFT.value, QuoteStatus.SENT.value, QuoteStatus.VIEWED.value)

# Statuses scanned by the expiration sweeper (drafts included)
EXPIRABLE_STATUSES = (QuoteStatus.SENT.value, QuoteStatus.VIEWED.value, QuoteStatus.DRAFT.value)


def _amount(value):
    return float(value) if value is not None else None


class Quote(Base):
    """
    Quote (Devis).

    Aggregate root: tasks (with nested materials), files and the financial
    configuration are owned by the quote and replaced wholesale on update.
    Follow-ups, events and shares are append/transition-only and are removed
    only when the quote itself is deleted.
    """

    __tablename__ = 'quotes'
    __table_args__ = (
        UniqueConstraint('user_id', 'quote_number', name='uq_quotes_user_quote_number'),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    profile_id = Column(String(36), nullable=True)
    company_profile_id = Column(String(36), ForeignKey('company_profiles.id', ondelete='SET NULL'), nullable=True)
    client_id = Column(String(36), ForeignKey('clients.id'), nullable=False)
    lead_id = Column(String(36), nullable=True)
    quote_number = Column(String(50), nullable=False)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(String(30), nullable=False, default=QuoteStatus.DRAFT.value, index=True)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(14, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(14, 2), nullable=False, default=0)
    final_amount = Column(Numeric(14, 2), nullable=False, default=0)
    valid_until = Column(Date, nullable=True)
    share_token = Column(String(64), nullable=False, unique=True)
    is_public = Column(Boolean, nullable=False, default=False)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    client = relationship('Client')
    company_profile = relationship('CompanyProfile')
    tasks = relationship(
        'QuoteTask', back_populates='quote', cascade='all, delete-orphan',
        order_by='QuoteTask.order_index'
    )
    files = relationship('QuoteFile', back_populates='quote', cascade='all, delete-orphan')
    financial_config = relationship(
        'QuoteFinancialConfig', back_populates='quote', uselist=False, cascade='all, delete-orphan'
    )
    follow_ups = relationship('QuoteFollowUp', back_populates='quote', cascade='all, delete-orphan')
    events = relationship('QuoteEvent', back_populates='quote', cascade='all, delete-orphan')
    shares = relationship('QuoteShare', back_populates='quote', cascade='all, delete-orphan')
    access_logs = relationship('QuoteAccessLog', back_populates='quote', cascade='all, delete-orphan')

    def __repr__(self):
        return f"<Quote(id={self.id}, number='{self.quote_number}', status='{self.status}', total={self.final_amount})>"

    @property
    def is_convertible(self):
        """Check if quote can be converted to an invoice."""
        return self.status not in (QuoteStatus.DRAFT.value, QuoteStatus.EXPIRED.value,
                                   QuoteStatus.CONVERTED_TO_INVOICE.value)

    def to_dict(self, include_children=True):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'profile_id': self.profile_id,
            'company_profile_id': self.company_profile_id,
            'client_id': self.client_id,
            'lead_id': self.lead_id,
            'quote_number': self.quote_number,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'total_amount': _amount(self.total_amount),
            'tax_amount': _amount(self.tax_amount),
            'discount_amount': _amount(self.discount_amount),
            'final_amount': _amount(self.final_amount),
            'valid_until': self.valid_until.isoformat() if self.valid_until else None,
            'share_token': self.share_token,
            'is_public': self.is_public,
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_children:
            data['client'] = self.client.to_dict() if self.client else None
            data['company_profile'] = self.company_profile.to_dict() if self.company_profile else None
            data['quote_tasks'] = [task.to_dict() for task in self.tasks]
            data['quote_files'] = [f.to_dict() for f in self.files]
            data['quote_financial_configs'] = (
                [self.financial_config.to_dict()] if self.financial_config else []
            )
        return data
