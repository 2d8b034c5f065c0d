"""Lead request model (inbound requests for work)."""
import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class LeadStatus(enum.Enum):
    """Lead status enum."""
    NEW = "new"
    ASSIGNED = "assigned"
    QUOTE_SENT = "quote_sent"
    CLOSED = "closed"


class LeadRequest(Base):
    """
    Inbound lead.

    A lead can be assigned to an artisan (user_id) and later converted to a
    quote, at which point status becomes quote_sent and converted_quote_id is
    populated.
    """

    __tablename__ = 'lead_requests'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=True, index=True)
    client_name = Column(String(255), nullable=False)
    client_email = Column(String(255), nullable=True)
    client_phone = Column(String(50), nullable=True)
    project_description = Column(Text, nullable=True)
    city = Column(String(120), nullable=True)
    status = Column(String(20), nullable=False, default=LeadStatus.NEW.value)
    converted_quote_id = Column(String(36), ForeignKey('quotes.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<LeadRequest(id={self.id}, status='{self.status}')>"
