"""Client model (the artisan's customers)."""
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class Client(Base):
    """Client of a tenant. Quotes and invoices are always issued to one client."""

    __tablename__ = 'clients'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(120), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(2), nullable=True)
    peppol_id = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.name}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'company': self.company,
            'address': self.address,
            'city': self.city,
            'postal_code': self.postal_code,
            'country': self.country,
        }
