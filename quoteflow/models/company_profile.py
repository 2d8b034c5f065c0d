"""Company profile model (issuer identity printed on quotes and invoices)."""
from sqlalchemy import Column, String, Text, Boolean, DateTime
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class CompanyProfile(Base):
    """
    Issuing company of a tenant.

    A user managing several businesses has one profile per business; the
    default profile is used when a quote does not reference one.
    """

    __tablename__ = 'company_profiles'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    company_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(120), nullable=True)
    postal_code = Column(String(20), nullable=True)
    website = Column(String(255), nullable=True)
    vat_number = Column(String(50), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<CompanyProfile(id={self.id}, company_name='{self.company_name}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'company_name': self.company_name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'city': self.city,
            'postal_code': self.postal_code,
            'website': self.website,
            'vat_number': self.vat_number,
        }
