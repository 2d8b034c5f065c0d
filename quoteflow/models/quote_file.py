"""QuoteFile model for categorized quote attachments."""
from sqlalchemy import Column, String, BigInteger, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quoteflow.database import Base, new_id


class QuoteFile(Base):
    """Attachment metadata; the binary lives in object storage under file_path."""

    __tablename__ = 'quote_files'

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(1024), nullable=False)
    file_size = Column(BigInteger, nullable=True)
    mime_type = Column(String(100), nullable=True)
    file_category = Column(String(50), nullable=True)
    custom_category = Column(String(255), nullable=True)
    uploaded_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    quote = relationship('Quote', back_populates='files')

    def __repr__(self):
        return f"<QuoteFile(id={self.id}, file_name='{self.file_name}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'file_name': self.file_name,
            'file_path': self.file_path,
            'file_size': self.file_size,
            'mime_type': self.mime_type,
            'file_category': self.file_category,
            'custom_category': self.custom_category,
            'uploaded_by': self.uploaded_by,
        }
