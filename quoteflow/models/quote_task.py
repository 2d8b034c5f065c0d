"""QuoteTask and QuoteMaterial models for quote line items."""
from sqlalchemy import Column, String, Numeric, Integer, Text, ForeignKey
from sqlalchemy.orm import relationship
from quoteflow.database import Base, new_id


def _amount(value):
    return float(value) if value is not None else None


class QuoteTask(Base):
    """
    Quote Task (Prestation).

    Tasks are ordered by order_index and are deleted and re-inserted as a
    whole every time the quote's task list is updated.
    """

    __tablename__ = 'quote_tasks'

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Numeric(12, 3), nullable=False, default=1)
    unit = Column(String(50), nullable=True)
    unit_price = Column(Numeric(14, 2), nullable=False, default=0)
    total_price = Column(Numeric(14, 2), nullable=False, default=0)
    duration = Column(Numeric(10, 2), nullable=True)
    duration_unit = Column(String(20), nullable=True)
    pricing_type = Column(String(20), nullable=True)  # flat, hourly
    hourly_rate = Column(Numeric(14, 2), nullable=True)
    order_index = Column(Integer, nullable=False, default=0)

    # Relationships
    quote = relationship('Quote', back_populates='tasks')
    materials = relationship(
        'QuoteMaterial', back_populates='task', cascade='all, delete-orphan',
        order_by='QuoteMaterial.order_index'
    )

    def __repr__(self):
        return f"<QuoteTask(id={self.id}, quote_id={self.quote_id}, name='{self.name}', total={self.total_price})>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'quantity': _amount(self.quantity),
            'unit': self.unit,
            'unit_price': _amount(self.unit_price),
            'total_price': _amount(self.total_price),
            'duration': _amount(self.duration),
            'duration_unit': self.duration_unit,
            'pricing_type': self.pricing_type,
            'hourly_rate': _amount(self.hourly_rate),
            'order_index': self.order_index,
            'materials': [m.to_dict() for m in self.materials],
        }


class QuoteMaterial(Base):
    """Material consumed by a task (Fourniture)."""

    __tablename__ = 'quote_materials'

    id = Column(String(36), primary_key=True, default=new_id)
    quote_id = Column(String(36), ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False, index=True)
    quote_task_id = Column(String(36), ForeignKey('quote_tasks.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Numeric(12, 3), nullable=False, default=1)
    unit = Column(String(50), nullable=True)
    unit_price = Column(Numeric(14, 2), nullable=False, default=0)
    total_price = Column(Numeric(14, 2), nullable=False, default=0)
    order_index = Column(Integer, nullable=False, default=0)

    task = relationship('QuoteTask', back_populates='materials')

    def __repr__(self):
        return f"<QuoteMaterial(id={self.id}, task={self.quote_task_id}, name='{self.name}')>"

    def to_dict(self):
        return {
            'id': self.id,
            'quote_task_id': self.quote_task_id,
            'name': self.name,
            'description': self.description,
            'quantity': _amount(self.quantity),
            'unit': self.unit,
            'unit_price': _amount(self.unit_price),
            'total_price': _amount(self.total_price),
            'order_index': self.order_index,
        }
