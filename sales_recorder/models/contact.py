"""
Contact model for prospects and customers.
"""
from sqlalchemy import Column, String

from sales_recorder.models.base import Base, TimestampMixin, generate_uuid


class Contact(Base, TimestampMixin):
    """A prospect the salesperson talks to."""
    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    company = Column(String(200), nullable=True)
    email = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)

