"""
Organization model.

Tenants of the backend. The request validation layer checks
``organizations.id`` for existence and ``code``, ``registration_number`` and
``email`` for uniqueness.
"""

from sqlalchemy import Column, Date, Numeric, String, Text

from .base import BaseModel, TimestampMixin


class Organization(BaseModel, TimestampMixin):
    """Tenant organization owning employees, loans and documents."""

    __tablename__ = 'organizations'

    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False, unique=True, index=True)
    type = Column(String(100), nullable=False)
    registration_number = Column(String(50), nullable=False, unique=True, index=True)
    tax_number = Column(String(50))
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(20))
    address = Column(Text)
    city = Column(String(100))
    state = Column(String(100))
    country = Column(String(100))
    postal_code = Column(String(20))
    website = Column(String(255))
    status = Column(String(20), nullable=False, default='active')
    founding_date = Column(Date)
    industry = Column(String(100))
    size = Column(String(20))
    annual_revenue = Column(Numeric(14, 2))
    currency = Column(String(3))
    timezone = Column(String(50))
    password = Column(String(255))
