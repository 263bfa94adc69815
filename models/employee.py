"""
Employee and User models.
"""

from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from .base import BaseModel, TimestampMixin


class User(BaseModel, TimestampMixin):
    """
    Application user account.

    Referenced by employees (``user_id``) and by the loan workflow columns
    ``approved_by``, ``rejected_by`` and ``disbursed_by``.
    """

    __tablename__ = 'users'

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)


class Employee(BaseModel, TimestampMixin):
    """
    Employee of an organization.

    ``employee_id`` is the organization-assigned staff number, distinct from
    the surrogate primary key ``id``; both it and ``email`` must be unique
    across the collection.
    """

    __tablename__ = 'employees'

    organization_id = Column(Integer, ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'))
    employee_id = Column(String(50), nullable=False, unique=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(20))
    date_of_joining = Column(Date)
    designation = Column(String(100))
    department = Column(String(100))
    salary = Column(Numeric(11, 2))
    status = Column(String(20), nullable=False, default='active')
    employment_type = Column(String(20))

    organization = relationship('Organization', backref='employees')
    user = relationship('User')
