"""
Loan and LoanRepayment models.
"""

from sqlalchemy import Column, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel, TimestampMixin


class Loan(BaseModel, TimestampMixin):
    """Employee loan. ``loan_number`` is unique across the collection."""

    __tablename__ = 'loans'

    organization_id = Column(Integer, ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey('employees.id', ondelete='CASCADE'), nullable=False, index=True)
    loan_number = Column(String(50), nullable=False, unique=True, index=True)
    type = Column(String(100))
    amount = Column(Numeric(14, 2), nullable=False)
    interest_rate = Column(Numeric(5, 2), nullable=False)
    term_months = Column(Integer, nullable=False)
    start_date = Column(Date)
    end_date = Column(Date)
    status = Column(String(20), nullable=False, default='pending')
    purpose = Column(Text)

    organization = relationship('Organization', backref='loans')
    employee = relationship('Employee', backref='loans')


class LoanRepayment(BaseModel, TimestampMixin):
    """Single repayment made against a loan."""

    __tablename__ = 'loan_repayments'

    loan_id = Column(Integer, ForeignKey('loans.id', ondelete='CASCADE'), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    payment_method = Column(String(20), nullable=False)
    transaction_id = Column(String(100))
    remarks = Column(Text)

    loan = relationship('Loan', backref='repayments')
