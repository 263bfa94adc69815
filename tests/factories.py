"""
Factory Boy Test Data Generation Module

SQLAlchemy model factories for the records the validation layer reads:
organizations, users, employees, loans, loan repayments and documents.

Features:
- Factory Boy integration with the Flask-SQLAlchemy scoped session
- Sequence-based unique fields (codes, emails, numbers) to avoid conflicts
- Faker-generated descriptive fields
- SubFactory relationships with proper foreign key management

Dependencies:
- factory-boy: Django-style factory patterns for SQLAlchemy
- faker: Realistic fake data generation
"""

from datetime import date, timedelta
from decimal import Decimal

import factory
from factory.alchemy import SQLAlchemyModelFactory
from faker import Faker

from models import Document, Employee, Loan, LoanRepayment, Organization, User, db

fake = Faker()


class BaseModelFactory(SQLAlchemyModelFactory):
    """Base factory committing through the application's scoped session."""

    class Meta:
        abstract = True
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = 'commit'


class OrganizationFactory(BaseModelFactory):
    class Meta:
        model = Organization

    name = factory.LazyFunction(lambda: fake.company()[:255])
    code = factory.Sequence(lambda n: f"ORG{n:04d}")
    type = 'private'
    registration_number = factory.Sequence(lambda n: f"REG-{n:06d}")
    email = factory.Sequence(lambda n: f"org{n}@acmeholdings.com")
    phone = factory.LazyFunction(lambda: fake.numerify('+1-###-###-####'))
    address = factory.LazyFunction(lambda: fake.street_address())
    city = factory.LazyFunction(lambda: fake.city()[:100])
    state = factory.LazyFunction(lambda: fake.state()[:100])
    country = 'United States'
    postal_code = factory.LazyFunction(lambda: fake.postcode())
    status = 'active'
    founding_date = factory.LazyFunction(lambda: fake.date_between(start_date='-30y', end_date='-1y'))
    industry = 'Finance'
    size = 'medium'
    currency = 'USD'
    timezone = 'America/New_York'


class UserFactory(BaseModelFactory):
    class Meta:
        model = User

    name = factory.LazyFunction(lambda: fake.name())
    email = factory.Sequence(lambda n: f"user{n}@acmeholdings.com")


class EmployeeFactory(BaseModelFactory):
    class Meta:
        model = Employee

    organization = factory.SubFactory(OrganizationFactory)
    employee_id = factory.Sequence(lambda n: f"EMP-{n:05d}")
    first_name = factory.LazyFunction(lambda: fake.first_name())
    last_name = factory.LazyFunction(lambda: fake.last_name())
    email = factory.Sequence(lambda n: f"employee{n}@acmeholdings.com")
    date_of_joining = factory.LazyFunction(lambda: fake.date_between(start_date='-5y', end_date='today'))
    designation = 'Engineer'
    department = 'Engineering'
    salary = Decimal('65000.00')
    status = 'active'
    employment_type = 'full_time'


class LoanFactory(BaseModelFactory):
    class Meta:
        model = Loan

    employee = factory.SubFactory(EmployeeFactory)
    organization = factory.SelfAttribute('employee.organization')
    loan_number = factory.Sequence(lambda n: f"LN-{n:06d}")
    type = 'personal'
    amount = Decimal('10000.00')
    interest_rate = Decimal('6.50')
    term_months = 12
    start_date = factory.LazyFunction(date.today)
    end_date = factory.LazyAttribute(lambda loan: loan.start_date + timedelta(days=365))
    status = 'pending'
    purpose = factory.LazyFunction(lambda: fake.sentence())


class LoanRepaymentFactory(BaseModelFactory):
    class Meta:
        model = LoanRepayment

    loan = factory.SubFactory(LoanFactory)
    amount = Decimal('500.00')
    payment_date = factory.LazyFunction(date.today)
    payment_method = 'bank_transfer'


class DocumentFactory(BaseModelFactory):
    class Meta:
        model = Document

    organization = factory.SubFactory(OrganizationFactory)
    title = factory.LazyFunction(lambda: fake.sentence(nb_words=4)[:255])
    type = 'contract'
    description = factory.LazyFunction(lambda: fake.text(max_nb_chars=200))
    tags = factory.LazyFunction(lambda: ['hr', 'signed'])
    file_name = 'contract.pdf'
    file_size = 2048
    mime_type = 'application/pdf'


__all__ = [
    'OrganizationFactory',
    'UserFactory',
    'EmployeeFactory',
    'LoanFactory',
    'LoanRepaymentFactory',
    'DocumentFactory',
]
