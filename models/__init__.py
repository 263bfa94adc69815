"""
Flask-SQLAlchemy Database Initialization Module

Centralized database instance, model imports and Flask application
integration for the HR/finance backend.

Model Architecture:
- BaseModel: Integer primary key, serialization and lookup helpers
- Organization: Tenant organizations
- User, Employee: Accounts and staff records
- Loan, LoanRepayment: Employee loans and their repayments
- Document: Uploaded organization documents

Dependencies:
- Flask-SQLAlchemy: ORM functionality and declarative models
- python-dotenv: Environment variable management for configuration
"""

import logging
from typing import Any, Dict

from dotenv import load_dotenv
from flask import Flask
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .base import BaseModel, TimestampMixin, db
from .document import Document
from .employee import Employee, User
from .loan import Loan, LoanRepayment
from .organization import Organization

# Load environment variables for database configuration
load_dotenv()

# Configure logging for database operations
logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Custom exception for database initialization and configuration errors."""
    pass


def init_database(app: Flask) -> None:
    """
    Initialize Flask-SQLAlchemy with the application.

    Args:
        app: Flask application instance

    Raises:
        DatabaseError: If database initialization fails
    """
    if not app.config.get('SQLALCHEMY_DATABASE_URI'):
        raise DatabaseError(
            "Database URI not configured. Set DATABASE_URL environment variable."
        )

    try:
        db.init_app(app)
    except Exception as e:
        error_msg = f"Database initialization failed: {str(e)}"
        app.logger.error(error_msg)
        raise DatabaseError(error_msg) from e

    app.logger.info("Flask-SQLAlchemy database initialization completed successfully")


def create_all_tables(app: Flask) -> None:
    """
    Create all database tables defined in models.

    Raises:
        DatabaseError: If table creation fails
    """
    try:
        with app.app_context():
            db.create_all()
            app.logger.info("All database tables created successfully")
    except SQLAlchemyError as e:
        error_msg = f"Table creation failed: {str(e)}"
        app.logger.error(error_msg)
        raise DatabaseError(error_msg) from e


def get_database_health() -> Dict[str, Any]:
    """
    Run a trivial query to report database connectivity.

    Must be called inside an application context.
    """
    try:
        db.session.execute(text('SELECT 1')).scalar()
        return {'status': 'healthy', 'database': 'connected'}
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return {'status': 'unhealthy', 'database': 'disconnected', 'error': str(e)}


__all__ = [
    # Database instance and helpers
    'db',
    'init_database',
    'create_all_tables',
    'get_database_health',
    'DatabaseError',

    # Model classes
    'BaseModel',
    'TimestampMixin',
    'Organization',
    'User',
    'Employee',
    'Loan',
    'LoanRepayment',
    'Document',
]
