"""
Base Model Classes and Mixin Utilities for Flask-SQLAlchemy

This module provides the shared declarative base for the backend's persistent
collections. The request validation layer only ever reads these tables
(existence and uniqueness lookups, route binding), so the models carry the
columns those lookups touch plus the usual timestamp audit fields.

Key Components:
- db: Flask-SQLAlchemy extension instance shared by every model
- TimestampMixin: created_at / updated_at columns
- BaseModel: primary key and lookup helper

Dependencies:
- Flask-SQLAlchemy: Database ORM integration
- SQLAlchemy: Column types
"""

from datetime import datetime, timezone
from typing import Any, Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import declared_attr

# Global SQLAlchemy instance (initialized by the Flask application factory)
db = SQLAlchemy()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """
    Timestamp audit fields for all collections.

    Usage:
        class Organization(BaseModel, TimestampMixin):
            __tablename__ = 'organizations'
    """

    @declared_attr
    def created_at(cls):
        """Record creation timestamp."""
        return Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    @declared_attr
    def updated_at(cls):
        """Last modification timestamp."""
        return Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class BaseModel(db.Model):
    """
    Base model class providing common functionality for all models.

    - Integer surrogate primary key named ``id`` (the key every existence
      and uniqueness-exclusion lookup targets)
    - Primary key lookup helper used by route binding
    """

    # Mark as abstract so SQLAlchemy doesn't create a table for this class
    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    @classmethod
    def get_by_id(cls, record_id: Any) -> Optional['BaseModel']:
        """
        Retrieve a record by primary key.

        Args:
            record_id: Primary key value

        Returns:
            The model instance, or None when no such row exists
        """
        return db.session.get(cls, record_id)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id}>"


__all__ = [
    'db',
    'BaseModel',
    'TimestampMixin',
]
