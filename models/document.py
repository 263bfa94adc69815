"""
Document model.

Metadata for an uploaded organization document. The file bytes live in
external storage; only the descriptive columns are kept here.
"""

from sqlalchemy import JSON, BigInteger, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel, TimestampMixin


class Document(BaseModel, TimestampMixin):
    """Organization document (contract, ID proof, policy, ...)."""

    __tablename__ = 'documents'

    organization_id = Column(Integer, ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    description = Column(Text)
    tags = Column(JSON)
    file_name = Column(String(255))
    file_size = Column(BigInteger)
    mime_type = Column(String(100))

    organization = relationship('Organization', backref='documents')
