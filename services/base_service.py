"""
Base Service Layer Implementation for Flask Application

This module provides the foundational Service Layer pattern for the backend:
the service exception hierarchy, the standardized result container and the
BaseService class that handles SQLAlchemy session injection.

Key Features:
- Dependency injection of the database session, or Flask-SQLAlchemy's
  scoped session when running inside an application context
- Exception hierarchy carrying machine-readable error codes and the HTTP
  status the presentation layer should answer with
- Operation and error counters for health reporting

Dependencies:
- Flask-SQLAlchemy: Database ORM and session management
- SQLAlchemy: Session typing and error classes
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Protocol, TypeVar, runtime_checkable

from flask import has_app_context

from models import db

# Configure logging for service layer operations
logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceError(Exception):
    """Base exception for service layer operations."""

    status_code: int = 500

    def __init__(self, message: str, error_code: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        """
        Initialize service error with comprehensive error information.

        Args:
            message: Human-readable error description
            error_code: Optional error code for programmatic handling
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to the API error envelope."""
        return {
            'success': False,
            'message': self.message,
            'error_code': self.error_code,
            'status_code': self.status_code,
        }


class DatabaseError(ServiceError):
    """Database-specific service error for query failures."""
    pass


class StorageUnavailableError(DatabaseError):
    """
    The storage collaborator could not answer an existence or uniqueness
    lookup. Never a validation outcome: callers answer with a server error.
    """

    def __init__(self, message: str, collection: Optional[str] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, error_code="STORAGE_UNAVAILABLE", cause=cause)
        self.collection = collection


class RequestValidationError(ServiceError):
    """
    Submitted data violated the active rule table.

    Attributes:
        field_errors: field path -> ordered list of human-readable messages
    """

    status_code = 422

    def __init__(self, field_errors: Dict[str, List[str]],
                 message: str = "The given data was invalid.") -> None:
        super().__init__(message, error_code="VALIDATION_ERROR")
        self.field_errors = field_errors

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload['errors'] = self.field_errors
        return payload


class AuthorizationDeniedError(ServiceError):
    """The resource's authorization gate rejected the request."""

    status_code = 403

    def __init__(self, message: str = "This action is unauthorized.") -> None:
        super().__init__(message, error_code="AUTHORIZATION_DENIED")


class NotFoundError(ServiceError):
    """Resource not found error for route binding failures."""

    status_code = 404


@dataclass
class ServiceResult(Generic[T]):
    """
    Standardized service operation result container.

    Provides consistent result handling across service layer operations
    with success/failure indication, error details, and operation metadata.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[ServiceError] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        """Validate result consistency after initialization."""
        if self.success and self.error is not None:
            raise ValueError("Successful result cannot contain error information")
        if not self.success and self.error is None:
            raise ValueError("Failed result must contain error information")

    @classmethod
    def success_result(cls, data: T, metadata: Optional[Dict[str, Any]] = None) -> 'ServiceResult[T]':
        return cls(success=True, data=data, metadata=metadata or {})

    @classmethod
    def error_result(cls, error: ServiceError, metadata: Optional[Dict[str, Any]] = None) -> 'ServiceResult[T]':
        return cls(success=False, error=error, metadata=metadata or {})


@runtime_checkable
class DatabaseSession(Protocol):
    """
    Type protocol defining the read side of a database session.

    The validation layer never writes, so only query execution is required.
    """

    def execute(self, statement: Any, *args: Any, **kwargs: Any) -> Any:
        """Execute a SQL statement."""
        ...

    def get(self, entity: Any, ident: Any) -> Any:
        """Load an entity by primary key."""
        ...


class BaseService(ABC):
    """
    Abstract base service class providing session injection and common
    service functionality.

    Usage Example:
        class ReportService(BaseService):
            def get_service_name(self) -> str:
                return 'report'
    """

    # Services that need no database session set this to False
    requires_session: bool = True

    def __init__(self, db_session: Optional[DatabaseSession] = None) -> None:
        """
        Initialize base service with dependency injection of database session.

        Args:
            db_session: Optional database session for dependency injection.
                        If None, uses Flask-SQLAlchemy session from application context.

        Raises:
            RuntimeError: If a session is required but none is available
        """
        if db_session is not None:
            self.db_session = db_session
            logger.debug(f"Service {self.__class__.__name__} initialized with injected database session")
        elif has_app_context():
            self.db_session = db.session
            logger.debug(f"Service {self.__class__.__name__} initialized with Flask-SQLAlchemy session")
        elif self.requires_session:
            raise RuntimeError(
                f"Service {self.__class__.__name__} requires database session injection "
                "or Flask application context for session access"
            )
        else:
            self.db_session = None

        self._service_name = self.__class__.__name__
        self._initialization_time = datetime.now(timezone.utc)
        self._operation_count = 0
        self._error_count = 0

    def _increment_operation_count(self) -> None:
        self._operation_count += 1

    def _increment_error_count(self) -> None:
        self._error_count += 1

    def get_performance_metrics(self) -> Dict[str, Any]:
        """
        Get operational statistics for this service instance.

        Returns:
            Dictionary containing operation and error counters
        """
        return {
            'service_name': self._service_name,
            'initialization_time': self._initialization_time.isoformat(),
            'operation_count': self._operation_count,
            'error_count': self._error_count,
            'error_rate': self._error_count / max(self._operation_count, 1),
        }

    @abstractmethod
    def get_service_name(self) -> str:
        """Get service name for identification and logging purposes."""
        pass

    def health_check(self) -> ServiceResult[Dict[str, Any]]:
        """Report service health; override to check external dependencies."""
        return ServiceResult.success_result(
            {'service': self.get_service_name(), 'status': 'healthy'},
            metadata=self.get_performance_metrics()
        )


__all__ = [
    # Base service classes
    'BaseService',

    # Result and error types
    'ServiceResult',
    'ServiceError',
    'DatabaseError',
    'StorageUnavailableError',
    'RequestValidationError',
    'AuthorizationDeniedError',
    'NotFoundError',

    # Protocol types for dependency injection
    'DatabaseSession',
]
