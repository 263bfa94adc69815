"""
Validation Service Implementation for Flask Application

This module provides the request validator for the resource API following the
Service Layer pattern. Given a resource kind, an operation mode, a request
context and a payload, it runs the resource's authorization gate and rule
table and returns either the normalized attributes or every field error
found, keyed by field path.

Key Features:
- Declarative rule tables per resource kind (see services.rule_tables)
- Per-field evaluation that stops at the first violation while continuing
  with every other field
- Wildcard array paths reported per element (``tags.1``)
- Existence/uniqueness lookups delegated to an injectable storage backend
- Structured outcome logging with structlog

Storage failures are never turned into validation errors: they propagate as
StorageUnavailableError.
"""

from __future__ import annotations

import datetime
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import structlog
from flask import current_app, has_app_context

from utils.datetime import today as current_date

from .base_service import (
    AuthorizationDeniedError,
    BaseService,
    DatabaseSession,
    RequestValidationError,
    ServiceResult,
    StorageUnavailableError,
)
from .constraints import ConstraintContext, FieldConstraint, Nullable, Required, Violation, is_empty
from .rule_tables import MISSING, OperationMode, ResourceKind, expand_path, get_definition, lookup_path
from .storage import SQLAlchemyStorage, StorageBackend

logger = structlog.get_logger(__name__)

FieldErrors = Dict[str, List[str]]


@dataclass(frozen=True)
class ValidationContext:
    """
    Per-request information the validator may consult.

    Attributes:
        current_resource: Bound record (or its raw id) being updated
        organization: Bound parent organization, if the route has one
        employee: Bound parent employee, if the route has one
        loan: Bound parent loan, for repayment routes
        today: Override for the calendar date "today" resolves to
        request_method: HTTP method, for logging
        request_path: HTTP path, for logging
    """

    current_resource: Optional[Any] = None
    organization: Optional[Any] = None
    employee: Optional[Any] = None
    loan: Optional[Any] = None
    today: Optional[datetime.date] = None
    request_method: Optional[str] = None
    request_path: Optional[str] = None

    @property
    def current_resource_id(self) -> Optional[Any]:
        """Id of the bound record; accepts a model, a mapping or a bare id."""
        if self.current_resource is None:
            return None
        if isinstance(self.current_resource, Mapping):
            return self.current_resource.get('id')
        return getattr(self.current_resource, 'id', self.current_resource)


@dataclass
class ValidationResult:
    """
    Outcome of one validate call.

    ``validated_data`` holds the declared top-level fields present in the
    payload when valid; ``field_errors`` maps field paths to messages.
    """

    is_valid: bool
    validated_data: Dict[str, Any] = field(default_factory=dict)
    field_errors: FieldErrors = field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return sum(len(messages) for messages in self.field_errors.values())


class ValidationService(BaseService):
    """
    Request validator parameterized by resource kind.

    Usage Example:
        service = ValidationService(storage=storage)
        result = service.validate(
            ResourceKind.LOAN, OperationMode.CREATE, ValidationContext(), payload
        )
    """

    requires_session = False

    def __init__(self, db_session: Optional[DatabaseSession] = None,
                 storage: Optional[StorageBackend] = None,
                 timezone: Optional[str] = None) -> None:
        """
        Initialize the validator.

        Args:
            db_session: Session for the default SQLAlchemy storage backend
            storage: Explicit storage backend; takes precedence over db_session
            timezone: IANA zone defining "today"; defaults to the
                      VALIDATION_TIMEZONE config value
        """
        super().__init__(db_session)
        if storage is None:
            if self.db_session is None:
                raise RuntimeError(
                    "ValidationService needs a storage backend, a database session "
                    "or a Flask application context"
                )
            storage = SQLAlchemyStorage(self.db_session)
        self.storage = storage

        if timezone is None and has_app_context():
            timezone = current_app.config.get('VALIDATION_TIMEZONE')
        self.timezone = timezone

    def get_service_name(self) -> str:
        return 'validation'

    def validate(self, kind: ResourceKind, mode: OperationMode,
                 context: ValidationContext, payload: Any) -> ValidationResult:
        """
        Validate ``payload`` against the active rule table.

        Args:
            kind: Resource kind being submitted
            mode: Create or update
            context: Request context with the bound current resource
            payload: Submitted attributes (mapping of field to value)

        Returns:
            ValidationResult with normalized attributes or field errors

        Raises:
            AuthorizationDeniedError: If the resource's gate rejects the request
            StorageUnavailableError: If an existence/uniqueness lookup fails
        """
        self._increment_operation_count()
        definition = get_definition(kind, mode, context.current_resource_id)

        if not definition.authorize(context):
            logger.warning("request_unauthorized", kind=kind.value, mode=mode.value,
                           path=context.request_path)
            raise AuthorizationDeniedError()

        if not isinstance(payload, Mapping):
            payload = {}

        check_date = context.today or current_date(self.timezone)
        field_errors: FieldErrors = {}

        try:
            for pattern, constraints in definition.rules.items():
                constraint_context = ConstraintContext(
                    payload=payload,
                    today=check_date,
                    storage=self.storage,
                    field_type=definition.rules.field_type(pattern),
                )
                for path in expand_path(pattern, payload):
                    violation = self._check_field(
                        lookup_path(payload, path), constraints, constraint_context
                    )
                    if violation is not None:
                        message = definition.messages.render(path, pattern, violation)
                        field_errors.setdefault(path, []).append(message)
        except StorageUnavailableError:
            self._increment_error_count()
            logger.error("validation_aborted", kind=kind.value, mode=mode.value,
                         reason="storage_unavailable")
            raise

        if field_errors:
            result = ValidationResult(is_valid=False, field_errors=field_errors)
        else:
            validated = {
                name: payload[name]
                for name in definition.rules.top_level_fields
                if name in payload
            }
            result = ValidationResult(is_valid=True, validated_data=validated)

        logger.info(
            "request_validated",
            kind=kind.value,
            mode=mode.value,
            valid=result.is_valid,
            error_count=result.error_count,
            method=context.request_method,
            path=context.request_path,
        )
        return result

    def validate_or_raise(self, kind: ResourceKind, mode: OperationMode,
                          context: ValidationContext, payload: Any) -> Dict[str, Any]:
        """
        Validate and return the normalized attributes.

        Raises:
            RequestValidationError: Carrying every field error found
        """
        result = self.validate(kind, mode, context, payload)
        if not result.is_valid:
            raise RequestValidationError(result.field_errors)
        return result.validated_data

    def validate_as_result(self, kind: ResourceKind, mode: OperationMode,
                           context: ValidationContext, payload: Any) -> ServiceResult[Dict[str, Any]]:
        """Wrap validate_or_raise in the standard ServiceResult container."""
        try:
            data = self.validate_or_raise(kind, mode, context, payload)
        except RequestValidationError as e:
            return ServiceResult.error_result(e, metadata={'kind': kind.value, 'mode': mode.value})
        return ServiceResult.success_result(data, metadata={'kind': kind.value, 'mode': mode.value})

    @staticmethod
    def _check_field(value: Any, constraints: Sequence[FieldConstraint],
                     context: ConstraintContext) -> Optional[Violation]:
        """Run a field's constraints in order; return the first violation."""
        if value is MISSING:
            if not any(isinstance(c, Required) for c in constraints):
                return None
            value = None

        for constraint in constraints:
            if isinstance(constraint, Nullable):
                if is_empty(value):
                    return None
                continue
            violation = constraint.check(value, context)
            if violation is not None:
                return violation
        return None


__all__ = [
    'ValidationService',
    'ValidationContext',
    'ValidationResult',
    'FieldErrors',
]
