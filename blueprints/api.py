"""
Flask API Blueprint - Resource Submission Endpoints

This blueprint exposes the validation pipeline over HTTP. Each resource kind
gets a collection route (POST creates) and an item route (PUT/PATCH update)
whose bound record is excluded from uniqueness checks. Endpoints stop at
validation: a valid submission is echoed back as its normalized attributes.

Key Features:
- Flask-RESTX resources and namespaces with OpenAPI documentation at /api/docs/
- Route binding of the current resource through Flask-SQLAlchemy (404 when unknown)
- JSON bodies, or form fields plus uploaded files for multipart bodies
- Marshmallow schemas for the standard success and error envelopes

API Coverage:
- /api/documents, /api/documents/<id>
- /api/employees, /api/employees/<id>
- /api/loans, /api/loans/<id>
- /api/loans/<loan_id>/repayments, /api/loans/<loan_id>/repayments/<id>
- /api/organizations, /api/organizations/<id>
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Type

from flask import Blueprint, g, request
from flask_restx import Api, Namespace, Resource
from marshmallow import Schema, fields as ma_fields, pre_dump
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from models import BaseModel, Document, Employee, Loan, LoanRepayment, Organization, db
from services import (
    NotFoundError,
    OperationMode,
    RequestValidationError,
    ResourceKind,
    ServiceError,
    StorageUnavailableError,
    ValidationContext,
    get_validation_service,
)

# Configure logging for API operations
logger = logging.getLogger(__name__)

documents_ns = Namespace('documents', description='Document submissions')
employees_ns = Namespace('employees', description='Employee submissions')
loans_ns = Namespace('loans', description='Loan and repayment submissions')
organizations_ns = Namespace('organizations', description='Organization submissions')


# =============================================================================
# MARSHMALLOW SCHEMAS FOR RESPONSE SERIALIZATION
# =============================================================================

class BaseResponseSchema(Schema):
    """Base response schema for API contract standardization."""

    success = ma_fields.Bool(required=True, metadata={'description': 'Operation success status'})
    message = ma_fields.Str(metadata={'description': 'Human-readable message'})
    timestamp = ma_fields.DateTime(required=True, metadata={'description': 'Response timestamp in ISO format'})

    @pre_dump
    def add_timestamp(self, data, **kwargs):
        """Add timestamp to response data."""
        if isinstance(data, dict) and 'timestamp' not in data:
            data = dict(data, timestamp=datetime.now(timezone.utc))
        return data


class SuccessResponseSchema(BaseResponseSchema):
    """Envelope for a valid submission."""

    data = ma_fields.Dict(keys=ma_fields.Str(), required=True)


class ErrorResponseSchema(BaseResponseSchema):
    """Error response schema for standardized error handling."""

    error_code = ma_fields.Str(required=True, metadata={'description': 'Machine-readable error code'})
    errors = ma_fields.Dict(
        keys=ma_fields.Str(),
        values=ma_fields.List(ma_fields.Str()),
        metadata={'description': 'Field path to ordered error messages'}
    )


success_schema = SuccessResponseSchema()
error_schema = ErrorResponseSchema()


def _serialize_attribute(value: Any) -> Any:
    """Make uploaded files JSON friendly for the echoed attributes."""
    if isinstance(value, FileStorage):
        return {'filename': value.filename, 'mimetype': value.mimetype}
    if isinstance(value, list):
        return [_serialize_attribute(item) for item in value]
    return value


def create_success_response(data: Dict[str, Any], status_code: int = 200) -> Tuple[Dict[str, Any], int]:
    """
    Create standardized success response.

    Returns:
        Tuple of (response_dict, status_code)
    """
    body = {
        'success': True,
        'data': {key: _serialize_attribute(value) for key, value in data.items()},
    }
    return success_schema.dump(body), status_code


def create_error_response(error: ServiceError) -> Tuple[Dict[str, Any], int]:
    """
    Create standardized error response from a service error.

    Returns:
        Tuple of (response_dict, status_code)
    """
    body = {
        'success': False,
        'message': error.message,
        'error_code': error.error_code or 'SERVICE_ERROR',
    }
    if isinstance(error, RequestValidationError):
        body['errors'] = error.field_errors

    if error.status_code >= 500:
        logger.error(f"API Error: {body['error_code']} - {error.message}")
    else:
        logger.info(f"API Error: {body['error_code']} - {error.message}")

    return error_schema.dump(body), error.status_code


def handle_service_error(error: ServiceError):
    """Translate service layer errors into the JSON error envelope."""
    return create_error_response(error)


# =============================================================================
# REQUEST HELPERS
# =============================================================================

def _assign_form_value(payload: Dict[str, Any], key: str, values: list) -> None:
    if key.endswith('[]'):
        payload[key[:-2]] = list(values)
    elif values:
        payload[key] = values[-1]


def extract_payload() -> Dict[str, Any]:
    """
    Build the submitted attributes from the current request.

    JSON bodies are used as-is when they are objects. Form bodies merge
    fields and uploaded files; ``name[]`` keys become lists.
    """
    if request.is_json:
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}

    payload: Dict[str, Any] = {}
    for key in request.form.keys():
        _assign_form_value(payload, key, request.form.getlist(key))
    for key in request.files.keys():
        _assign_form_value(payload, key, request.files.getlist(key))
    return payload


def bind_record(model: Type[BaseModel], record_id: int) -> BaseModel:
    """
    Resolve a route parameter to its record.

    Raises:
        NotFoundError: If no record has that id
        StorageUnavailableError: If the lookup itself fails
    """
    try:
        record = model.get_by_id(record_id)
    except SQLAlchemyError as e:
        logger.error(f"Route binding failed for {model.__tablename__} {record_id}: {e}")
        raise StorageUnavailableError(
            f"Lookup on '{model.__tablename__}' failed",
            collection=model.__tablename__,
            cause=e
        ) from e

    if record is None:
        raise NotFoundError(f"{model.__name__} {record_id} not found", error_code='NOT_FOUND')
    return record


def validate_submission(kind: ResourceKind, current: Optional[BaseModel] = None,
                        **bindings: Any) -> Tuple[Dict[str, Any], int]:
    """Run the validator for the current request and build the response."""
    context = ValidationContext(
        current_resource=current,
        request_method=request.method,
        request_path=request.path,
        **bindings
    )
    service = get_validation_service()
    data = service.validate_or_raise(
        kind, OperationMode.from_http_method(request.method), context, extract_payload()
    )
    return create_success_response(data)


# =============================================================================
# RESOURCE BASE CLASSES
# =============================================================================

class SubmissionCollection(Resource):
    """POST to a collection validates a new record."""

    kind: ResourceKind

    def post(self):
        return validate_submission(self.kind)


class SubmissionItem(Resource):
    """PUT/PATCH to an item validates changes to the bound record."""

    kind: ResourceKind
    model: Type[BaseModel]

    def put(self, record_id: int):
        return validate_submission(self.kind, bind_record(self.model, record_id))

    def patch(self, record_id: int):
        return self.put(record_id)


# =============================================================================
# DOCUMENT ENDPOINTS
# =============================================================================

@documents_ns.route('')
class DocumentCollection(SubmissionCollection):
    kind = ResourceKind.DOCUMENT


@documents_ns.route('/<int:record_id>')
class DocumentItem(SubmissionItem):
    kind = ResourceKind.DOCUMENT
    model = Document


# =============================================================================
# EMPLOYEE ENDPOINTS
# =============================================================================

@employees_ns.route('')
class EmployeeCollection(SubmissionCollection):
    kind = ResourceKind.EMPLOYEE


@employees_ns.route('/<int:record_id>')
class EmployeeItem(SubmissionItem):
    kind = ResourceKind.EMPLOYEE
    model = Employee


# =============================================================================
# LOAN AND REPAYMENT ENDPOINTS
# =============================================================================

@loans_ns.route('')
class LoanCollection(SubmissionCollection):
    kind = ResourceKind.LOAN


@loans_ns.route('/<int:record_id>')
class LoanItem(SubmissionItem):
    kind = ResourceKind.LOAN
    model = Loan


@loans_ns.route('/<int:loan_id>/repayments')
class LoanRepaymentCollection(Resource):

    def post(self, loan_id: int):
        loan = bind_record(Loan, loan_id)
        return validate_submission(ResourceKind.LOAN_REPAYMENT, loan=loan)


@loans_ns.route('/<int:loan_id>/repayments/<int:repayment_id>')
class LoanRepaymentItem(Resource):

    def put(self, loan_id: int, repayment_id: int):
        loan = bind_record(Loan, loan_id)
        repayment = bind_record(LoanRepayment, repayment_id)
        # Repayments are scoped to the loan in the URL
        if repayment.loan_id != loan.id:
            raise NotFoundError(
                f"LoanRepayment {repayment_id} not found for loan {loan_id}",
                error_code='NOT_FOUND'
            )
        return validate_submission(ResourceKind.LOAN_REPAYMENT, repayment, loan=loan)


# =============================================================================
# ORGANIZATION ENDPOINTS
# =============================================================================

@organizations_ns.route('')
class OrganizationCollection(SubmissionCollection):
    kind = ResourceKind.ORGANIZATION


@organizations_ns.route('/<int:record_id>')
class OrganizationItem(SubmissionItem):
    kind = ResourceKind.ORGANIZATION
    model = Organization


# =============================================================================
# REQUEST/RESPONSE HOOKS
# =============================================================================

def before_request():
    """Record request start for response timing."""
    logger.info(f"API Request: {request.method} {request.path}")
    g.request_start_time = datetime.now(timezone.utc)


def after_request(response):
    """Log API response status and processing time."""
    if hasattr(g, 'request_start_time'):
        processing_time = (
            datetime.now(timezone.utc) - g.request_start_time
        ).total_seconds() * 1000
        logger.info(f"API Response: {response.status_code} - {processing_time:.2f}ms")
    return response


def teardown_request(exception=None):
    """Roll back the session when a request failed."""
    if exception is not None:
        logger.error(f"Request teardown with exception: {exception}")
        db.session.rollback()


# =============================================================================
# BLUEPRINT FACTORY
# =============================================================================

def create_api_blueprint() -> Blueprint:
    """
    Build the API blueprint with its Flask-RESTX Api.

    A fresh blueprint per application keeps the RESTX registration state
    separate for every app the factory creates.
    """
    api_bp = Blueprint('api', __name__, url_prefix='/api')

    api = Api(
        api_bp,
        version='1.0',
        title='HR and Finance Resource API',
        description='Validated submission endpoints for organizations, employees, loans and documents',
        doc='/docs/',
    )
    for namespace in (documents_ns, employees_ns, loans_ns, organizations_ns):
        api.add_namespace(namespace)
    api.errorhandler(ServiceError)(handle_service_error)

    api_bp.before_request(before_request)
    api_bp.after_request(after_request)
    api_bp.teardown_request(teardown_request)
    return api_bp


__all__ = [
    'create_api_blueprint',
    'extract_payload',
    'bind_record',
    'create_success_response',
    'create_error_response',
]
