"""
Service Layer Test Suite

Tests for the service registry, per-context service caching and the
service error hierarchy.
"""

import pytest
from flask import g

from services import (
    AuthorizationDeniedError,
    BaseService,
    FlaskServiceRegistry,
    NotFoundError,
    RequestValidationError,
    ServiceError,
    ServiceResult,
    StorageUnavailableError,
    ValidationService,
    get_service,
    get_validation_service,
)

from tests.utils import InMemoryStorage

pytestmark = pytest.mark.unit


class TestServiceRegistry:

    @pytest.fixture(autouse=True)
    def setup_method(self, app, db_session):
        self.app = app
        self.registry = app.service_registry

    def test_validation_service_registered(self):
        assert self.registry.service_classes == {'validation': ValidationService}

    def test_service_cached_per_context(self):
        service = get_validation_service()
        assert isinstance(service, ValidationService)
        assert get_service('validation') is service
        assert g.services['validation'] is service

    def test_unknown_service(self):
        with pytest.raises(ServiceError) as exc_info:
            get_service('payroll')
        assert exc_info.value.error_code == 'SERVICE_NOT_FOUND'

    def test_rejects_non_service_class(self):
        with pytest.raises(TypeError):
            self.registry.register_service('broken', dict)

    def test_constructor_overrides(self):
        storage = InMemoryStorage()
        self.registry.register_service('validation', ValidationService, storage=storage)
        g.pop('services', None)

        assert get_validation_service().storage is storage

    def test_uninitialized_registry(self):
        registry = FlaskServiceRegistry()
        with pytest.raises(ServiceError) as exc_info:
            registry.get_service('validation')
        assert exc_info.value.error_code == 'REGISTRY_NOT_INITIALIZED'

    def test_health_check(self):
        result = get_validation_service().health_check()
        assert result.success
        assert result.data == {'service': 'validation', 'status': 'healthy'}
        assert result.metadata['operation_count'] == 0


class TestServiceErrors:

    def test_status_codes(self):
        assert ServiceError('boom').status_code == 500
        assert StorageUnavailableError('down').status_code == 500
        assert RequestValidationError({}).status_code == 422
        assert AuthorizationDeniedError().status_code == 403
        assert NotFoundError('gone').status_code == 404

    def test_validation_error_envelope(self):
        error = RequestValidationError({'title': ['The document title is required.']})
        assert error.to_dict() == {
            'success': False,
            'message': 'The given data was invalid.',
            'error_code': 'VALIDATION_ERROR',
            'status_code': 422,
            'errors': {'title': ['The document title is required.']},
        }

    def test_authorization_message(self):
        assert AuthorizationDeniedError().to_dict()['message'] == 'This action is unauthorized.'

    def test_storage_error_is_database_error(self):
        error = StorageUnavailableError('down', collection='employees')
        assert error.error_code == 'STORAGE_UNAVAILABLE'
        assert error.collection == 'employees'

    def test_service_result_consistency(self):
        with pytest.raises(ValueError):
            ServiceResult(success=True, error=ServiceError('x'))
        with pytest.raises(ValueError):
            ServiceResult(success=False)

    def test_base_service_is_abstract(self):
        with pytest.raises(TypeError):
            BaseService()
