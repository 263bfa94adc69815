"""
SQLAlchemy storage backend tests.

Runs existence and uniqueness lookups against the in-memory SQLite schema
built from the application models.
"""

from unittest.mock import Mock

import pytest
from sqlalchemy.exc import OperationalError

from models import Employee, Organization
from services import (
    OperationMode,
    ResourceKind,
    ServiceError,
    SQLAlchemyStorage,
    StorageBackend,
    StorageUnavailableError,
    ValidationContext,
    ValidationService,
)
from services.storage import _UNCOERCIBLE, coerce_to_column

from tests.factories import EmployeeFactory, OrganizationFactory
from tests.utils import TODAY, employee_payload

pytestmark = pytest.mark.integration


class TestCoercion:

    def test_integer_column(self):
        column = Organization.__table__.c.id
        assert coerce_to_column(column, ' 7 ') == 7
        assert coerce_to_column(column, 7) == 7
        assert coerce_to_column(column, 'seven') is _UNCOERCIBLE
        assert coerce_to_column(column, True) is _UNCOERCIBLE

    def test_integer_column_range(self):
        column = Organization.__table__.c.id
        assert coerce_to_column(column, 2 ** 63 - 1) == 2 ** 63 - 1
        assert coerce_to_column(column, 10 ** 20) is _UNCOERCIBLE
        assert coerce_to_column(column, '9' * 30) is _UNCOERCIBLE
        assert coerce_to_column(column, -2 ** 63 - 1) is _UNCOERCIBLE

    def test_integral_float(self):
        column = Organization.__table__.c.id
        assert coerce_to_column(column, 3.0) == 3
        assert coerce_to_column(column, 3.5) is _UNCOERCIBLE

    def test_string_column(self):
        assert coerce_to_column(Organization.__table__.c.code, 1001) == '1001'


class TestSQLAlchemyStorage:

    @pytest.fixture(autouse=True)
    def setup_method(self, app, db_session):
        self.app = app
        self.db_session = db_session
        self.storage = SQLAlchemyStorage(db_session)
        self.organization = OrganizationFactory(code='ACME', email='hq@acmeholdings.com')

    def test_satisfies_protocol(self):
        assert isinstance(self.storage, StorageBackend)

    def test_exists(self):
        assert self.storage.exists('organizations', 'id', self.organization.id)
        assert self.storage.exists('organizations', 'id', str(self.organization.id))
        assert not self.storage.exists('organizations', 'id', self.organization.id + 1)
        assert not self.storage.exists('organizations', 'id', 'abc')

    def test_find_conflicting(self):
        assert self.storage.find_conflicting('organizations', 'code', 'ACME') is True
        assert self.storage.find_conflicting('organizations', 'code', 'OTHER') is False

    def test_find_conflicting_excludes_record(self):
        assert self.storage.find_conflicting(
            'organizations', 'email', 'hq@acmeholdings.com', excluding_id=self.organization.id
        ) is False
        assert self.storage.find_conflicting(
            'organizations', 'email', 'hq@acmeholdings.com', excluding_id=self.organization.id + 1
        ) is True

    def test_out_of_range_id_does_not_exist(self):
        assert not self.storage.exists('organizations', 'id', 10 ** 20)
        assert not self.storage.exists('organizations', 'id', '9' * 30)

    def test_unknown_collection(self):
        with pytest.raises(ServiceError) as exc_info:
            self.storage.exists('payslips', 'id', 1)
        assert exc_info.value.error_code == 'UNKNOWN_COLLECTION'

    def test_unknown_column(self):
        with pytest.raises(ServiceError) as exc_info:
            self.storage.exists('organizations', 'nickname', 'x')
        assert exc_info.value.error_code == 'UNKNOWN_COLLECTION'

    def test_query_failure_raises_storage_unavailable(self):
        session = Mock()
        session.execute.side_effect = OperationalError('SELECT 1', {}, Exception('connection lost'))
        storage = SQLAlchemyStorage(session)

        with pytest.raises(StorageUnavailableError) as exc_info:
            storage.exists('organizations', 'id', 1)
        assert exc_info.value.collection == 'organizations'
        assert isinstance(exc_info.value.cause, OperationalError)

    def test_unbindable_value_is_no_match(self):
        session = Mock()
        session.execute.side_effect = OverflowError('Python int too large to convert to SQLite INTEGER')
        storage = SQLAlchemyStorage(session)

        assert storage.exists('organizations', 'id', 1) is False
        assert storage.find_conflicting('organizations', 'code', 'ACME') is False


class TestValidationAgainstDatabase:

    @pytest.fixture(autouse=True)
    def setup_method(self, app, db_session):
        self.employee = EmployeeFactory(email='lead@acmeholdings.com', employee_id='EMP-900')
        self.service = ValidationService()

    def test_default_storage_in_app_context(self):
        assert isinstance(self.service.storage, SQLAlchemyStorage)
        assert self.service.timezone == 'UTC'

    def test_update_keeps_own_email(self):
        payload = employee_payload(
            organization_id=self.employee.organization_id,
            email='lead@acmeholdings.com',
            employee_id='EMP-900',
        )
        context = ValidationContext(current_resource=self.employee, today=TODAY)

        result = self.service.validate(ResourceKind.EMPLOYEE, OperationMode.UPDATE, context, payload)
        assert result.is_valid

    def test_create_rejects_taken_email(self):
        payload = employee_payload(
            organization_id=self.employee.organization_id,
            email='lead@acmeholdings.com',
        )
        result = self.service.validate(
            ResourceKind.EMPLOYEE, OperationMode.CREATE, ValidationContext(today=TODAY), payload
        )
        assert result.field_errors == {'email': ['This email address is already registered.']}
        assert Employee.query.count() == 1

    def test_huge_organization_id_is_field_error(self):
        for organization_id in (10 ** 20, '9' * 30):
            payload = employee_payload(organization_id=organization_id, employee_id='EMP-901',
                                       email='new.hire@acmeholdings.com')
            result = self.service.validate(
                ResourceKind.EMPLOYEE, OperationMode.CREATE, ValidationContext(today=TODAY), payload
            )
            assert result.field_errors == {
                'organization_id': ['The selected organization does not exist.']
            }
