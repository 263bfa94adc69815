"""
Rule and Message Tables for Resource Requests

This module holds the declarative validation definitions for the five
resource kinds accepted by the API: documents, employees, loans, loan
repayments and organizations.

Key Features:
- RuleTable: immutable field-path -> ordered constraints mapping with
  ``field.*`` wildcard paths for array elements
- MessageTable: immutable ``<field-path>.<rule>`` -> message mapping with
  wildcard and default-message fallbacks
- One builder per ResourceKind, dispatched through a mapping; builders take
  the operation mode and the id of the bound current resource

Tables are pure functions of (kind, mode, current resource id) and are
cached and shared across requests.
"""

from __future__ import annotations

import enum
import functools
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .constraints import (
    ArrayOf,
    Bounded,
    DateComparator,
    DateRelative,
    Enumerated,
    ExistsInCollection,
    FieldConstraint,
    FieldType,
    LengthBounded,
    Nullable,
    Required,
    TypeCheck,
    UniqueInCollection,
    Violation,
)

WILDCARD = '*'


class _Missing:
    """Sentinel for paths absent from the payload."""

    def __repr__(self) -> str:
        return '<missing>'

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class ResourceKind(enum.Enum):
    DOCUMENT = 'document'
    EMPLOYEE = 'employee'
    LOAN_REPAYMENT = 'loan_repayment'
    LOAN = 'loan'
    ORGANIZATION = 'organization'


class OperationMode(enum.Enum):
    CREATE = 'create'
    UPDATE = 'update'

    @classmethod
    def from_http_method(cls, method: str) -> 'OperationMode':
        """POST creates; every other verb updates."""
        return cls.CREATE if method.upper() == 'POST' else cls.UPDATE


def lookup_path(payload: Any, path: str) -> Any:
    """Resolve a dotted concrete path; MISSING when any segment is absent."""
    node = payload
    for segment in path.split('.'):
        if isinstance(node, Mapping):
            if segment not in node:
                return MISSING
            node = node[segment]
        elif isinstance(node, (list, tuple)):
            if not segment.isdigit() or int(segment) >= len(node):
                return MISSING
            node = node[int(segment)]
        else:
            return MISSING
    return node


def expand_path(pattern: str, payload: Any) -> List[str]:
    """
    Expand ``*`` segments of ``pattern`` against the payload.

    A wildcard over a value that is not an array expands to nothing.
    """
    paths: List[Tuple[str, Any]] = [('', payload)]
    for segment in pattern.split('.'):
        expanded = []
        for prefix, node in paths:
            if segment == WILDCARD:
                if isinstance(node, Mapping):
                    keys = [str(key) for key in node.keys()]
                    children = list(node.values())
                elif isinstance(node, (list, tuple)):
                    keys = [str(index) for index in range(len(node))]
                    children = list(node)
                else:
                    continue
                for key, child in zip(keys, children):
                    expanded.append((f'{prefix}.{key}' if prefix else key, child))
            else:
                child = lookup_path(node, segment) if node is not MISSING else MISSING
                expanded.append((f'{prefix}.{segment}' if prefix else segment, child))
        paths = expanded
    return [path for path, _ in paths]


class RuleTable(Mapping):
    """
    Immutable mapping of field path to its ordered constraints.

    ``ArrayOf`` entries are expanded at construction time into an ``array``
    type check plus a ``<field>.*`` entry holding the element constraints.

    Raises:
        ValueError: If a field is marked both Required and Nullable
    """

    def __init__(self, rules: Mapping) -> None:
        expanded: Dict[str, Tuple[FieldConstraint, ...]] = {}
        for path, constraints in rules.items():
            own: List[FieldConstraint] = []
            elements: Optional[Tuple[FieldConstraint, ...]] = None
            for constraint in constraints:
                if isinstance(constraint, ArrayOf):
                    own.append(TypeCheck(FieldType.ARRAY))
                    elements = constraint.element_constraints
                else:
                    own.append(constraint)
            expanded[path] = self._checked(path, own)
            if elements is not None:
                element_path = f'{path}.{WILDCARD}'
                expanded[element_path] = self._checked(element_path, elements)
        self._rules = MappingProxyType(expanded)

    @staticmethod
    def _checked(path: str, constraints: Sequence[FieldConstraint]) -> Tuple[FieldConstraint, ...]:
        markers = {type(c) for c in constraints} & {Required, Nullable}
        if len(markers) > 1:
            raise ValueError(f"Field '{path}' cannot be both required and nullable")
        return tuple(constraints)

    def __getitem__(self, path: str) -> Tuple[FieldConstraint, ...]:
        return self._rules[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def top_level_fields(self) -> Tuple[str, ...]:
        return tuple(path for path in self._rules if '.' not in path)

    def field_type(self, path: str) -> Optional[FieldType]:
        """Declared type of a path: the kind of its first type check."""
        for constraint in self._rules[path]:
            if isinstance(constraint, TypeCheck):
                return constraint.kind
        return None

    def rules_for(self, path: str) -> Tuple[str, ...]:
        return tuple(constraint.rule for constraint in self._rules[path])


DEFAULT_MESSAGES: Dict[str, Any] = {
    'required': "The {attribute} field is required.",
    'string': "The {attribute} field must be a string.",
    'numeric': "The {attribute} field must be a number.",
    'integer': "The {attribute} field must be an integer.",
    'boolean': "The {attribute} field must be true or false.",
    'date': "The {attribute} field must be a valid date.",
    'array': "The {attribute} field must be an array.",
    'email': "The {attribute} field must be a valid email address.",
    'url': "The {attribute} field must be a valid URL.",
    'file': "The {attribute} field must be a file.",
    'image': "The {attribute} field must be an image.",
    'in': "The selected {attribute} is invalid.",
    'exists': "The selected {attribute} is invalid.",
    'unique': "The {attribute} has already been taken.",
    'before': "The {attribute} field must be a date before {date}.",
    'after': "The {attribute} field must be a date after {date}.",
    'after_or_equal': "The {attribute} field must be a date after or equal to {date}.",
    'min': {
        'numeric': "The {attribute} field must be at least {min}.",
        'file': "The {attribute} field must be at least {min} kilobytes.",
        'string': "The {attribute} field must be at least {min} characters.",
        'array': "The {attribute} field must have at least {min} items.",
    },
    'max': {
        'numeric': "The {attribute} field must not be greater than {max}.",
        'file': "The {attribute} field must not be greater than {max} kilobytes.",
        'string': "The {attribute} field must not be greater than {max} characters.",
        'array': "The {attribute} field must not have more than {max} items.",
    },
    'size': {
        'numeric': "The {attribute} field must be {size}.",
        'file': "The {attribute} field must be {size} kilobytes.",
        'string': "The {attribute} field must be {size} characters.",
        'array': "The {attribute} field must contain {size} items.",
    },
}

GENERIC_MESSAGE = "The {attribute} field failed the {rule} constraint."


class _Placeholders(dict):
    def __missing__(self, key: str) -> str:
        return '{' + key + '}'


def attribute_name(path: str) -> str:
    """Human-readable attribute name: ``date_of_birth`` -> ``date of birth``."""
    return path.replace('_', ' ')


class MessageTable(Mapping):
    """
    Immutable mapping of ``<field-path>.<rule>`` to a user-facing message.

    Lookup order for a violation on a concrete path: the concrete key
    (``tags.1.max``), the declared pattern (``tags.*.max``), the default
    message for the rule, then a generic message.
    """

    def __init__(self, messages: Mapping) -> None:
        self._messages = MappingProxyType(dict(messages))

    def __getitem__(self, key: str) -> str:
        return self._messages[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def template_for(self, concrete_path: str, pattern_path: str, violation: Violation) -> str:
        for key in (f'{concrete_path}.{violation.rule}', f'{pattern_path}.{violation.rule}'):
            if key in self._messages:
                return self._messages[key]

        default = DEFAULT_MESSAGES.get(violation.rule)
        if isinstance(default, dict):
            return default.get(violation.params.get('basis', 'string'), default['string'])
        return default or GENERIC_MESSAGE

    def render(self, concrete_path: str, pattern_path: str, violation: Violation) -> str:
        template = self.template_for(concrete_path, pattern_path, violation)
        placeholders = _Placeholders(violation.params)
        placeholders['attribute'] = attribute_name(concrete_path)
        placeholders['rule'] = violation.rule
        return template.format_map(placeholders)


@dataclass(frozen=True)
class ResourceDefinition:
    """Authorization gate, rule table and message table for one resource kind."""

    kind: ResourceKind
    rules: RuleTable
    messages: MessageTable

    def authorize(self, context: Any) -> bool:
        return True


# Shorthands for the tables below
REQUIRED = Required()
NULLABLE = Nullable()
STRING = TypeCheck(FieldType.STRING)
NUMERIC = TypeCheck(FieldType.NUMERIC)
INTEGER = TypeCheck(FieldType.INTEGER)
DATE = TypeCheck(FieldType.DATE)
ARRAY = TypeCheck(FieldType.ARRAY)
EMAIL = TypeCheck(FieldType.EMAIL)
URL = TypeCheck(FieldType.URL)
FILE = TypeCheck(FieldType.FILE)
IMAGE = TypeCheck(FieldType.IMAGE)


def _max(value: Any) -> Bounded:
    return Bounded(maximum=value)


def _nullable_string(max_length: int) -> Tuple[FieldConstraint, ...]:
    return (NULLABLE, STRING, _max(max_length))


def _required_string(max_length: int) -> Tuple[FieldConstraint, ...]:
    return (REQUIRED, STRING, _max(max_length))


def _one_of(*values: str) -> Tuple[FieldConstraint, ...]:
    return (REQUIRED, Enumerated(values))


DOCUMENT_MESSAGES = MessageTable({
    'title.required': 'The document title is required.',
    'title.max': 'The document title cannot exceed 255 characters.',
    'type.required': 'The document type is required.',
    'type.max': 'The document type cannot exceed 50 characters.',
    'description.max': 'The description cannot exceed 1000 characters.',
    'tags.*.max': 'Each tag cannot exceed 50 characters.',
    'file.required': 'Please select a file to upload.',
    'file.file': 'The uploaded file is invalid.',
    'file.max': 'The file size cannot exceed 10MB.',
    'organization_id.required': 'The organization is required.',
    'organization_id.exists': 'The selected organization does not exist.',
})

EMPLOYEE_MESSAGES = MessageTable({
    'organization_id.required': 'The organization is required.',
    'organization_id.exists': 'The selected organization does not exist.',
    'user_id.exists': 'The selected user does not exist.',
    'employee_id.required': 'The employee ID is required.',
    'employee_id.unique': 'This employee ID is already taken.',
    'first_name.required': 'The first name is required.',
    'last_name.required': 'The last name is required.',
    'email.required': 'The email address is required.',
    'email.email': 'Please provide a valid email address.',
    'email.unique': 'This email address is already registered.',
    'date_of_birth.before': 'The date of birth must be a date before today.',
    'date_of_joining.required': 'The date of joining is required.',
    'designation.required': 'The designation is required.',
    'department.required': 'The department is required.',
    'salary.required': 'The salary is required.',
    'salary.numeric': 'The salary must be a number.',
    'salary.min': 'The salary must be at least 0.',
    'salary.max': 'The salary cannot exceed 999,999,999.99.',
    'status.required': 'The status is required.',
    'status.in': 'The selected status is invalid.',
    'employment_type.required': 'The employment type is required.',
    'employment_type.in': 'The selected employment type is invalid.',
})

LOAN_REPAYMENT_MESSAGES = MessageTable({
    'amount.required': 'The payment amount is required.',
    'amount.numeric': 'The payment amount must be a number.',
    'amount.min': 'The payment amount must be greater than 0.',
    'payment_date.required': 'The payment date is required.',
    'payment_date.date': 'The payment date must be a valid date.',
    'payment_method.required': 'The payment method is required.',
    'payment_method.in': 'The payment method must be cash, bank transfer, or check.',
    'transaction_id.max': 'The transaction ID cannot exceed 100 characters.',
    'remarks.max': 'The remarks cannot exceed 500 characters.',
})

LOAN_MESSAGES = MessageTable({
    'organization_id.required': 'The organization is required.',
    'organization_id.exists': 'The selected organization is invalid.',
    'employee_id.required': 'The employee is required.',
    'employee_id.exists': 'The selected employee is invalid.',
    'loan_number.required': 'The loan number is required.',
    'loan_number.unique': 'This loan number is already taken.',
    'type.required': 'The loan type is required.',
    'amount.required': 'The loan amount is required.',
    'amount.numeric': 'The loan amount must be a number.',
    'amount.min': 'The loan amount must be at least 0.',
    'amount.max': 'The loan amount cannot exceed 999,999,999,999.99.',
    'interest_rate.required': 'The interest rate is required.',
    'interest_rate.numeric': 'The interest rate must be a number.',
    'interest_rate.min': 'The interest rate must be at least 0.',
    'interest_rate.max': 'The interest rate cannot exceed 100.',
    'term_months.required': 'The loan term is required.',
    'term_months.integer': 'The loan term must be a whole number.',
    'term_months.min': 'The loan term must be at least 1 month.',
    'term_months.max': 'The loan term cannot exceed 360 months.',
    'start_date.required': 'The start date is required.',
    'start_date.date': 'Please provide a valid start date.',
    'start_date.after_or_equal': 'The start date must be today or a future date.',
    'end_date.required': 'The end date is required.',
    'end_date.date': 'Please provide a valid end date.',
    'end_date.after': 'The end date must be after the start date.',
    'status.required': 'The status is required.',
    'status.in': 'The selected status is invalid.',
    'purpose.required': 'The loan purpose is required.',
    'approved_by.exists': 'The selected approver is invalid.',
    'approved_at.date': 'Please provide a valid approval date.',
    'rejected_by.exists': 'The selected rejector is invalid.',
    'rejected_at.date': 'Please provide a valid rejection date.',
    'disbursed_by.exists': 'The selected disburser is invalid.',
    'disbursed_at.date': 'Please provide a valid disbursement date.',
    'disbursement_method.string': 'The disbursement method must be a string.',
    'disbursement_details.array': 'The disbursement details must be an array.',
    'documents.array': 'The documents must be an array.',
    'documents.*.string': 'Each document must be a string.',
    'settings.array': 'The settings must be an array.',
    'settings.*.string': 'Each setting must be a string.',
})

ORGANIZATION_MESSAGES = MessageTable({
    'name.required': 'The organization name is required.',
    'code.required': 'The organization code is required.',
    'code.unique': 'This organization code is already taken.',
    'type.required': 'The organization type is required.',
    'registration_number.required': 'The registration number is required.',
    'registration_number.unique': 'This registration number is already registered.',
    'address.required': 'The address is required.',
    'city.required': 'The city is required.',
    'state.required': 'The state is required.',
    'country.required': 'The country is required.',
    'postal_code.required': 'The postal code is required.',
    'phone.required': 'The phone number is required.',
    'email.required': 'The email address is required.',
    'email.email': 'Please provide a valid email address.',
    'email.unique': 'This email address is already registered.',
    'password.required': 'The password is required.',
    'password.string': 'The password must be a string.',
    'password.min': 'The password must be at least 8 characters long.',
    'website.url': 'Please provide a valid website URL.',
    'logo.image': 'The logo must be an image file.',
    'logo.max': 'The logo size cannot exceed 2MB.',
    'status.required': 'The status is required.',
    'status.in': 'The selected status is invalid.',
    'founding_date.required': 'The founding date is required.',
    'founding_date.date': 'Please provide a valid founding date.',
    'industry.required': 'The industry is required.',
    'size.required': 'The organization size is required.',
    'size.in': 'The selected organization size is invalid.',
    'annual_revenue.numeric': 'The annual revenue must be a number.',
    'annual_revenue.min': 'The annual revenue must be at least 0.',
    'annual_revenue.max': 'The annual revenue cannot exceed 999,999,999,999.99.',
    'currency.required': 'The currency is required.',
    'currency.size': 'The currency must be a 3-letter code.',
    'timezone.required': 'The timezone is required.',
})


def _document_rules(mode: OperationMode, current_resource_id: Optional[Any]) -> Dict[str, Tuple]:
    rules = {
        'title': _required_string(255),
        'type': _required_string(50),
        'description': _nullable_string(1000),
        'tags': (NULLABLE, ArrayOf(STRING, _max(50))),
    }
    if mode is OperationMode.CREATE:
        rules['file'] = (REQUIRED, FILE, _max(10240))
        rules['organization_id'] = (REQUIRED, ExistsInCollection('organizations', 'id'))
    return rules


def _employee_rules(mode: OperationMode, current_resource_id: Optional[Any]) -> Dict[str, Tuple]:
    return {
        'organization_id': (REQUIRED, ExistsInCollection('organizations', 'id')),
        'user_id': (NULLABLE, ExistsInCollection('users', 'id')),
        'employee_id': _required_string(50) + (
            UniqueInCollection('employees', 'employee_id', current_resource_id),
        ),
        'first_name': _required_string(100),
        'last_name': _required_string(100),
        'email': (REQUIRED, EMAIL, _max(255),
                  UniqueInCollection('employees', 'email', current_resource_id)),
        'phone': _nullable_string(20),
        'address': _nullable_string(500),
        'city': _nullable_string(100),
        'state': _nullable_string(100),
        'country': _nullable_string(100),
        'postal_code': _nullable_string(20),
        'date_of_birth': (NULLABLE, DATE, DateRelative(DateComparator.BEFORE, 'today')),
        'date_of_joining': (REQUIRED, DATE),
        'designation': _required_string(100),
        'department': _required_string(100),
        'salary': (REQUIRED, NUMERIC, Bounded(0, '999999999.99')),
        'status': _one_of('active', 'inactive', 'on_leave', 'terminated'),
        'employment_type': _one_of('full_time', 'part_time', 'contract', 'intern'),
        'bank_name': _nullable_string(100),
        'bank_account_number': _nullable_string(50),
        'bank_ifsc_code': _nullable_string(20),
        'emergency_contact_name': _nullable_string(100),
        'emergency_contact_phone': _nullable_string(20),
        'emergency_contact_relationship': _nullable_string(50),
        'documents': (NULLABLE, ArrayOf(STRING)),
        'remarks': _nullable_string(1000),
    }


def _loan_repayment_rules(mode: OperationMode, current_resource_id: Optional[Any]) -> Dict[str, Tuple]:
    return {
        'amount': (REQUIRED, NUMERIC, Bounded(minimum=0)),
        'payment_date': (REQUIRED, DATE),
        'payment_method': _one_of('cash', 'bank_transfer', 'check'),
        'transaction_id': _nullable_string(100),
        'remarks': _nullable_string(500),
    }


def _loan_rules(mode: OperationMode, current_resource_id: Optional[Any]) -> Dict[str, Tuple]:
    return {
        'organization_id': (REQUIRED, ExistsInCollection('organizations', 'id')),
        'employee_id': (REQUIRED, ExistsInCollection('employees', 'id')),
        'loan_number': _required_string(50) + (
            UniqueInCollection('loans', 'loan_number', current_resource_id),
        ),
        'type': _required_string(100),
        'amount': (REQUIRED, NUMERIC, Bounded(0, '999999999999.99')),
        'interest_rate': (REQUIRED, NUMERIC, Bounded(0, 100)),
        'term_months': (REQUIRED, INTEGER, Bounded(1, 360)),
        'start_date': (REQUIRED, DATE, DateRelative(DateComparator.AFTER_OR_EQUAL, 'today')),
        'end_date': (REQUIRED, DATE, DateRelative(DateComparator.AFTER, 'start_date')),
        'status': _one_of('pending', 'approved', 'rejected', 'disbursed',
                          'active', 'completed', 'defaulted'),
        'purpose': _required_string(1000),
        'collateral': _nullable_string(1000),
        'guarantor_name': _nullable_string(255),
        'guarantor_contact': _nullable_string(50),
        'guarantor_relationship': _nullable_string(100),
        'approved_by': (NULLABLE, ExistsInCollection('users', 'id')),
        'approved_at': (NULLABLE, DATE),
        'rejected_by': (NULLABLE, ExistsInCollection('users', 'id')),
        'rejected_at': (NULLABLE, DATE),
        'rejection_reason': _nullable_string(1000),
        'disbursed_by': (NULLABLE, ExistsInCollection('users', 'id')),
        'disbursed_at': (NULLABLE, DATE),
        'disbursement_method': _nullable_string(100),
        'disbursement_details': (NULLABLE, ARRAY),
        'documents': (NULLABLE, ArrayOf(STRING)),
        'remarks': _nullable_string(1000),
        'settings': (NULLABLE, ArrayOf(STRING)),
    }


def _organization_rules(mode: OperationMode, current_resource_id: Optional[Any]) -> Dict[str, Tuple]:
    rules = {
        'name': _required_string(255),
        'code': _required_string(50) + (
            UniqueInCollection('organizations', 'code', current_resource_id),
        ),
        'type': _required_string(100),
        'registration_number': _required_string(50) + (
            UniqueInCollection('organizations', 'registration_number', current_resource_id),
        ),
        'tax_number': _nullable_string(50),
        'address': _required_string(500),
        'city': _required_string(100),
        'state': _required_string(100),
        'country': _required_string(100),
        'postal_code': _required_string(20),
        'phone': _required_string(20),
        'email': (REQUIRED, EMAIL, _max(255),
                  UniqueInCollection('organizations', 'email', current_resource_id)),
        'website': (NULLABLE, URL, _max(255)),
        'logo': (NULLABLE, IMAGE, _max(2048)),
        'description': _nullable_string(1000),
        'status': _one_of('active', 'inactive', 'suspended'),
        'founding_date': (REQUIRED, DATE),
        'industry': _required_string(100),
        'size': _one_of('small', 'medium', 'large', 'enterprise'),
        'annual_revenue': (NULLABLE, NUMERIC, Bounded(0, '999999999999.99')),
        'currency': (REQUIRED, STRING, LengthBounded(exact=3)),
        'timezone': _required_string(50),
        'settings': (NULLABLE, ArrayOf(STRING)),
        'remarks': _nullable_string(1000),
    }
    # Password only mandatory until an organization exists
    presence = REQUIRED if current_resource_id is None else NULLABLE
    rules['password'] = (presence, STRING, LengthBounded(minimum=8))
    return rules


RuleBuilder = Callable[[OperationMode, Optional[Any]], Dict[str, Tuple]]

RULE_BUILDERS: Mapping = MappingProxyType({
    ResourceKind.DOCUMENT: _document_rules,
    ResourceKind.EMPLOYEE: _employee_rules,
    ResourceKind.LOAN_REPAYMENT: _loan_repayment_rules,
    ResourceKind.LOAN: _loan_rules,
    ResourceKind.ORGANIZATION: _organization_rules,
})

MESSAGE_TABLES: Mapping = MappingProxyType({
    ResourceKind.DOCUMENT: DOCUMENT_MESSAGES,
    ResourceKind.EMPLOYEE: EMPLOYEE_MESSAGES,
    ResourceKind.LOAN_REPAYMENT: LOAN_REPAYMENT_MESSAGES,
    ResourceKind.LOAN: LOAN_MESSAGES,
    ResourceKind.ORGANIZATION: ORGANIZATION_MESSAGES,
})


@functools.lru_cache(maxsize=512)
def get_definition(kind: ResourceKind, mode: OperationMode,
                   current_resource_id: Optional[Any] = None) -> ResourceDefinition:
    """
    Build (or fetch the cached) definition for a resource kind.

    Args:
        kind: Resource kind being validated
        mode: Create or update
        current_resource_id: Id of the record bound to the request, excluded
                             from uniqueness checks

    Returns:
        ResourceDefinition with immutable rule and message tables
    """
    rules = RuleTable(RULE_BUILDERS[kind](mode, current_resource_id))
    return ResourceDefinition(kind=kind, rules=rules, messages=MESSAGE_TABLES[kind])


__all__ = [
    'MISSING',
    'ResourceKind',
    'OperationMode',
    'RuleTable',
    'MessageTable',
    'ResourceDefinition',
    'DEFAULT_MESSAGES',
    'GENERIC_MESSAGE',
    'RULE_BUILDERS',
    'MESSAGE_TABLES',
    'attribute_name',
    'expand_path',
    'lookup_path',
    'get_definition',
]
