"""
Field Constraint Definitions for Request Validation

This module defines the closed set of constraints a rule table may attach to a
field path. Each constraint is an immutable dataclass exposing the rule name it
reports under and a ``check`` method returning a Violation (or None).

Key Features:
- Type predicates (string, numeric, integer, boolean, date, array, email, url,
  file, image) with the loose-typing behaviour web form input needs
- Size-aware bounds: numeric value, kilobytes, item count or character length
  depending on the field's declared type
- Existence and uniqueness checks delegated to a storage backend
- Calendar date comparisons against today or a sibling field

Constraints never raise on malformed input; only storage failures escape.
"""

from __future__ import annotations

import datetime
import enum
import math
import os
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Union
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email
from werkzeug.datastructures import FileStorage

from utils.datetime import parse_date

if TYPE_CHECKING:
    from .storage import StorageBackend


Number = Union[int, float, Decimal, str]

_NUMERIC_STRING = re.compile(r'^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$')
_INTEGER_STRING = re.compile(r'^\s*[+-]?\d+\s*$')

IMAGE_MIMETYPES = frozenset({
    'image/jpeg', 'image/png', 'image/gif', 'image/bmp',
    'image/svg+xml', 'image/webp',
})
IMAGE_EXTENSIONS = frozenset({'jpg', 'jpeg', 'png', 'gif', 'bmp', 'svg', 'webp'})


class FieldType(enum.Enum):
    """Declared value type of a field; the value doubles as the rule name."""

    STRING = 'string'
    NUMERIC = 'numeric'
    INTEGER = 'integer'
    BOOLEAN = 'boolean'
    DATE = 'date'
    ARRAY = 'array'
    EMAIL = 'email'
    URL = 'url'
    FILE = 'file'
    IMAGE = 'image'


class DateComparator(enum.Enum):
    BEFORE = 'before'
    AFTER = 'after'
    AFTER_OR_EQUAL = 'after_or_equal'


@dataclass(frozen=True)
class Violation:
    """A failed constraint: the rule name plus message placeholders."""

    rule: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ConstraintContext:
    """
    Per-call state a constraint may consult.

    Attributes:
        payload: The full submitted payload, for sibling-field anchors
        today: Calendar date that "today" anchors resolve to
        storage: Backend answering existence and uniqueness lookups
        field_type: Declared type of the field being checked, if any
    """

    payload: Mapping
    today: datetime.date
    storage: Optional['StorageBackend'] = None
    field_type: Optional[FieldType] = None

    def require_storage(self) -> 'StorageBackend':
        if self.storage is None:
            raise RuntimeError("Collection lookups require a storage backend")
        return self.storage


def is_empty(value: Any) -> bool:
    """
    True for values that count as "not provided".

    None, whitespace-only strings, empty lists and mappings, and uploads
    without a filename are all empty.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    if isinstance(value, (list, tuple, Mapping)):
        return len(value) == 0
    if isinstance(value, FileStorage):
        return not value.filename
    return False


def to_decimal(value: Any) -> Optional[Decimal]:
    """Convert a numeric value or numeric string to a finite Decimal."""
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value)) if math.isfinite(value) else None
    if isinstance(value, str) and _NUMERIC_STRING.match(value):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
        return number if number.is_finite() else None
    return None


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return math.isfinite(value) and value.is_integer()
    if isinstance(value, Decimal):
        return value.is_finite() and value == value.to_integral_value()
    if isinstance(value, str):
        return bool(_INTEGER_STRING.match(value))
    return False


def _is_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    if isinstance(value, int):
        return value in (0, 1)
    return isinstance(value, str) and value in ('0', '1')


def _is_email(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _is_url(value: Any) -> bool:
    if not isinstance(value, str) or not value or any(c.isspace() for c in value):
        return False
    try:
        parsed = urlparse(value)
        hostname = parsed.hostname
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc and hostname)


def _is_file(value: Any) -> bool:
    return isinstance(value, FileStorage) and bool(value.filename)


def _is_image(value: Any) -> bool:
    if not _is_file(value):
        return False
    if (value.mimetype or '').lower() in IMAGE_MIMETYPES:
        return True
    extension = os.path.splitext(value.filename)[1].lstrip('.').lower()
    return extension in IMAGE_EXTENSIONS


def file_size_kilobytes(upload: FileStorage) -> Decimal:
    """Size of an uploaded file in kilobytes, leaving the stream position intact."""
    stream = upload.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return Decimal(size) / Decimal(1024)


_TYPE_PREDICATES = {
    FieldType.STRING: lambda value: isinstance(value, str),
    FieldType.NUMERIC: lambda value: to_decimal(value) is not None,
    FieldType.INTEGER: _is_integer,
    FieldType.BOOLEAN: _is_boolean,
    FieldType.DATE: lambda value: parse_date(value) is not None,
    FieldType.ARRAY: lambda value: isinstance(value, (list, tuple, Mapping)),
    FieldType.EMAIL: _is_email,
    FieldType.URL: _is_url,
    FieldType.FILE: _is_file,
    FieldType.IMAGE: _is_image,
}


def measure(value: Any, field_type: Optional[FieldType]) -> Optional[Tuple[str, Decimal]]:
    """
    Size of a value for min/max/size rules.

    Returns:
        (basis, size) where basis is one of 'numeric', 'file', 'array' or
        'string', or None when the value has no meaningful size
    """
    if field_type in (FieldType.NUMERIC, FieldType.INTEGER):
        number = to_decimal(value)
        if number is not None:
            return 'numeric', number
    if isinstance(value, (list, tuple, Mapping)):
        return 'array', Decimal(len(value))
    if isinstance(value, FileStorage):
        return 'file', file_size_kilobytes(value)
    if isinstance(value, str):
        return 'string', Decimal(len(value))
    return None


def _as_bound(value: Optional[Number]) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


class FieldConstraint(ABC):
    """Base class for all field constraints."""

    @property
    @abstractmethod
    def rule(self) -> str:
        """Rule name used for message lookup."""

    @abstractmethod
    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        """Return a Violation when ``value`` breaks this constraint."""


@dataclass(frozen=True)
class Required(FieldConstraint):
    """Value must be present and not empty."""

    @property
    def rule(self) -> str:
        return 'required'

    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        return Violation(self.rule) if is_empty(value) else None


@dataclass(frozen=True)
class Nullable(FieldConstraint):
    """Empty values pass and skip the remaining constraints of the field."""

    @property
    def rule(self) -> str:
        return 'nullable'

    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        return None


@dataclass(frozen=True)
class TypeCheck(FieldConstraint):
    kind: FieldType

    @property
    def rule(self) -> str:
        return self.kind.value

    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        return None if _TYPE_PREDICATES[self.kind](value) else Violation(self.rule)


@dataclass(frozen=True)
class Bounded(FieldConstraint):
    """
    Inclusive min/max on the field's size.

    The size depends on the declared type of the field; see ``measure``.
    Failures report rule ``min`` or ``max``.
    """

    minimum: Optional[Number] = None
    maximum: Optional[Number] = None

    def __post_init__(self) -> None:
        if self.minimum is None and self.maximum is None:
            raise ValueError("Bounded needs a minimum, a maximum or both")

    @property
    def rule(self) -> str:
        return 'max' if self.maximum is not None else 'min'

    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        lower = _as_bound(self.minimum)
        upper = _as_bound(self.maximum)
        measured = measure(value, context.field_type)
        if measured is None:
            rule, bound = ('min', lower) if lower is not None else ('max', upper)
            return Violation(rule, {rule: bound, 'basis': 'string'})

        basis, size = measured
        if lower is not None and size < lower:
            return Violation('min', {'min': lower, 'basis': basis})
        if upper is not None and size > upper:
            return Violation('max', {'max': upper, 'basis': basis})
        return None


@dataclass(frozen=True)
class LengthBounded(FieldConstraint):
    """Inclusive character length bounds; ``exact`` reports rule ``size``."""

    minimum: Optional[int] = None
    maximum: Optional[int] = None
    exact: Optional[int] = None

    @property
    def rule(self) -> str:
        return 'size' if self.exact is not None else 'min' if self.maximum is None else 'max'

    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        length = len(value) if isinstance(value, str) else None
        if self.exact is not None and length != self.exact:
            return Violation('size', {'size': self.exact, 'basis': 'string'})
        if self.minimum is not None and (length is None or length < self.minimum):
            return Violation('min', {'min': self.minimum, 'basis': 'string'})
        if self.maximum is not None and (length is None or length > self.maximum):
            return Violation('max', {'max': self.maximum, 'basis': 'string'})
        return None


@dataclass(frozen=True)
class Enumerated(FieldConstraint):
    """Exact, case-sensitive membership in a fixed set of strings."""

    values: Tuple[str, ...]

    @property
    def rule(self) -> str:
        return 'in'

    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        if isinstance(value, str) and value in self.values:
            return None
        return Violation(self.rule, {'values': ', '.join(self.values)})


def _is_lookup_value(value: Any) -> bool:
    return isinstance(value, (str, int, Decimal)) and not isinstance(value, bool)


def _lookup_value(value: Any) -> Any:
    """JSON ids such as ``1.0`` are looked up as ``1``."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


@dataclass(frozen=True)
class ExistsInCollection(FieldConstraint):
    """A record with ``key == value`` must exist in ``collection``."""

    collection: str
    key: str = 'id'

    @property
    def rule(self) -> str:
        return 'exists'

    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        storage = context.require_storage()
        value = _lookup_value(value)
        if _is_lookup_value(value) and storage.exists(self.collection, self.key, value):
            return None
        return Violation(self.rule)


@dataclass(frozen=True)
class UniqueInCollection(FieldConstraint):
    """
    No record other than ``ignore_id`` may already hold ``value`` under
    ``key`` in ``collection``.
    """

    collection: str
    key: str
    ignore_id: Optional[Any] = None

    @property
    def rule(self) -> str:
        return 'unique'

    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        storage = context.require_storage()
        value = _lookup_value(value)
        if not _is_lookup_value(value):
            return None
        if storage.find_conflicting(self.collection, self.key, value, excluding_id=self.ignore_id):
            return Violation(self.rule)
        return None


@dataclass(frozen=True)
class DateRelative(FieldConstraint):
    """
    Calendar comparison against ``today`` or a sibling field.

    An anchor field that is missing or not a date fails the check.
    """

    comparator: DateComparator
    anchor: str = 'today'

    @property
    def rule(self) -> str:
        return self.comparator.value

    def _anchor_date(self, context: ConstraintContext) -> Optional[datetime.date]:
        if self.anchor == 'today':
            return context.today
        return parse_date(context.payload.get(self.anchor))

    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        display = self.anchor.replace('_', ' ')
        submitted = parse_date(value)
        anchor = self._anchor_date(context)
        if submitted is None or anchor is None:
            return Violation(self.rule, {'date': display})

        if self.comparator is DateComparator.BEFORE:
            passed = submitted < anchor
        elif self.comparator is DateComparator.AFTER:
            passed = submitted > anchor
        else:
            passed = submitted >= anchor
        return None if passed else Violation(self.rule, {'date': display})


@dataclass(frozen=True, init=False)
class ArrayOf(FieldConstraint):
    """
    Field must be an array whose elements each satisfy ``element_constraints``.

    Rule tables expand this into an ``array`` check on the field plus a
    ``<field>.*`` entry carrying the element constraints.
    """

    element_constraints: Tuple[FieldConstraint, ...]

    def __init__(self, *element_constraints: FieldConstraint) -> None:
        object.__setattr__(self, 'element_constraints', tuple(element_constraints))

    @property
    def rule(self) -> str:
        return 'array'

    def check(self, value: Any, context: ConstraintContext) -> Optional[Violation]:
        return TypeCheck(FieldType.ARRAY).check(value, context)


__all__ = [
    'FieldType',
    'DateComparator',
    'Violation',
    'ConstraintContext',
    'FieldConstraint',
    'Required',
    'Nullable',
    'TypeCheck',
    'Bounded',
    'LengthBounded',
    'Enumerated',
    'ExistsInCollection',
    'UniqueInCollection',
    'DateRelative',
    'ArrayOf',
    'is_empty',
    'to_decimal',
    'measure',
    'file_size_kilobytes',
]
