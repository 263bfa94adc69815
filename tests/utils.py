"""
Test utilities: in-memory storage backend, valid payload builders and
upload helpers shared by the unit and API tests.
"""

import io
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from werkzeug.datastructures import FileStorage

from services.base_service import StorageUnavailableError

# Fixed calendar date used by unit tests for "today"
TODAY = date(2025, 6, 1)


class InMemoryStorage:
    """
    StorageBackend fake holding rows as dictionaries per collection.

    Set ``fail`` to make every lookup raise StorageUnavailableError.
    """

    def __init__(self, records: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 fail: bool = False) -> None:
        self.records = records or {}
        self.fail = fail
        self.lookups: List[tuple] = []

    def add(self, collection: str, **row: Any) -> Dict[str, Any]:
        self.records.setdefault(collection, []).append(row)
        return row

    def _check(self, collection: str) -> None:
        if self.fail:
            raise StorageUnavailableError(f"Lookup on '{collection}' failed", collection=collection)

    @staticmethod
    def _matches(stored: Any, value: Any) -> bool:
        return str(stored) == str(value)

    def exists(self, collection: str, key: str, value: Any) -> bool:
        self.lookups.append(('exists', collection, key, value))
        self._check(collection)
        return any(self._matches(row.get(key), value) for row in self.records.get(collection, []))

    def find_conflicting(self, collection: str, key: str, value: Any,
                         excluding_id: Optional[Any] = None) -> bool:
        self.lookups.append(('unique', collection, key, value, excluding_id))
        self._check(collection)
        for row in self.records.get(collection, []):
            if excluding_id is not None and self._matches(row.get('id'), excluding_id):
                continue
            if self._matches(row.get(key), value):
                return True
        return False


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def make_upload(filename: str = 'contract.pdf', size: int = 1024,
                content_type: str = 'application/pdf') -> FileStorage:
    """Build an uploaded file of ``size`` bytes."""
    return FileStorage(
        stream=io.BytesIO(b'x' * size),
        filename=filename,
        content_type=content_type,
    )


def employee_payload(organization_id: Any = 1, **overrides: Any) -> Dict[str, Any]:
    payload = {
        'organization_id': organization_id,
        'employee_id': 'EMP-001',
        'first_name': 'Asha',
        'last_name': 'Rao',
        'email': 'asha.rao@acmeholdings.com',
        'date_of_joining': '2024-01-15',
        'designation': 'Analyst',
        'department': 'Finance',
        'salary': 55000,
        'status': 'active',
        'employment_type': 'full_time',
    }
    payload.update(overrides)
    return payload


def loan_payload(organization_id: Any = 1, employee_id: Any = 1,
                 start_date: Optional[date] = None, **overrides: Any) -> Dict[str, Any]:
    start = start_date or TODAY + timedelta(days=10)
    payload = {
        'organization_id': organization_id,
        'employee_id': employee_id,
        'loan_number': 'LN-0001',
        'type': 'personal',
        'amount': 25000,
        'interest_rate': 7.5,
        'term_months': 24,
        'start_date': start.isoformat(),
        'end_date': (start + timedelta(days=730)).isoformat(),
        'status': 'pending',
        'purpose': 'Home renovation',
    }
    payload.update(overrides)
    return payload


def repayment_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {
        'amount': 1200.50,
        'payment_date': '2025-05-30',
        'payment_method': 'bank_transfer',
    }
    payload.update(overrides)
    return payload


def organization_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {
        'name': 'Acme Holdings',
        'code': 'ACMEHLD',
        'type': 'private',
        'registration_number': 'REG-12345',
        'address': '12 Market Street',
        'city': 'Pune',
        'state': 'Maharashtra',
        'country': 'India',
        'postal_code': '411001',
        'phone': '+91-20-5550100',
        'email': 'contact@acmeholdings.com',
        'status': 'active',
        'founding_date': '2010-04-01',
        'industry': 'Manufacturing',
        'size': 'medium',
        'currency': 'INR',
        'timezone': 'Asia/Kolkata',
        'password': 'sup3rsecret',
    }
    payload.update(overrides)
    return payload


def document_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {
        'title': 'Employment contract',
        'type': 'contract',
    }
    payload.update(overrides)
    return payload


__all__ = [
    'TODAY',
    'InMemoryStorage',
    'utc_today',
    'make_upload',
    'employee_payload',
    'loan_payload',
    'repayment_payload',
    'organization_payload',
    'document_payload',
]
