"""
Calendar date helpers for request validation.

Date rules compare calendar dates, not instants: "before today" means the
submitted day is earlier than the current day in the configured validation
timezone. Parsing is deliberately lenient about formats (ISO 8601 first, then
dateutil's free-form parser) but rejects bare numbers, which dateutil would
otherwise read as a day of the current month.
"""

import datetime
import logging
import re
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

_BARE_NUMBER = re.compile(r'^\s*[+-]?\d+(\.\d+)?\s*$')


def parse_date(value: Any) -> Optional[datetime.date]:
    """
    Interpret ``value`` as a calendar date.

    Args:
        value: A date, datetime or date string

    Returns:
        The calendar date, or None when the value is not a valid date
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text or _BARE_NUMBER.match(text):
        return None

    try:
        return dateutil_parser.isoparse(text).date()
    except (ValueError, OverflowError):
        pass

    try:
        return dateutil_parser.parse(text).date()
    except (ValueError, OverflowError, dateutil_parser.ParserError):
        return None


def today(timezone: Optional[str] = None) -> datetime.date:
    """
    Current calendar date.

    Args:
        timezone: IANA zone name; UTC when omitted or unknown
    """
    tz = datetime.timezone.utc
    if timezone:
        try:
            tz = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown validation timezone '{timezone}', falling back to UTC")
    return datetime.datetime.now(tz).date()


__all__ = [
    'parse_date',
    'today',
]
