"""
Cross-cutting utilities: structured logging setup and calendar date helpers.
"""

from .datetime import parse_date, today
from .logging import configure_logging, get_logger

__all__ = [
    'configure_logging',
    'get_logger',
    'parse_date',
    'today',
]
