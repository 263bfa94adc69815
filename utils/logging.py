"""
Structured Logging Utilities for Flask Application

Configures structlog for the service layer and bridges it onto the standard
library logging tree so Flask, SQLAlchemy and structlog output share one set
of handlers and one level setting.

Key Features:
- Structured key/value logging with the structlog library
- JSON rendering in production, console rendering in debug
- Flask request context (method, path, endpoint) merged into every event
- Single LOG_LEVEL setting applied to both structlog and stdlib loggers
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from flask import Flask, has_request_context, request
from flask.logging import default_handler


def _add_flask_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add Flask request context to log entries."""
    if has_request_context():
        event_dict.setdefault('method', request.method)
        event_dict.setdefault('path', request.path)
        event_dict.setdefault('endpoint', request.endpoint)
    return event_dict


def configure_logging(app: Flask) -> None:
    """
    Configure structlog and stdlib logging for the application.

    Args:
        app: Flask application instance. Reads LOG_LEVEL, LOG_FORMAT and
             LOG_JSON from its configuration.
    """
    log_level_str = app.config.get('LOG_LEVEL', 'INFO')
    log_level = getattr(logging, str(log_level_str).upper(), logging.INFO)
    render_json = app.config.get('LOG_JSON', not app.debug)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_flask_context,
    ]

    if render_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Remove default Flask handler to avoid duplicate logs
    app.logger.removeHandler(default_handler)

    root_logger = logging.getLogger()
    if not any(getattr(h, '_validation_app_handler', False) for h in root_logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(
            app.config.get('LOG_FORMAT', '%(message)s')
        ))
        console_handler._validation_app_handler = True
        root_logger.addHandler(console_handler)

    root_logger.setLevel(log_level)
    app.logger.setLevel(log_level)

    get_logger(__name__).debug("logging_configured", level=log_level_str, json=render_json)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


__all__ = [
    'configure_logging',
    'get_logger',
]
