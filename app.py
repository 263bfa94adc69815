"""
Flask Application Factory - Main Entry Point

This module implements the Flask application factory for the resource
validation API. It wires configuration, structured logging, the database,
the service layer and the blueprints together.

Key Features:
- Environment-specific configuration selected by FLASK_CONFIG
- Environment variable management through python-dotenv
- structlog logging configured before any component logs
- Flask-SQLAlchemy initialization and an ``init-db`` CLI command
- Service registry providing the request validator to blueprints
- JSON error envelopes for service errors raised outside the API blueprint

Example:
    from app import create_app
    app = create_app('development')
    app.run(debug=True)
"""

import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

# Load environment variables before configuration classes are evaluated
load_dotenv()

from blueprints import register_all_blueprints  # noqa: E402
from config import get_config  # noqa: E402
from models import create_all_tables, db, init_database  # noqa: E402
from services import ServiceError, init_service_layer  # noqa: E402
from utils.logging import configure_logging  # noqa: E402

# Configure module-level logging
logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """
    Register application-wide error handlers.

    The API blueprint answers its own service errors; these handlers cover
    everything else with the same envelope.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(ServiceError)
    def handle_service_error(error: ServiceError):
        """Translate service layer errors into the JSON error envelope."""
        if error.status_code >= 500:
            logger.error(f"Service error: {error.error_code} - {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        """Handle not found errors."""
        logger.debug(f"Page not found: {request.url}")
        return jsonify({
            'success': False,
            'message': 'The requested resource was not found',
            'error_code': 'NOT_FOUND',
            'status_code': 404
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        """Handle internal server errors with database rollback."""
        logger.error(f"Internal server error: {error}")
        db.session.rollback()
        return jsonify({
            'success': False,
            'message': 'An unexpected error occurred',
            'error_code': 'INTERNAL_ERROR',
            'status_code': 500
        }), 500

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        """Wrap remaining HTTP errors (405, 413, ...) in the JSON envelope."""
        return jsonify({
            'success': False,
            'message': error.description,
            'error_code': error.name.upper().replace(' ', '_'),
            'status_code': error.code
        }), error.code


def register_cli_commands(app: Flask) -> None:
    """Register database management commands."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        create_all_tables(app)
        print("Database tables created.")


def create_app(config_name: Optional[str] = None) -> Flask:
    """
    Flask application factory function.

    Args:
        config_name: Environment configuration name ('development', 'testing',
                     'staging', 'production'). If None, determined from the
                     FLASK_CONFIG environment variable

    Returns:
        Flask: Configured Flask application instance

    Environment Variables:
        FLASK_CONFIG: Configuration class selection
        SECRET_KEY: Flask application secret key
        DATABASE_URL: SQLAlchemy connection string
        LOG_LEVEL: Application logging level (DEBUG, INFO, WARNING, ERROR)
        LOG_JSON: Force JSON (true) or console (false) log rendering
        VALIDATION_TIMEZONE: Zone whose calendar defines "today"
    """
    app = Flask(__name__)

    config_class = get_config(config_name)
    app.config.from_object(config_class)
    config_class.init_app(app)

    configure_logging(app)
    logger.info(f"Flask application created with {config_class.__name__} configuration")

    init_database(app)
    init_service_layer(app)

    register_error_handlers(app)
    register_all_blueprints(app)
    register_cli_commands(app)

    logger.info(
        f"Flask application factory initialization completed "
        f"(Debug: {app.debug}, Testing: {app.testing})"
    )
    return app


__all__ = ['create_app']
