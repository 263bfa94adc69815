"""
Flask Blueprint Package Initialization

Centralized blueprint registration for the Flask application factory.

Blueprint Organization:
- api_bp: Resource submission endpoints under /api
- health_bp: Liveness and readiness probes under /health
"""

import logging
from typing import Dict, List

from flask import Blueprint, Flask

from .api import create_api_blueprint
from .health import health_bp

# Configure logging for blueprint registration
logger = logging.getLogger(__name__)


def _application_blueprints() -> List[Blueprint]:
    """Blueprints in registration order; the API blueprint is built per app."""
    return [create_api_blueprint(), health_bp]


class BlueprintRegistrationError(Exception):
    """Raised when a blueprint cannot be registered."""
    pass


def register_all_blueprints(app: Flask) -> Dict[str, str]:
    """
    Register every application blueprint.

    Args:
        app: Flask application instance

    Returns:
        Mapping of blueprint name to its URL prefix

    Raises:
        BlueprintRegistrationError: If a blueprint fails to register
    """
    registered: Dict[str, str] = {}
    for blueprint in _application_blueprints():
        try:
            app.register_blueprint(blueprint)
        except (ValueError, AssertionError) as e:
            logger.error(f"Blueprint registration error for '{blueprint.name}': {e}")
            raise BlueprintRegistrationError(
                f"Failed to register blueprint '{blueprint.name}': {e}"
            ) from e
        registered[blueprint.name] = blueprint.url_prefix or '/'

    logger.info(f"Blueprint registration completed: {', '.join(registered)}")
    return registered


__all__ = [
    'register_all_blueprints',
    'BlueprintRegistrationError',
    'create_api_blueprint',
    'health_bp',
]
