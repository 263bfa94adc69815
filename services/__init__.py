"""
Service Package Initialization Module for Flask Application

This module provides centralized service registration, dependency injection
configuration and service layer exports for the Flask application.

Key Features:
- Service Layer pattern implementation with Python classes in /services
- Flask application factory integration through init_service_layer
- SQLAlchemy session injection for registered services
- Per-request service instances cached on Flask's ``g``

Service Registry:
Blueprints obtain services through ``get_service(name)``; tests may register
replacement classes or override constructor arguments.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Type

from flask import Flask, current_app, g
from sqlalchemy.orm import Session

from models import db

from .base_service import (
    AuthorizationDeniedError,
    BaseService,
    DatabaseError,
    DatabaseSession,
    NotFoundError,
    RequestValidationError,
    ServiceError,
    ServiceResult,
    StorageUnavailableError,
)
from .rule_tables import OperationMode, ResourceKind, get_definition
from .storage import SQLAlchemyStorage, StorageBackend
from .validation_service import ValidationContext, ValidationResult, ValidationService


class FlaskServiceRegistry:
    """
    Service registry implementation for Flask application factory pattern.

    Attributes:
        app: Flask application instance
        service_classes: Registered service classes by name
        session_factory: Factory returning the session injected into services
    """

    def __init__(self, app: Optional[Flask] = None) -> None:
        self.service_classes: Dict[str, Type[BaseService]] = {}
        self.session_factory: Optional[Callable[[], Session]] = None
        self._service_config: Dict[str, Dict[str, Any]] = {}
        self._initialized = False

        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """
        Initialize service registry with Flask application factory pattern.

        Args:
            app: Flask application instance with Flask-SQLAlchemy initialized
        """
        self.app = app
        self.session_factory = lambda: db.session

        self.register_service('validation', ValidationService)

        app.teardown_appcontext(self._cleanup_services)
        app.service_registry = self

        self._initialized = True
        self.logger.info("Service registry initialized successfully")

    def register_service(self, service_name: str, service_class: Type[BaseService],
                         **kwargs: Any) -> None:
        """
        Register a service class for lazy per-request instantiation.

        Args:
            service_name: Unique identifier for the service
            service_class: Service class implementing BaseService
            **kwargs: Additional constructor arguments

        Raises:
            TypeError: If service_class doesn't inherit from BaseService
        """
        if not issubclass(service_class, BaseService):
            raise TypeError(
                f"Service class {service_class.__name__} must inherit from BaseService"
            )

        if service_name in self.service_classes:
            self.logger.warning(f"Overriding existing service registration: {service_name}")

        self.service_classes[service_name] = service_class
        self._service_config[service_name] = kwargs
        self.logger.debug(
            f"Registered service '{service_name}' with class {service_class.__name__}"
        )

    def get_service(self, service_name: str) -> BaseService:
        """
        Retrieve a service instance with dependency injection.

        Services are cached per application context on ``g``.

        Raises:
            ServiceError: If the registry is not initialized or the service
                          is not registered
        """
        if not self._initialized:
            raise ServiceError("Service registry not initialized",
                               error_code='REGISTRY_NOT_INITIALIZED')

        if service_name not in self.service_classes:
            raise ServiceError(f"Service '{service_name}' not registered",
                               error_code='SERVICE_NOT_FOUND')

        if not hasattr(g, 'services'):
            g.services = {}

        if service_name in g.services:
            return g.services[service_name]

        service_class = self.service_classes[service_name]
        config = self._service_config.get(service_name, {})
        service_instance = service_class(db_session=self.session_factory(), **config)

        g.services[service_name] = service_instance
        self.logger.debug(f"Created service instance: {service_name}")
        return service_instance

    def _cleanup_services(self, exception: Optional[BaseException] = None) -> None:
        """Drop the per-context service cache."""
        services = g.pop('services', None)
        if services:
            self.logger.debug(f"Released services: {', '.join(services)}")


def init_service_layer(app: Flask) -> FlaskServiceRegistry:
    """
    Initialize the service layer for a Flask application.

    Args:
        app: Flask application instance

    Returns:
        FlaskServiceRegistry bound to the application
    """
    return FlaskServiceRegistry(app)


def get_service(service_name: str) -> BaseService:
    """
    Convenience function to get a service instance from the application registry.

    Example:
        validator = get_service('validation')
    """
    return current_app.service_registry.get_service(service_name)


def get_validation_service() -> ValidationService:
    return get_service('validation')


__all__ = [
    # Registry
    'FlaskServiceRegistry',
    'init_service_layer',
    'get_service',
    'get_validation_service',

    # Base infrastructure
    'BaseService',
    'DatabaseSession',
    'ServiceResult',
    'ServiceError',
    'DatabaseError',
    'StorageUnavailableError',
    'RequestValidationError',
    'AuthorizationDeniedError',
    'NotFoundError',

    # Validation
    'ValidationService',
    'ValidationContext',
    'ValidationResult',
    'ResourceKind',
    'OperationMode',
    'get_definition',
    'StorageBackend',
    'SQLAlchemyStorage',
]
