"""
Flask Configuration Management

This module provides environment-specific configuration classes for
development, testing, staging and production deployments. Values come from
environment variables, loaded from a .env file through python-dotenv by the
application factory.

The configuration system supports:
- SQLAlchemy database URI from DATABASE_URL
- Structured logging settings (LOG_LEVEL, LOG_JSON)
- Upload size cap for multipart submissions (MAX_CONTENT_LENGTH)
- The timezone whose calendar defines "today" for date rules
  (VALIDATION_TIMEZONE)
"""

import logging
import os
from typing import Optional, Type


def _env_flag(name: str, default: Optional[bool] = None) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """
    Base configuration class containing common settings for all environments.
    """

    # Flask Core Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-change-in-production'
    APP_VERSION = os.environ.get('APP_VERSION', '1.0.0')

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///validation_dev.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_RECORD_QUERIES = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
    }

    # Logging Configuration; LOG_JSON unset means JSON outside debug
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(message)s'
    LOG_JSON = _env_flag('LOG_JSON')

    # Application Settings
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 16 * 1024 * 1024))  # 16MB max upload
    VALIDATION_TIMEZONE = os.environ.get('VALIDATION_TIMEZONE', 'UTC')

    # Flask-RESTX
    RESTX_MASK_SWAGGER = False
    RESTX_ERROR_404_HELP = False

    @staticmethod
    def init_app(app):
        """
        Initialize application with configuration-specific settings.

        Called after the Flask application is created and configured.

        Args:
            app: Flask application instance
        """
        if app.config.get('LOG_JSON') is None:
            app.config['LOG_JSON'] = not app.debug

    @classmethod
    def validate_required_config(cls) -> bool:
        """
        Check that settings without safe defaults were provided.

        Returns:
            bool: True when DATABASE_URL and SECRET_KEY come from the environment
        """
        missing = [name for name in ('DATABASE_URL', 'SECRET_KEY') if not os.environ.get(name)]
        if missing:
            logging.getLogger(__name__).warning(
                f"Configuration values using defaults: {', '.join(missing)}"
            )
        return not missing


class DevelopmentConfig(Config):
    """
    Development environment configuration.

    Enables debug mode and verbose logging with console-rendered log lines.
    """

    DEBUG = True
    TESTING = False

    SQLALCHEMY_ECHO = _env_flag('SQLALCHEMY_ECHO', False)

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')

    @staticmethod
    def init_app(app):
        """Initialize development-specific settings."""
        Config.init_app(app)
        app.logger.info("Development configuration loaded")
        if not DevelopmentConfig.validate_required_config():
            app.logger.warning("Some configuration values are using defaults")


class TestingConfig(Config):
    """
    Testing environment configuration.

    Uses an in-memory SQLite database and quiet logging.
    """

    TESTING = True
    DEBUG = False

    SQLALCHEMY_DATABASE_URI = os.environ.get('TEST_DATABASE_URL') or 'sqlite:///:memory:'

    LOG_LEVEL = 'WARNING'
    LOG_JSON = False

    @staticmethod
    def init_app(app):
        """Initialize testing-specific settings."""
        Config.init_app(app)


class ProductionConfig(Config):
    """
    Production environment configuration.

    Requires DATABASE_URL and SECRET_KEY from the environment and renders
    logs as JSON.
    """

    DEBUG = False
    TESTING = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': int(os.environ.get('SQLALCHEMY_POOL_RECYCLE', '3600')),
        'pool_size': int(os.environ.get('SQLALCHEMY_POOL_SIZE', '20')),
        'max_overflow': int(os.environ.get('SQLALCHEMY_MAX_OVERFLOW', '30')),
        'pool_timeout': int(os.environ.get('SQLALCHEMY_POOL_TIMEOUT', '30')),
    }

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    @staticmethod
    def init_app(app):
        """Initialize production-specific settings."""
        Config.init_app(app)

        if not ProductionConfig.validate_required_config():
            app.logger.error("Production configuration validation failed")
            raise RuntimeError("Invalid production configuration")


class StagingConfig(ProductionConfig):
    """
    Staging environment configuration.

    Production-like settings with optional debugging.
    """

    DEBUG = _env_flag('STAGING_DEBUG', False)
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


# Configuration mapping for environment-based selection
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'staging': StagingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name: Optional[str] = None) -> Type[Config]:
    """
    Get configuration class based on environment name.

    Args:
        config_name: Name of the configuration environment; FLASK_CONFIG when omitted

    Returns:
        Config: Configuration class for the specified environment
    """
    if config_name is None:
        config_name = os.environ.get('FLASK_CONFIG', 'default')

    return config.get(config_name, DevelopmentConfig)


# Export commonly used configuration classes
__all__ = [
    'Config',
    'DevelopmentConfig',
    'TestingConfig',
    'StagingConfig',
    'ProductionConfig',
    'config',
    'get_config',
]
