"""
WSGI Entry Point for Production Deployment

Gunicorn Configuration Example:
    gunicorn --bind 0.0.0.0:8000 --workers 4 wsgi:application

Kubernetes Health Checks:
    livenessProbe:  GET /health/liveness
    readinessProbe: GET /health/readiness
"""

import logging
import os

from app import create_app

# Configure WSGI module logging
logger = logging.getLogger(__name__)

application = create_app(os.environ.get('FLASK_CONFIG', 'production'))


__all__ = ['application']


if __name__ == '__main__':
    logger.warning("wsgi.py should not be run directly - use a WSGI server for production")
    application.run(
        host='0.0.0.0',
        port=int(os.environ.get('PORT', 5000)),
        debug=False
    )
