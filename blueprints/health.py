"""
Health Check Blueprint

Liveness and readiness probes for container orchestration. Readiness
requires database connectivity, since existence and uniqueness rules cannot
be evaluated without it.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

from models import get_database_health
from services import get_validation_service

# Configure logging for health check operations
logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__, url_prefix='/health')


@health_bp.route('/liveness', methods=['GET'])
def liveness_probe():
    """
    Basic application responsiveness.

    HTTP Status Codes:
        200: Application is responsive
    """
    return jsonify({
        'status': 'healthy',
        'service': 'validation-api',
        'version': current_app.config.get('APP_VERSION', '1.0.0'),
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'check_type': 'liveness'
    }), 200


@health_bp.route('/readiness', methods=['GET'])
def readiness_probe():
    """
    Full readiness: the database answers a trivial query. The validation
    service reports its own status and operation counters alongside.

    HTTP Status Codes:
        200: System is ready to handle traffic
        503: Database unavailable
    """
    db_status = get_database_health()
    validation = get_validation_service().health_check()
    is_ready = db_status['status'] == 'healthy'

    logger.debug(f"Readiness probe completed: {'ready' if is_ready else 'not ready'}")
    return jsonify({
        'status': 'ready' if is_ready else 'not_ready',
        'service': 'validation-api',
        'checks': {
            'database': db_status,
            'validation': {**validation.data, **validation.metadata},
        },
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'check_type': 'readiness'
    }), 200 if is_ready else 503


__all__ = ['health_bp']
