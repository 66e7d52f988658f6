"""
Platform routes.

FLOW OVERVIEW
- /health [GET]
  • Status, version, environment, uptime and a timed database round trip.
  • Database failure reports 'degraded' with HTTP 503.
- /metrics [GET]
  • Prometheus exposition.
"""

import logging
import time
from datetime import datetime

from flask import Blueprint, Response, current_app, jsonify
from sqlalchemy import text

from ..models import db
from ..utils.prom_metrics import CONTENT_TYPE_LATEST, metrics_latest

main_bp = Blueprint('main', __name__)
logger = logging.getLogger(__name__)

STARTED_AT = time.time()


def check_database():
    started = time.perf_counter()
    try:
        db.session.execute(text('SELECT 1'))
    except Exception as e:
        db.session.rollback()
        logger.error(f"Health check database error: {e}")
        return {'status': 'unhealthy', 'error': str(e)}
    return {'status': 'healthy', 'response_time_ms': round((time.perf_counter() - started) * 1000, 2)}


@main_bp.route('/health')
def health():
    """Health check endpoint"""
    database = check_database()
    status = 'healthy' if database['status'] == 'healthy' else 'degraded'
    payload = {
        'status': status,
        'timestamp': datetime.utcnow().isoformat(),
        'version': current_app.config.get('APP_VERSION', '1.0.0'),
        'environment': current_app.config.get('APP_ENVIRONMENT', 'development'),
        'uptime_seconds': int(time.time() - STARTED_AT),
        'checks': {'database': database},
    }
    return jsonify(payload), 200 if status == 'healthy' else 503


@main_bp.route('/metrics')
def metrics():
    """Prometheus metrics endpoint."""
    return Response(metrics_latest(), mimetype=CONTENT_TYPE_LATEST)
