"""
Health Routes
=============

GET /api/health - database connectivity and process uptime.
"""

import logging
import time
from datetime import datetime, timezone

from flask import current_app, jsonify
from supabase import PostgrestAPIError

from ...core.logging_service import LoggingService
from ...core.supabase_client import get_supabase
from . import health_bp

logger = logging.getLogger(__name__)

# PostgREST "no rows returned" for .single(): the table is reachable, just empty
NO_ROWS_CODE = 'PGRST116'

NO_CACHE_HEADERS = {'Cache-Control': 'no-store, must-revalidate'}

_started_at = time.monotonic()


def _timestamp():
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def _check_database():
    """Run a lightweight query; returns 'healthy' or 'unhealthy'"""
    try:
        get_supabase().table('products').select('id').limit(1).single().execute()
    except PostgrestAPIError as e:
        if e.code == NO_ROWS_CODE:
            return 'healthy'
        logger.warning(f"Health check database error: {e.message}")
        return 'unhealthy'
    return 'healthy'


@health_bp.route('/')
@health_bp.route('')
def health_check():
    """Public health endpoint for uptime monitors."""
    started = time.monotonic()

    try:
        db_status = _check_database()
        response_ms = int((time.monotonic() - started) * 1000)

        status = 'ok' if db_status == 'healthy' else 'degraded'
        health = {
            'status': status,
            'timestamp': _timestamp(),
            'services': {
                'database': {
                    'status': db_status,
                    'responseTime': f'{response_ms}ms',
                },
                'api': {
                    'status': 'healthy',
                },
            },
            'version': current_app.config.get('APP_VERSION', '1.0.0'),
            'uptime': round(time.monotonic() - _started_at, 3),
        }
        return jsonify(health), 200 if status == 'ok' else 503, NO_CACHE_HEADERS

    except Exception as e:
        logger.exception('Health check failed')
        LoggingService.log_error_with_traceback('health', e)
        return jsonify({
            'status': 'unhealthy',
            'timestamp': _timestamp(),
            'error': 'Health check failed',
        }), 503, NO_CACHE_HEADERS
