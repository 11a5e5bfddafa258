"""
Application event log for Market Forge.

Events go to the 'marketforge' console logger and are persisted in the
app_logs table of the sqlite file at LOG_DB, tagged with the request they
happened in. Sources are short module names: printful, marketplace, health,
system.
"""

import json
import logging
import traceback
from contextlib import closing, contextmanager
from datetime import datetime, timedelta

from flask import has_request_context, request

from .config import get_setting
from .database import Database

console = logging.getLogger('marketforge')

LOG_COLUMNS = (
    'timestamp', 'level', 'source', 'message', 'details',
    'ip_address', 'user_agent', 'request_path', 'user_id',
)

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS app_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        level TEXT NOT NULL,
        source TEXT NOT NULL,
        message TEXT NOT NULL,
        details TEXT,
        ip_address TEXT,
        user_agent TEXT,
        request_path TEXT,
        user_id TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_app_logs_timestamp ON app_logs(timestamp DESC)",
    "CREATE INDEX IF NOT EXISTS idx_app_logs_level ON app_logs(level)",
)


def _client_ip():
    # First hop of X-Forwarded-For is the client when behind a proxy
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr


def _status_level(status_code):
    if status_code is None or status_code >= 500:
        return 'ERROR'
    if status_code >= 400:
        return 'WARNING'
    return 'INFO'


class LoggingService:
    """Writes and reads back the app_logs table"""

    @staticmethod
    @contextmanager
    def _open():
        """Connection with the schema in place; commits on success and is always closed"""
        with closing(Database.connect(get_setting('LOG_DB'))) as conn:
            for statement in SCHEMA:
                conn.execute(statement)
            with conn:
                yield conn

    @staticmethod
    def _request_fields():
        if not has_request_context():
            return None, None, None
        return _client_ip(), request.headers.get('User-Agent', ''), request.path

    @staticmethod
    def log(level, source, message, details=None, user_id=None):
        """
        Record an event.

        Args:
            level: DEBUG, INFO, WARNING, ERROR or CRITICAL (any case)
            source: module the event came from
            message: one line summary
            details: str, or a dict stored as JSON
            user_id: Supabase user id when known
        """
        level = level.upper()
        console.log(getattr(logging, level, logging.INFO), '[%s] %s', source, message)

        if not get_setting('LOG_DB'):
            return

        if isinstance(details, dict):
            details = json.dumps(details, indent=2, default=str)

        row = (datetime.now().isoformat(), level, source, message, details,
               *LoggingService._request_fields(), user_id)
        try:
            with LoggingService._open() as conn:
                conn.execute(
                    f"INSERT INTO app_logs ({', '.join(LOG_COLUMNS)}) "
                    f"VALUES ({', '.join('?' for _ in LOG_COLUMNS)})",
                    row,
                )
        except Exception as e:
            # The log store must never take a request down with it
            console.warning('Could not write app_logs (%s): %s', get_setting('LOG_DB'), e)

    @staticmethod
    def debug(source, message, details=None, user_id=None):
        LoggingService.log('DEBUG', source, message, details, user_id)

    @staticmethod
    def info(source, message, details=None, user_id=None):
        LoggingService.log('INFO', source, message, details, user_id)

    @staticmethod
    def warning(source, message, details=None, user_id=None):
        LoggingService.log('WARNING', source, message, details, user_id)

    @staticmethod
    def error(source, message, details=None, user_id=None):
        LoggingService.log('ERROR', source, message, details, user_id)

    @staticmethod
    def log_api_call(source, endpoint, method='GET', status_code=200, details=None):
        """Outbound call to Printful or a Supabase function; level follows the status"""
        LoggingService.log(
            _status_level(status_code), source,
            f"API {method} {endpoint} - Status: {status_code}", details,
        )

    @staticmethod
    def log_error_with_traceback(source, error, details=None):
        """Call from an except block so the current traceback is captured"""
        payload = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'traceback': traceback.format_exc(),
        }
        if details:
            payload['context'] = details
        LoggingService.error(source, f"Unhandled {type(error).__name__}: {error}", payload)

    @staticmethod
    def recent(limit=50, levels=None):
        """Newest entries first, optionally only the given levels"""
        query = "SELECT * FROM app_logs"
        params = []
        if levels:
            query += f" WHERE level IN ({', '.join('?' for _ in levels)})"
            params.extend(level.upper() for level in levels)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        with LoggingService._open() as conn:
            conn.row_factory = Database.dict_factory
            return conn.execute(query, params).fetchall()

    @staticmethod
    def cleanup_old_logs(days_to_keep=30):
        """Delete entries older than days_to_keep; returns how many went"""
        cutoff = (datetime.now() - timedelta(days=days_to_keep)).isoformat()
        with LoggingService._open() as conn:
            deleted = conn.execute("DELETE FROM app_logs WHERE timestamp < ?", (cutoff,)).rowcount

        LoggingService.info('system', f"Removed {deleted} log entries older than {days_to_keep} days")
        return deleted


def db_log(level, source, message, details=None):
    """Shortcut used by modules: db_log('info', 'printful', 'Synced', {...})"""
    LoggingService.log(level, source, message, details)


logger = LoggingService()
