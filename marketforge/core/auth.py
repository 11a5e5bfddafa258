"""
Request authentication helpers.

- X-API-Key checks for privileged Printful actions
- Supabase session lookup from a bearer token or the sb-access-token cookie
"""

import hmac
import logging
from functools import wraps

from flask import request, jsonify
from supabase import AuthError

from .config import get_setting
from .supabase_client import get_supabase

logger = logging.getLogger(__name__)


def check_api_key():
    """Return an error response tuple when X-API-Key is missing or wrong, else None."""
    expected = get_setting('MARKETFORGE_API_KEY')
    if not expected:
        return jsonify({
            'success': False,
            'error': 'This action is disabled: MARKETFORGE_API_KEY not configured'
        }), 403

    api_key = request.headers.get('X-API-Key')
    if not api_key:
        return jsonify({
            'success': False,
            'error': 'API key required. Include X-API-Key header with your request'
        }), 401

    if not hmac.compare_digest(api_key.encode(), str(expected).encode()):
        return jsonify({'success': False, 'error': 'Invalid API key'}), 401

    return None


def require_api_key(f):
    """Decorator to require a valid X-API-Key header"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        denied = check_api_key()
        if denied:
            return denied
        return f(*args, **kwargs)
    return decorated_function


def get_access_token():
    """Bearer token from the Authorization header, falling back to the Supabase cookie."""
    auth_header = request.headers.get('Authorization', '')
    if auth_header.lower().startswith('bearer '):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get('sb-access-token') or None


def get_session():
    """
    Resolve the caller's Supabase session.

    Returns:
        {'user': <supabase user>, 'access_token': str} or None when anonymous
    """
    token = get_access_token()
    if not token:
        return None

    try:
        response = get_supabase().auth.get_user(token)
    except AuthError as e:
        logger.info(f"Rejected access token: {e}")
        return None

    user = getattr(response, 'user', None)
    if not user:
        return None
    return {'user': user, 'access_token': token}


def get_user():
    """Authenticated Supabase user or None"""
    session = get_session()
    return session['user'] if session else None
