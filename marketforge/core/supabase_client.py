"""
Supabase client access.

One client per Flask app, created lazily from SUPABASE_URL and the service
role key (anon key as fallback). Tests put their own client in
app.extensions['supabase'].
"""

import logging

from flask import current_app
from supabase import Client, create_client

logger = logging.getLogger(__name__)


class SupabaseConfigError(RuntimeError):
    """Raised when Supabase credentials are missing"""


def get_supabase() -> Client:
    client = current_app.extensions.get('supabase')
    if client is not None:
        return client

    url = current_app.config.get('SUPABASE_URL')
    key = current_app.config.get('SUPABASE_SERVICE_ROLE_KEY') or current_app.config.get('SUPABASE_ANON_KEY')
    if not url or not key:
        raise SupabaseConfigError('SUPABASE_URL and a Supabase key must be configured')

    client = create_client(url, key)
    current_app.extensions['supabase'] = client
    logger.info(f"Supabase client initialised: {url}")
    return client
