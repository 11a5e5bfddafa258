import os
from dotenv import load_dotenv

load_dotenv()


def _split_origins(value):
    return [origin.strip() for origin in (value or '').split(',') if origin.strip()]


class Config:
    """
    Base configuration for Market Forge.
    Every value can be overridden with an environment variable or directly
    in app.config before MarketForge(app) is called.
    """
    # Flask settings
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY')
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')
    BRAND_NAME = os.getenv('BRAND_NAME', 'Market Forge')

    # Printful (print-on-demand provider)
    PRINTFUL_API_KEY = os.getenv('PRINTFUL_API_KEY')
    PRINTFUL_API_URL = os.getenv('PRINTFUL_API_URL', 'https://api.printful.com')
    PRINTFUL_STORE_ID = os.getenv('PRINTFUL_STORE_ID')
    PRINTFUL_TIMEOUT = int(os.getenv('PRINTFUL_TIMEOUT', '30'))

    # Supabase
    SUPABASE_URL = os.getenv('SUPABASE_URL') or os.getenv('NEXT_PUBLIC_SUPABASE_URL')
    SUPABASE_ANON_KEY = os.getenv('SUPABASE_ANON_KEY') or os.getenv('NEXT_PUBLIC_SUPABASE_ANON_KEY')
    SUPABASE_SERVICE_ROLE_KEY = os.getenv('SUPABASE_SERVICE_ROLE_KEY')

    # Key required for order and product-creating Printful actions
    MARKETFORGE_API_KEY = os.getenv('MARKETFORGE_API_KEY')

    # Downloadable marketplace files live under STORAGE_DIR
    STORAGE_DIR = os.getenv('STORAGE_DIR', os.path.join(os.getcwd(), 'storage'))
    MAX_DOWNLOAD_BYTES = int(os.getenv('MAX_DOWNLOAD_BYTES', str(50 * 1024 * 1024)))

    # Application log store (sqlite)
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))
    LOG_DB = os.getenv('LOG_DB', os.path.join(DB_DIR, 'marketforge_logs.db'))

    CORS_ALLOWED_ORIGINS = _split_origins(
        os.getenv('CORS_ALLOWED_ORIGINS', 'http://localhost:3000,http://localhost:5000')
    )

    # Port for local server
    port = int(os.getenv('PORT', '5000'))


CONFIG_KEYS = [
    'SECRET_KEY', 'APP_VERSION', 'BRAND_NAME',
    'PRINTFUL_API_KEY', 'PRINTFUL_API_URL', 'PRINTFUL_STORE_ID', 'PRINTFUL_TIMEOUT',
    'SUPABASE_URL', 'SUPABASE_ANON_KEY', 'SUPABASE_SERVICE_ROLE_KEY',
    'MARKETFORGE_API_KEY', 'STORAGE_DIR', 'MAX_DOWNLOAD_BYTES',
    'DB_DIR', 'LOG_DB', 'CORS_ALLOWED_ORIGINS',
]


def get_setting(key, default=None):
    """Resolve a setting: Flask app config, then environment, then Config."""
    try:
        from flask import current_app
        val = current_app.config.get(key)
        if val is not None:
            return val
    except RuntimeError:
        pass

    val = os.getenv(key)
    if val is not None:
        return val

    val = getattr(Config, key, None)
    return default if val is None else val
