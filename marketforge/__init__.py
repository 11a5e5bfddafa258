"""
Market Forge - Print-on-Demand Commerce Backend
===============================================

Flask blueprints integrating a commerce site with:
- Printful print-on-demand fulfillment (catalog, mockups, shipping, orders)
- A server-rendered POD catalog browser
- A Supabase backed digital product marketplace (products, downloads, checkout)
- A public health endpoint

Usage:
    from flask import Flask
    from marketforge import MarketForge

    app = Flask(__name__)
    MarketForge(app)

Or:
    from marketforge import create_app
    app = create_app()
"""

import logging
import os

from flask import Flask
from flask_cors import CORS

from .core.config import Config, CONFIG_KEYS

__version__ = '1.0.0'
__author__ = 'Market Forge'

logger = logging.getLogger(__name__)

DEFAULT_FEATURES = {
    'printful': True,
    'printful_browser': True,
    'marketplace': True,
    'health': True,
}


class MarketForge:
    """Flask extension registering the Market Forge modules"""

    def __init__(self, app=None, config=None):
        self._config = config or {}
        self._registered = []
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self._apply_config_defaults(app)
        self._setup_log_dir(app)

        features = dict(DEFAULT_FEATURES)
        features.update(self._config.get('features', {}))

        if self._config.get('printful_service') is not None:
            app.extensions['printful'] = self._config['printful_service']
        if self._config.get('supabase') is not None:
            app.extensions['supabase'] = self._config['supabase']

        for name, enabled in features.items():
            if enabled:
                self._register_module(app, name)

        if features.get('printful'):
            CORS(app, resources={
                r'/api/printful*': {'origins': app.config['CORS_ALLOWED_ORIGINS']},
            })

        brand_name = self._config.get('brand_name') or app.config['BRAND_NAME']

        @app.context_processor
        def inject_brand_name():
            return {'brand_name': brand_name}

        app.extensions['marketforge'] = self

    def get_registered_modules(self):
        return list(self._registered)

    def _apply_config_defaults(self, app):
        """Copy Config defaults into app.config without overriding app values"""
        for key in CONFIG_KEYS:
            if app.config.get(key) is None:
                app.config[key] = getattr(Config, key)

    def _setup_log_dir(self, app):
        log_dir = os.path.dirname(app.config['LOG_DB'])
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

    def _register_module(self, app, name):
        if name == 'printful':
            from .modules.printful import printful_bp as bp
        elif name == 'printful_browser':
            from .modules.printful_browser import printful_browser_bp as bp
        elif name == 'marketplace':
            from .modules.marketplace import marketplace_bp as bp
        elif name == 'health':
            from .modules.health import health_bp as bp
        else:
            raise ValueError(f"Unknown Market Forge module: {name}")

        app.register_blueprint(bp)
        self._registered.append(name)
        logger.debug(f"Registered module {name}")


def create_app(config=None, **app_config):
    """Application factory"""
    app = Flask(__name__)
    app.config['SECRET_KEY'] = Config.SECRET_KEY
    app.config.update(app_config)

    app.logger.setLevel(logging.INFO)

    MarketForge(app, config)
    return app


__all__ = ['MarketForge', 'create_app', 'Config']
