"""
Printful Module
===============

Print-on-demand integration with the Printful API.

Provides:
- PrintfulService: authenticated client for catalog, mockups, shipping and orders
- /api/printful: JSON API dispatching on the `action` query parameter

Usage:
    from marketforge.modules.printful import printful_bp, printful_service

    app.register_blueprint(printful_bp)  # Registers at /api/printful
    printful_service.get_catalog(limit=10)
"""

from flask import Blueprint

from .service import (
    POPULAR_PRODUCTS,
    PrintfulAPIError,
    PrintfulConfigError,
    PrintfulError,
    PrintfulService,
    printful_service,
)

printful_bp = Blueprint(
    'printful',
    __name__,
    url_prefix='/api/printful'
)


def get_printful_service():
    """Service bound to the current app (app.extensions['printful']) or the global one"""
    from flask import current_app
    return current_app.extensions.get('printful') or printful_service


from . import routes

__all__ = [
    'printful_bp', 'get_printful_service', 'printful_service', 'PrintfulService',
    'PrintfulError', 'PrintfulAPIError', 'PrintfulConfigError', 'POPULAR_PRODUCTS',
]
