"""
Health Module
=============

Public health endpoint for uptime monitors (no auth).

Usage:
    from marketforge.modules.health import health_bp

    app.register_blueprint(health_bp)  # Registers at /api/health
"""

from flask import Blueprint

health_bp = Blueprint(
    'health',
    __name__,
    url_prefix='/api/health'
)

from . import routes

__all__ = ['health_bp']
