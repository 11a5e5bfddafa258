"""
Printful Browser Module
=======================

Server-rendered POD catalog browser with three views:
- catalog:  popular products grid
- product:  colors, sizes and variant picker
- estimate: shipping options and estimated total for the chosen variant
"""

from flask import Blueprint

printful_browser_bp = Blueprint(
    'printful_browser',
    __name__,
    url_prefix='/printful',
    template_folder='templates'
)

from . import routes

__all__ = ['printful_browser_bp']
