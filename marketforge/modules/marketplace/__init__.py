"""
Marketplace Module
==================

Digital product marketplace backed by Supabase.

Provides:
- POST /api/marketplace/products          - create a product (and its series)
- GET  /api/marketplace/download/<slug>   - download a purchased file
- POST /api/marketplace/checkout          - start a Stripe or PayPal checkout
"""

from flask import Blueprint

marketplace_bp = Blueprint(
    'marketplace',
    __name__,
    url_prefix='/api/marketplace'
)

from . import routes

__all__ = ['marketplace_bp']
