"""
Printful Browser Routes
=======================

View state lives in the URL: the selected product is a path segment and the
selected variant a ?variant_id= query parameter.
"""

import logging
from decimal import Decimal

from flask import render_template, request

from ..printful import get_printful_service
from ..printful.service import PrintfulError, format_price
from . import printful_browser_bp

logger = logging.getLogger(__name__)

MAX_SWATCHES = 10
MAX_VARIANT_OPTIONS = 20

# Fixed destination used for the shipping estimate
DEMO_RECIPIENT = {
    'address1': '123 Test St',
    'city': 'Fort Myers',
    'state_code': 'FL',
    'country_code': 'US',
    'zip': '33901',
}


@printful_browser_bp.app_template_filter('money')
def money_filter(value):
    return format_price(value)


def unique_values(variants, field, limit=MAX_SWATCHES):
    """First `limit` distinct non-empty values of a variant field, in order"""
    seen = []
    for variant in variants:
        value = variant.get(field)
        if value and value not in seen:
            seen.append(value)
            if len(seen) == limit:
                break
    return seen


def estimated_total(variant, rates):
    """Variant price plus the first (standard) shipping rate"""
    shipping = rates[0]['rate'] if rates else '0'
    return format_price(Decimal(variant['price']) + Decimal(shipping))


def _find_variant(variants, variant_id):
    if variant_id is None:
        return None
    return next((v for v in variants if v['id'] == variant_id), None)


def _render_error(message):
    return render_template('printful_browser/error.html', error=message), 502


@printful_browser_bp.route('/')
def catalog():
    """Catalog view"""
    try:
        details = get_printful_service().get_popular_products()
    except PrintfulError as e:
        logger.warning(f"Failed to load catalog: {e}")
        return _render_error(str(e) or 'Failed to load catalog')

    products = [detail['product'] for detail in details]
    return render_template('printful_browser/catalog.html', products=products)


@printful_browser_bp.route('/product/<int:product_id>')
def product(product_id):
    """Product detail view"""
    try:
        detail = get_printful_service().get_product(product_id)
    except PrintfulError as e:
        logger.warning(f"Failed to load product {product_id}: {e}")
        return _render_error(str(e) or 'Failed to load product')

    variants = detail['variants']
    selected = _find_variant(variants, request.args.get('variant_id', type=int))

    return render_template(
        'printful_browser/product.html',
        product=detail['product'],
        variants=variants[:MAX_VARIANT_OPTIONS],
        colors=unique_values(variants, 'color'),
        sizes=unique_values(variants, 'size'),
        selected_variant=selected,
    )


@printful_browser_bp.route('/product/<int:product_id>/estimate')
def estimate(product_id):
    """Shipping estimate view"""
    service = get_printful_service()
    try:
        detail = service.get_product(product_id)
        variant = _find_variant(detail['variants'], request.args.get('variant_id', type=int))
        if variant is None:
            return render_template(
                'printful_browser/error.html', error='Choose a variant before estimating shipping'
            ), 400
        rates = service.get_shipping_rates(
            recipient=DEMO_RECIPIENT,
            items=[{'variant_id': variant['id'], 'quantity': 1}],
        )
    except PrintfulError as e:
        logger.warning(f"Failed to calculate shipping for {product_id}: {e}")
        return _render_error(str(e) or 'Failed to calculate shipping')

    return render_template(
        'printful_browser/estimate.html',
        product=detail['product'],
        variant=variant,
        rates=rates,
        total=estimated_total(variant, rates),
        destination=f"{DEMO_RECIPIENT['city']}, {DEMO_RECIPIENT['state_code']}",
    )
