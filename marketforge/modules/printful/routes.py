"""
Printful API Routes
===================

Single endpoint dispatching on ?action=.

GET  /api/printful?action=info|catalog|product|popular|pricing|store|mockup-status|orders|order
POST /api/printful?action=shipping|estimate|mockup|order|quick-create
DELETE /api/printful?action=order&id=<order id>

Actions touching store orders or creating products require X-API-Key.
"""

import logging

from flask import request, jsonify

from ...core.auth import check_api_key, require_api_key
from ...core.logging_service import LoggingService
from . import printful_bp, get_printful_service
from .service import (
    POPULAR_PRODUCTS,
    PRINTFUL_DOCS_URL,
    PrintfulAPIError,
    PrintfulConfigError,
    PrintfulError,
)

logger = logging.getLogger(__name__)

API_VERSION = '2.0'
MAX_CATALOG_LIMIT = 100

GET_ACTIONS = ['info', 'catalog', 'product', 'popular', 'pricing', 'store', 'mockup-status', 'orders', 'order']
POST_ACTIONS = ['shipping', 'estimate', 'mockup', 'order', 'quick-create']
DELETE_ACTIONS = ['order']
PROTECTED_GET_ACTIONS = {'orders', 'order'}
PROTECTED_POST_ACTIONS = {'order', 'quick-create'}


def error_response(message, status=500):
    """Consistent error payload"""
    return jsonify({'success': False, 'error': message}), status


def provider_error_response(error):
    """Map a service error to an HTTP response"""
    if isinstance(error, PrintfulConfigError):
        return error_response(str(error), 500)
    if isinstance(error, PrintfulAPIError) and error.status_code and 400 <= error.status_code < 500:
        return error_response(error.message, error.status_code)
    return error_response(str(error), 502)


def _missing(body, *fields):
    return [field for field in fields if not body.get(field)]


# ---------------------------------------------------------------------------
# GET actions
# ---------------------------------------------------------------------------

def _info(service):
    return jsonify({
        'success': True,
        'api': 'Printful POD Integration',
        'version': API_VERSION,
        'actions': {
            'GET': GET_ACTIONS,
            'POST': POST_ACTIONS,
            'DELETE': DELETE_ACTIONS,
        },
        'popularProducts': POPULAR_PRODUCTS,
        'documentation': PRINTFUL_DOCS_URL,
    })


def _catalog(service):
    limit = request.args.get('limit', 20, type=int)
    limit = max(1, min(limit, MAX_CATALOG_LIMIT))
    catalog = service.get_catalog(limit)
    return jsonify({'success': True, 'products': catalog, 'count': len(catalog)})


def _product(service):
    product_id = request.args.get('id', type=int)
    if product_id is None:
        return error_response('Product ID required', 400)
    return jsonify({'success': True, 'product': service.get_product(product_id)})


def _popular(service):
    products = service.get_popular_products()
    return jsonify({'success': True, 'products': products, 'count': len(products)})


def _pricing(service):
    product_id = request.args.get('id', type=int)
    if product_id is None:
        return error_response('Product ID required', 400)
    return jsonify({'success': True, 'pricing': service.get_product_pricing(product_id)})


def _store(service):
    return jsonify({'success': True, 'store': service.get_store_info()})


def _mockup_status(service):
    task_key = request.args.get('task_key')
    if not task_key:
        return error_response('Task key required', 400)
    return jsonify({'success': True, 'result': service.get_mockup_result(task_key)})


def _orders(service):
    orders = service.list_orders(
        status=request.args.get('status'),
        offset=request.args.get('offset', type=int),
        limit=request.args.get('limit', type=int),
    )
    return jsonify({'success': True, 'orders': orders, 'count': len(orders)})


def _order(service):
    order_id = request.args.get('id')
    if not order_id:
        return error_response('Order ID required', 400)
    return jsonify({'success': True, 'order': service.get_order(order_id)})


GET_HANDLERS = {
    'info': _info,
    'catalog': _catalog,
    'product': _product,
    'popular': _popular,
    'pricing': _pricing,
    'store': _store,
    'mockup-status': _mockup_status,
    'orders': _orders,
    'order': _order,
}


# ---------------------------------------------------------------------------
# POST actions
# ---------------------------------------------------------------------------

def _shipping(service, body):
    if _missing(body, 'recipient', 'items'):
        return error_response('recipient and items are required', 400)
    rates = service.get_shipping_rates(recipient=body['recipient'], items=body['items'])
    return jsonify({'success': True, 'rates': rates, 'count': len(rates)})


def _estimate(service, body):
    if _missing(body, 'recipient', 'items'):
        return error_response('recipient and items are required', 400)
    estimate = service.estimate_costs(recipient=body['recipient'], items=body['items'])
    return jsonify({'success': True, 'estimate': estimate})


def _mockup(service, body):
    if _missing(body, 'productId', 'variantIds', 'files'):
        return error_response('productId, variantIds, and files are required', 400)
    task = service.create_mockup_task(
        product_id=body['productId'],
        variant_ids=body['variantIds'],
        files=body['files'],
    )
    return jsonify({'success': True, 'task': task})


def _create_order(service, body):
    if _missing(body, 'recipient', 'items'):
        return error_response('recipient and items are required', 400)
    order = service.create_order(
        recipient=body['recipient'],
        items=body['items'],
        retail_costs=body.get('retail_costs'),
        confirm=bool(body.get('confirm')),
    )
    LoggingService.info('printful', 'Order created', {'order_id': order.get('id') if isinstance(order, dict) else None})
    return jsonify({'success': True, 'order': order})


def _quick_create(service, body):
    if _missing(body, 'name', 'designUrl', 'productType'):
        return error_response('name, designUrl, and productType are required', 400)
    try:
        product = service.quick_create_product(
            name=body['name'],
            design_url=body['designUrl'],
            product_type=body['productType'],
            retail_markup=body.get('retailMarkup'),
        )
    except ValueError as e:
        return error_response(str(e), 400)
    return jsonify({'success': True, 'product': product})


POST_HANDLERS = {
    'shipping': _shipping,
    'estimate': _estimate,
    'mockup': _mockup,
    'order': _create_order,
    'quick-create': _quick_create,
}


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

@printful_bp.route('/', methods=['GET'])
@printful_bp.route('', methods=['GET'])
def printful_get():
    """Read operations"""
    action = request.args.get('action') or 'info'
    handler = GET_HANDLERS.get(action, _info)

    if action in PROTECTED_GET_ACTIONS:
        denied = check_api_key()
        if denied:
            return denied

    try:
        return handler(get_printful_service())
    except PrintfulError as e:
        return provider_error_response(e)
    except Exception as e:
        logger.exception('Printful GET error')
        LoggingService.log_error_with_traceback('printful', e, {'action': action})
        return error_response(str(e))


@printful_bp.route('/', methods=['POST'])
@printful_bp.route('', methods=['POST'])
def printful_post():
    """Write operations"""
    action = request.args.get('action')
    if not action:
        return error_response(f"Action parameter required. Use: {', '.join(POST_ACTIONS)}", 400)

    handler = POST_HANDLERS.get(action)
    if handler is None:
        return error_response(f"Unknown action: {action}. Use: {', '.join(POST_ACTIONS)}", 400)

    if action in PROTECTED_POST_ACTIONS:
        denied = check_api_key()
        if denied:
            return denied

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return error_response('Request body must be a JSON object', 400)

    try:
        return handler(get_printful_service(), body)
    except PrintfulError as e:
        return provider_error_response(e)
    except Exception as e:
        logger.exception('Printful POST error')
        LoggingService.log_error_with_traceback('printful', e, {'action': action})
        return error_response(str(e))


@printful_bp.route('/', methods=['DELETE'])
@printful_bp.route('', methods=['DELETE'])
@require_api_key
def printful_delete():
    """Cancel an order"""
    action = request.args.get('action')
    if action not in DELETE_ACTIONS:
        return error_response(f"Unknown action: {action}. Use: {', '.join(DELETE_ACTIONS)}", 400)

    order_id = request.args.get('id')
    if not order_id:
        return error_response('Order ID required', 400)

    try:
        order = get_printful_service().cancel_order(order_id)
    except PrintfulError as e:
        return provider_error_response(e)
    except Exception as e:
        logger.exception('Printful DELETE error')
        LoggingService.log_error_with_traceback('printful', e, {'order_id': order_id})
        return error_response(str(e))

    LoggingService.info('printful', f"Order {order_id} cancelled")
    return jsonify({'success': True, 'order': order})
