"""
Marketplace Routes
==================

Product creation, protected file downloads and the checkout proxy.
"""

import logging
import os

import requests
from flask import Response, current_app, jsonify, request, send_from_directory
from supabase import PostgrestAPIError

from ...core.auth import get_session, get_user
from ...core.logging_service import LoggingService, db_log
from ...core.supabase_client import get_supabase
from . import marketplace_bp
from .access import user_has_product_access

logger = logging.getLogger(__name__)

PRODUCT_TYPES = ('ebook', 'newsletter', 'template')
SERIES_INTERVAL = 'month'
SERIES_PRICE_CENTS = 900

CHECKOUT_FUNCTIONS = {
    'stripe': 'stripe-checkout',
    'paypal': 'paypal-checkout',
}

CONTENT_TYPES = {
    '.pdf': 'application/pdf',
    '.epub': 'application/epub+zip',
    '.zip': 'application/zip',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.txt': 'text/plain',
    '.md': 'text/markdown',
}


def _form_flag(name):
    return request.form.get(name) == 'true'


def safe_relative_path(file_path):
    """Normalized relative path, or None when it escapes the storage root"""
    normalized = os.path.normpath(file_path)
    if '..' in normalized.split(os.sep) or os.path.isabs(normalized) or normalized.startswith(('/', '\\')):
        return None
    return normalized


def content_type_for(filename):
    ext = os.path.splitext(filename)[1].lower()
    return CONTENT_TYPES.get(ext, 'application/octet-stream')


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

def _create_series(supabase, product):
    """
    Attach the monthly series to a newly created product.

    The product row is already stored at this point, so a failure here is
    logged and the product is still returned to the caller.
    """
    try:
        supabase.table('series').insert({
            'product_id': product['id'],
            'interval': SERIES_INTERVAL,
            'price_cents': SERIES_PRICE_CENTS,
        }).execute()
    except PostgrestAPIError as e:
        db_log('error', 'marketplace', f"Series insert failed for product {product['id']}", {
            'error': e.message, 'code': e.code,
        })
        return False
    except Exception as e:
        logger.exception('Error creating series')
        LoggingService.log_error_with_traceback('marketplace', e, {'product_id': product['id']})
        return False
    return True


@marketplace_bp.route('/products', methods=['POST'])
def create_product():
    """Create a marketplace product from form data"""
    title = request.form.get('title', '').strip()
    slug = request.form.get('slug', '').strip()
    product_type = request.form.get('type', '').strip()
    is_series = _form_flag('is_series')

    if not title or not slug:
        return jsonify({'error': 'title and slug are required'}), 400
    if product_type not in PRODUCT_TYPES:
        return jsonify({'error': f"type must be one of: {', '.join(PRODUCT_TYPES)}"}), 400

    try:
        price_cents = int(request.form.get('price_cents', ''))
    except ValueError:
        return jsonify({'error': 'price_cents must be an integer'}), 400

    try:
        supabase = get_supabase()
        result = supabase.table('products').insert({
            'title': title,
            'slug': slug,
            'type': product_type,
            'description': request.form.get('description', ''),
            'snippet': request.form.get('snippet', ''),
            'price_cents': price_cents,
            'is_series': is_series,
            'is_published': _form_flag('is_published'),
        }).execute()
        product = result.data[0]
    except PostgrestAPIError as e:
        return jsonify({'error': e.message}), 400
    except Exception as e:
        logger.exception('Error creating product')
        LoggingService.log_error_with_traceback('marketplace', e, {'slug': slug})
        return jsonify({'error': 'Internal server error'}), 500

    if is_series:
        _create_series(supabase, product)

    LoggingService.info('marketplace', f"Product created: {slug}", {'product_id': product['id']})
    return jsonify({'success': True, 'product': product})


# ---------------------------------------------------------------------------
# Downloads
# ---------------------------------------------------------------------------

@marketplace_bp.route('/download/<slug>')
def download(slug):
    """Stream a product file to a user with access to it"""
    try:
        result = (
            get_supabase().table('products')
            .select('id, title, file_path')
            .eq('slug', slug)
            .limit(1)
            .execute()
        )
        product = result.data[0] if result.data else None
        if not product or not product.get('file_path'):
            return Response('Not found', status=404)

        user = get_user()
        if not user_has_product_access(getattr(user, 'id', None), product['id']):
            return Response('Forbidden', status=403)

        relative_path = safe_relative_path(product['file_path'])
        if relative_path is None:
            LoggingService.warning('marketplace', 'Invalid file path detected', {
                'slug': slug, 'file_path': product['file_path'],
            })
            return Response('Invalid file path', status=400)

        storage_dir = os.path.abspath(current_app.config['STORAGE_DIR'])
        file_abs_path = os.path.join(storage_dir, relative_path)
        max_bytes = current_app.config['MAX_DOWNLOAD_BYTES']

        try:
            size = os.stat(file_abs_path).st_size
        except OSError as e:
            logger.error(f"File read error: {e}")
            return Response('File not found', status=404)

        if size > max_bytes:
            logger.error(f"File too large: {size} bytes for {file_abs_path}")
            return Response('File too large', status=413)

        filename = os.path.basename(relative_path)
        response = send_from_directory(
            storage_dir,
            relative_path,
            mimetype=content_type_for(filename),
            as_attachment=True,
            download_name=filename,
        )
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Cache-Control'] = 'private, max-age=3600'
        return response

    except Exception as e:
        logger.exception('Download error')
        LoggingService.log_error_with_traceback('marketplace', e, {'slug': slug})
        return Response('Internal server error', status=500)


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------

@marketplace_bp.route('/checkout', methods=['POST'])
def checkout():
    """Forward a checkout request to the Supabase edge function for the provider"""
    try:
        session = get_session()
        if not session:
            return jsonify({'error': 'Unauthorized'}), 401

        provider = request.args.get('provider')
        product_id = request.args.get('productId')
        checkout_type = request.args.get('type')

        if not provider or not product_id or not checkout_type:
            return jsonify({'error': 'Missing parameters'}), 400

        if provider not in CHECKOUT_FUNCTIONS:
            return jsonify({'error': 'Invalid provider'}), 400

        supabase_url = current_app.config['SUPABASE_URL'].rstrip('/')
        function_url = f"{supabase_url}/functions/v1/{CHECKOUT_FUNCTIONS[provider]}"

        response = requests.post(
            function_url,
            params={'productId': product_id, 'type': checkout_type},
            headers={
                'Authorization': f"Bearer {session['access_token']}",
                'Content-Type': 'application/json',
            },
            timeout=30,
        )

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            LoggingService.log_api_call('marketplace', function_url, 'POST', response.status_code)
            error = data.get('error') if isinstance(data, dict) else None
            return jsonify({'error': error or 'Checkout failed'}), response.status_code

        return jsonify(data)

    except Exception as e:
        logger.exception('Checkout API error')
        LoggingService.log_error_with_traceback('marketplace', e)
        return jsonify({'error': 'Internal server error'}), 500
