# marketforge/modules/printful/service.py
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Dict, Any, List

import requests

from ...core.config import get_setting
from ...core.logging_service import LoggingService

logger = logging.getLogger(__name__)

PRINTFUL_DOCS_URL = 'https://developers.printful.com/docs/'

# Popular product templates for quick setup (Printful catalog product IDs)
POPULAR_PRODUCTS = {
    'tShirt': 71,      # Unisex Staple T-Shirt
    'hoodie': 380,     # Unisex Heavy Blend Hoodie
    'mug': 19,         # White Glossy Mug
    'poster': 1,       # Enhanced Matte Paper Poster
    'phoneCase': 195,  # iPhone Case
    'toteBag': 84,     # Large Organic Tote
    'sticker': 358,    # Kiss-Cut Stickers
    'canvas': 2,       # Canvas Print
}

QUICK_CREATE_VARIANT_LIMIT = 5
DEFAULT_RETAIL_MARKUP = 2

IN_STOCK_STATUSES = ('in_stock', 'active', 'available')


class PrintfulError(Exception):
    """Base class for Printful integration errors"""


class PrintfulConfigError(PrintfulError):
    """Raised when the Printful integration is not configured"""


class PrintfulAPIError(PrintfulError):
    """Raised when the Printful API rejects a request or cannot be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


# ---------------------------------------------------------------------------
# Envelope and record normalization
# ---------------------------------------------------------------------------

def unwrap_envelope(body: Any) -> Any:
    """
    Return the payload from either Printful response envelope.

    v1: {"code": 200, "result": ..., "paging": {...}}
    v2: {"data": ..., "paging": {...}, "_links": {...}}
    Anything else is returned unchanged.
    """
    if isinstance(body, dict):
        if 'result' in body:
            return body['result']
        if 'data' in body:
            return body['data']
    return body


def extract_error_message(body: Any, status_code: int) -> str:
    """Pull a human readable message out of a v1 or v2 error body"""
    if isinstance(body, dict):
        result = body.get('result')
        if isinstance(result, str) and result:
            return result

        error = body.get('error')
        if isinstance(error, dict) and error.get('message'):
            return error['message']
        if isinstance(error, str) and error:
            return error

        # v2 problem details
        for key in ('detail', 'title'):
            if body.get(key):
                return body[key]

    return f"Printful API error: {status_code}"


def format_price(value: Any) -> str:
    """Money as a 2dp string; unparseable values become 0.00"""
    if value is None or value == '':
        return '0.00'
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return '0.00'
    return str(amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def _variant_in_stock(raw: Dict[str, Any]) -> bool:
    if 'in_stock' in raw:
        return bool(raw['in_stock'])

    availability = raw.get('availability')
    if isinstance(availability, str):
        return availability in IN_STOCK_STATUSES

    statuses = raw.get('availability_status')
    if isinstance(statuses, list) and statuses:
        return any(s.get('status') in IN_STOCK_STATUSES for s in statuses if isinstance(s, dict))

    # v2 catalog variants carry no stock info; Printful catalog items are orderable by default
    return True


def normalize_product(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Catalog product (v1 or v2 naming) -> ProductSummary"""
    variants = raw.get('variants')
    if 'variant_count' in raw:
        variant_count = raw['variant_count']
    elif isinstance(variants, list):
        variant_count = len(variants)
    else:
        variant_count = 0

    return {
        'id': raw.get('id'),
        'title': raw.get('title') or raw.get('name') or '',
        'type': raw.get('type') or '',
        'type_name': raw.get('type_name') or raw.get('type') or '',
        'brand': raw.get('brand') or '',
        'model': raw.get('model') or '',
        'image': raw.get('image') or raw.get('thumbnail_url') or '',
        'variant_count': variant_count,
        'currency': raw.get('currency') or 'USD',
    }


def normalize_variant(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Catalog variant (v1 or v2 naming) -> Variant"""
    return {
        'id': raw.get('id'),
        'product_id': raw.get('product_id') or raw.get('catalog_product_id'),
        'name': raw.get('name') or '',
        'size': raw.get('size') or '',
        'color': raw.get('color') or '',
        'color_code': raw.get('color_code') or '',
        'image': raw.get('image') or '',
        'price': format_price(raw.get('price', raw.get('retail_price'))),
        'in_stock': _variant_in_stock(raw),
    }


def normalize_product_detail(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Product detail -> {product, variants}

    v1 returns {"product": {...}, "variants": [...]}; the older flat shape
    embeds the variants list in the product itself.
    """
    if isinstance(raw.get('product'), dict):
        product_raw = raw['product']
        variants_raw = raw.get('variants') or []
    else:
        product_raw = raw
        variants_raw = raw.get('variants') or []

    product = normalize_product(product_raw)
    if 'variant_count' not in product_raw:
        product['variant_count'] = len(variants_raw)

    return {
        'product': product,
        'variants': [normalize_variant(v) for v in variants_raw],
    }


def normalize_shipping_rate(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'id': raw.get('id') or raw.get('shipping'),
        'name': raw.get('name') or raw.get('shipping_method_name') or '',
        'rate': format_price(raw.get('rate')),
        'currency': raw.get('currency') or 'USD',
        'minDeliveryDays': raw.get('minDeliveryDays', raw.get('min_delivery_days')),
        'maxDeliveryDays': raw.get('maxDeliveryDays', raw.get('max_delivery_days')),
    }


def normalize_mockup_task(raw: Dict[str, Any]) -> Dict[str, Any]:
    mockups = []
    for mockup in raw.get('mockups') or []:
        mockups.append({
            'placement': mockup.get('placement'),
            'mockup_url': mockup.get('mockup_url'),
            'variant_ids': mockup.get('variant_ids') or [],
        })

    return {
        'task_key': raw.get('task_key'),
        'status': raw.get('status') or 'pending',
        'mockups': mockups,
        'error': raw.get('error'),
    }


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class PrintfulService:
    """Service for managing the Printful print-on-demand API integration"""

    def __init__(self, api_key: str = None, base_url: str = None, store_id: str = None,
                 timeout: int = None, session: requests.Session = None):
        # Unset values are resolved per request so one instance follows app config
        self.api_key = api_key
        self.base_url = base_url
        self.store_id = store_id
        self.timeout = timeout
        self.session = session or requests.Session()

    # ----- request layer -----

    def _get_api_key(self) -> str:
        api_key = self.api_key or get_setting('PRINTFUL_API_KEY')
        if not api_key:
            raise PrintfulConfigError('PRINTFUL_API_KEY not configured')
        return api_key

    def _get_base_url(self) -> str:
        return (self.base_url or get_setting('PRINTFUL_API_URL', 'https://api.printful.com')).rstrip('/')

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            'Authorization': f'Bearer {self._get_api_key()}',
            'Content-Type': 'application/json',
        }
        store_id = self.store_id or get_setting('PRINTFUL_STORE_ID')
        if store_id:
            headers['X-PF-Store-Id'] = str(store_id)
        return headers

    def _request(self, method: str, endpoint: str, params: Dict[str, Any] = None,
                 payload: Any = None) -> Any:
        """Make an authenticated request and return the unwrapped payload"""
        headers = self._get_headers()
        url = f"{self._get_base_url()}{endpoint}"
        timeout = self.timeout or int(get_setting('PRINTFUL_TIMEOUT', 30))

        try:
            response = self.session.request(
                method, url, headers=headers, params=params, json=payload, timeout=timeout
            )
        except requests.RequestException as e:
            logger.error(f"Printful {method} {endpoint} failed: {e}")
            LoggingService.error('printful', f"Request failed: {method} {endpoint}", {'error': str(e)})
            raise PrintfulAPIError(f"Printful request failed: {e}") from e

        LoggingService.log_api_call('printful', endpoint, method, response.status_code)

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            message = extract_error_message(body, response.status_code)
            logger.warning(f"Printful {method} {endpoint} returned {response.status_code}: {message}")
            raise PrintfulAPIError(message, status_code=response.status_code, details=body)

        return unwrap_envelope(body)

    # ----- catalog -----

    def get_catalog(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Get catalog of available products"""
        products = self._request('GET', '/products') or []
        return [normalize_product(p) for p in products[:limit]]

    def get_product(self, product_id: int) -> Dict[str, Any]:
        """Get product details with variants"""
        return normalize_product_detail(self._request('GET', f'/products/{product_id}') or {})

    def get_product_pricing(self, product_id: int) -> Dict[str, Any]:
        """Price range and per-variant prices for a catalog product"""
        detail = self.get_product(product_id)
        product = detail['product']
        variants = detail['variants']
        prices = [Decimal(v['price']) for v in variants]

        return {
            'product_id': product['id'],
            'title': product['title'],
            'currency': product['currency'],
            'min_price': format_price(min(prices)) if prices else None,
            'max_price': format_price(max(prices)) if prices else None,
            'variants': [{
                'id': v['id'],
                'name': v['name'],
                'size': v['size'],
                'color': v['color'],
                'price': v['price'],
                'in_stock': v['in_stock'],
            } for v in variants],
        }

    def get_popular_products(self) -> List[Dict[str, Any]]:
        """
        Details for every product in POPULAR_PRODUCTS.

        Products the API refuses are logged and skipped so one discontinued
        item does not hide the rest of the catalog.
        """
        products = []
        for key, product_id in POPULAR_PRODUCTS.items():
            try:
                detail = self.get_product(product_id)
            except PrintfulAPIError as e:
                logger.warning(f"Skipping popular product {key} ({product_id}): {e}")
                continue
            detail['key'] = key
            products.append(detail)
        return products

    # ----- store products & mockups -----

    def create_sync_product(self, name: str, thumbnail: str,
                            variants: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Create sync product (store product linked to Printful)

        Args:
            name: Store product name
            thumbnail: Thumbnail image URL
            variants: [{variant_id, retail_price, files: [{type, url}]}]
        """
        return self._request('POST', '/sync/products', payload={
            'sync_product': {
                'name': name,
                'thumbnail': thumbnail,
            },
            'sync_variants': variants,
        })

    def create_mockup_task(self, product_id: int, variant_ids: List[int],
                           files: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Start an asynchronous mockup generation task"""
        result = self._request('POST', f'/mockup-generator/create-task/{product_id}', payload={
            'variant_ids': variant_ids,
            'files': files,
        })
        return normalize_mockup_task(result or {})

    def get_mockup_result(self, task_key: str) -> Dict[str, Any]:
        """Poll a mockup task by its key"""
        result = self._request('GET', '/mockup-generator/task', params={'task_key': task_key})
        return normalize_mockup_task(result or {})

    # ----- shipping, orders, store -----

    def get_shipping_rates(self, recipient: Dict[str, Any],
                           items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Calculate shipping rates"""
        rates = self._request('POST', '/shipping/rates', payload={
            'recipient': recipient,
            'items': items,
        }) or []
        return [normalize_shipping_rate(r) for r in rates]

    def create_order(self, recipient: Dict[str, Any], items: List[Dict[str, Any]],
                     retail_costs: Dict[str, Any] = None, confirm: bool = False) -> Dict[str, Any]:
        """Create an order (left as a draft unless confirm=True)"""
        payload = {'recipient': recipient, 'items': items}
        if retail_costs:
            payload['retail_costs'] = retail_costs
        params = {'confirm': 1} if confirm else None
        return self._request('POST', '/orders', params=params, payload=payload)

    def get_order(self, order_id) -> Dict[str, Any]:
        """Get order status"""
        return self._request('GET', f'/orders/{order_id}')

    def list_orders(self, status: str = None, offset: int = None,
                    limit: int = None) -> List[Dict[str, Any]]:
        """List orders, optionally filtered by status"""
        params = {}
        if status:
            params['status'] = status
        if offset:
            params['offset'] = offset
        if limit:
            params['limit'] = limit
        return self._request('GET', '/orders', params=params or None) or []

    def cancel_order(self, order_id) -> Dict[str, Any]:
        """Cancel an order"""
        return self._request('DELETE', f'/orders/{order_id}')

    def get_store_info(self) -> Dict[str, Any]:
        """Get store info (the first store when the token can see several)"""
        stores = self._request('GET', '/stores')
        if isinstance(stores, list):
            if not stores:
                raise PrintfulAPIError('No Printful store found', status_code=404)
            return stores[0]
        return stores

    def estimate_costs(self, recipient: Dict[str, Any],
                       items: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Estimate order costs"""
        result = self._request('POST', '/orders/estimate-costs', payload={
            'recipient': recipient,
            'items': items,
        }) or {}
        if isinstance(result.get('costs'), dict):
            return result['costs']
        return result

    # ----- composite workflow -----

    def quick_create_product(self, name: str, design_url: str, product_type: str,
                             retail_markup: float = None) -> Dict[str, Any]:
        """
        Create a store product from a popular catalog template in one call.

        Takes the first few variants of the template product, prices them at
        base price x markup, creates the sync product and starts a mockup task
        for the same variants.

        Args:
            name: Store product name
            design_url: Public URL of the print file
            product_type: Key of POPULAR_PRODUCTS (tShirt, hoodie, ...)
            retail_markup: Multiplier on the base price (default 2 = 100% markup)

        Returns:
            {product_id, sync_product_id, external_id, task_key, status, mockup_urls, variant_count}
        """
        if product_type not in POPULAR_PRODUCTS:
            raise ValueError(
                f"Unknown product type: {product_type}. Use one of: {', '.join(POPULAR_PRODUCTS)}"
            )

        if isinstance(retail_markup, bool):
            raise ValueError('retail_markup must be a number greater than zero')
        try:
            markup = Decimal(str(retail_markup or DEFAULT_RETAIL_MARKUP))
        except (InvalidOperation, TypeError, ValueError):
            raise ValueError('retail_markup must be a number greater than zero') from None
        # NaN and Infinity parse but cannot be compared or quantized
        if not markup.is_finite() or markup <= 0:
            raise ValueError('retail_markup must be a number greater than zero')

        product_id = POPULAR_PRODUCTS[product_type]
        detail = self.get_product(product_id)
        base_variants = detail['variants'][:QUICK_CREATE_VARIANT_LIMIT]
        if not base_variants:
            raise PrintfulAPIError(f"Product {product_id} has no variants", status_code=404)

        files = [{'type': 'default', 'url': design_url}]

        sync_product = self.create_sync_product(
            name=name,
            thumbnail=design_url,
            variants=[{
                'variant_id': v['id'],
                'retail_price': format_price(Decimal(v['price']) * markup),
                'files': files,
            } for v in base_variants],
        )

        task = self.create_mockup_task(
            product_id=product_id,
            variant_ids=[v['id'] for v in base_variants],
            files=files,
        )

        LoggingService.info('printful', f"Quick-created product '{name}' from {product_type}", {
            'sync_product_id': sync_product.get('id'),
            'task_key': task['task_key'],
        })

        return {
            'product_id': product_id,
            'sync_product_id': sync_product.get('id'),
            'external_id': sync_product.get('external_id'),
            'task_key': task['task_key'],
            'status': task['status'],
            'mockup_urls': [m['mockup_url'] for m in task['mockups'] if m.get('mockup_url')],
            'variant_count': len(base_variants),
        }


# Global instance (reads credentials from app config / environment per request)
printful_service = PrintfulService()
