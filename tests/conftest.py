"""
Shared fixtures for the Market Forge test suite.

Run with: pytest tests -v
"""

import os
from unittest.mock import MagicMock

import pytest
from flask import Flask

from marketforge import MarketForge
from marketforge.core.config import Config
from marketforge.modules.printful.service import PrintfulService

ISOLATED_ENV = [
    'PRINTFUL_API_KEY', 'PRINTFUL_STORE_ID', 'PRINTFUL_API_URL', 'PRINTFUL_TIMEOUT',
    'MARKETFORGE_API_KEY', 'LOG_DB',
]

API_KEY = 'test-api-key'


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep logs in a temp dir and ignore developer credentials."""
    for key in ISOLATED_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(Config, 'LOG_DB', str(tmp_path / 'logs' / 'test_logs.db'))
    monkeypatch.setattr(Config, 'PRINTFUL_API_KEY', None)
    monkeypatch.setattr(Config, 'PRINTFUL_STORE_ID', None)
    monkeypatch.setattr(Config, 'MARKETFORGE_API_KEY', None)


@pytest.fixture
def api_response():
    """Factory for fake requests.Response objects."""
    def _make(status=200, body=None):
        response = MagicMock()
        response.status_code = status
        response.ok = 200 <= status < 400
        if isinstance(body, Exception):
            response.json.side_effect = body
        else:
            response.json.return_value = body
        return response
    return _make


@pytest.fixture
def make_query():
    """Factory for a chainable Supabase query whose execute() returns `data`."""
    def _make(data=None, error=None):
        query = MagicMock()
        for method in ('select', 'insert', 'eq', 'in_', 'limit', 'single'):
            getattr(query, method).return_value = query
        if error is not None:
            query.execute.side_effect = error
        else:
            query.execute.return_value = MagicMock(data=data if data is not None else [])
        return query
    return _make


@pytest.fixture
def supabase_tables():
    """Per-table queries; tests replace entries before making requests."""
    return {}


@pytest.fixture
def supabase_mock(supabase_tables, make_query):
    client = MagicMock()
    client.table.side_effect = lambda name: supabase_tables.setdefault(name, make_query([]))
    client.auth.get_user.return_value = MagicMock(user=None)
    return client


@pytest.fixture
def printful_mock():
    return MagicMock(spec=PrintfulService)


@pytest.fixture
def storage_dir(tmp_path):
    d = tmp_path / 'storage'
    d.mkdir()
    return d


@pytest.fixture
def app(tmp_path, storage_dir, printful_mock, supabase_mock):
    """Flask app with every Market Forge module registered and external clients mocked."""
    app = Flask(__name__)
    app.config['TESTING'] = True
    app.config['SECRET_KEY'] = 'test-secret'
    app.config['LOG_DB'] = os.path.join(tmp_path, 'logs', 'app_logs.db')
    app.config['STORAGE_DIR'] = str(storage_dir)
    app.config['MARKETFORGE_API_KEY'] = API_KEY
    app.config['PRINTFUL_API_KEY'] = 'pf-test-key'
    app.config['SUPABASE_URL'] = 'https://project.supabase.co'

    MarketForge(app, {
        'printful_service': printful_mock,
        'supabase': supabase_mock,
    })
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {'X-API-Key': API_KEY}


@pytest.fixture
def signed_in(supabase_mock):
    """Make the bearer token 'user-token' resolve to user-1."""
    supabase_mock.auth.get_user.return_value = MagicMock(user=MagicMock(id='user-1'))
    return {'Authorization': 'Bearer user-token'}


# ---------------------------------------------------------------------------
# Printful sample payloads (v1 shapes)
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog_product():
    return {
        'id': 71,
        'main_category_id': 24,
        'type': 'T-SHIRT',
        'type_name': 'T-Shirt',
        'title': 'Unisex Staple T-Shirt | Bella + Canvas 3001',
        'brand': 'Bella + Canvas',
        'model': '3001',
        'image': 'https://files.cdn.printful.com/products/71/product_1613463122.jpg',
        'variant_count': 3,
        'currency': 'USD',
    }


@pytest.fixture
def catalog_variants():
    return [
        {'id': 4011, 'product_id': 71, 'name': 'Bella + Canvas 3001 (White / S)', 'size': 'S',
         'color': 'White', 'color_code': '#ffffff', 'image': 'https://img/4011.jpg',
         'price': '9.25', 'in_stock': True},
        {'id': 4012, 'product_id': 71, 'name': 'Bella + Canvas 3001 (White / M)', 'size': 'M',
         'color': 'White', 'color_code': '#ffffff', 'image': 'https://img/4012.jpg',
         'price': '9.25', 'in_stock': True},
        {'id': 4017, 'product_id': 71, 'name': 'Bella + Canvas 3001 (Black / 2XL)', 'size': '2XL',
         'color': 'Black', 'color_code': '#0b0b0b', 'image': 'https://img/4017.jpg',
         'price': '11.75', 'in_stock': False},
    ]


@pytest.fixture
def product_detail(catalog_product, catalog_variants):
    """Normalized ProductDetail as returned by PrintfulService.get_product."""
    from marketforge.modules.printful.service import normalize_product_detail
    return normalize_product_detail({'product': catalog_product, 'variants': catalog_variants})
