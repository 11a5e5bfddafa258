"""
Critical Integration Tests for Market Forge
==========================================

Focused tests covering the integration points most likely to break.
Run with: pytest tests/test_critical.py -v

NOTE: pytest is listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import os
import sqlite3
from unittest.mock import MagicMock

import pytest
from flask import Flask, render_template_string

from marketforge import MarketForge, create_app
from marketforge.core.config import get_setting
from marketforge.core.database import Database
from marketforge.core.logging_service import LoggingService, db_log
from marketforge.modules.printful import get_printful_service, printful_service


# ---------------------------------------------------------------------------
# 1. Extension initialisation -- MarketForge(app) does not raise
# ---------------------------------------------------------------------------

def test_extension_initialisation(tmp_path):
    """MarketForge(app) boots without errors and stores itself on the app."""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["LOG_DB"] = os.path.join(tmp_path, "logs", "app_logs.db")

    marketforge = MarketForge(app)

    assert app.extensions["marketforge"] is marketforge
    assert os.path.isdir(os.path.join(tmp_path, "logs"))
    assert marketforge.get_registered_modules() == ["printful", "printful_browser", "marketplace", "health"]


def test_init_app_deferred(tmp_path):
    """The extension supports the init_app() factory pattern."""
    marketforge = MarketForge()
    app = Flask(__name__)
    app.config["LOG_DB"] = os.path.join(tmp_path, "app_logs.db")

    marketforge.init_app(app)

    assert "printful" in app.blueprints
    assert app.extensions["marketforge"] is marketforge


# ---------------------------------------------------------------------------
# 2. Config resolution -- defaults fill gaps, app values win
# ---------------------------------------------------------------------------

def test_config_defaults_do_not_override_app(app):
    assert app.config["PRINTFUL_API_URL"] == "https://api.printful.com"
    assert app.config["MARKETFORGE_API_KEY"] == "test-api-key"
    assert app.config["MAX_DOWNLOAD_BYTES"] == 50 * 1024 * 1024
    assert app.config["BRAND_NAME"]


def test_get_setting_resolution_order(app, monkeypatch):
    monkeypatch.setenv("PRINTFUL_STORE_ID", "env-store")

    # outside an app context the environment is consulted
    assert get_setting("PRINTFUL_STORE_ID") == "env-store"
    assert get_setting("NOT_A_SETTING", "fallback") == "fallback"

    with app.app_context():
        assert get_setting("PRINTFUL_API_KEY") == "pf-test-key"
        app.config["PRINTFUL_STORE_ID"] = "app-store"
        assert get_setting("PRINTFUL_STORE_ID") == "app-store"


# ---------------------------------------------------------------------------
# 3. Feature toggles -- disabled modules are not registered
# ---------------------------------------------------------------------------

def test_feature_toggles(tmp_path):
    app = Flask(__name__)
    app.config["LOG_DB"] = os.path.join(tmp_path, "app_logs.db")

    marketforge = MarketForge(app, {"features": {"marketplace": False, "printful_browser": False}})

    assert marketforge.get_registered_modules() == ["printful", "health"]
    client = app.test_client()
    assert client.post("/api/marketplace/checkout").status_code == 404
    assert client.get("/printful/").status_code == 404


# ---------------------------------------------------------------------------
# 4. Service injection -- blueprints use the app's Printful client
# ---------------------------------------------------------------------------

def test_printful_service_injection(app, printful_mock):
    with app.app_context():
        assert get_printful_service() is printful_mock


def test_printful_service_falls_back_to_global(tmp_path):
    app = Flask(__name__)
    app.config["LOG_DB"] = os.path.join(tmp_path, "app_logs.db")
    MarketForge(app)

    with app.app_context():
        assert get_printful_service() is printful_service


# ---------------------------------------------------------------------------
# 5. Context processor -- templates see the brand name
# ---------------------------------------------------------------------------

def test_context_processor_brand_name(tmp_path):
    app = Flask(__name__)
    app.config["LOG_DB"] = os.path.join(tmp_path, "app_logs.db")
    MarketForge(app, {"brand_name": "Forge Goods", "supabase": MagicMock()})

    with app.test_request_context("/"):
        assert render_template_string("{{ brand_name }}") == "Forge Goods"
        # injected clients stay out of templates
        assert render_template_string("{{ marketforge_config is defined }}") == "False"


# ---------------------------------------------------------------------------
# 6. Application factory
# ---------------------------------------------------------------------------

def test_create_app(tmp_path):
    app = create_app(
        {"supabase": MagicMock()},
        LOG_DB=os.path.join(tmp_path, "app_logs.db"),
        TESTING=True,
    )

    assert app.config["TESTING"] is True
    assert "marketforge" in app.extensions
    assert app.test_client().get("/api/printful").status_code == 200


# ---------------------------------------------------------------------------
# 7. Logging service -- events land in the app_logs table
# ---------------------------------------------------------------------------

def test_logging_service_writes_to_db(app):
    with app.app_context():
        LoggingService.info("printful", "Catalog synced", {"count": 3})
        db_log("error", "marketplace", "Checkout failed")
        LoggingService.log_api_call("printful", "/orders", "POST", 502)

        entries = LoggingService.recent()
        errors = LoggingService.recent(levels=["error"])

    assert [e["message"] for e in entries] == [
        "API POST /orders - Status: 502",
        "Checkout failed",
        "Catalog synced",
    ]
    assert '"count": 3' in entries[2]["details"]
    assert len(errors) == 2


def test_logging_service_records_request_context(app):
    with app.test_request_context("/api/printful", headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1"}):
        LoggingService.warning("printful", "Rate limited")

    with app.app_context():
        entry = LoggingService.recent(limit=1)[0]

    assert entry["ip_address"] == "203.0.113.5"
    assert entry["request_path"] == "/api/printful"


def test_cleanup_old_logs(app):
    with app.app_context():
        LoggingService.info("system", "fresh entry")
        assert LoggingService.cleanup_old_logs(days_to_keep=30) == 0
        assert LoggingService.cleanup_old_logs(days_to_keep=-1) >= 1


def test_logging_service_closes_connections(app, monkeypatch):
    opened = []
    connect = Database.connect

    def tracking_connect(path):
        conn = connect(path)
        opened.append(conn)
        return conn

    monkeypatch.setattr(Database, "connect", staticmethod(tracking_connect))

    with app.app_context():
        LoggingService.info("system", "connection check")
        entry = LoggingService.recent(limit=1)[0]

    assert entry["message"] == "connection check"
    assert opened
    for conn in opened:
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")
