"""
HTTP-level tests for the storefront API.
"""
from __future__ import annotations

import random
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from mock_services.mock_payment_service import build_webhook_payload
from storefront_service.identity import COOKIE_NAME, issue_session_token
from storefront_service.main import create_app
from storefront_service.webhooks import PaymentLedger

from conftest import CHECKSUM_KEY, JWT_SECRET, live_gateway


def _login(client: TestClient, user_id="42", email="buyer@example.com"):
    client.cookies.set(COOKIE_NAME, issue_session_token(user_id, email, JWT_SECRET))
    return client


@pytest.fixture
def client(demo_settings):
    return TestClient(create_app(demo_settings, rng=random.Random(3)))


@pytest.fixture
def authed_client(client):
    return _login(client)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


class TestAuth:

    def test_me_without_cookie(self, client):
        assert client.get("/api/auth/me").json() == {"authenticated": False}

    def test_me_with_cookie(self, authed_client):
        assert authed_client.get("/api/auth/me").json() == {
            "authenticated": True,
            "user": {"id": "42", "email": "buyer@example.com"},
        }

    def test_me_with_expired_cookie(self, client):
        token = issue_session_token("42", "buyer@example.com", JWT_SECRET, expires_in=timedelta(seconds=-10))
        client.cookies.set(COOKIE_NAME, token)
        assert client.get("/api/auth/me").json() == {"authenticated": False}

    def test_me_with_foreign_signature(self, client):
        client.cookies.set(COOKIE_NAME, issue_session_token("42", "x@example.com", "other-secret"))
        assert client.get("/api/auth/me").json() == {"authenticated": False}

    def test_logout_clears_cookie(self, authed_client):
        resp = authed_client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        set_cookie = resp.headers["set-cookie"]
        assert set_cookie.startswith(f"{COOKIE_NAME}=")
        assert "Max-Age=0" in set_cookie
        assert "HttpOnly" in set_cookie


class TestCatalog:

    def test_list_products_newest_first(self, client):
        products = client.get("/api/products").json()
        assert len(products) == 6
        assert products[0]["id"] == "6"
        assert products[-1]["id"] == "1"

    def test_get_product(self, client):
        product = client.get("/api/products/3").json()
        assert product["name"] == "Black Leather Jacket"
        assert product["price"] == 1999000

    def test_get_unknown_product(self, client):
        resp = client.get("/api/products/404")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Product not found"}


class TestCartEndpoints:

    def test_requires_identity(self, client):
        assert client.get("/api/cart").status_code == 401
        resp = client.post("/api/cart", json={"productId": "1"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    def test_get_cart_is_empty(self, authed_client):
        assert authed_client.get("/api/cart").json() == []

    def test_add_returns_line_snapshot(self, authed_client):
        resp = authed_client.post("/api/cart", json={"productId": 1, "quantity": 2})
        assert resp.status_code == 201
        line = resp.json()
        assert line["productId"] == "1"
        assert line["name"] == "Classic White T-Shirt"
        assert line["price"] == 249000
        assert line["quantity"] == 2
        assert line["id"].startswith("1-")

    def test_add_unknown_product(self, authed_client):
        resp = authed_client.post("/api/cart", json={"productId": "999"})
        assert resp.status_code == 404

    def test_add_without_product_id(self, authed_client):
        resp = authed_client.post("/api/cart", json={"quantity": 1})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request"

    def test_update_quantity(self, authed_client):
        assert authed_client.put("/api/cart/1", json={"quantity": 2}).json() == {"success": True}
        resp = authed_client.put("/api/cart/1", json={"quantity": 0})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Quantity must be at least 1"}

    def test_remove_and_clear(self, authed_client):
        assert authed_client.delete("/api/cart/1").json() == {"success": True}
        assert authed_client.delete("/api/cart").json() == {"success": True}


class TestCreateOrder:

    def test_requires_identity(self, client, scenario_cart):
        resp = client.post("/api/payment/create-order", json=scenario_cart)
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    def test_empty_cart(self, authed_client):
        resp = authed_client.post("/api/payment/create-order", json={"items": [], "total": 0})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No items in cart"}

    def test_invalid_json_body(self, authed_client):
        resp = authed_client.post(
            "/api/payment/create-order",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400

    def test_demo_mode_scenario(self, authed_client, scenario_cart):
        resp = authed_client.post("/api/payment/create-order", json=scenario_cart)
        assert resp.status_code == 200
        body = resp.json()
        assert set(body) == {"orderCode", "paymentUrl", "demo"}
        assert isinstance(body["orderCode"], int)
        assert 0 <= body["orderCode"] < 1_000_000
        assert body["paymentUrl"] == "/payment/demo"
        assert body["demo"] is True

    def test_live_mode(self, live_settings, provider_http, scenario_cart):
        app = create_app(live_settings, gateway=live_gateway(live_settings, provider_http))
        client = _login(TestClient(app))
        resp = client.post("/api/payment/create-order", json=scenario_cart)
        assert resp.status_code == 200
        body = resp.json()
        assert body["paymentUrl"].startswith("https://pay.mock-provider.local/")
        assert body["qrCode"]
        assert "demo" not in body

    def test_provider_failure_degrades_to_fallback(self, live_settings, provider_http, scenario_cart):
        settings = live_settings.model_copy(update={"payos_api_key": "invalid_key"})
        app = create_app(settings, gateway=live_gateway(settings, provider_http))
        client = _login(TestClient(app))
        resp = client.post("/api/payment/create-order", json=scenario_cart)
        assert resp.status_code == 500
        body = resp.json()
        assert body["fallback"] is True
        assert body["error"] == "Failed to create payment order"
        assert "details" in body


class TestPaymentTestEndpoint:

    def test_always_demo_without_identity(self, client, scenario_cart):
        resp = client.post("/api/payment/test", json=scenario_cart)
        assert resp.status_code == 200
        assert resp.json()["demo"] is True
        assert resp.json()["paymentUrl"] == "/payment/demo"

    def test_empty_cart(self, client):
        resp = client.post("/api/payment/test", json={"items": []})
        assert resp.status_code == 400
        assert resp.json() == {"error": "No items in cart"}

    def test_demo_even_when_provider_is_configured(self, live_settings, provider_http, scenario_cart):
        app = create_app(live_settings, gateway=live_gateway(live_settings, provider_http))
        resp = TestClient(app).post("/api/payment/test", json=scenario_cart)
        assert resp.status_code == 200
        body = resp.json()
        assert set(body) == {"orderCode", "paymentUrl", "demo"}
        assert body["paymentUrl"] == "/payment/demo"


class TestWebhookEndpoint:

    @pytest.fixture
    def ledger(self):
        return PaymentLedger()

    @pytest.fixture
    def webhook_client(self, live_settings, ledger, provider_http):
        app = create_app(live_settings, gateway=live_gateway(live_settings, provider_http), ledger=ledger)
        return TestClient(app)

    def test_successful_payment_recorded_once(self, webhook_client, ledger):
        payload = build_webhook_payload(4321, 100000, "Order 4321", "00", CHECKSUM_KEY)

        for _ in range(2):
            resp = webhook_client.post("/api/payment/webhook", json=payload)
            assert resp.status_code == 200
            assert resp.json() == {"success": True, "message": "Payment processed successfully"}

        assert len(ledger.payments()) == 1
        assert ledger.get(4321).amount == 100000

    def test_failed_payment_acknowledged_not_recorded(self, webhook_client, ledger):
        payload = build_webhook_payload(4322, 100000, "Order 4322", "01", CHECKSUM_KEY)
        resp = webhook_client.post("/api/payment/webhook", json=payload)
        assert resp.status_code == 200
        assert resp.json()["success"] is False
        assert ledger.get(4322) is None

    def test_forged_signature_acknowledged_not_recorded(self, webhook_client, ledger):
        payload = build_webhook_payload(4323, 100000, "Order 4323", "00", "forged")
        resp = webhook_client.post("/api/payment/webhook", json=payload)
        assert resp.status_code == 200
        assert resp.json()["success"] is False
        assert ledger.payments() == []

    def test_non_ascii_signature_acknowledged_not_recorded(self, webhook_client, ledger):
        payload = build_webhook_payload(4324, 100000, "Order 4324", "00", CHECKSUM_KEY)
        payload["signature"] = "\u00fc" * 64
        resp = webhook_client.post("/api/payment/webhook", json=payload)
        assert resp.status_code == 200
        assert resp.json()["success"] is False
        assert ledger.payments() == []

    def test_garbage_body_acknowledged(self, webhook_client):
        resp = webhook_client.post("/api/payment/webhook", content=b"garbage")
        assert resp.status_code == 200
        assert resp.json()["success"] is False

    def test_demo_deployment_rejects_all_notifications(self, client):
        payload = build_webhook_payload(1, 100, "Order 1", "00", CHECKSUM_KEY)
        resp = client.post("/api/payment/webhook", json=payload)
        assert resp.json()["success"] is False
