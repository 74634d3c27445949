from __future__ import annotations

import random

import httpx
import pytest
from fastapi.testclient import TestClient

from mock_services.mock_payment_service import app as provider_app
from storefront_service.catalog import seeded_catalog
from storefront_service.clients import PaymentClient
from storefront_service.config import Settings
from storefront_service.gateways import LiveOrderGateway
from storefront_service.models import Identity

CHECKSUM_KEY = "test-checksum-key"
JWT_SECRET = "test-jwt-secret"


@pytest.fixture
def demo_settings() -> Settings:
    return Settings(jwt_secret=JWT_SECRET)


@pytest.fixture
def live_settings() -> Settings:
    return Settings(
        payos_client_id="client-1",
        payos_api_key="key-1",
        payos_checksum_key=CHECKSUM_KEY,
        payos_api_url="https://provider.test",
        base_url="https://shop.example",
        jwt_secret=JWT_SECRET,
    )


@pytest.fixture
def identity() -> Identity:
    return Identity(userId="42", email="buyer@example.com")


@pytest.fixture
def scenario_cart() -> dict:
    return {
        "items": [{"productId": "1", "name": "Test Product", "price": 100000, "quantity": 1}],
        "total": 100000,
    }


@pytest.fixture
def catalog():
    return seeded_catalog()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def provider_http():
    """The mock payment provider, served in-process through an httpx client."""
    return TestClient(provider_app)


def live_gateway(settings: Settings, http_client: httpx.Client) -> LiveOrderGateway:
    return LiveOrderGateway(settings, PaymentClient(settings, client=http_client))


def mock_transport_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), base_url="https://provider.test")
