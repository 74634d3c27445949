from __future__ import annotations

import logging
from datetime import timedelta

import pytest
from fastapi import Response

from storefront_service.config import DEFAULT_BASE_URL, DEFAULT_PAYOS_API_URL, Settings, load_settings
from storefront_service.identity import COOKIE_NAME, decode_session_token, issue_session_token, set_session_cookie
from storefront_service.logging_config import setup_logging


class TestSessionToken:

    def test_round_trip(self):
        token = issue_session_token(7, "a@example.com", "secret")
        identity = decode_session_token(token, "secret")
        assert identity.userId == "7"
        assert identity.email == "a@example.com"

    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    def test_missing_or_garbage_token(self, token):
        assert decode_session_token(token, "secret") is None

    def test_wrong_secret(self):
        token = issue_session_token(7, "a@example.com", "secret")
        assert decode_session_token(token, "other") is None

    def test_expired(self):
        token = issue_session_token(7, "a@example.com", "secret", expires_in=timedelta(seconds=-1))
        assert decode_session_token(token, "secret") is None


class TestSettings:

    def test_defaults_without_environment(self):
        settings = load_settings({})
        assert settings.payos_configured is False
        assert settings.payos_api_url == DEFAULT_PAYOS_API_URL
        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.jwt_secret == "dev-secret"
        assert settings.log_file is None

    def test_reads_provider_credentials(self):
        settings = load_settings({
            "PAYOS_CLIENT_ID": "cid",
            "PAYOS_API_KEY": "key",
            "PAYOS_CHECKSUM_KEY": "sum",
            "NEXT_PUBLIC_BASE_URL": "https://shop.example",
            "JWT_SECRET": "s3cret",
        })
        assert settings.payos_configured is True
        assert settings.base_url == "https://shop.example"
        assert settings.jwt_secret == "s3cret"

    @pytest.mark.parametrize("missing", ["payos_client_id", "payos_api_key", "payos_checksum_key"])
    def test_any_missing_credential_means_not_configured(self, missing):
        values = {"payos_client_id": "cid", "payos_api_key": "key", "payos_checksum_key": "sum"}
        values[missing] = ""
        assert Settings(**values).payos_configured is False


def test_session_cookie_attributes():
    response = Response()
    set_session_cookie(response, "abc")
    header = response.headers["set-cookie"]
    assert header.startswith(f"{COOKIE_NAME}=abc")
    assert "HttpOnly" in header
    assert "Max-Age=604800" in header
    assert "Path=/" in header
    assert "SameSite=lax" in header


def test_setup_logging_quiets_http_client_loggers():
    setup_logging()
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING
