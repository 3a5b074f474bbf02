"""Tests for rate limiting middleware."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from dealgate.config import get_settings
from dealgate.main import app
from dealgate.middleware.rate_limit import (
    DEFAULT_RETRY_AFTER_SECONDS,
    classify_rate_limit,
    get_client_ip,
    get_limiter,
    rate_limit_exceeded_handler,
)
from dealgate.services.contract_classifier import ContractClassifier
from samples import BRAND_DEAL_TEXT


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Reset the rate limiter before each test."""
    get_limiter().reset()
    yield
    if hasattr(app.state, "classifier"):
        del app.state.classifier


def _window(seconds):
    """Stand-in for slowapi's Limit wrapping a limits RateLimitItem."""
    return SimpleNamespace(limit=SimpleNamespace(get_expiry=lambda: seconds))


# Client IP Detection Tests


def test_get_client_ip_direct() -> None:
    mock_request = MagicMock(spec=Request)
    mock_request.headers = {"X-Forwarded-For": "10.0.0.1"}

    with patch("dealgate.middleware.rate_limit.get_remote_address") as mock_get_remote:
        mock_get_remote.return_value = "192.168.1.100"
        ip = get_client_ip(mock_request)

    # Forwarded header ignored without trusted proxies
    assert ip == "192.168.1.100"


def test_get_client_ip_from_trusted_proxy(monkeypatch) -> None:
    monkeypatch.setenv("TRUSTED_PROXIES", "10.1.1.1, 10.1.1.2")
    get_settings.cache_clear()

    mock_request = MagicMock(spec=Request)
    mock_request.headers = {"X-Forwarded-For": "203.0.113.7, 10.1.1.1"}

    with patch("dealgate.middleware.rate_limit.get_remote_address") as mock_get_remote:
        mock_get_remote.return_value = "10.1.1.2"
        ip = get_client_ip(mock_request)

    assert ip == "203.0.113.7"


def test_get_client_ip_trusted_proxy_without_header(monkeypatch) -> None:
    monkeypatch.setenv("TRUSTED_PROXIES", "10.1.1.1")
    get_settings.cache_clear()

    mock_request = MagicMock(spec=Request)
    mock_request.headers = {}

    with patch("dealgate.middleware.rate_limit.get_remote_address") as mock_get_remote:
        mock_get_remote.return_value = "10.1.1.1"
        ip = get_client_ip(mock_request)

    assert ip == "10.1.1.1"


def test_get_client_ip_untrusted_proxy(monkeypatch) -> None:
    monkeypatch.setenv("TRUSTED_PROXIES", "10.1.1.1")
    get_settings.cache_clear()

    mock_request = MagicMock(spec=Request)
    mock_request.headers = {"X-Forwarded-For": "203.0.113.7"}

    with patch("dealgate.middleware.rate_limit.get_remote_address") as mock_get_remote:
        mock_get_remote.return_value = "198.51.100.9"
        ip = get_client_ip(mock_request)

    assert ip == "198.51.100.9"


# Handler Tests


def test_rate_limit_exceeded_handler_uses_limit_window() -> None:
    exc = SimpleNamespace(detail="5 per 1 hour", limit=_window(3600))

    response = rate_limit_exceeded_handler(MagicMock(spec=Request), exc)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "3600"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["X-RateLimit-Limit"] == "5 per 1 hour"
    body = json.loads(response.body)
    assert body["detail"] == "Rate limit exceeded"
    assert body["retry_after"] == 3600


def test_rate_limit_exceeded_handler_without_limit() -> None:
    exc = SimpleNamespace(detail=None)

    response = rate_limit_exceeded_handler(MagicMock(spec=Request), exc)

    assert response.headers["Retry-After"] == str(DEFAULT_RETRY_AFTER_SECONDS)
    assert "X-RateLimit-Limit" not in response.headers


# Endpoint Limit Tests


def test_classify_limit_default() -> None:
    assert classify_rate_limit() == "20/minute"


def test_classify_rate_limited(fake_gateway) -> None:
    app.state.classifier = ContractClassifier(fake_gateway())
    client = TestClient(app)

    responses = [
        client.post("/api/classify", json={"text": BRAND_DEAL_TEXT})
        for _ in range(21)
    ]

    assert [r.status_code for r in responses[:20]] == [200] * 20
    assert responses[20].status_code == 429
    assert responses[20].headers["Retry-After"] == "60"
    assert responses[20].headers["X-RateLimit-Limit"] == "20 per 1 minute"


def test_classify_limit_read_from_settings(monkeypatch, fake_gateway) -> None:
    monkeypatch.setenv("CLASSIFY_RATE_LIMIT", "2/minute")
    get_settings.cache_clear()
    app.state.classifier = ContractClassifier(fake_gateway())
    client = TestClient(app)

    statuses = [
        client.post("/api/classify", json={"text": BRAND_DEAL_TEXT}).status_code
        for _ in range(3)
    ]

    assert statuses == [200, 200, 429]
