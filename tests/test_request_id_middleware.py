from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.adapters.rate_limit.in_memory import SlidingWindowRateLimiter
from app.core import rate_limit as rate_limit_module
from app.main import app


client = TestClient(app)


def test_echoes_incoming_request_id_and_duration():
    resp = client.get("/health", headers={"X-Request-ID": "corr-7"})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == "corr-7"
    assert float(resp.headers["X-Request-Duration-ms"]) >= 0


def test_generates_request_id_when_missing():
    first = client.get("/health").headers.get("X-Request-ID")
    second = client.get("/health").headers.get("X-Request-ID")

    assert first and second
    assert first != second


def test_rejection_body_carries_request_id(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(rate_limit_module.settings.app, "rate_limit_enabled", True)
    limiter = SlidingWindowRateLimiter(limit=1, window_ms=60_000, clock=lambda: 0)
    monkeypatch.setattr(rate_limit_module, "get_rate_limiter", lambda: limiter)

    client.post("/v1/rate-limit/check")
    blocked = client.post("/v1/rate-limit/check", headers={"X-Request-ID": "corr-429"})

    assert blocked.status_code == 429
    assert blocked.headers["X-Request-ID"] == "corr-429"
    assert blocked.json()["error"]["request_id"] == "corr-429"
