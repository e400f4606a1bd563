"""
tests.test_smoke

Smoke tests: the app boots in test mode, probes answer, and every mutation
carries a request id.
"""

from __future__ import annotations

import httpx
import pytest


@pytest.mark.asyncio
async def test_health_endpoints(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz", headers={"x-request-id": "abc-123"})
    assert r.headers["x-request-id"] == "abc-123"

    r = await client.get("/healthz")
    assert r.headers["x-request-id"]


@pytest.mark.asyncio
async def test_protected_routes_require_a_token(client: httpx.AsyncClient) -> None:
    for path in ("/api/employees", "/api/cases", "/api/dashboard", "/api/warningletters"):
        r = await client.get(path)
        assert r.status_code == 401, path
        assert r.json()["detail"] == "Missing bearer token"

    r = await client.get("/api/cases", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["detail"].startswith("Invalid token")


# --- Module Notes -----------------------------------------------------------
# Feature coverage lives in the per-router test modules; this file only checks boot.
