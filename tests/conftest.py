"""
tests.conftest

Shared fixtures: an app booted against a throwaway SQLite file, an httpx client,
and helpers to provision users/employees/cases through the public API.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI

from peopleguard.api.app import create_app
from peopleguard.settings import Settings

ADMIN_EMAIL = "admin@peopleguard.local"
ADMIN_PASSWORD = "Admin12345"
USER_PASSWORD = "Passw0rd1"

Headers = dict[str, str]


def bearer(token: str) -> Headers:
    return {"Authorization": f"Bearer {token}"}


def refresh_cookie_from(response: httpx.Response, name: str = "pg_refresh_token") -> str | None:
    # The test host has no dot, so the cookie jar is bypassed and the header is read directly.
    for header in response.headers.get_list("set-cookie"):
        key, _, rest = header.partition("=")
        if key.strip() == name:
            return rest.split(";", 1)[0].strip('"')
    return None


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="test",
        log_level="WARNING",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'peopleguard-test.db'}",
        storage_root=str(tmp_path / "storage"),
        refresh_cookie_secure=False,
        max_upload_bytes=1024 * 1024,
    )


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx ASGITransport does not manage lifespan; run it explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def admin_headers(client: httpx.AsyncClient) -> Headers:
    r = await client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert r.status_code == 200, r.text
    return bearer(r.json()["access_token"])


@pytest.fixture
def make_user(
    client: httpx.AsyncClient, admin_headers: Headers
) -> Callable[[str], Awaitable[Headers]]:
    async def _make(role: str) -> Headers:
        r = await client.post(
            "/api/auth/users",
            json={
                "email": f"{role.lower()}@peopleguard.local",
                "password": USER_PASSWORD,
                "role": role,
                "display_name": f"{role} User",
            },
            headers=admin_headers,
        )
        assert r.status_code == 201, r.text
        return bearer(r.json()["access_token"])

    return _make


@pytest.fixture
def make_employee(
    client: httpx.AsyncClient, admin_headers: Headers
) -> Callable[..., Awaitable[dict]]:
    async def _make(code: str = "EMP-001", **overrides: str) -> dict:
        body = {
            "employee_code": code,
            "name": "Jane Worker",
            "department": "Assembly",
            "factory": "Plant A",
            "designation": "Operator",
        }
        body.update(overrides)
        r = await client.post("/api/employees", json=body, headers=admin_headers)
        assert r.status_code == 201, r.text
        return r.json()

    return _make


@pytest.fixture
def make_case(
    client: httpx.AsyncClient, admin_headers: Headers
) -> Callable[..., Awaitable[dict]]:
    async def _make(
        employee_id: str, *, case_type: str = "Violation", title: str = "Late shift"
    ) -> dict:
        r = await client.post(
            "/api/investigations",
            json={
                "employee_id": employee_id,
                "title": title,
                "description": "Arrived two hours late without notice.",
                "case_type": case_type,
            },
            headers=admin_headers,
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _make
