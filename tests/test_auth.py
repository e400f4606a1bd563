"""
tests.test_auth

Login, refresh-token rotation, logout and user provisioning.
"""

from __future__ import annotations

import httpx
import jwt
import pytest

from peopleguard.auth.models import Principal, Role
from peopleguard.auth.passwords import hash_password, meets_policy, verify_password
from tests.conftest import (
    ADMIN_EMAIL,
    ADMIN_PASSWORD,
    USER_PASSWORD,
    bearer,
    refresh_cookie_from,
)


async def _login(client: httpx.AsyncClient) -> httpx.Response:
    return await client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )


def test_password_policy() -> None:
    assert meets_policy("Passw0rd1")
    assert not meets_policy("short1")
    assert not meets_policy("lettersonly")
    assert not meets_policy("12345678")
    assert not meets_policy("has space 1")

    hashed = hash_password("Passw0rd1")
    assert hashed != "Passw0rd1"
    assert verify_password(hashed, "Passw0rd1")
    assert not verify_password(hashed, "Passw0rd2")


@pytest.mark.asyncio
async def test_login_sets_http_only_refresh_cookie(client: httpx.AsyncClient) -> None:
    r = await _login(client)
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == ADMIN_EMAIL
    assert body["roles"] == ["Admin"]
    assert body["access_token"]
    assert "refresh_token" not in body

    cookie_header = next(
        h for h in r.headers.get_list("set-cookie") if h.startswith("pg_refresh_token=")
    )
    assert "httponly" in cookie_header.lower()
    assert "path=/api/auth" in cookie_header.lower()
    assert "samesite=strict" in cookie_header.lower()


@pytest.mark.asyncio
async def test_login_rejects_bad_credentials(client: httpx.AsyncClient) -> None:
    r = await client.post(
        "/api/auth/login", json={"email": ADMIN_EMAIL, "password": "WrongPass1"}
    )
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials."

    r = await client.post(
        "/api/auth/login", json={"email": "nobody@peopleguard.local", "password": "WrongPass1"}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_refresh_rotates_token(client: httpx.AsyncClient) -> None:
    first = refresh_cookie_from(await _login(client))
    assert first

    r = await client.post("/api/auth/refresh", headers={"cookie": f"pg_refresh_token={first}"})
    assert r.status_code == 200, r.text
    assert r.json()["access_token"]
    second = refresh_cookie_from(r)
    assert second and second != first

    # The rotated-out token is revoked.
    r = await client.post("/api/auth/refresh", headers={"cookie": f"pg_refresh_token={first}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired refresh token"

    r = await client.post("/api/auth/refresh", headers={"cookie": f"pg_refresh_token={second}"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_refresh_without_cookie(client: httpx.AsyncClient) -> None:
    client.cookies.clear()
    r = await client.post("/api/auth/refresh")
    assert r.status_code == 401
    assert r.json()["detail"] == "Refresh token not found"


@pytest.mark.asyncio
async def test_logout_revokes_refresh_token(client: httpx.AsyncClient) -> None:
    token = refresh_cookie_from(await _login(client))
    cookie = {"cookie": f"pg_refresh_token={token}"}

    r = await client.post("/api/auth/logout", headers=cookie)
    assert r.status_code == 204

    r = await client.post("/api/auth/refresh", headers=cookie)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_me_reflects_the_token(client: httpx.AsyncClient, admin_headers) -> None:
    r = await client.get("/api/auth/me", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == ADMIN_EMAIL
    assert body["roles"] == ["Admin"]


@pytest.mark.asyncio
async def test_create_user_rules(client: httpx.AsyncClient, admin_headers, make_user) -> None:
    hr = await make_user("HR")

    # Only Admin can provision users.
    r = await client.post(
        "/api/auth/users",
        json={"email": "x@peopleguard.local", "password": USER_PASSWORD, "role": "ER"},
        headers=hr,
    )
    assert r.status_code == 403

    r = await client.post(
        "/api/auth/users",
        json={"email": "hr@peopleguard.local", "password": USER_PASSWORD, "role": "HR"},
        headers=admin_headers,
    )
    assert r.status_code == 409

    r = await client.post(
        "/api/auth/users",
        json={"email": "weak@peopleguard.local", "password": "onlyletters", "role": "HR"},
        headers=admin_headers,
    )
    assert r.status_code == 400

    r = await client.post(
        "/api/auth/users",
        json={"email": "odd@peopleguard.local", "password": USER_PASSWORD, "role": "Janitor"},
        headers=admin_headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_inactive_user_cannot_log_in(client: httpx.AsyncClient, admin_headers) -> None:
    r = await client.post(
        "/api/auth/users",
        json={
            "email": "gone@peopleguard.local",
            "password": USER_PASSWORD,
            "role": "HR",
            "is_active": False,
        },
        headers=admin_headers,
    )
    assert r.status_code == 201

    r = await client.post(
        "/api/auth/login", json={"email": "gone@peopleguard.local", "password": USER_PASSWORD}
    )
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_token_from_other_secret_is_rejected(client: httpx.AsyncClient) -> None:
    forged = jwt.encode(
        {"sub": "x", "roles": ["Admin"], "iss": "peopleguard", "aud": "peopleguard-api"},
        "some-other-secret-of-sufficient-length",
        algorithm="HS256",
    )
    r = await client.get("/api/auth/me", headers=bearer(forged))
    assert r.status_code == 401


def test_principal_role_match_is_any_of() -> None:
    admin = Principal(subject="u1", name="Admin", email="a@x.io", roles=frozenset({Role.admin}))
    assert admin.has_any(frozenset({Role.admin, Role.er}))
    # Admin holds no implicit grant for routes that do not list it.
    assert not admin.has_any(frozenset({Role.er}))
