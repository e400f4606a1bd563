"""
tests.test_audit

Audit middleware coverage plus the `/api/auditlogs` and `/api/audit` readers.
"""

from __future__ import annotations

from datetime import timedelta

import httpx
import pytest
from fastapi import FastAPI
from sqlalchemy import func, select

from peopleguard.db.models import AuditLog, utcnow
from peopleguard.observability.audit import entity_for_path
from peopleguard.services.audit import mask_details, mask_ip


def test_entity_for_path() -> None:
    case_id = "3f2a9c1e-7b44-4d0e-9a51-2c6f0e8b1d77"
    assert entity_for_path(f"/api/cases/{case_id}/remarks") == ("Case", case_id)
    assert entity_for_path("/api/employees") == ("Employee", "Unknown")
    assert entity_for_path("/api/qr/submit") == ("QrToken", "Unknown")
    assert entity_for_path("/api/auth/login") is None
    assert entity_for_path("/healthz") is None


def test_masking() -> None:
    assert mask_ip("10.20.30.40") == "10.20.*.*"
    assert mask_ip(None) is None
    masked = mask_details('{"email": "a@b.com", "password": "x", "token": "t", "name": "ok"}')
    assert "a@b.com" not in masked
    assert '"password": "***"' in masked
    assert '"token": "***"' in masked
    assert '"name": "ok"' in masked


async def _audit_count(app: FastAPI) -> int:
    async with app.state.sessionmaker() as session:
        return int((await session.execute(select(func.count(AuditLog.id)))).scalar_one())


@pytest.mark.asyncio
async def test_mutations_are_audited_and_reads_are_not(
    app: FastAPI, client: httpx.AsyncClient, admin_headers, make_employee
) -> None:
    before = await _audit_count(app)
    emp = await make_employee()
    assert await _audit_count(app) == before + 1

    await client.get(f"/api/employees/{emp['id']}", headers=admin_headers)
    await client.get("/api/employees", headers=admin_headers)
    assert await _audit_count(app) == before + 1

    r = await client.put(
        f"/api/employees/{emp['id']}",
        json={
            "name": "Jane Renamed",
            "department": "Assembly",
            "factory": "Plant A",
            "designation": "Operator",
        },
        headers={**admin_headers, "X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )
    assert r.status_code == 200

    r = await client.get(f"/api/auditlogs/entity/{emp['id']}", headers=admin_headers)
    rows = r.json()
    assert len(rows) == 1
    row = rows[0]
    assert row["entity_type"] == "Employee"
    assert row["action"] == "PUT"
    assert row["status_code"] == 200
    assert row["ip_address"] == "203.0.113.9"
    assert row["user_name"] == "System Administrator"
    assert row["notes"] == "Request processed successfully"


@pytest.mark.asyncio
async def test_failed_and_anonymous_requests_are_audited(
    client: httpx.AsyncClient, admin_headers
) -> None:
    missing = "00000000-0000-0000-0000-000000000000"
    r = await client.delete(f"/api/employees/{missing}", headers=admin_headers)
    assert r.status_code == 404

    r = await client.post("/api/employees", json={})
    assert r.status_code == 401

    r = await client.get(f"/api/auditlogs/entity/{missing}", headers=admin_headers)
    row = r.json()[0]
    assert row["notes"] == "Request failed with status 404"

    r = await client.get("/api/auditlogs/user/Unknown", headers=admin_headers)
    assert r.status_code == 200
    assert any(x["status_code"] == 401 for x in r.json())


@pytest.mark.asyncio
async def test_auditlogs_queries_and_cleanup(
    app: FastAPI, client: httpx.AsyncClient, admin_headers, make_employee, make_user
) -> None:
    await make_employee("EMP-A")
    await make_employee("EMP-B")

    r = await client.get("/api/auditlogs", params={"action": "POST"}, headers=admin_headers)
    assert len(r.json()) == 2

    r = await client.get("/api/auditlogs/user/nobody", headers=admin_headers)
    assert r.status_code == 404

    async with app.state.sessionmaker() as session:
        for row in (await session.execute(select(AuditLog))).scalars():
            row.timestamp = utcnow() - timedelta(days=120)
        await session.commit()

    it_admin = await make_user("ITAdmin")
    r = await client.delete("/api/auditlogs/cleanup", headers=it_admin)
    assert r.status_code == 403

    # Without a query value the configured retention applies.
    app.state.settings.audit_retention_days = 200
    r = await client.delete("/api/auditlogs/cleanup", headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"deleted": 0, "retention_days": 200}

    r = await client.delete(
        "/api/auditlogs/cleanup", params={"retention_days": 0}, headers=admin_headers
    )
    assert r.status_code == 400

    r = await client.delete(
        "/api/auditlogs/cleanup", params={"retention_days": 90}, headers=admin_headers
    )
    assert r.status_code == 200
    assert r.json()["deleted"] == 2
    assert await _audit_count(app) == 0


@pytest.mark.asyncio
async def test_audit_viewer_masks_and_exports(
    client: httpx.AsyncClient, admin_headers, make_employee, make_user
) -> None:
    await client.post(
        "/api/employees",
        json={
            "employee_code": "EMP-V1",
            "name": "Viewer Target",
            "department": "QA",
            "factory": "Plant A",
            "designation": "Inspector",
        },
        headers={**admin_headers, "X-Forwarded-For": "198.51.100.24"},
    )
    await make_employee("EMP-V2")

    hr = await make_user("HR")
    r = await client.get("/api/audit", headers=hr)
    assert r.status_code == 403

    it_admin = await make_user("ITAdmin")
    r = await client.get(
        "/api/audit", params={"entity_type": "employ", "size": 1}, headers=it_admin
    )
    body = r.json()
    assert body["total"] == 2
    assert body["total_pages"] == 2

    r = await client.get("/api/audit", params={"entity_type": "employee"}, headers=it_admin)
    ips = {x["ip_address"] for x in r.json()["data"]}
    assert "198.51.*.*" in ips
    assert "198.51.100.24" not in ips

    r = await client.get("/api/audit/export", headers=it_admin)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "audit-export-" in r.headers["content-disposition"]
    lines = r.text.strip().splitlines()
    assert lines[0].startswith("User,Entity Type,Entity ID,Action")
    assert len(lines) == 1 + 2
