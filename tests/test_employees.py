"""
tests.test_employees

Employee CRUD, soft delete, role gates, stats and history.
"""

from __future__ import annotations

import httpx
import pytest


@pytest.mark.asyncio
async def test_create_and_lookup(client: httpx.AsyncClient, admin_headers, make_employee) -> None:
    emp = await make_employee("EMP-100", name="Omar Haddad")
    assert emp["status"] == "Active"
    assert emp["updated_at"] is None

    r = await client.get(f"/api/employees/{emp['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["employee_code"] == "EMP-100"

    r = await client.get("/api/employees/by-employee-id/EMP-100", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["id"] == emp["id"]

    r = await client.get("/api/employees/by-employee-id/EMP-404", headers=admin_headers)
    assert r.status_code == 404
    assert r.json() == {"detail": "Employee not found"}


@pytest.mark.asyncio
async def test_duplicate_code_conflicts(
    client: httpx.AsyncClient, admin_headers, make_employee
) -> None:
    await make_employee("EMP-200")
    r = await client.post(
        "/api/employees",
        json={
            "employee_code": "EMP-200",
            "name": "Someone Else",
            "department": "QA",
            "factory": "Plant B",
            "designation": "Inspector",
        },
        headers=admin_headers,
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "Employee ID EMP-200 already exists"


@pytest.mark.asyncio
async def test_field_lengths_are_validated(client: httpx.AsyncClient, admin_headers) -> None:
    r = await client.post(
        "/api/employees",
        json={
            "employee_code": "E" * 51,
            "name": "X",
            "department": "QA",
            "factory": "Plant B",
            "designation": "Inspector",
        },
        headers=admin_headers,
    )
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_list_and_search(client: httpx.AsyncClient, admin_headers, make_employee) -> None:
    await make_employee("EMP-301", name="Alice Stone", factory="Plant A", department="Paint")
    await make_employee("EMP-302", name="Bob Rivers", factory="Plant B", department="Paint")
    await make_employee("EMP-303", name="Carla Stone", factory="Plant B", department="Welding")

    r = await client.get("/api/employees", params={"query": "stone"}, headers=admin_headers)
    assert sorted(e["employee_code"] for e in r.json()) == ["EMP-301", "EMP-303"]

    r = await client.get("/api/employees", params={"query": "EMP-302"}, headers=admin_headers)
    assert [e["name"] for e in r.json()] == ["Bob Rivers"]

    r = await client.get(
        "/api/employees/search",
        params={"department": "paint", "factory": "Plant B"},
        headers=admin_headers,
    )
    assert [e["employee_code"] for e in r.json()] == ["EMP-302"]


@pytest.mark.asyncio
async def test_update_sets_updated_at(
    client: httpx.AsyncClient, admin_headers, make_employee
) -> None:
    emp = await make_employee("EMP-400")
    r = await client.put(
        f"/api/employees/{emp['id']}",
        json={
            "name": "Jane Promoted",
            "department": "Assembly",
            "factory": "Plant A",
            "designation": "Supervisor",
            "status": "Suspended",
        },
        headers=admin_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["designation"] == "Supervisor"
    assert body["status"] == "Suspended"
    assert body["updated_at"] is not None


@pytest.mark.asyncio
async def test_soft_delete_hides_employee(
    client: httpx.AsyncClient, admin_headers, make_employee
) -> None:
    emp = await make_employee("EMP-500")
    r = await client.delete(f"/api/employees/{emp['id']}", headers=admin_headers)
    assert r.status_code == 204

    r = await client.get(f"/api/employees/{emp['id']}", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Employee not found"
    r = await client.get("/api/employees", headers=admin_headers)
    assert all(e["id"] != emp["id"] for e in r.json())

    # The code stays reserved.
    r = await client.post(
        "/api/employees",
        json={
            "employee_code": "EMP-500",
            "name": "Reused Code",
            "department": "QA",
            "factory": "Plant A",
            "designation": "Inspector",
        },
        headers=admin_headers,
    )
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_role_gates(client: httpx.AsyncClient, make_user, make_employee) -> None:
    emp = await make_employee("EMP-600")
    er = await make_user("ER")
    business = await make_user("Business")

    # Any authenticated role can read.
    r = await client.get(f"/api/employees/{emp['id']}", headers=business)
    assert r.status_code == 200

    r = await client.post(
        "/api/employees",
        json={
            "employee_code": "EMP-601",
            "name": "Not Allowed",
            "department": "QA",
            "factory": "Plant A",
            "designation": "Inspector",
        },
        headers=business,
    )
    assert r.status_code == 403

    # ER may edit but not delete.
    r = await client.delete(f"/api/employees/{emp['id']}", headers=er)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_stats_and_history(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee("EMP-700")
    first = await make_case(emp["id"], title="First incident")
    await make_case(emp["id"], title="Second incident")

    r = await client.patch(
        f"/api/cases/{first['id']}/status",
        json={"status": "Closed", "outcome": "WrittenWarning"},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text

    r = await client.post(
        "/api/warningletters",
        json={
            "investigation_id": first["id"],
            "employee_id": emp["id"],
            "outcome": "WrittenWarning",
            "reason": "Repeated lateness.",
        },
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text

    r = await client.get(f"/api/employees/{emp['id']}/stats", headers=admin_headers)
    assert r.json() == {
        "total_cases": 2,
        "open": 1,
        "closed": 1,
        "verbal_warnings": 0,
        "written_warnings": 1,
    }

    r = await client.get(f"/api/employees/{emp['id']}/history", headers=admin_headers)
    body = r.json()
    assert body["total"] == 3
    assert body["data"][0]["kind"] == "Warning"
    assert {d["kind"] for d in body["data"]} == {"Investigation", "Warning"}

    r = await client.get(
        f"/api/employees/{emp['id']}/history",
        params={"type": "investigation", "size": 1},
        headers=admin_headers,
    )
    body = r.json()
    assert body["total"] == 2
    assert body["total_pages"] == 2
    assert len(body["data"]) == 1
