"""
tests.test_cases_api

Case workspace: listing, detail, remarks, attachments, outcomes and letters.
"""

from __future__ import annotations

import httpx
import pytest

from peopleguard.api.pagination import clamp_paging


async def _close(client: httpx.AsyncClient, headers, case_id: str, outcome: str = "VerbalWarning"):
    r = await client.patch(
        f"/api/cases/{case_id}/status",
        json={"status": "Closed", "outcome": outcome},
        headers=headers,
    )
    assert r.status_code == 200, r.text
    return r.json()


@pytest.mark.asyncio
async def test_list_filters_and_pagination(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    a = await make_employee("EMP-A1", name="Amal Nasser", factory="Plant A")
    b = await make_employee("EMP-B1", name="Badr Saleh", factory="Plant B")
    for _ in range(3):
        await make_case(a["id"])
    await make_case(b["id"], case_type="Safety")
    await make_case(b["id"], case_type="2")

    r = await client.get("/api/cases", params={"size": 2}, headers=admin_headers)
    body = r.json()
    assert body["total"] == 5
    assert body["total_pages"] == 3
    assert len(body["data"]) == 2

    seen = []
    for page in (1, 2, 3):
        r = await client.get("/api/cases", params={"size": 2, "page": page}, headers=admin_headers)
        seen.extend(item["id"] for item in r.json()["data"])
    assert len(set(seen)) == 5

    r = await client.get("/api/cases", params={"factory": "Plant B"}, headers=admin_headers)
    assert r.json()["total"] == 2
    assert {i["case_type_name"] for i in r.json()["data"]} == {"Safety Issue"}

    r = await client.get("/api/cases", params={"employee_id": "amal"}, headers=admin_headers)
    assert r.json()["total"] == 3

    r = await client.get("/api/cases", params={"type": "safety"}, headers=admin_headers)
    assert r.json()["total"] == 2

    r = await client.get("/api/cases", params={"status": "Closed"}, headers=admin_headers)
    assert r.json()["total"] == 0

    r = await client.get("/api/cases", params={"status": "Pending"}, headers=admin_headers)
    assert r.status_code == 400

    # Size is clamped rather than rejected.
    r = await client.get("/api/cases", params={"size": 1000, "page": 0}, headers=admin_headers)
    body = r.json()
    assert body["size"] == 100
    assert body["page"] == 1

    r = await client.get("/api/cases", params={"size": 0}, headers=admin_headers)
    body = r.json()
    assert body["size"] == 1
    assert len(body["data"]) == 1
    assert body["total_pages"] == body["total"]


@pytest.mark.parametrize(
    ("page", "size", "expected"),
    [(1, 20, (1, 20)), (0, 0, (1, 1)), (-3, -5, (1, 1)), (2, 101, (2, 100))],
)
def test_clamp_paging(page: int, size: int, expected: tuple[int, int]) -> None:
    assert clamp_paging(page, size) == expected


@pytest.mark.asyncio
async def test_list_sorting_and_case_ref(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    a = await make_employee("EMP-S1", name="Zed Last")
    b = await make_employee("EMP-S2", name="Abe First")
    await make_case(a["id"])
    await make_case(b["id"])

    r = await client.get("/api/cases", params={"sort_by": "employee"}, headers=admin_headers)
    names = [i["employee_name"] for i in r.json()["data"]]
    assert names == ["Abe First", "Zed Last"]

    r = await client.get(
        "/api/cases", params={"sort_by": "employee", "sort_desc": True}, headers=admin_headers
    )
    assert [i["employee_name"] for i in r.json()["data"]] == ["Zed Last", "Abe First"]

    item = r.json()["data"][0]
    year = item["created_at"][:4]
    assert item["case_id"] == f"C-{year}-{item['id'].replace('-', '')[:4].upper()}"


@pytest.mark.asyncio
async def test_factories_and_stats(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    a = await make_employee("EMP-F1", factory="Plant C")
    await make_employee("EMP-F2", factory="Plant A")
    case = await make_case(a["id"])
    await make_case(a["id"])
    await _close(client, admin_headers, case["id"])

    r = await client.get("/api/cases/factories", headers=admin_headers)
    assert r.json() == ["Plant A", "Plant C"]

    r = await client.get("/api/cases/stats", headers=admin_headers)
    assert r.json() == {"total": 2, "open": 1, "under_investigation": 0, "closed": 1}


@pytest.mark.asyncio
async def test_detail_and_remarks(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])

    r = await client.post(
        f"/api/cases/{case['id']}/remarks", json={"text": "   "}, headers=admin_headers
    )
    assert r.status_code == 400

    long_text = "Witness statement collected. " * 10
    r = await client.post(
        f"/api/cases/{case['id']}/remarks", json={"text": long_text}, headers=admin_headers
    )
    assert r.status_code == 200
    assert r.json()["user_name"] == "System Administrator"

    r = await client.get(f"/api/cases/{case['id']}", headers=admin_headers)
    detail = r.json()
    assert detail["remarks_count"] == 1
    assert detail["designation"] == "Operator"
    assert detail["has_warning_letter"] is False

    r = await client.get(f"/api/cases/{case['id']}/history", headers=admin_headers)
    latest = r.json()[0]
    assert latest["event_type_name"] == "Remark Added"
    assert latest["description"].endswith("...")
    assert len(latest["description"]) == 103

    r = await client.get(
        "/api/cases/00000000-0000-0000-0000-000000000000", headers=admin_headers
    )
    assert r.status_code == 404
    assert r.json()["detail"] == "Case not found"


@pytest.mark.asyncio
async def test_attachment_lifecycle(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])
    base = f"/api/cases/{case['id']}/attachments"

    r = await client.post(
        base,
        files={"file": ("notes.exe", b"MZ", "application/octet-stream")},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "File type .exe is not allowed"

    r = await client.post(
        base, files={"file": ("empty.pdf", b"", "application/pdf")}, headers=admin_headers
    )
    assert r.status_code == 400

    r = await client.post(
        base,
        files={"file": ("big.pdf", b"x" * (1024 * 1024 + 1), "application/pdf")},
        headers=admin_headers,
    )
    assert r.status_code == 400

    r = await client.post(
        base,
        files={"file": ("evidence.pdf", b"%PDF-1.4 test", "application/pdf")},
        headers=admin_headers,
    )
    assert r.status_code == 200, r.text
    att = r.json()

    r = await client.get(att["download_url"], headers=admin_headers)
    assert r.status_code == 200
    assert r.content == b"%PDF-1.4 test"

    r = await client.get(base, headers=admin_headers)
    assert [a["file_name"] for a in r.json()] == ["evidence.pdf"]

    r = await client.delete(f"{base}/{att['id']}", headers=admin_headers)
    assert r.status_code == 204
    r = await client.get(att["download_url"], headers=admin_headers)
    assert r.status_code == 404

    r = await client.get(f"/api/cases/{case['id']}/history", headers=admin_headers)
    events = [h["event_type_name"] for h in r.json()]
    assert events[:2] == ["Attachment Removed", "Attachment Added"]


@pytest.mark.asyncio
async def test_outcome_and_letters(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])

    r = await client.post(
        f"/api/cases/{case['id']}/outcome",
        json={"outcome": "writtenwarning", "final_note": "Second offence"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json() == {"outcome_id": 3}

    r = await client.get(f"/api/cases/{case['id']}/history", headers=admin_headers)
    assert r.json()[0]["description"] == "Outcome set to Written Warning. Note: Second offence"

    r = await client.post(
        f"/api/cases/{case['id']}/letters", json={"template": "standard"}, headers=admin_headers
    )
    assert r.status_code == 200, r.text
    letter = r.json()

    r = await client.get(letter["pdf_url"], headers=admin_headers)
    assert r.status_code == 200
    assert "Jane Worker" in r.text
    assert "Arrived two hours late" in r.text

    r = await client.post(
        f"/api/cases/{case['id']}/letters", json={"template": "manual"}, headers=admin_headers
    )
    assert r.status_code == 400

    r = await client.post(
        f"/api/cases/{case['id']}/letters",
        json={
            "template": "manual",
            "html": '<p onclick="x()">Dear Jane</p><script>alert(1)</script>',
        },
        headers=admin_headers,
    )
    assert r.status_code == 200
    r = await client.get(r.json()["pdf_url"], headers=admin_headers)
    assert "<script" not in r.text
    assert "onclick" not in r.text
    assert "Dear Jane" in r.text

    r = await client.get(f"/api/cases/{case['id']}/letters", headers=admin_headers)
    letters = r.json()
    assert len(letters) == 2
    assert all(w["outcome_name"] == "Written Warning" for w in letters)

    r = await client.get(f"/api/cases/{case['id']}", headers=admin_headers)
    detail = r.json()
    assert detail["has_warning_letter"] is True
    assert detail["warning_letter_id"] == letters[0]["id"]
    # Each generated letter is also filed as an attachment.
    assert detail["attachments_count"] == 2


@pytest.mark.asyncio
async def test_closed_case_is_read_only(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])
    r = await client.post(
        f"/api/cases/{case['id']}/attachments",
        files={"file": ("a.png", b"\x89PNG", "image/png")},
        headers=admin_headers,
    )
    att = r.json()
    await _close(client, admin_headers, case["id"])

    r = await client.post(
        f"/api/cases/{case['id']}/remarks", json={"text": "late note"}, headers=admin_headers
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Case is closed and cannot be modified"

    r = await client.post(
        f"/api/cases/{case['id']}/attachments",
        files={"file": ("b.png", b"\x89PNG", "image/png")},
        headers=admin_headers,
    )
    assert r.status_code == 400

    r = await client.delete(
        f"/api/cases/{case['id']}/attachments/{att['id']}", headers=admin_headers
    )
    assert r.status_code == 400

    r = await client.post(
        f"/api/cases/{case['id']}/outcome", json={"outcome": "none"}, headers=admin_headers
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Case is already closed"

    r = await client.post(
        f"/api/cases/{case['id']}/letters", json={"template": "standard"}, headers=admin_headers
    )
    assert r.status_code == 400

    r = await client.put(
        f"/api/investigations/{case['id']}",
        json={"title": "Renamed case", "description": "Changed after closing it."},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Cannot update a closed investigation"


@pytest.mark.asyncio
async def test_mutations_require_editor_role(
    client: httpx.AsyncClient, make_user, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])
    manager = await make_user("Manager")

    r = await client.get(f"/api/cases/{case['id']}", headers=manager)
    assert r.status_code == 200

    r = await client.post(
        f"/api/cases/{case['id']}/remarks", json={"text": "not allowed"}, headers=manager
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_investigation_endpoints(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])

    r = await client.post(
        "/api/investigations",
        json={
            "employee_id": "00000000-0000-0000-0000-000000000000",
            "title": "Orphan case",
            "description": "No such employee exists here.",
            "case_type": "Violation",
        },
        headers=admin_headers,
    )
    assert r.status_code == 404

    r = await client.post(
        "/api/investigations",
        json={"employee_id": emp["id"], "title": "Tiny", "description": "short", "case_type": 1},
        headers=admin_headers,
    )
    assert r.status_code == 422

    r = await client.get(f"/api/investigations/by-employee/{emp['id']}", headers=admin_headers)
    assert [i["id"] for i in r.json()] == [case["id"]]

    r = await client.get("/api/investigations/by-status/Open", headers=admin_headers)
    assert len(r.json()) == 1

    r = await client.post(
        f"/api/investigations/{case['id']}/remarks", json={"remark": "ok"}, headers=admin_headers
    )
    assert r.status_code == 422

    r = await client.post(
        f"/api/investigations/{case['id']}/remarks",
        json={"remark": "Interviewed the supervisor."},
        headers=admin_headers,
    )
    assert r.status_code == 200

    r = await client.get(f"/api/investigations/{case['id']}/remarks", headers=admin_headers)
    assert [x["remark"] for x in r.json()] == ["Interviewed the supervisor."]

    r = await client.put(
        f"/api/investigations/{case['id']}",
        json={"title": "Late shift (updated)", "description": "Arrived three hours late."},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["title"] == "Late shift (updated)"
