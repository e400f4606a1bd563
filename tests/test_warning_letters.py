"""
tests.test_warning_letters

Formal PDF letters: eligibility rules, storage, lookups and role gates.
"""

from __future__ import annotations

from datetime import datetime

import httpx
import pytest

from peopleguard.db.models import CaseOutcome
from peopleguard.services.documents import LetterSubject, render_warning_pdf


def test_render_warning_pdf_produces_a_pdf() -> None:
    pdf = render_warning_pdf(
        system_name="PeopleGuard",
        subject=LetterSubject(
            employee_name="Jane Worker",
            employee_code="EMP-001",
            department="Assembly",
            factory="Plant A",
        ),
        outcome=CaseOutcome.written_warning,
        reason="Repeated safety violations <on the line>.",
        issued_at=datetime(2026, 1, 15, 9, 30),
    )
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 1000


async def _issue(
    client: httpx.AsyncClient, headers, case: dict, emp: dict, outcome="VerbalWarning"
):
    return await client.post(
        "/api/warningletters",
        json={
            "investigation_id": case["id"],
            "employee_id": emp["id"],
            "outcome": outcome,
            "reason": "Ignored the lockout procedure.",
        },
        headers=headers,
    )


@pytest.mark.asyncio
async def test_letter_requires_closed_case_with_outcome(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])

    r = await _issue(client, admin_headers, case, emp)
    assert r.status_code == 400

    r = await client.patch(
        f"/api/cases/{case['id']}/status",
        json={"status": "Closed", "outcome": "VerbalWarning"},
        headers=admin_headers,
    )
    assert r.status_code == 200

    other = await make_employee("EMP-999", name="Other Person")
    r = await _issue(client, admin_headers, case, other)
    assert r.status_code == 400

    r = await _issue(client, admin_headers, case, emp, outcome="WrittenWarning")
    assert r.status_code == 201, r.text
    letter = r.json()
    assert letter["employee_name"] == "Jane Worker"
    assert letter["outcome_name"] == "Written Warning"
    assert letter["template"] == "pdf"

    # Issuing the letter updates the case outcome and history.
    r = await client.get(f"/api/cases/{case['id']}", headers=admin_headers)
    assert r.json()["outcome_name"] == "Written Warning"
    r = await client.get(f"/api/cases/{case['id']}/history", headers=admin_headers)
    latest = r.json()[0]
    assert latest["event_type_name"] == "Warning Letter Issued"
    assert latest["reference_id"] == letter["id"]

    r = await client.get(letter["pdf_url"], headers=admin_headers)
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert r.content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_missing_references_are_404(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])
    ghost = {"id": "00000000-0000-0000-0000-000000000000"}

    r = await _issue(client, admin_headers, ghost, emp)
    assert r.status_code == 404
    r = await _issue(client, admin_headers, case, ghost)
    assert r.status_code == 404

    r = await client.get(
        f"/api/warningletters/by-investigation/{case['id']}", headers=admin_headers
    )
    assert r.status_code == 404

    r = await client.get(f"/api/warningletters/{ghost['id']}/pdf", headers=admin_headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_list_and_by_investigation(
    client: httpx.AsyncClient, admin_headers, make_user, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])
    await client.patch(
        f"/api/cases/{case['id']}/status",
        json={"status": "Closed", "outcome": "VerbalWarning"},
        headers=admin_headers,
    )

    management = await make_user("Management")
    hr = await make_user("HR")

    r = await _issue(client, hr, case, emp)
    assert r.status_code == 403

    r = await _issue(client, management, case, emp)
    assert r.status_code == 201

    r = await client.get("/api/warningletters", headers=hr)
    assert r.status_code == 200
    assert [w["employee_name"] for w in r.json()] == ["Jane Worker"]

    r = await client.get(
        f"/api/warningletters/by-investigation/{case['id']}", headers=admin_headers
    )
    assert len(r.json()) == 1
