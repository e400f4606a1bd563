"""
tests.test_case_status

Status transition rules, both as pure functions and through the API.
"""

from __future__ import annotations

import httpx
import pytest

from peopleguard.db.models import CaseOutcome, CaseStatus, CaseType, LeaveType
from peopleguard.services.cases import check_transition, parse_outcome_keyword
from peopleguard.services.errors import ValidationFailedError

OPEN, UNDER, CLOSED = CaseStatus.open, CaseStatus.under_investigation, CaseStatus.closed


@pytest.mark.parametrize(
    ("current", "target", "has_outcome"),
    [
        (OPEN, UNDER, False),
        (OPEN, CLOSED, True),
        (UNDER, CLOSED, False),
        (UNDER, OPEN, False),
        (CLOSED, OPEN, False),
        (CLOSED, CLOSED, False),
        (OPEN, OPEN, False),
    ],
)
def test_allowed_transitions(current: CaseStatus, target: CaseStatus, has_outcome: bool) -> None:
    check_transition(current, target, has_outcome=has_outcome)


def test_closing_open_case_requires_outcome() -> None:
    with pytest.raises(ValidationFailedError) as e:
        check_transition(OPEN, CLOSED, has_outcome=False)
    assert e.value.detail == "Cannot close case without setting an outcome"


def test_closed_case_cannot_jump_to_under_investigation() -> None:
    with pytest.raises(ValidationFailedError) as e:
        check_transition(CLOSED, UNDER, has_outcome=True)
    assert e.value.detail == "Invalid status transition from Closed to Under Investigation"


def test_enum_parsing_and_labels() -> None:
    assert CaseStatus.parse("UnderInvestigation") is UNDER
    assert CaseStatus.parse("under_investigation") is UNDER
    assert CaseStatus.parse("2") is UNDER
    assert CaseStatus.parse(3) is CLOSED
    with pytest.raises(ValueError):
        CaseStatus.parse("Pending")

    assert CaseType.safety.label == "Safety Issue"
    assert LeaveType.outside_ksa.label == "Outside KSA"
    # Same integer value, different enum: labels must not leak across classes.
    assert CaseOutcome.verbal_warning.label == "Verbal Warning"

    # Chart breakdowns use the member name instead of the display label.
    assert CaseType.safety.pascal_name == "Safety"
    assert CaseOutcome.verbal_warning.pascal_name == "VerbalWarning"
    assert UNDER.pascal_name == "UnderInvestigation"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("VerbalWarning", CaseOutcome.verbal_warning),
        ("written warning", CaseOutcome.written_warning),
        ("none", CaseOutcome.no_action),
        ("NoAction", CaseOutcome.no_action),
        ("something-else", CaseOutcome.no_action),
        (None, CaseOutcome.no_action),
    ],
)
def test_outcome_keywords(raw: str | None, expected: CaseOutcome) -> None:
    assert parse_outcome_keyword(raw) is expected


async def _history(client: httpx.AsyncClient, headers, case_id: str) -> list[dict]:
    r = await client.get(f"/api/cases/{case_id}/history", headers=headers)
    assert r.status_code == 200
    return r.json()


@pytest.mark.asyncio
async def test_each_transition_writes_one_history_row(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])
    assert case["status_name"] == "Open"

    history = await _history(client, admin_headers, case["id"])
    assert [h["event_type_name"] for h in history] == ["Case Created"]

    steps = [
        ("UnderInvestigation", "Under Investigation"),
        ("Closed", "Closed"),
        ("Open", "Open"),
        ("Open", "Open"),
    ]
    for i, (status, label) in enumerate(steps, start=1):
        r = await client.patch(
            f"/api/cases/{case['id']}/status", json={"status": status}, headers=admin_headers
        )
        assert r.status_code == 200, r.text
        assert r.json()["status_name"] == label
        history = await _history(client, admin_headers, case["id"])
        assert len(history) == 1 + i
        assert history[0]["event_type_name"] == "Status Changed"
        assert history[0]["new_value"] == label


@pytest.mark.asyncio
async def test_close_and_reopen_manage_closed_at(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])

    r = await client.patch(
        f"/api/cases/{case['id']}/status", json={"status": "Closed"}, headers=admin_headers
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Cannot close case without setting an outcome"

    r = await client.patch(
        f"/api/cases/{case['id']}/status",
        json={"status": 3, "outcome": "VerbalWarning"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["closed_at"] is not None
    assert body["outcome_name"] == "Verbal Warning"

    r = await client.patch(
        f"/api/cases/{case['id']}/status",
        json={"status": "UnderInvestigation"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid status transition from Closed to Under Investigation"

    r = await client.patch(
        f"/api/cases/{case['id']}/status", json={"status": "Open"}, headers=admin_headers
    )
    assert r.status_code == 200
    assert r.json()["closed_at"] is None


@pytest.mark.asyncio
async def test_unknown_status_is_rejected(
    client: httpx.AsyncClient, admin_headers, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])
    r = await client.patch(
        f"/api/cases/{case['id']}/status", json={"status": "Archived"}, headers=admin_headers
    )
    assert r.status_code == 400
    assert len(await _history(client, admin_headers, case["id"])) == 1


@pytest.mark.asyncio
async def test_investigation_status_gate_is_admin_or_er(
    client: httpx.AsyncClient, make_user, make_employee, make_case
) -> None:
    emp = await make_employee()
    case = await make_case(emp["id"])
    hr = await make_user("HR")
    er = await make_user("ER")

    r = await client.put(
        f"/api/investigations/{case['id']}/status",
        json={"status": "UnderInvestigation"},
        headers=hr,
    )
    assert r.status_code == 403

    r = await client.put(
        f"/api/investigations/{case['id']}/status",
        json={"status": "UnderInvestigation"},
        headers=er,
    )
    assert r.status_code == 200
    assert r.json()["status"] == 2
