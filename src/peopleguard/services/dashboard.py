"""
peopleguard.services.dashboard

Read-only analytics over cases and warning letters.

Responsibilities:
- Headline totals, breakdowns (factory/department/type/outcome) and a 12-month trend.
- Top-violator ranking with a weighted risk score.
- Excel export of the dashboard (openpyxl).
"""

from __future__ import annotations

import io
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.db.models import (
    CaseOutcome,
    CaseStatus,
    Employee,
    Investigation,
    WarningLetter,
    utcnow,
)

GROUPINGS = ("factory", "department", "type")

VIOLATOR_HEADERS = [
    "Employee ID",
    "Name",
    "Factory",
    "Department",
    "Violations",
    "Warning Letters",
    "Written Warnings",
    "Risk Score",
    "Risk Level",
]


@dataclass(frozen=True, slots=True)
class Slice:
    label: str
    value: int
    percentage: float


@dataclass(frozen=True, slots=True)
class Violator:
    employee_id: uuid.UUID
    employee_code: str
    name: str
    factory: str
    department: str
    violations: int
    warning_letters: int
    written_warnings: int
    risk_score: float
    risk_level: str


@dataclass(frozen=True, slots=True)
class RecentCase:
    id: uuid.UUID
    employee_name: str
    factory: str
    case_type: str
    status: str
    created_at: datetime


@dataclass(slots=True)
class Dashboard:
    total_violations: int = 0
    active_investigations: int = 0
    total_warning_letters: int = 0
    total_employees: int = 0
    employees_with_recent_violations: int = 0
    by_factory: list[Slice] = field(default_factory=list)
    by_department: list[Slice] = field(default_factory=list)
    by_type: list[Slice] = field(default_factory=list)
    by_outcome: list[Slice] = field(default_factory=list)
    monthly_trend: list[Slice] = field(default_factory=list)
    top_violators: list[Violator] = field(default_factory=list)
    recent_investigations: list[RecentCase] = field(default_factory=list)


def risk_level(score: float) -> str:
    if score >= 15:
        return "Critical"
    if score >= 10:
        return "High"
    if score >= 5:
        return "Medium"
    return "Low"


def _slices(counter: Counter[str]) -> list[Slice]:
    total = sum(counter.values())
    return [
        Slice(label=label, value=n, percentage=round(n * 100 / total, 2) if total else 0.0)
        for label, n in counter.most_common()
    ]


def _month_keys(today: date, months: int = 12) -> list[str]:
    keys: list[str] = []
    year, month = today.year, today.month
    for _ in range(months):
        keys.append(f"{month:02d}/{year}")
        month -= 1
        if month == 0:
            month, year = 12, year - 1
    return list(reversed(keys))


class DashboardService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session

    def _live_cases(self):
        return (
            select(Investigation, Employee)
            .join(Employee, Investigation.employee_id == Employee.id)
            .where(Investigation.is_deleted.is_(False), Employee.is_deleted.is_(False))
        )

    async def _rows(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> list[tuple[Investigation, Employee]]:
        stmt = self._live_cases()
        if date_from is not None:
            stmt = stmt.where(Investigation.created_at >= datetime.combine(date_from, time.min))
        if date_to is not None:
            end = datetime.combine(date_to, time.min) + timedelta(days=1)
            stmt = stmt.where(Investigation.created_at < end)
        return [(inv, emp) for inv, emp in (await self._session.execute(stmt)).unique().all()]

    async def violations(
        self, *, group_by: str, date_from: date | None = None, date_to: date | None = None
    ) -> list[Slice]:
        rows = await self._rows(date_from, date_to)
        if group_by == "department":
            counter = Counter(emp.department for _, emp in rows)
        elif group_by == "type":
            counter = Counter(inv.case_type.pascal_name for inv, _ in rows)
        else:
            counter = Counter(emp.factory for _, emp in rows)
        return _slices(counter)

    async def build(self) -> Dashboard:
        now = utcnow()
        rows = await self._rows()
        letters = list((await self._session.execute(select(WarningLetter))).scalars().all())
        total_employees = int(
            (
                await self._session.execute(
                    select(func.count(Employee.id)).where(Employee.is_deleted.is_(False))
                )
            ).scalar_one()
        )

        d = Dashboard(
            total_violations=len(rows),
            active_investigations=sum(1 for inv, _ in rows if inv.status != CaseStatus.closed),
            total_warning_letters=len(letters),
            total_employees=total_employees,
            employees_with_recent_violations=len(
                {inv.employee_id for inv, _ in rows if inv.created_at >= now - timedelta(days=30)}
            ),
        )
        d.by_factory = _slices(Counter(emp.factory for _, emp in rows))
        d.by_department = _slices(Counter(emp.department for _, emp in rows))
        d.by_type = _slices(Counter(inv.case_type.pascal_name for inv, _ in rows))
        d.by_outcome = _slices(Counter(inv.outcome.pascal_name for inv, _ in rows if inv.outcome))

        months = _month_keys(now.date())
        per_month = Counter(f"{inv.created_at:%m/%Y}" for inv, _ in rows)
        d.monthly_trend = [
            Slice(label=m, value=per_month.get(m, 0), percentage=0.0) for m in months
        ]

        d.top_violators = self._top_violators(rows, letters)
        recent = sorted(rows, key=lambda r: r[0].created_at, reverse=True)[:10]
        d.recent_investigations = [
            RecentCase(
                id=inv.id,
                employee_name=emp.name,
                factory=emp.factory,
                case_type=inv.case_type.pascal_name,
                status=inv.status.pascal_name,
                created_at=inv.created_at,
            )
            for inv, emp in recent
        ]
        return d

    @staticmethod
    def _top_violators(
        rows: list[tuple[Investigation, Employee]],
        letters: list[WarningLetter],
        limit: int = 10,
    ) -> list[Violator]:
        employees = {emp.id: emp for _, emp in rows}
        violations = Counter(inv.employee_id for inv, _ in rows)
        letter_counts = Counter(w.employee_id for w in letters)
        written = Counter(
            w.employee_id for w in letters if w.outcome == CaseOutcome.written_warning
        )

        ranked: list[Violator] = []
        for emp_id, emp in employees.items():
            score = written[emp_id] * 3 + letter_counts[emp_id] * 1.5 + violations[emp_id]
            ranked.append(
                Violator(
                    employee_id=emp_id,
                    employee_code=emp.employee_code,
                    name=emp.name,
                    factory=emp.factory,
                    department=emp.department,
                    violations=violations[emp_id],
                    warning_letters=letter_counts[emp_id],
                    written_warnings=written[emp_id],
                    risk_score=round(score, 2),
                    risk_level=risk_level(score),
                )
            )
        ranked.sort(key=lambda v: (v.risk_score, v.violations), reverse=True)
        return ranked[:limit]


def _write_table(ws, headers: list[str], rows: list[list[object]]) -> None:
    ws.append(headers)
    header_font = Font(bold=True)
    for col in range(1, len(headers) + 1):
        cell = ws.cell(row=1, column=col)
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for r in rows:
        ws.append(["" if v is None else v for v in r])
    ws.freeze_panes = "A2"

    for col_idx in range(1, len(headers) + 1):
        letter = get_column_letter(col_idx)
        width = max((len(str(c.value)) for c in ws[letter] if c.value is not None), default=0)
        ws.column_dimensions[letter].width = min(max(10, width + 2), 55)


def dashboard_workbook(d: Dashboard) -> bytes:
    wb = Workbook()

    summary = wb.active
    summary.title = "Summary"
    _write_table(
        summary,
        ["Metric", "Value"],
        [
            ["Total Violations", d.total_violations],
            ["Active Investigations", d.active_investigations],
            ["Warning Letters", d.total_warning_letters],
            ["Total Employees", d.total_employees],
            ["Employees With Violations (30 days)", d.employees_with_recent_violations],
        ],
    )

    _write_table(
        wb.create_sheet("Violations by Factory"),
        ["Factory", "Violations", "Percentage"],
        [[s.label, s.value, s.percentage] for s in d.by_factory],
    )

    _write_table(
        wb.create_sheet("Top Violators"),
        VIOLATOR_HEADERS,
        [
            [
                v.employee_code,
                v.name,
                v.factory,
                v.department,
                v.violations,
                v.warning_letters,
                v.written_warnings,
                v.risk_score,
                v.risk_level,
            ]
            for v in d.top_violators
        ],
    )

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


# --- Module Notes -----------------------------------------------------------
# Aggregation runs in Python over the live case set (one row per case).
