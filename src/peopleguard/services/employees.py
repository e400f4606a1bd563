"""
peopleguard.services.employees

Employee record service.

Responsibilities:
- Create/update/soft-delete employee records with uniqueness on employee code.
- Per-employee case statistics and a merged case + warning timeline.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.db.models import CaseOutcome, CaseStatus, Employee, EmployeeStatus, utcnow
from peopleguard.db.repositories.employees import EmployeeRepo
from peopleguard.db.repositories.investigations import InvestigationRepo
from peopleguard.db.repositories.warning_letters import WarningLetterRepo
from peopleguard.observability.logging import get_logger
from peopleguard.services.errors import ConflictError, NotFoundError

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class EmployeeStats:
    total_cases: int
    open: int
    closed: int
    verbal_warnings: int
    written_warnings: int


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    id: uuid.UUID
    investigation_id: uuid.UUID
    kind: str
    title: str
    case_type: str
    status: str
    outcome: str | None
    date: datetime
    description: str | None


class EmployeeService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._employees = EmployeeRepo(session)
        self._cases = InvestigationRepo(session)
        self._letters = WarningLetterRepo(session)

    async def _require(self, employee_id: uuid.UUID) -> Employee:
        emp = await self._employees.get_for_update(employee_id)
        if emp is None:
            raise NotFoundError("Employee not found")
        return emp

    async def create(
        self,
        *,
        employee_code: str,
        name: str,
        department: str,
        factory: str,
        designation: str,
        status: EmployeeStatus = EmployeeStatus.active,
    ) -> Employee:
        code = employee_code.strip()
        if await self._employees.get_by_code(code, include_deleted=True) is not None:
            raise ConflictError(f"Employee ID {code} already exists")
        emp = await self._employees.create(
            employee_code=code,
            name=name.strip(),
            department=department.strip(),
            factory=factory.strip(),
            designation=designation.strip(),
            status=status,
        )
        await self._session.commit()
        log.info("employee_created", employee_id=str(emp.id))
        return emp

    async def update(
        self,
        employee_id: uuid.UUID,
        *,
        name: str,
        department: str,
        factory: str,
        designation: str,
        status: EmployeeStatus,
    ) -> Employee:
        emp = await self._require(employee_id)
        emp.name = name.strip()
        emp.department = department.strip()
        emp.factory = factory.strip()
        emp.designation = designation.strip()
        emp.status = status
        emp.updated_at = utcnow()
        await self._session.commit()
        return emp

    async def delete(self, employee_id: uuid.UUID) -> None:
        emp = await self._require(employee_id)
        emp.is_deleted = True
        emp.updated_at = utcnow()
        await self._session.commit()
        log.info("employee_deleted", employee_id=str(emp.id))

    async def stats(self, employee_id: uuid.UUID) -> EmployeeStats:
        if await self._employees.get(employee_id) is None:
            raise NotFoundError("Employee not found")
        cases = await self._cases.list_for_employee(employee_id)
        letters = await self._letters.outcome_counts_for_employee(employee_id)
        closed = sum(1 for c in cases if c.status == CaseStatus.closed)
        return EmployeeStats(
            total_cases=len(cases),
            open=len(cases) - closed,
            closed=closed,
            verbal_warnings=letters[CaseOutcome.verbal_warning],
            written_warnings=letters[CaseOutcome.written_warning],
        )

    async def history(
        self,
        employee_id: uuid.UUID,
        *,
        kind: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int,
        size: int,
    ) -> tuple[list[HistoryEntry], int]:
        if await self._employees.get(employee_id) is None:
            raise NotFoundError("Employee not found")

        kind = (kind or "").strip().lower()
        entries: list[HistoryEntry] = []
        if kind in ("", "investigation"):
            for c in await self._cases.list_for_employee(employee_id):
                entries.append(
                    HistoryEntry(
                        id=c.id,
                        investigation_id=c.id,
                        kind="Investigation",
                        title=c.title,
                        case_type=c.case_type.label,
                        status=c.status.label,
                        outcome=c.outcome.label if c.outcome else None,
                        date=c.created_at,
                        description=c.description,
                    )
                )
        if kind in ("", "warning"):
            for w in await self._letters.list_for_employee(employee_id):
                entries.append(
                    HistoryEntry(
                        id=w.id,
                        investigation_id=w.investigation_id,
                        kind="Warning",
                        title="Warning Letter",
                        case_type="Warning",
                        status="Issued",
                        outcome=w.outcome.label,
                        date=w.issued_at,
                        description=w.letter_content,
                    )
                )

        if date_from is not None:
            entries = [e for e in entries if e.date.date() >= date_from]
        if date_to is not None:
            entries = [e for e in entries if e.date.date() <= date_to]

        entries.sort(key=lambda e: e.date, reverse=True)
        start = (page - 1) * size
        return entries[start : start + size], len(entries)
