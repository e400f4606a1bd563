"""
peopleguard.db.repositories.investigations

Repository for `Investigation` entities and their remarks/attachments.

Responsibilities:
- Filtered, sorted, paginated case listing (joined with live employees).
- Status/outcome counters used by dashboards and employee stats.
- Append/list remarks and attachments.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy import case, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from peopleguard.db.models import (
    CaseStatus,
    CaseType,
    Employee,
    Investigation,
    InvestigationAttachment,
    InvestigationRemark,
)


@dataclass(frozen=True, slots=True)
class CaseFilter:
    employee: str | None = None
    factory: str | None = None
    case_type: CaseType | None = None
    status: CaseStatus | None = None
    date_from: date | None = None
    date_to: date | None = None


def _enum_order(column, enum_cls):
    # Enums are stored by name; order by their integer value instead of alphabetically.
    return case({member: int(member) for member in enum_cls}, value=column)


_SORT_COLUMNS = {
    "caseid": lambda: Investigation.id,
    "employee": lambda: Employee.name,
    "factory": lambda: Employee.factory,
    "type": lambda: _enum_order(Investigation.case_type, CaseType),
    "status": lambda: _enum_order(Investigation.status, CaseStatus),
    "updated": lambda: func.coalesce(Investigation.closed_at, Investigation.created_at),
}


class InvestigationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, investigation_id: uuid.UUID) -> Investigation | None:
        inv = await self._session.get(Investigation, investigation_id)
        if inv is None or inv.is_deleted:
            return None
        return inv

    async def get_for_update(self, investigation_id: uuid.UUID) -> Investigation | None:
        inv = await self._session.get(Investigation, investigation_id, with_for_update=True)
        if inv is None or inv.is_deleted:
            return None
        return inv

    async def create(
        self,
        *,
        employee: Employee,
        title: str,
        description: str,
        case_type: CaseType,
    ) -> Investigation:
        inv = Investigation(
            employee=employee,
            title=title,
            description=description,
            case_type=case_type,
            status=CaseStatus.open,
        )
        self._session.add(inv)
        await self._session.flush()
        return inv

    async def list_all(self) -> list[Investigation]:
        stmt = (
            select(Investigation)
            .where(Investigation.is_deleted.is_(False))
            .order_by(desc(Investigation.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_for_employee(self, employee_id: uuid.UUID) -> list[Investigation]:
        stmt = (
            select(Investigation)
            .where(Investigation.employee_id == employee_id, Investigation.is_deleted.is_(False))
            .order_by(desc(Investigation.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_by_status(self, status: CaseStatus) -> list[Investigation]:
        stmt = (
            select(Investigation)
            .where(Investigation.status == status, Investigation.is_deleted.is_(False))
            .order_by(desc(Investigation.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    def _filtered(self, f: CaseFilter):
        stmt = (
            select(Investigation)
            .join(Employee, Investigation.employee_id == Employee.id)
            .where(Investigation.is_deleted.is_(False), Employee.is_deleted.is_(False))
        )
        if f.employee and f.employee.strip():
            needle = f"%{f.employee.strip()}%"
            stmt = stmt.where(
                or_(Employee.employee_code.ilike(needle), Employee.name.ilike(needle))
            )
        if f.factory and f.factory.strip():
            stmt = stmt.where(Employee.factory == f.factory.strip())
        if f.case_type is not None:
            stmt = stmt.where(Investigation.case_type == f.case_type)
        if f.status is not None:
            stmt = stmt.where(Investigation.status == f.status)
        if f.date_from is not None:
            stmt = stmt.where(Investigation.created_at >= datetime.combine(f.date_from, time.min))
        if f.date_to is not None:
            # `to` covers the whole calendar day.
            end = datetime.combine(f.date_to, time.min) + timedelta(days=1)
            stmt = stmt.where(Investigation.created_at < end)
        return stmt

    async def page(
        self,
        f: CaseFilter,
        *,
        page: int,
        size: int,
        sort_by: str | None = None,
        sort_desc: bool = False,
    ) -> tuple[list[Investigation], int]:
        base = self._filtered(f)
        total = int(
            (await self._session.execute(select(func.count()).select_from(base.subquery())))
            .scalar_one()
        )

        sort_key = _SORT_COLUMNS.get((sort_by or "").strip().lower())
        if sort_key is None:
            order = [desc(Investigation.created_at), Investigation.id]
        else:
            col = sort_key()
            order = [desc(col) if sort_desc else col, desc(Investigation.created_at)]

        stmt = (
            base.options(contains_eager(Investigation.employee))
            .order_by(*order)
            .offset((page - 1) * size)
            .limit(size)
        )
        rows = list((await self._session.execute(stmt)).scalars().unique().all())
        return rows, total

    async def status_counts(self) -> dict[CaseStatus, int]:
        stmt = (
            select(Investigation.status, func.count(Investigation.id))
            .join(Employee, Investigation.employee_id == Employee.id)
            .where(Investigation.is_deleted.is_(False), Employee.is_deleted.is_(False))
            .group_by(Investigation.status)
        )
        counts = {s: 0 for s in CaseStatus}
        for status, n in (await self._session.execute(stmt)).all():
            counts[status] = int(n)
        return counts

    # Remarks

    async def add_remark(
        self, *, investigation_id: uuid.UUID, user_id: str, user_name: str, remark: str
    ) -> InvestigationRemark:
        r = InvestigationRemark(
            investigation_id=investigation_id, user_id=user_id, user_name=user_name, remark=remark
        )
        self._session.add(r)
        await self._session.flush()
        return r

    async def list_remarks(self, investigation_id: uuid.UUID) -> list[InvestigationRemark]:
        stmt = (
            select(InvestigationRemark)
            .where(InvestigationRemark.investigation_id == investigation_id)
            .order_by(desc(InvestigationRemark.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_remarks(self, investigation_id: uuid.UUID) -> int:
        stmt = select(func.count(InvestigationRemark.id)).where(
            InvestigationRemark.investigation_id == investigation_id
        )
        return int((await self._session.execute(stmt)).scalar_one())

    # Attachments

    async def add_attachment(
        self,
        *,
        investigation_id: uuid.UUID,
        file_name: str,
        file_path: str,
        content_type: str,
        file_size: int,
    ) -> InvestigationAttachment:
        a = InvestigationAttachment(
            investigation_id=investigation_id,
            file_name=file_name,
            file_path=file_path,
            content_type=content_type,
            file_size=file_size,
        )
        self._session.add(a)
        await self._session.flush()
        return a

    async def get_attachment(
        self, investigation_id: uuid.UUID, attachment_id: uuid.UUID
    ) -> InvestigationAttachment | None:
        a = await self._session.get(InvestigationAttachment, attachment_id)
        if a is None or a.investigation_id != investigation_id:
            return None
        return a

    async def list_attachments(self, investigation_id: uuid.UUID) -> list[InvestigationAttachment]:
        stmt = (
            select(InvestigationAttachment)
            .where(InvestigationAttachment.investigation_id == investigation_id)
            .order_by(desc(InvestigationAttachment.uploaded_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def count_attachments(self, investigation_id: uuid.UUID) -> int:
        stmt = select(func.count(InvestigationAttachment.id)).where(
            InvestigationAttachment.investigation_id == investigation_id
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def delete_attachment(self, attachment: InvestigationAttachment) -> None:
        await self._session.delete(attachment)
        await self._session.flush()


# --- Module Notes -----------------------------------------------------------
# `page` counts over the same filtered statement it pages, so `total` always equals
# the number of rows reachable by walking every page.
