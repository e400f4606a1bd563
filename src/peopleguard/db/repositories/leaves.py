"""
peopleguard.db.repositories.leaves

Repository for `LeaveRequest` entities (attachments load eagerly).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date

from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.db.models import LeaveAttachment, LeaveRequest, LeaveStatus, LeaveType


@dataclass(frozen=True, slots=True)
class LeaveFilter:
    employee: str | None = None
    type: LeaveType | None = None
    status: LeaveStatus | None = None
    date_from: date | None = None
    date_to: date | None = None


class LeaveRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        employee_code: str,
        employee_name: str,
        type: LeaveType,
        status: LeaveStatus,
        start_date: date,
        end_date: date,
        reason: str | None,
        created_by: str,
        created_by_name: str | None,
        attachments: list[LeaveAttachment],
    ) -> LeaveRequest:
        leave = LeaveRequest(
            employee_code=employee_code,
            employee_name=employee_name,
            type=type,
            status=status,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            created_by=created_by,
            created_by_name=created_by_name,
            attachments=attachments,
        )
        self._session.add(leave)
        await self._session.flush()
        return leave

    async def get(self, leave_id: uuid.UUID) -> LeaveRequest | None:
        return await self._session.get(LeaveRequest, leave_id)

    async def get_for_update(self, leave_id: uuid.UUID) -> LeaveRequest | None:
        return await self._session.get(LeaveRequest, leave_id, with_for_update=True)

    async def page(
        self, f: LeaveFilter, *, page: int, size: int
    ) -> tuple[list[LeaveRequest], int]:
        stmt = select(LeaveRequest)
        if f.employee and f.employee.strip():
            needle = f"%{f.employee.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(LeaveRequest.employee_code).like(needle),
                    func.lower(LeaveRequest.employee_name).like(needle),
                )
            )
        if f.type is not None:
            stmt = stmt.where(LeaveRequest.type == f.type)
        if f.status is not None:
            stmt = stmt.where(LeaveRequest.status == f.status)
        if f.date_from is not None:
            stmt = stmt.where(LeaveRequest.start_date >= f.date_from)
        if f.date_to is not None:
            stmt = stmt.where(LeaveRequest.end_date <= f.date_to)

        total = int(
            (await self._session.execute(select(func.count()).select_from(stmt.subquery())))
            .scalar_one()
        )
        stmt = stmt.order_by(desc(LeaveRequest.created_at)).offset((page - 1) * size).limit(size)
        return list((await self._session.execute(stmt)).scalars().all()), total
