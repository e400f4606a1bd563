"""
peopleguard.db.repositories.employees

Repository for `Employee` entities.

Responsibilities:
- Lookups that hide soft-deleted rows by default.
- Substring list/search filters used by the employee picker and case filters.
"""

from __future__ import annotations

import uuid

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.db.models import Employee, EmployeeStatus


def _contains(column, value: str):
    return column.ilike(f"%{value.strip()}%")


class EmployeeRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, employee_id: uuid.UUID, *, include_deleted: bool = False
    ) -> Employee | None:
        emp = await self._session.get(Employee, employee_id)
        if emp is None or (emp.is_deleted and not include_deleted):
            return None
        return emp

    async def get_for_update(self, employee_id: uuid.UUID) -> Employee | None:
        emp = await self._session.get(Employee, employee_id, with_for_update=True)
        if emp is None or emp.is_deleted:
            return None
        return emp

    async def get_by_code(
        self, employee_code: str, *, include_deleted: bool = False
    ) -> Employee | None:
        stmt = select(Employee).where(Employee.employee_code == employee_code)
        if not include_deleted:
            stmt = stmt.where(Employee.is_deleted.is_(False))
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_active(self, *, query: str | None = None) -> list[Employee]:
        stmt = select(Employee).where(Employee.is_deleted.is_(False))
        if query and query.strip():
            stmt = stmt.where(
                or_(_contains(Employee.employee_code, query), _contains(Employee.name, query))
            )
        stmt = stmt.order_by(Employee.name)
        return list((await self._session.execute(stmt)).scalars().all())

    async def search(
        self,
        *,
        name: str | None = None,
        department: str | None = None,
        factory: str | None = None,
    ) -> list[Employee]:
        stmt = select(Employee).where(Employee.is_deleted.is_(False))
        if name and name.strip():
            stmt = stmt.where(_contains(Employee.name, name))
        if department and department.strip():
            stmt = stmt.where(_contains(Employee.department, department))
        if factory and factory.strip():
            stmt = stmt.where(_contains(Employee.factory, factory))
        stmt = stmt.order_by(Employee.name)
        return list((await self._session.execute(stmt)).scalars().all())

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
        emp = Employee(
            employee_code=employee_code,
            name=name,
            department=department,
            factory=factory,
            designation=designation,
            status=status,
        )
        self._session.add(emp)
        await self._session.flush()
        return emp

    async def distinct_factories(self) -> list[str]:
        stmt = (
            select(Employee.factory)
            .where(Employee.is_deleted.is_(False))
            .distinct()
            .order_by(Employee.factory)
        )
        return [f for f in (await self._session.execute(stmt)).scalars().all() if f]
