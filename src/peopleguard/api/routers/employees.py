"""
peopleguard.api.routers.employees

Employee record endpoints.

Responsibilities:
- Lookup, list and search employees (soft-deleted rows are invisible).
- Create/update (Admin, ER, HR) and soft-delete (Admin, HR).
- Per-employee case statistics and merged case/warning history.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, BeforeValidator, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT

from peopleguard.api.deps import db_session
from peopleguard.api.pagination import Paged, clamp_paging
from peopleguard.auth.deps import get_principal, require_roles
from peopleguard.auth.models import Role
from peopleguard.db.models import Employee, EmployeeStatus
from peopleguard.db.repositories.employees import EmployeeRepo
from peopleguard.services.employees import EmployeeService
from peopleguard.services.errors import NotFoundError

router = APIRouter(
    prefix="/api/employees", tags=["employees"], dependencies=[Depends(get_principal)]
)

StatusField = Annotated[EmployeeStatus, BeforeValidator(EmployeeStatus.parse)]


class EmployeeCreate(BaseModel):
    employee_code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=2, max_length=200)
    department: str = Field(min_length=1, max_length=100)
    factory: str = Field(min_length=1, max_length=100)
    designation: str = Field(min_length=1, max_length=100)
    status: StatusField = EmployeeStatus.active


class EmployeeUpdate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    department: str = Field(min_length=1, max_length=100)
    factory: str = Field(min_length=1, max_length=100)
    designation: str = Field(min_length=1, max_length=100)
    status: StatusField = EmployeeStatus.active


class EmployeeOut(BaseModel):
    id: uuid.UUID
    employee_code: str
    name: str
    department: str
    factory: str
    designation: str
    status: str
    created_at: datetime
    updated_at: datetime | None

    @classmethod
    def of(cls, e: Employee) -> EmployeeOut:
        return cls(
            id=e.id,
            employee_code=e.employee_code,
            name=e.name,
            department=e.department,
            factory=e.factory,
            designation=e.designation,
            status=e.status.label,
            created_at=e.created_at,
            updated_at=e.updated_at,
        )


class EmployeeStatsOut(BaseModel):
    total_cases: int
    open: int
    closed: int
    verbal_warnings: int
    written_warnings: int


class HistoryItemOut(BaseModel):
    id: uuid.UUID
    investigation_id: uuid.UUID
    kind: str
    title: str
    case_type: str
    status: str
    outcome: str | None
    date: datetime
    description: str | None


@router.get("", response_model=list[EmployeeOut])
async def list_employees(
    query: str | None = None, session: AsyncSession = Depends(db_session)
) -> list[EmployeeOut]:
    return [EmployeeOut.of(e) for e in await EmployeeRepo(session).list_active(query=query)]


@router.get("/search", response_model=list[EmployeeOut])
async def search_employees(
    name: str | None = None,
    department: str | None = None,
    factory: str | None = None,
    session: AsyncSession = Depends(db_session),
) -> list[EmployeeOut]:
    rows = await EmployeeRepo(session).search(name=name, department=department, factory=factory)
    return [EmployeeOut.of(e) for e in rows]


@router.get("/by-employee-id/{employee_code}", response_model=EmployeeOut)
async def get_by_code(
    employee_code: str, session: AsyncSession = Depends(db_session)
) -> EmployeeOut:
    emp = await EmployeeRepo(session).get_by_code(employee_code)
    if emp is None:
        raise NotFoundError("Employee not found")
    return EmployeeOut.of(emp)


@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee(
    employee_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> EmployeeOut:
    emp = await EmployeeRepo(session).get(employee_id)
    if emp is None:
        raise NotFoundError("Employee not found")
    return EmployeeOut.of(emp)


@router.post(
    "",
    response_model=EmployeeOut,
    status_code=HTTP_201_CREATED,
    dependencies=[Depends(require_roles(Role.admin, Role.er, Role.hr))],
)
async def create_employee(
    body: EmployeeCreate, session: AsyncSession = Depends(db_session)
) -> EmployeeOut:
    emp = await EmployeeService(session=session).create(
        employee_code=body.employee_code,
        name=body.name,
        department=body.department,
        factory=body.factory,
        designation=body.designation,
        status=body.status,
    )
    return EmployeeOut.of(emp)


@router.put(
    "/{employee_id}",
    response_model=EmployeeOut,
    dependencies=[Depends(require_roles(Role.admin, Role.er, Role.hr))],
)
async def update_employee(
    employee_id: uuid.UUID, body: EmployeeUpdate, session: AsyncSession = Depends(db_session)
) -> EmployeeOut:
    emp = await EmployeeService(session=session).update(
        employee_id,
        name=body.name,
        department=body.department,
        factory=body.factory,
        designation=body.designation,
        status=body.status,
    )
    return EmployeeOut.of(emp)


@router.delete(
    "/{employee_id}",
    status_code=HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles(Role.admin, Role.hr))],
)
async def delete_employee(
    employee_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> Response:
    await EmployeeService(session=session).delete(employee_id)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.get("/{employee_id}/stats", response_model=EmployeeStatsOut)
async def employee_stats(
    employee_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> EmployeeStatsOut:
    s = await EmployeeService(session=session).stats(employee_id)
    return EmployeeStatsOut(
        total_cases=s.total_cases,
        open=s.open,
        closed=s.closed,
        verbal_warnings=s.verbal_warnings,
        written_warnings=s.written_warnings,
    )


@router.get("/{employee_id}/history", response_model=Paged[HistoryItemOut])
async def employee_history(
    employee_id: uuid.UUID,
    type: str | None = None,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    page: int = 1,
    size: int = 20,
    session: AsyncSession = Depends(db_session),
) -> Paged[HistoryItemOut]:
    page, size = clamp_paging(page, size)
    entries, total = await EmployeeService(session=session).history(
        employee_id, kind=type, date_from=date_from, date_to=date_to, page=page, size=size
    )
    return Paged[HistoryItemOut].create(
        data=[
            HistoryItemOut(
                id=e.id,
                investigation_id=e.investigation_id,
                kind=e.kind,
                title=e.title,
                case_type=e.case_type,
                status=e.status,
                outcome=e.outcome,
                date=e.date,
                description=e.description,
            )
            for e in entries
        ],
        page=page,
        size=size,
        total=total,
    )
