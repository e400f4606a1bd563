"""
peopleguard.api.routers.investigations

Service-backed investigation CRUD.

Responsibilities:
- Create/update investigations and move them through the status table.
- Remarks and attachment listing.

Shares `CaseService` with `/api/cases`, so the closed-case guards are identical.
"""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, BeforeValidator, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from peopleguard.api.deps import db_session
from peopleguard.api.routers.cases import (
    AttachmentOut,
    CaseDetail,
    CaseListItem,
    RemarkOut,
    attachment_out,
    case_detail,
    list_item,
    remark_out,
)
from peopleguard.auth.deps import get_principal, require_roles
from peopleguard.auth.models import Principal, Role
from peopleguard.db.models import CaseStatus, CaseType
from peopleguard.db.repositories.investigations import InvestigationRepo
from peopleguard.services.cases import CaseService
from peopleguard.services.errors import NotFoundError, ValidationFailedError

router = APIRouter(
    prefix="/api/investigations",
    tags=["investigations"],
    dependencies=[Depends(get_principal)],
)

CaseTypeField = Annotated[CaseType, BeforeValidator(CaseType.parse)]


class InvestigationCreate(BaseModel):
    employee_id: uuid.UUID
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=10, max_length=2000)
    case_type: CaseTypeField = CaseType.violation


class InvestigationUpdate(BaseModel):
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=10, max_length=2000)


class InvestigationStatusUpdate(BaseModel):
    status: str | int
    outcome: str | int | None = None


class InvestigationRemarkCreate(BaseModel):
    remark: str = Field(min_length=5, max_length=1000)


async def _require(session: AsyncSession, investigation_id: uuid.UUID):
    inv = await InvestigationRepo(session).get(investigation_id)
    if inv is None:
        raise NotFoundError("Investigation not found")
    return inv


@router.get("", response_model=list[CaseListItem])
async def list_investigations(session: AsyncSession = Depends(db_session)) -> list[CaseListItem]:
    return [list_item(inv) for inv in await InvestigationRepo(session).list_all()]


@router.get("/by-employee/{employee_id}", response_model=list[CaseListItem])
async def by_employee(
    employee_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> list[CaseListItem]:
    rows = await InvestigationRepo(session).list_for_employee(employee_id)
    return [list_item(inv) for inv in rows]


@router.get("/by-status/{status}", response_model=list[CaseListItem])
async def by_status(status: str, session: AsyncSession = Depends(db_session)) -> list[CaseListItem]:
    try:
        parsed = CaseStatus.parse(status)
    except ValueError as e:
        raise ValidationFailedError(f"Invalid status value: {status}") from e
    return [list_item(inv) for inv in await InvestigationRepo(session).list_by_status(parsed)]


@router.get("/{investigation_id}", response_model=CaseDetail)
async def get_investigation(
    investigation_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> CaseDetail:
    return await case_detail(session, await _require(session, investigation_id))


@router.post("", response_model=CaseDetail, status_code=HTTP_201_CREATED)
async def create_investigation(
    body: InvestigationCreate,
    principal: Principal = Depends(require_roles(Role.admin, Role.er, Role.hr)),
    session: AsyncSession = Depends(db_session),
) -> CaseDetail:
    inv = await CaseService(session=session).create(
        employee_id=body.employee_id,
        title=body.title,
        description=body.description,
        case_type=body.case_type,
        actor=principal,
    )
    return await case_detail(session, inv)


@router.put(
    "/{investigation_id}",
    response_model=CaseDetail,
    dependencies=[Depends(require_roles(Role.admin, Role.er, Role.hr))],
)
async def update_investigation(
    investigation_id: uuid.UUID,
    body: InvestigationUpdate,
    session: AsyncSession = Depends(db_session),
) -> CaseDetail:
    inv = await CaseService(session=session).update_details(
        investigation_id, title=body.title, description=body.description
    )
    return await case_detail(session, inv)


@router.put("/{investigation_id}/status", response_model=CaseDetail)
async def change_status(
    investigation_id: uuid.UUID,
    body: InvestigationStatusUpdate,
    principal: Principal = Depends(require_roles(Role.admin, Role.er)),
    session: AsyncSession = Depends(db_session),
) -> CaseDetail:
    inv = await CaseService(session=session).change_status(
        investigation_id, status=body.status, outcome=body.outcome, actor=principal
    )
    return await case_detail(session, inv)


@router.post("/{investigation_id}/remarks", response_model=RemarkOut)
async def add_remark(
    investigation_id: uuid.UUID,
    body: InvestigationRemarkCreate,
    principal: Principal = Depends(require_roles(Role.admin, Role.er, Role.hr)),
    session: AsyncSession = Depends(db_session),
) -> RemarkOut:
    remark = await CaseService(session=session).add_remark(
        investigation_id, text=body.remark, actor=principal
    )
    return remark_out(remark)


@router.get("/{investigation_id}/remarks", response_model=list[RemarkOut])
async def list_remarks(
    investigation_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> list[RemarkOut]:
    await _require(session, investigation_id)
    return [remark_out(r) for r in await InvestigationRepo(session).list_remarks(investigation_id)]


@router.get("/{investigation_id}/attachments", response_model=list[AttachmentOut])
async def list_attachments(
    investigation_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> list[AttachmentOut]:
    await _require(session, investigation_id)
    rows = await InvestigationRepo(session).list_attachments(investigation_id)
    return [attachment_out(a) for a in rows]
