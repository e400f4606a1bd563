"""
peopleguard.api.routers.leaves

Leave request endpoints.

Responsibilities:
- Create and submit leave requests (Admin).
- List/read leave requests (Admin, ER, Management).
- Review decisions (ER).
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, BeforeValidator, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from peopleguard.api.deps import db_session
from peopleguard.api.pagination import Paged, clamp_paging
from peopleguard.auth.deps import get_principal, require_roles
from peopleguard.auth.models import Principal, Role
from peopleguard.db.models import LeaveRequest, LeaveStatus, LeaveType
from peopleguard.db.repositories.leaves import LeaveFilter, LeaveRepo
from peopleguard.services.errors import NotFoundError, ValidationFailedError
from peopleguard.services.leaves import AttachmentRef, LeaveService

router = APIRouter(prefix="/api/leaves", tags=["leaves"], dependencies=[Depends(get_principal)])

leave_readers = require_roles(Role.admin, Role.er, Role.management)

LeaveTypeField = Annotated[LeaveType, BeforeValidator(LeaveType.parse)]


class LeaveAttachmentIn(BaseModel):
    file_id: str = Field(min_length=1, max_length=128)
    file_name: str = Field(min_length=1, max_length=255)
    size_bytes: int = 0
    url: str = Field(min_length=1, max_length=512)


class LeaveCreate(BaseModel):
    employee_id: str = Field(max_length=100)
    employee_name: str = Field(max_length=200)
    type: LeaveTypeField
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=2000)
    attachments: list[LeaveAttachmentIn] = Field(default_factory=list)
    submit: bool = True


class LeaveReview(BaseModel):
    decision: str
    remark: str | None = Field(default=None, max_length=2000)


class LeaveAttachmentOut(BaseModel):
    id: uuid.UUID
    file_id: str
    file_name: str
    size_bytes: int
    url: str
    uploaded_at: datetime


class LeaveOut(BaseModel):
    id: uuid.UUID
    employee_id: str
    employee_name: str
    type: int
    type_name: str
    status: int
    status_name: str
    start_date: date
    end_date: date
    reason: str | None
    created_at: datetime
    created_by: str
    created_by_name: str | None
    reviewed_at: datetime | None
    reviewed_by: str | None
    reviewed_by_name: str | None
    review_remark: str | None
    attachments: list[LeaveAttachmentOut]

    @classmethod
    def of(cls, leave: LeaveRequest) -> LeaveOut:
        return cls(
            id=leave.id,
            employee_id=leave.employee_code,
            employee_name=leave.employee_name,
            type=int(leave.type),
            type_name=leave.type.label,
            status=int(leave.status),
            status_name=leave.status.label,
            start_date=leave.start_date,
            end_date=leave.end_date,
            reason=leave.reason,
            created_at=leave.created_at,
            created_by=leave.created_by,
            created_by_name=leave.created_by_name,
            reviewed_at=leave.reviewed_at,
            reviewed_by=leave.reviewed_by,
            reviewed_by_name=leave.reviewed_by_name,
            review_remark=leave.review_remark,
            attachments=[
                LeaveAttachmentOut(
                    id=a.id,
                    file_id=a.file_id,
                    file_name=a.file_name,
                    size_bytes=a.size_bytes,
                    url=a.url,
                    uploaded_at=a.uploaded_at,
                )
                for a in leave.attachments
            ],
        )


def _parse(enum_cls, raw: str | None, name: str):
    if raw is None or not raw.strip():
        return None
    try:
        return enum_cls.parse(raw)
    except ValueError as e:
        raise ValidationFailedError(f"Invalid {name} value: {raw}") from e


@router.post("", response_model=LeaveOut, status_code=HTTP_201_CREATED)
async def create_leave(
    body: LeaveCreate,
    principal: Principal = Depends(require_roles(Role.admin)),
    session: AsyncSession = Depends(db_session),
) -> LeaveOut:
    leave = await LeaveService(session=session).create(
        employee_code=body.employee_id,
        employee_name=body.employee_name,
        leave_type=body.type,
        start_date=body.start_date,
        end_date=body.end_date,
        reason=body.reason,
        attachments=[
            AttachmentRef(
                file_id=a.file_id, file_name=a.file_name, size_bytes=a.size_bytes, url=a.url
            )
            for a in body.attachments
        ],
        submit=body.submit,
        actor=principal,
    )
    return LeaveOut.of(leave)


@router.get("", response_model=Paged[LeaveOut], dependencies=[Depends(leave_readers)])
async def list_leaves(
    employee_id: str | None = None,
    type: str | None = None,
    status: str | None = None,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    page: int = 1,
    size: int = 20,
    session: AsyncSession = Depends(db_session),
) -> Paged[LeaveOut]:
    page, size = clamp_paging(page, size)
    f = LeaveFilter(
        employee=employee_id,
        type=_parse(LeaveType, type, "type"),
        status=_parse(LeaveStatus, status, "status"),
        date_from=date_from,
        date_to=date_to,
    )
    rows, total = await LeaveRepo(session).page(f, page=page, size=size)
    return Paged[LeaveOut].create(
        data=[LeaveOut.of(r) for r in rows], page=page, size=size, total=total
    )


@router.get("/{leave_id}", response_model=LeaveOut, dependencies=[Depends(leave_readers)])
async def get_leave(leave_id: uuid.UUID, session: AsyncSession = Depends(db_session)) -> LeaveOut:
    leave = await LeaveRepo(session).get(leave_id)
    if leave is None:
        raise NotFoundError("Leave request not found")
    return LeaveOut.of(leave)


@router.post("/{leave_id}/submit", response_model=LeaveOut)
async def submit_leave(
    leave_id: uuid.UUID,
    principal: Principal = Depends(require_roles(Role.admin)),
    session: AsyncSession = Depends(db_session),
) -> LeaveOut:
    return LeaveOut.of(await LeaveService(session=session).submit(leave_id, actor=principal))


@router.patch("/{leave_id}/review", response_model=LeaveOut)
async def review_leave(
    leave_id: uuid.UUID,
    body: LeaveReview,
    principal: Principal = Depends(require_roles(Role.er)),
    session: AsyncSession = Depends(db_session),
) -> LeaveOut:
    leave = await LeaveService(session=session).review(
        leave_id, decision=body.decision, remark=body.remark, actor=principal
    )
    return LeaveOut.of(leave)
