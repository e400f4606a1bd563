"""
peopleguard.api.routers.cases

Case workspace endpoints (list/detail views plus the full case workflow).

Responsibilities:
- Filtered, sorted, paginated case listing and per-case detail.
- History, remarks, attachments and letters for one case.
- Status transitions, outcomes and HTML letter generation via `CaseService`.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_204_NO_CONTENT

from peopleguard.api.deps import db_session, settings_dep, storage_dep
from peopleguard.api.pagination import Paged, clamp_paging
from peopleguard.auth.deps import get_principal, require_roles
from peopleguard.auth.models import Principal, Role
from peopleguard.db.models import (
    CaseHistory,
    CaseStatus,
    CaseType,
    Investigation,
    InvestigationAttachment,
    InvestigationRemark,
    LabeledEnum,
    WarningLetter,
)
from peopleguard.db.repositories.case_history import CaseHistoryRepo
from peopleguard.db.repositories.employees import EmployeeRepo
from peopleguard.db.repositories.investigations import CaseFilter, InvestigationRepo
from peopleguard.db.repositories.warning_letters import WarningLetterRepo
from peopleguard.services.cases import CaseService, case_ref
from peopleguard.services.errors import NotFoundError, ValidationFailedError
from peopleguard.services.storage import FileStorage
from peopleguard.settings import Settings

router = APIRouter(prefix="/api/cases", tags=["cases"], dependencies=[Depends(get_principal)])

case_editors = require_roles(Role.admin, Role.er, Role.hr)


class CaseListItem(BaseModel):
    id: uuid.UUID
    case_id: str
    employee_id: uuid.UUID
    employee_name: str
    employee_code: str
    factory: str
    department: str
    case_type: int
    case_type_name: str
    status: int
    status_name: str
    created_at: datetime
    updated_at: datetime


class CaseDetail(CaseListItem):
    designation: str
    title: str
    description: str
    outcome: int | None
    outcome_name: str | None
    closed_at: datetime | None
    remarks_count: int
    attachments_count: int
    has_warning_letter: bool
    warning_letter_id: uuid.UUID | None


class CaseStatsOut(BaseModel):
    total: int
    open: int
    under_investigation: int
    closed: int


class HistoryOut(BaseModel):
    id: uuid.UUID
    event_type: int
    event_type_name: str
    description: str
    user_name: str
    old_value: str | None
    new_value: str | None
    reference_id: uuid.UUID | None
    created_at: datetime


class RemarkOut(BaseModel):
    id: uuid.UUID
    user_id: str
    user_name: str
    remark: str
    created_at: datetime


class AttachmentOut(BaseModel):
    id: uuid.UUID
    file_name: str
    content_type: str
    file_size: int
    uploaded_at: datetime
    download_url: str


class LetterOut(BaseModel):
    id: uuid.UUID
    outcome: int
    outcome_name: str
    template: str
    issued_at: datetime
    download_url: str


class StatusUpdate(BaseModel):
    status: str | int
    outcome: str | int | None = None


class RemarkCreate(BaseModel):
    text: str = Field(max_length=1000)


class OutcomeUpdate(BaseModel):
    outcome: str | None = None
    final_note: str | None = Field(default=None, max_length=1000)


class OutcomeResult(BaseModel):
    outcome_id: int


class LetterCreate(BaseModel):
    template: str = "standard"
    html: str | None = None


class LetterResult(BaseModel):
    letter_id: uuid.UUID
    pdf_url: str


def _parse_filter(enum_cls: type[LabeledEnum], raw: str | None, name: str):
    if raw is None or not raw.strip():
        return None
    try:
        return enum_cls.parse(raw)
    except ValueError as e:
        raise ValidationFailedError(f"Invalid {name} value: {raw}") from e


def list_item(inv: Investigation) -> CaseListItem:
    emp = inv.employee
    return CaseListItem(
        id=inv.id,
        case_id=case_ref(inv),
        employee_id=emp.id,
        employee_name=emp.name,
        employee_code=emp.employee_code,
        factory=emp.factory,
        department=emp.department,
        case_type=int(inv.case_type),
        case_type_name=inv.case_type.label,
        status=int(inv.status),
        status_name=inv.status.label,
        created_at=inv.created_at,
        updated_at=inv.closed_at or inv.created_at,
    )


async def case_detail(session: AsyncSession, inv: Investigation) -> CaseDetail:
    repo = InvestigationRepo(session)
    latest = await WarningLetterRepo(session).latest_for_case(inv.id)
    return CaseDetail(
        **list_item(inv).model_dump(),
        designation=inv.employee.designation,
        title=inv.title,
        description=inv.description,
        outcome=int(inv.outcome) if inv.outcome is not None else None,
        outcome_name=inv.outcome.label if inv.outcome is not None else None,
        closed_at=inv.closed_at,
        remarks_count=await repo.count_remarks(inv.id),
        attachments_count=await repo.count_attachments(inv.id),
        has_warning_letter=latest is not None,
        warning_letter_id=latest.id if latest else None,
    )


def history_out(h: CaseHistory) -> HistoryOut:
    return HistoryOut(
        id=h.id,
        event_type=int(h.event_type),
        event_type_name=h.event_type.label,
        description=h.description,
        user_name=h.user_name or "System",
        old_value=h.old_value,
        new_value=h.new_value,
        reference_id=h.reference_id,
        created_at=h.created_at,
    )


def remark_out(r: InvestigationRemark) -> RemarkOut:
    return RemarkOut(
        id=r.id, user_id=r.user_id, user_name=r.user_name, remark=r.remark, created_at=r.created_at
    )


def attachment_out(a: InvestigationAttachment) -> AttachmentOut:
    return AttachmentOut(
        id=a.id,
        file_name=a.file_name,
        content_type=a.content_type,
        file_size=a.file_size,
        uploaded_at=a.uploaded_at,
        download_url=f"/api/cases/{a.investigation_id}/attachments/{a.id}/download",
    )


def _letter_url(letter: WarningLetter) -> str:
    return f"/api/cases/{letter.investigation_id}/letters/{letter.id}/download"


async def _require_case(session: AsyncSession, case_id: uuid.UUID) -> Investigation:
    inv = await InvestigationRepo(session).get(case_id)
    if inv is None:
        raise NotFoundError("Case not found")
    return inv


@router.get("", response_model=Paged[CaseListItem])
async def list_cases(
    employee_id: str | None = None,
    factory: str | None = None,
    type: str | None = None,
    status: str | None = None,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    page: int = 1,
    size: int = 20,
    sort_by: str | None = None,
    sort_desc: bool = False,
    session: AsyncSession = Depends(db_session),
) -> Paged[CaseListItem]:
    page, size = clamp_paging(page, size)
    f = CaseFilter(
        employee=employee_id,
        factory=factory,
        case_type=_parse_filter(CaseType, type, "type"),
        status=_parse_filter(CaseStatus, status, "status"),
        date_from=date_from,
        date_to=date_to,
    )
    rows, total = await InvestigationRepo(session).page(
        f, page=page, size=size, sort_by=sort_by, sort_desc=sort_desc
    )
    return Paged[CaseListItem].create(
        data=[list_item(inv) for inv in rows], page=page, size=size, total=total
    )


@router.get("/factories", response_model=list[str])
async def list_factories(session: AsyncSession = Depends(db_session)) -> list[str]:
    return await EmployeeRepo(session).distinct_factories()


@router.get("/stats", response_model=CaseStatsOut)
async def case_stats(session: AsyncSession = Depends(db_session)) -> CaseStatsOut:
    counts = await InvestigationRepo(session).status_counts()
    return CaseStatsOut(
        total=sum(counts.values()),
        open=counts[CaseStatus.open],
        under_investigation=counts[CaseStatus.under_investigation],
        closed=counts[CaseStatus.closed],
    )


@router.get("/{case_id}", response_model=CaseDetail)
async def get_case(case_id: uuid.UUID, session: AsyncSession = Depends(db_session)) -> CaseDetail:
    return await case_detail(session, await _require_case(session, case_id))


@router.get("/{case_id}/history", response_model=list[HistoryOut])
async def case_history(
    case_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> list[HistoryOut]:
    await _require_case(session, case_id)
    return [history_out(h) for h in await CaseHistoryRepo(session).list_for_case(case_id)]


@router.get("/{case_id}/remarks", response_model=list[RemarkOut])
async def case_remarks(
    case_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> list[RemarkOut]:
    await _require_case(session, case_id)
    return [remark_out(r) for r in await InvestigationRepo(session).list_remarks(case_id)]


@router.get("/{case_id}/attachments", response_model=list[AttachmentOut])
async def case_attachments(
    case_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> list[AttachmentOut]:
    await _require_case(session, case_id)
    return [
        attachment_out(a) for a in await InvestigationRepo(session).list_attachments(case_id)
    ]


@router.get("/{case_id}/attachments/{attachment_id}/download")
async def download_attachment(
    case_id: uuid.UUID,
    attachment_id: uuid.UUID,
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
) -> FileResponse:
    attachment = await InvestigationRepo(session).get_attachment(case_id, attachment_id)
    if attachment is None:
        raise NotFoundError("Attachment not found")
    if not storage.exists(attachment.file_path):
        raise NotFoundError("File not found on disk")
    return FileResponse(
        storage.path(attachment.file_path),
        media_type=attachment.content_type,
        filename=attachment.file_name,
    )


@router.patch("/{case_id}/status", response_model=CaseDetail)
async def update_status(
    case_id: uuid.UUID,
    body: StatusUpdate,
    principal: Principal = Depends(case_editors),
    session: AsyncSession = Depends(db_session),
) -> CaseDetail:
    inv = await CaseService(session=session).change_status(
        case_id, status=body.status, outcome=body.outcome, actor=principal
    )
    return await case_detail(session, inv)


@router.post("/{case_id}/remarks", response_model=RemarkOut)
async def add_remark(
    case_id: uuid.UUID,
    body: RemarkCreate,
    principal: Principal = Depends(case_editors),
    session: AsyncSession = Depends(db_session),
) -> RemarkOut:
    remark = await CaseService(session=session).add_remark(
        case_id, text=body.text, actor=principal
    )
    return remark_out(remark)


@router.post("/{case_id}/attachments", response_model=AttachmentOut)
async def upload_attachment(
    case_id: uuid.UUID,
    file: UploadFile = File(...),
    principal: Principal = Depends(case_editors),
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
    settings: Settings = Depends(settings_dep),
) -> AttachmentOut:
    data = await file.read()
    attachment = await CaseService(session=session, storage=storage).add_attachment(
        case_id,
        file_name=file.filename or "",
        data=data,
        content_type=file.content_type,
        max_bytes=settings.max_upload_bytes,
        actor=principal,
    )
    return attachment_out(attachment)


@router.delete("/{case_id}/attachments/{attachment_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_attachment(
    case_id: uuid.UUID,
    attachment_id: uuid.UUID,
    principal: Principal = Depends(case_editors),
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
) -> Response:
    await CaseService(session=session, storage=storage).remove_attachment(
        case_id, attachment_id, actor=principal
    )
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.post("/{case_id}/outcome", response_model=OutcomeResult)
async def set_outcome(
    case_id: uuid.UUID,
    body: OutcomeUpdate,
    principal: Principal = Depends(case_editors),
    session: AsyncSession = Depends(db_session),
) -> OutcomeResult:
    outcome = await CaseService(session=session).set_outcome(
        case_id, outcome=body.outcome, final_note=body.final_note, actor=principal
    )
    return OutcomeResult(outcome_id=int(outcome))


@router.post("/{case_id}/letters", response_model=LetterResult)
async def generate_letter(
    case_id: uuid.UUID,
    body: LetterCreate,
    principal: Principal = Depends(case_editors),
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
) -> LetterResult:
    letter = await CaseService(session=session, storage=storage).generate_letter(
        case_id, template=body.template, html=body.html, actor=principal
    )
    return LetterResult(letter_id=letter.id, pdf_url=_letter_url(letter))


@router.get("/{case_id}/letters", response_model=list[LetterOut])
async def case_letters(
    case_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> list[LetterOut]:
    await _require_case(session, case_id)
    return [
        LetterOut(
            id=w.id,
            outcome=int(w.outcome),
            outcome_name=w.outcome.label,
            template=w.template,
            issued_at=w.issued_at,
            download_url=_letter_url(w),
        )
        for w in await WarningLetterRepo(session).list_for_case(case_id)
    ]


@router.get("/{case_id}/letters/{letter_id}/download")
async def download_letter(
    case_id: uuid.UUID,
    letter_id: uuid.UUID,
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
) -> FileResponse:
    letter = await WarningLetterRepo(session).get(letter_id)
    if letter is None or letter.investigation_id != case_id:
        raise NotFoundError("Letter not found")
    if not storage.exists(letter.pdf_path):
        raise NotFoundError("File not found on disk")
    media_type = "application/pdf" if letter.pdf_path.endswith(".pdf") else "text/html"
    return FileResponse(
        storage.path(letter.pdf_path),
        media_type=media_type,
        filename=letter.pdf_path.rsplit("/", 1)[-1],
    )
