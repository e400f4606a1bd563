"""
peopleguard.api.routers.qr

QR complaint intake.

Responsibilities:
- Token generation, listing, lookup, images and deactivation (Admin, ER, HR).
- Public submission endpoint that opens a Complaint case.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_401_UNAUTHORIZED

from peopleguard.api.deps import db_session, settings_dep, storage_dep
from peopleguard.api.pagination import Paged, clamp_paging
from peopleguard.auth.deps import require_roles
from peopleguard.auth.models import Principal, Role
from peopleguard.db.models import QrSubmission, QrToken
from peopleguard.db.repositories.qr import QrRepo
from peopleguard.services.errors import NotFoundError
from peopleguard.services.qr import SUBMISSION_ACK, QrService
from peopleguard.services.storage import FileStorage
from peopleguard.settings import Settings

router = APIRouter(prefix="/api/qr", tags=["qr"])

qr_managers = require_roles(Role.admin, Role.er, Role.hr)


class QrGenerateRequest(BaseModel):
    target_type: str = Field(default="general", max_length=50)
    target_id: str = Field(default="general", max_length=100)
    label: str | None = Field(default=None, max_length=200)


class QrGenerateResponse(BaseModel):
    token_id: uuid.UUID
    token: str
    qr_image_url: str
    expires_at: datetime


class QrTokenOut(BaseModel):
    id: uuid.UUID
    token: str
    target_type: str
    target_id: str
    label: str | None
    created_at: datetime
    expires_at: datetime
    is_active: bool
    created_by: str
    qr_image_url: str

    @classmethod
    def of(cls, t: QrToken) -> QrTokenOut:
        return cls(
            id=t.id,
            token=t.token,
            target_type=t.target_type,
            target_id=t.target_id,
            label=t.label,
            created_at=t.created_at,
            expires_at=t.expires_at,
            is_active=t.is_active,
            created_by=t.created_by,
            qr_image_url=_image_url(t),
        )


class QrSubmitRequest(BaseModel):
    token: str = Field(min_length=1, max_length=100)
    category: str = Field(default="complaint", max_length=100)
    message: str = Field(min_length=1, max_length=5000)
    submitter_name: str | None = Field(default=None, max_length=200)
    submitter_email: str | None = Field(default=None, max_length=200)
    submitter_phone: str | None = Field(default=None, max_length=50)
    attachment_urls: list[str] = Field(default_factory=list)


class QrSubmitResponse(BaseModel):
    submission_id: uuid.UUID
    case_id: uuid.UUID
    message: str


class QrSubmissionOut(BaseModel):
    id: uuid.UUID
    category: str
    message: str
    submitter_name: str | None
    attachment_urls: list[str]
    related_investigation_id: uuid.UUID | None
    created_at: datetime

    @classmethod
    def of(cls, s: QrSubmission) -> QrSubmissionOut:
        return cls(
            id=s.id,
            category=s.category,
            message=s.message,
            submitter_name=s.submitter_name,
            attachment_urls=s.attachment_urls.split(",") if s.attachment_urls else [],
            related_investigation_id=s.related_investigation_id,
            created_at=s.created_at,
        )


def _image_url(t: QrToken) -> str:
    return f"/api/qr/{t.id}/image"


def _service(session: AsyncSession, storage: FileStorage, settings: Settings) -> QrService:
    return QrService(
        session=session,
        storage=storage,
        public_base_url=settings.public_base_url,
        expiry_days=settings.qr_expiry_days,
    )


@router.post("/generate", response_model=QrGenerateResponse)
async def generate_token(
    body: QrGenerateRequest,
    principal: Principal = Depends(qr_managers),
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
    settings: Settings = Depends(settings_dep),
) -> QrGenerateResponse:
    token = await _service(session, storage, settings).generate(
        target_type=body.target_type,
        target_id=body.target_id,
        label=body.label,
        actor=principal,
    )
    return QrGenerateResponse(
        token_id=token.id,
        token=token.token,
        qr_image_url=_image_url(token),
        expires_at=token.expires_at,
    )


@router.post("/submit", response_model=QrSubmitResponse)
async def submit(
    body: QrSubmitRequest,
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
    settings: Settings = Depends(settings_dep),
) -> QrSubmitResponse:
    if not settings.qr_allow_anonymous:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED, detail="Anonymous submissions are disabled"
        )
    result = await _service(session, storage, settings).submit(
        token=body.token,
        category=body.category,
        message=body.message,
        submitter_name=body.submitter_name,
        submitter_email=body.submitter_email,
        submitter_phone=body.submitter_phone,
        attachment_urls=body.attachment_urls,
    )
    return QrSubmitResponse(
        submission_id=result.submission.id, case_id=result.case_id, message=SUBMISSION_ACK
    )


@router.get("", response_model=Paged[QrTokenOut], dependencies=[Depends(qr_managers)])
async def list_tokens(
    page: int = 1, size: int = 20, session: AsyncSession = Depends(db_session)
) -> Paged[QrTokenOut]:
    page, size = clamp_paging(page, size)
    rows, total = await QrRepo(session).page(page=page, size=size)
    return Paged[QrTokenOut].create(
        data=[QrTokenOut.of(t) for t in rows], page=page, size=size, total=total
    )


@router.get("/{token_id}", response_model=QrTokenOut, dependencies=[Depends(qr_managers)])
async def get_token(token_id: uuid.UUID, session: AsyncSession = Depends(db_session)) -> QrTokenOut:
    token = await QrRepo(session).get(token_id)
    if token is None:
        raise NotFoundError("QR token not found")
    return QrTokenOut.of(token)


@router.get(
    "/{token_id}/submissions",
    response_model=list[QrSubmissionOut],
    dependencies=[Depends(qr_managers)],
)
async def list_submissions(
    token_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> list[QrSubmissionOut]:
    repo = QrRepo(session)
    if await repo.get(token_id) is None:
        raise NotFoundError("QR token not found")
    return [QrSubmissionOut.of(s) for s in await repo.list_submissions(token_id)]


@router.get("/{token_id}/image", dependencies=[Depends(qr_managers)])
async def token_image(
    token_id: uuid.UUID,
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
    settings: Settings = Depends(settings_dep),
) -> Response:
    png = await _service(session, storage, settings).image(token_id)
    return Response(content=png, media_type="image/png")


@router.post(
    "/{token_id}/deactivate", response_model=QrTokenOut, dependencies=[Depends(qr_managers)]
)
async def deactivate_token(
    token_id: uuid.UUID,
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
    settings: Settings = Depends(settings_dep),
) -> QrTokenOut:
    return QrTokenOut.of(await _service(session, storage, settings).deactivate(token_id))
