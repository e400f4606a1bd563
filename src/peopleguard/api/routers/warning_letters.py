"""
peopleguard.api.routers.warning_letters

Formal (PDF) warning letters.

Responsibilities:
- List letters with employee names.
- Issue a PDF letter against a closed case with an outcome.
- Look up by investigation and stream the stored PDF.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from pydantic import BaseModel, BeforeValidator, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from peopleguard.api.deps import db_session, settings_dep, storage_dep
from peopleguard.auth.deps import get_principal, require_roles
from peopleguard.auth.models import Principal, Role
from peopleguard.db.models import CaseOutcome, WarningLetter
from peopleguard.db.repositories.warning_letters import WarningLetterRepo
from peopleguard.services.errors import NotFoundError
from peopleguard.services.storage import FileStorage
from peopleguard.services.warning_letters import WarningLetterService
from peopleguard.settings import Settings

router = APIRouter(
    prefix="/api/warningletters",
    tags=["warning-letters"],
    dependencies=[Depends(get_principal)],
)

letter_issuers = require_roles(Role.admin, Role.business, Role.er, Role.management, Role.manager)

OutcomeField = Annotated[CaseOutcome, BeforeValidator(CaseOutcome.parse)]


class WarningLetterCreate(BaseModel):
    investigation_id: uuid.UUID
    employee_id: uuid.UUID
    outcome: OutcomeField
    reason: str = Field(min_length=1, max_length=2000)


class WarningLetterOut(BaseModel):
    id: uuid.UUID
    investigation_id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: str
    outcome: int
    outcome_name: str
    template: str
    reason: str | None
    issued_at: datetime
    pdf_url: str

    @classmethod
    def of(cls, w: WarningLetter) -> WarningLetterOut:
        return cls(
            id=w.id,
            investigation_id=w.investigation_id,
            employee_id=w.employee_id,
            employee_name=w.employee.name,
            outcome=int(w.outcome),
            outcome_name=w.outcome.label,
            template=w.template,
            reason=w.letter_content,
            issued_at=w.issued_at,
            pdf_url=f"/api/warningletters/{w.id}/pdf",
        )


@router.get("", response_model=list[WarningLetterOut])
async def list_letters(session: AsyncSession = Depends(db_session)) -> list[WarningLetterOut]:
    return [WarningLetterOut.of(w) for w in await WarningLetterRepo(session).list_all()]


@router.post("", response_model=WarningLetterOut, status_code=HTTP_201_CREATED)
async def issue_letter(
    body: WarningLetterCreate,
    principal: Principal = Depends(letter_issuers),
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
    settings: Settings = Depends(settings_dep),
) -> WarningLetterOut:
    letter = await WarningLetterService(
        session=session, storage=storage, system_name=settings.system_name
    ).issue(
        investigation_id=body.investigation_id,
        employee_id=body.employee_id,
        outcome=body.outcome,
        reason=body.reason,
        actor=principal,
    )
    await session.refresh(letter, ["employee"])
    return WarningLetterOut.of(letter)


@router.get("/by-investigation/{investigation_id}", response_model=list[WarningLetterOut])
async def by_investigation(
    investigation_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> list[WarningLetterOut]:
    letters = await WarningLetterRepo(session).list_for_case(investigation_id)
    if not letters:
        raise NotFoundError("No warning letters found for this investigation")
    return [WarningLetterOut.of(w) for w in letters]


@router.get("/{letter_id}/pdf")
async def letter_pdf(
    letter_id: uuid.UUID,
    session: AsyncSession = Depends(db_session),
    storage: FileStorage = Depends(storage_dep),
) -> FileResponse:
    letter = await WarningLetterRepo(session).get(letter_id)
    if letter is None:
        raise NotFoundError("Warning letter not found")
    if not storage.exists(letter.pdf_path):
        raise NotFoundError("PDF file not found")
    return FileResponse(
        storage.path(letter.pdf_path),
        media_type="application/pdf",
        filename=letter.pdf_path.rsplit("/", 1)[-1],
    )
