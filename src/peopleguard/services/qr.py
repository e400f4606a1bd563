"""
peopleguard.services.qr

QR complaint intake.

Responsibilities:
- Issue expiring intake tokens and render their QR images.
- Accept public submissions and turn each into an Open complaint case
  attached to the shared anonymous employee record.
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.auth.models import Principal
from peopleguard.db.models import CaseType, Employee, QrSubmission, QrToken, utcnow
from peopleguard.db.repositories.employees import EmployeeRepo
from peopleguard.db.repositories.qr import QrRepo
from peopleguard.observability.logging import get_logger
from peopleguard.services.cases import CaseService
from peopleguard.services.documents import render_qr_png
from peopleguard.services.errors import NotFoundError, ValidationFailedError
from peopleguard.services.storage import FileStorage

log = get_logger(__name__)

ANONYMOUS_EMPLOYEE_CODE = "ANONYMOUS"
SUBMISSION_ACK = "Thank you for your submission. We will review it promptly."


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    submission: QrSubmission
    case_id: uuid.UUID


class QrService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        storage: FileStorage,
        public_base_url: str,
        expiry_days: int,
    ) -> None:
        self._session = session
        self._storage = storage
        self._public_base_url = public_base_url.rstrip("/")
        self._expiry_days = expiry_days
        self._qr = QrRepo(session)
        self._employees = EmployeeRepo(session)

    async def generate(
        self,
        *,
        target_type: str | None,
        target_id: str | None,
        label: str | None,
        actor: Principal,
    ) -> QrToken:
        token = await self._qr.create_token(
            token=secrets.token_urlsafe(32),
            target_type=(target_type or "general").strip() or "general",
            target_id=(target_id or "general").strip() or "general",
            label=label,
            expires_at=utcnow() + timedelta(days=self._expiry_days),
            created_by=actor.subject,
        )
        png = render_qr_png(f"{self._public_base_url}/qr/{token.token}")
        token.qr_png_path = self._storage.save(f"qr/{token.id}.png", png)
        await self._session.commit()
        log.info("qr_token_generated", token_id=str(token.id), target_type=token.target_type)
        return token

    async def deactivate(self, token_id: uuid.UUID) -> QrToken:
        token = await self._qr.get(token_id)
        if token is None:
            raise NotFoundError("QR token not found")
        token.is_active = False
        await self._session.commit()
        return token

    async def image(self, token_id: uuid.UUID) -> bytes:
        token = await self._qr.get(token_id)
        if token is None or not token.is_usable or not token.qr_png_path:
            raise NotFoundError("QR image not found")
        if not self._storage.exists(token.qr_png_path):
            raise NotFoundError("QR image not found")
        return self._storage.read(token.qr_png_path)

    async def _anonymous_employee(self) -> Employee:
        emp = await self._employees.get_by_code(ANONYMOUS_EMPLOYEE_CODE, include_deleted=True)
        if emp is None:
            return await self._employees.create(
                employee_code=ANONYMOUS_EMPLOYEE_CODE,
                name="Anonymous Submitter",
                department="Public",
                factory="External",
                designation="N/A",
            )
        # Intake cases must stay visible in case lists.
        emp.is_deleted = False
        return emp

    async def submit(
        self,
        *,
        token: str,
        category: str | None,
        message: str,
        submitter_name: str | None = None,
        submitter_email: str | None = None,
        submitter_phone: str | None = None,
        attachment_urls: list[str] | None = None,
    ) -> SubmissionResult:
        qr = await self._qr.get_by_token(token.strip())
        if qr is None or not qr.is_usable:
            raise ValidationFailedError("Invalid or expired token")

        category = (category or "complaint").strip() or "complaint"
        submission = await self._qr.add_submission(
            token_id=qr.id,
            category=category,
            message=message,
            submitter_name=submitter_name,
            submitter_email=submitter_email,
            submitter_phone=submitter_phone,
            attachment_urls=attachment_urls or [],
        )

        who = submitter_name.strip() if submitter_name and submitter_name.strip() else "Anonymous"
        where = qr.label or qr.target_id
        inv = await CaseService(session=self._session).open_case(
            employee=await self._anonymous_employee(),
            title=f"[{category.upper()}] {who} - {where}"[:200],
            description=message,
            case_type=CaseType.complaint,
            actor=None,
        )
        submission.related_investigation_id = inv.id
        await self._session.commit()
        log.info("qr_submission_received", token_id=str(qr.id), case_id=str(inv.id))
        return SubmissionResult(submission=submission, case_id=inv.id)
