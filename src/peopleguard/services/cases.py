"""
peopleguard.services.cases

Case workflow service (transaction + persistence owner).

Responsibilities:
- Open cases and record their history.
- Apply status transitions through a small rule table.
- Guard remarks/attachments/outcome/letters against closed cases.
- Persist attachment and letter files through `FileStorage`.

Every mutation appends exactly one `CaseHistory` row and commits once.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.auth.models import Principal
from peopleguard.db.models import (
    CaseOutcome,
    CaseStatus,
    CaseType,
    Employee,
    HistoryEventType,
    Investigation,
    InvestigationAttachment,
    InvestigationRemark,
    WarningLetter,
    utcnow,
)
from peopleguard.db.repositories.case_history import CaseHistoryRepo
from peopleguard.db.repositories.employees import EmployeeRepo
from peopleguard.db.repositories.investigations import InvestigationRepo
from peopleguard.db.repositories.warning_letters import WarningLetterRepo
from peopleguard.observability.logging import get_logger
from peopleguard.services.documents import (
    LetterSubject,
    render_standard_letter_html,
    sanitize_html,
)
from peopleguard.services.errors import NotFoundError, ValidationFailedError
from peopleguard.services.storage import (
    CASE_ATTACHMENT_EXTENSIONS,
    FileStorage,
    check_upload,
    content_type_for,
)

log = get_logger(__name__)


def _always(_: bool) -> bool:
    return True


def _requires_outcome(has_outcome: bool) -> bool:
    return has_outcome


# (from, to) -> guard(has_outcome). Pairs not listed are rejected.
TRANSITIONS: dict[tuple[CaseStatus, CaseStatus], Callable[[bool], bool]] = {
    (CaseStatus.open, CaseStatus.under_investigation): _always,
    (CaseStatus.open, CaseStatus.closed): _requires_outcome,
    (CaseStatus.under_investigation, CaseStatus.closed): _always,
    (CaseStatus.under_investigation, CaseStatus.open): _always,
    (CaseStatus.closed, CaseStatus.open): _always,
}


def check_transition(current: CaseStatus, target: CaseStatus, *, has_outcome: bool) -> None:
    if current == target:
        return
    guard = TRANSITIONS.get((current, target))
    if guard is None:
        raise ValidationFailedError(
            f"Invalid status transition from {current.label} to {target.label}"
        )
    if not guard(has_outcome):
        raise ValidationFailedError("Cannot close case without setting an outcome")


def parse_outcome_keyword(raw: str | None) -> CaseOutcome:
    key = re.sub(r"[\s_\-]", "", raw or "").lower()
    if key == "verbalwarning":
        return CaseOutcome.verbal_warning
    if key == "writtenwarning":
        return CaseOutcome.written_warning
    # "none", "noaction" and anything unrecognised.
    return CaseOutcome.no_action


def case_ref(inv: Investigation) -> str:
    return f"C-{inv.created_at.year}-{inv.id.hex[:4].upper()}"


def actor_name(principal: Principal | None) -> str | None:
    if principal is None:
        return None
    return principal.name or principal.email or principal.subject


def letter_subject(emp: Employee) -> LetterSubject:
    return LetterSubject(
        employee_name=emp.name,
        employee_code=emp.employee_code,
        department=emp.department,
        factory=emp.factory,
    )


class CaseService:
    def __init__(self, *, session: AsyncSession, storage: FileStorage | None = None) -> None:
        self._session = session
        self._storage = storage
        self._cases = InvestigationRepo(session)
        self._employees = EmployeeRepo(session)
        self._history = CaseHistoryRepo(session)
        self._letters = WarningLetterRepo(session)

    async def _load(self, case_id: uuid.UUID) -> Investigation:
        inv = await self._cases.get_for_update(case_id)
        if inv is None:
            raise NotFoundError("Case not found")
        return inv

    async def _load_open(self, case_id: uuid.UUID, *, message: str) -> Investigation:
        inv = await self._load(case_id)
        if inv.status == CaseStatus.closed:
            raise ValidationFailedError(message)
        return inv

    async def _record(
        self,
        inv: Investigation,
        actor: Principal | None,
        event_type: HistoryEventType,
        description: str,
        **extra,
    ) -> None:
        await self._history.add(
            investigation_id=inv.id,
            event_type=event_type,
            description=description,
            user_id=actor.subject if actor else None,
            user_name=actor_name(actor),
            **extra,
        )

    async def open_case(
        self,
        *,
        employee: Employee,
        title: str,
        description: str,
        case_type: CaseType,
        actor: Principal | None,
    ) -> Investigation:
        """Create an Open case with its `Created` history row; the caller commits."""
        inv = await self._cases.create(
            employee=employee, title=title, description=description, case_type=case_type
        )
        await self._record(
            inv,
            actor,
            HistoryEventType.created,
            f"Case created: {title}",
            new_value=CaseStatus.open.label,
        )
        return inv

    async def create(
        self,
        *,
        employee_id: uuid.UUID,
        title: str,
        description: str,
        case_type: CaseType,
        actor: Principal,
    ) -> Investigation:
        employee = await self._employees.get(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")
        inv = await self.open_case(
            employee=employee,
            title=title,
            description=description,
            case_type=case_type,
            actor=actor,
        )
        await self._session.commit()
        log.info("case_created", case_id=str(inv.id), case_type=case_type.name)
        return inv

    async def update_details(
        self, case_id: uuid.UUID, *, title: str, description: str
    ) -> Investigation:
        inv = await self._load_open(case_id, message="Cannot update a closed investigation")
        inv.title = title
        inv.description = description
        await self._session.commit()
        return inv

    async def change_status(
        self,
        case_id: uuid.UUID,
        *,
        status: str | int,
        outcome: str | int | None = None,
        actor: Principal,
    ) -> Investigation:
        inv = await self._load(case_id)
        try:
            target = CaseStatus.parse(status)
        except ValueError as e:
            raise ValidationFailedError(
                "Invalid status value. Use: Open, UnderInvestigation, Closed"
            ) from e
        new_outcome: CaseOutcome | None = None
        if outcome is not None:
            try:
                new_outcome = CaseOutcome.parse(outcome)
            except ValueError as e:
                raise ValidationFailedError("Invalid outcome value") from e

        current = inv.status
        check_transition(current, target, has_outcome=(new_outcome or inv.outcome) is not None)

        if new_outcome is not None:
            inv.outcome = new_outcome
        inv.status = target
        if target == CaseStatus.closed and current != CaseStatus.closed:
            inv.closed_at = utcnow()
        elif current == CaseStatus.closed and target != CaseStatus.closed:
            inv.closed_at = None

        await self._record(
            inv,
            actor,
            HistoryEventType.status_changed,
            f"Status changed from {current.label} to {target.label}",
            old_value=current.label,
            new_value=target.label,
        )
        await self._session.commit()
        log.info(
            "case_status_changed",
            case_id=str(inv.id),
            from_status=current.name,
            to_status=target.name,
        )
        return inv

    async def add_remark(
        self, case_id: uuid.UUID, *, text: str, actor: Principal
    ) -> InvestigationRemark:
        if not text or not text.strip():
            raise ValidationFailedError("Remark text is required")
        inv = await self._load_open(case_id, message="Case is closed and cannot be modified")
        text = text.strip()
        remark = await self._cases.add_remark(
            investigation_id=inv.id,
            user_id=actor.subject,
            user_name=actor_name(actor) or actor.subject,
            remark=text,
        )
        summary = text if len(text) <= 100 else f"{text[:100]}..."
        await self._record(
            inv, actor, HistoryEventType.remark_added, summary, reference_id=remark.id
        )
        await self._session.commit()
        log.info("case_remark_added", case_id=str(inv.id), remark_id=str(remark.id))
        return remark

    async def add_attachment(
        self,
        case_id: uuid.UUID,
        *,
        file_name: str,
        data: bytes,
        content_type: str | None,
        max_bytes: int,
        actor: Principal,
    ) -> InvestigationAttachment:
        ext = check_upload(
            file_name=file_name,
            size=len(data),
            max_bytes=max_bytes,
            allowed=CASE_ATTACHMENT_EXTENSIONS,
        )
        inv = await self._load_open(case_id, message="Case is closed and cannot be modified")
        key = self._require_storage().save(f"cases/{inv.id}/{uuid.uuid4().hex}{ext}", data)
        attachment = await self._cases.add_attachment(
            investigation_id=inv.id,
            file_name=Path(file_name).name,
            file_path=key,
            content_type=content_type or content_type_for(file_name),
            file_size=len(data),
        )
        await self._record(
            inv,
            actor,
            HistoryEventType.attachment_added,
            f"Attachment added: {attachment.file_name}",
            reference_id=attachment.id,
        )
        await self._session.commit()
        log.info("case_attachment_added", case_id=str(inv.id), attachment_id=str(attachment.id))
        return attachment

    async def remove_attachment(
        self, case_id: uuid.UUID, attachment_id: uuid.UUID, *, actor: Principal
    ) -> None:
        inv = await self._load(case_id)
        attachment = await self._cases.get_attachment(inv.id, attachment_id)
        if attachment is None:
            raise NotFoundError("Attachment not found")
        if inv.status == CaseStatus.closed:
            raise ValidationFailedError("Case is closed and cannot be modified")

        self._require_storage().delete(attachment.file_path)
        file_name = attachment.file_name
        await self._cases.delete_attachment(attachment)
        await self._record(
            inv,
            actor,
            HistoryEventType.attachment_removed,
            f"Attachment removed: {file_name}",
            reference_id=attachment_id,
        )
        await self._session.commit()

    async def set_outcome(
        self,
        case_id: uuid.UUID,
        *,
        outcome: str | None,
        final_note: str | None,
        actor: Principal,
    ) -> CaseOutcome:
        inv = await self._load_open(case_id, message="Case is already closed")
        previous = inv.outcome
        inv.outcome = parse_outcome_keyword(outcome)

        description = f"Outcome set to {inv.outcome.label}"
        if final_note and final_note.strip():
            description += f". Note: {final_note.strip()}"
        await self._record(
            inv,
            actor,
            HistoryEventType.outcome_set,
            description,
            old_value=previous.label if previous else None,
            new_value=inv.outcome.label,
        )
        await self._session.commit()
        return inv.outcome

    async def generate_letter(
        self,
        case_id: uuid.UUID,
        *,
        template: str | None,
        html: str | None,
        actor: Principal,
    ) -> WarningLetter:
        inv = await self._load_open(case_id, message="Case is closed and cannot be modified")
        template = "manual" if (template or "").strip().lower() == "manual" else "standard"
        now = utcnow()

        if template == "standard":
            content = render_standard_letter_html(
                case_ref=case_ref(inv),
                subject=letter_subject(inv.employee),
                case_type_label=inv.case_type.label,
                description=inv.description,
                issued_at=now,
            )
        else:
            if not html or not html.strip():
                raise ValidationFailedError("HTML content is required for manual template")
            content = sanitize_html(html)

        data = content.encode("utf-8")
        file_name = f"WarningLetter-{now:%Y%m%d%H%M%S}-{uuid.uuid4().hex[:8]}.html"
        key = self._require_storage().save(f"letters/{inv.id}/{file_name}", data)

        letter = await self._letters.create(
            investigation_id=inv.id,
            employee_id=inv.employee_id,
            outcome=inv.outcome or CaseOutcome.no_action,
            template=template,
            pdf_path=key,
            letter_content=inv.description,
            html_content=content,
        )
        await self._cases.add_attachment(
            investigation_id=inv.id,
            file_name=file_name,
            file_path=key,
            content_type="text/html",
            file_size=len(data),
        )
        await self._record(
            inv,
            actor,
            HistoryEventType.warning_letter_issued,
            f"Warning letter generated ({template})",
            reference_id=letter.id,
        )
        await self._session.commit()
        log.info("case_letter_generated", case_id=str(inv.id), letter_id=str(letter.id))
        return letter

    def _require_storage(self) -> FileStorage:
        if self._storage is None:
            raise RuntimeError("CaseService was constructed without file storage")
        return self._storage


# --- Module Notes -----------------------------------------------------------
# `/api/cases` and `/api/investigations` both route mutations through this service,
# so the transition table and closed-case guards are enforced in one place.
