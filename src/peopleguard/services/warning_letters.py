"""
peopleguard.services.warning_letters

Formal warning-letter issuance.

Responsibilities:
- Validate that the case is closed with an outcome and belongs to the employee.
- Render the PDF, store it, and record the letter + case history.
"""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.auth.models import Principal
from peopleguard.db.models import CaseOutcome, CaseStatus, HistoryEventType, WarningLetter, utcnow
from peopleguard.db.repositories.case_history import CaseHistoryRepo
from peopleguard.db.repositories.employees import EmployeeRepo
from peopleguard.db.repositories.investigations import InvestigationRepo
from peopleguard.db.repositories.warning_letters import WarningLetterRepo
from peopleguard.observability.logging import get_logger
from peopleguard.services.cases import actor_name, letter_subject
from peopleguard.services.documents import render_warning_pdf
from peopleguard.services.errors import NotFoundError, ValidationFailedError
from peopleguard.services.storage import FileStorage

log = get_logger(__name__)


class WarningLetterService:
    def __init__(self, *, session: AsyncSession, storage: FileStorage, system_name: str) -> None:
        self._session = session
        self._storage = storage
        self._system_name = system_name
        self._cases = InvestigationRepo(session)
        self._employees = EmployeeRepo(session)
        self._letters = WarningLetterRepo(session)
        self._history = CaseHistoryRepo(session)

    async def issue(
        self,
        *,
        investigation_id: uuid.UUID,
        employee_id: uuid.UUID,
        outcome: CaseOutcome,
        reason: str,
        actor: Principal,
    ) -> WarningLetter:
        inv = await self._cases.get_for_update(investigation_id)
        if inv is None:
            raise NotFoundError("Investigation not found")
        employee = await self._employees.get(employee_id)
        if employee is None:
            raise NotFoundError("Employee not found")
        if inv.employee_id != employee.id:
            raise ValidationFailedError("Employee does not match the investigation")
        if inv.status != CaseStatus.closed or inv.outcome is None:
            raise ValidationFailedError(
                "Warning letters can only be issued for closed cases with an outcome"
            )

        issued_at = utcnow()
        pdf = render_warning_pdf(
            system_name=self._system_name,
            subject=letter_subject(employee),
            outcome=outcome,
            reason=reason,
            issued_at=issued_at,
        )
        suffix = uuid.uuid4().hex[:8]
        key = self._storage.save(
            f"warnings/WarningLetter-{issued_at:%d%m%Y%H%M%S}-{suffix}.pdf", pdf
        )

        letter = await self._letters.create(
            investigation_id=inv.id,
            employee_id=employee.id,
            outcome=outcome,
            template="pdf",
            pdf_path=key,
            letter_content=reason,
        )
        previous = inv.outcome
        inv.outcome = outcome
        await self._history.add(
            investigation_id=inv.id,
            event_type=HistoryEventType.warning_letter_issued,
            description=f"Warning letter issued: {outcome.label}",
            user_id=actor.subject,
            user_name=actor_name(actor),
            old_value=previous.label,
            new_value=outcome.label,
            reference_id=letter.id,
        )
        await self._session.commit()
        log.info("warning_letter_issued", letter_id=str(letter.id), case_id=str(inv.id))
        return letter
