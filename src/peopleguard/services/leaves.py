"""
peopleguard.services.leaves

Leave request lifecycle.

Responsibilities:
- Create (draft or submitted) and submit leave requests.
- Review decisions: start review, approve, reject.
- Append service-level audit rows with the new state.

Lifecycle:
    Draft -> Submitted -> UnderReview -> Approved | Rejected
    Submitted -> Approved | Rejected
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.auth.models import Principal
from peopleguard.db.models import LeaveAttachment, LeaveRequest, LeaveStatus, LeaveType, utcnow
from peopleguard.db.repositories.audit import AuditRepo
from peopleguard.db.repositories.leaves import LeaveRepo
from peopleguard.observability.logging import get_logger
from peopleguard.services.cases import actor_name
from peopleguard.services.errors import ConflictError, NotFoundError, ValidationFailedError

log = get_logger(__name__)

_ATTACHMENT_REQUIRED = frozenset({LeaveType.sick, LeaveType.outside_ksa})
_FINAL = frozenset({LeaveStatus.approved, LeaveStatus.rejected, LeaveStatus.cancelled})


@dataclass(frozen=True, slots=True)
class AttachmentRef:
    file_id: str
    file_name: str
    size_bytes: int
    url: str


def _check_attachments(leave_type: LeaveType, count: int) -> None:
    if leave_type in _ATTACHMENT_REQUIRED and count == 0:
        raise ValidationFailedError(
            "Attachments are required for sick or Outside KSA leave types."
        )


def _snapshot(leave: LeaveRequest) -> str:
    return json.dumps(
        {
            "status": leave.status.name,
            "type": leave.type.name,
            "employee_code": leave.employee_code,
            "start_date": leave.start_date.isoformat(),
            "end_date": leave.end_date.isoformat(),
            "review_remark": leave.review_remark,
        }
    )


class LeaveService:
    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._leaves = LeaveRepo(session)
        self._audit = AuditRepo(session)

    async def _audit_event(
        self, leave: LeaveRequest, *, action: str, actor: Principal, old: str | None = None
    ) -> None:
        await self._audit.add(
            user_id=actor.subject,
            user_name=actor_name(actor) or actor.subject,
            entity_type="LeaveRequest",
            entity_id=str(leave.id),
            action=action,
            old_values=old,
            new_values=_snapshot(leave),
            notes=f"Leave {action.lower()}",
        )

    async def _require(self, leave_id: uuid.UUID) -> LeaveRequest:
        leave = await self._leaves.get_for_update(leave_id)
        if leave is None:
            raise NotFoundError("Leave request not found")
        return leave

    async def create(
        self,
        *,
        employee_code: str,
        employee_name: str,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        reason: str | None,
        attachments: list[AttachmentRef],
        submit: bool,
        actor: Principal,
    ) -> LeaveRequest:
        if start_date > end_date:
            raise ValidationFailedError("Start date must be on or before end date.")
        if not employee_code.strip() or not employee_name.strip():
            raise ValidationFailedError("Employee details are required.")
        _check_attachments(leave_type, len(attachments))

        leave = await self._leaves.create(
            employee_code=employee_code.strip(),
            employee_name=employee_name.strip(),
            type=leave_type,
            status=LeaveStatus.submitted if submit else LeaveStatus.draft,
            start_date=start_date,
            end_date=end_date,
            reason=reason,
            created_by=actor.subject,
            created_by_name=actor_name(actor),
            attachments=[
                LeaveAttachment(
                    file_id=a.file_id,
                    file_name=a.file_name,
                    size_bytes=a.size_bytes,
                    url=a.url,
                    uploaded_by=actor.subject,
                )
                for a in attachments
            ],
        )
        await self._audit_event(leave, action="Create", actor=actor)
        await self._session.commit()
        log.info("leave_created", leave_id=str(leave.id), status=leave.status.name)
        return leave

    async def submit(self, leave_id: uuid.UUID, *, actor: Principal) -> LeaveRequest:
        leave = await self._require(leave_id)
        if leave.status != LeaveStatus.draft:
            raise ConflictError("Only draft leaves can be submitted.")
        _check_attachments(leave.type, len(leave.attachments))

        old = _snapshot(leave)
        leave.status = LeaveStatus.submitted
        await self._audit_event(leave, action="Submit", actor=actor, old=old)
        await self._session.commit()
        return leave

    async def review(
        self,
        leave_id: uuid.UUID,
        *,
        decision: str | None,
        remark: str | None,
        actor: Principal,
    ) -> LeaveRequest:
        leave = await self._require(leave_id)
        if leave.status in _FINAL:
            raise ConflictError("Leave is already finalized.")

        decision = (decision or "").strip().lower()
        if decision == "startreview":
            if leave.status != LeaveStatus.submitted:
                raise ConflictError("Only submitted leaves can be moved to review.")
            target = LeaveStatus.under_review
        elif decision in ("approve", "reject"):
            if leave.status not in (LeaveStatus.submitted, LeaveStatus.under_review):
                raise ConflictError("Only submitted or under-review leaves can be decided.")
            target = LeaveStatus.approved if decision == "approve" else LeaveStatus.rejected
        else:
            raise ValidationFailedError("Decision must be one of: startreview, approve, reject.")

        old = _snapshot(leave)
        leave.status = target
        leave.reviewed_at = utcnow()
        leave.reviewed_by = actor.subject
        leave.reviewed_by_name = actor_name(actor)
        leave.review_remark = remark
        await self._audit_event(leave, action="Review", actor=actor, old=old)
        await self._session.commit()
        log.info("leave_reviewed", leave_id=str(leave.id), status=target.name)
        return leave
