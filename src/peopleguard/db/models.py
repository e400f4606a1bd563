"""
peopleguard.db.models

Persistence schema for HR case management.

Responsibilities:
- Define the domain enums (stored by name, exposed by value + label).
- Define ORM models:
  - User / RefreshToken: identity and cookie-based session rotation
  - Employee: soft-deletable personnel record
  - Investigation (+ remarks, attachments, append-only CaseHistory)
  - WarningLetter: documents issued against a case
  - LeaveRequest / LeaveAttachment
  - AuditLog: append-only compliance trail
  - QrToken / QrSubmission: public complaint intake
"""

from __future__ import annotations

import enum
import re
import uuid
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import JSON, Enum, ForeignKey, Index, String, Text, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from peopleguard.db.base import Base


def utcnow() -> datetime:
    # Persist naive UTC timestamps; the API serializes them as-is.
    return datetime.now(UTC).replace(tzinfo=None)


class LabeledEnum(enum.IntEnum):
    """
    Integer enum with a human label and a lenient parser.

    `parse` accepts a member, its integer value ("2" or 2) or its name in any
    casing with or without separators ("UnderInvestigation", "under_investigation").
    """

    @property
    def label(self) -> str:
        key = (type(self).__name__, self.name)
        return _LABELS.get(key) or self.name.replace("_", " ").title()

    @property
    def pascal_name(self) -> str:
        return "".join(part.capitalize() for part in self.name.split("_"))

    @classmethod
    def parse(cls, raw: Any):
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, int) or (isinstance(raw, str) and raw.strip().isdigit()):
            return cls(int(raw))
        key = re.sub(r"[\s_\-]", "", str(raw)).lower()
        for member in cls:
            if member.name.replace("_", "") == key:
                return member
        raise ValueError(f"invalid {cls.__name__} value: {raw!r}")


class EmployeeStatus(LabeledEnum):
    active = 1
    inactive = 2
    suspended = 3
    terminated = 4


class CaseType(LabeledEnum):
    violation = 1
    safety = 2
    misbehavior = 3
    investigation = 4
    complaint = 5


class CaseStatus(LabeledEnum):
    open = 1
    under_investigation = 2
    closed = 3


class CaseOutcome(LabeledEnum):
    no_action = 1
    verbal_warning = 2
    written_warning = 3


class HistoryEventType(LabeledEnum):
    created = 1
    status_changed = 2
    remark_added = 3
    attachment_added = 4
    attachment_removed = 5
    warning_letter_issued = 6
    outcome_set = 7


class LeaveType(LabeledEnum):
    emergency = 1
    sick = 2
    outside_ksa = 3


class LeaveStatus(LabeledEnum):
    draft = 1
    submitted = 2
    under_review = 3
    approved = 4
    rejected = 5
    cancelled = 6


# Keyed by (enum class, member) because IntEnum members of different classes compare equal.
_LABELS: dict[tuple[str, str], str] = {
    ("CaseType", "safety"): "Safety Issue",
    ("HistoryEventType", "created"): "Case Created",
    ("LeaveType", "outside_ksa"): "Outside KSA",
}


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(256), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False)
    roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    token: Mapped[str] = mapped_column(String(512), nullable=False, unique=True, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    is_revoked: Mapped[bool] = mapped_column(nullable=False, default=False)
    revoked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    replaced_by_token: Mapped[str | None] = mapped_column(String(512), nullable=True)

    @property
    def is_active(self) -> bool:
        return not self.is_revoked and self.expires_at > utcnow()


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Business identifier ("EMP-001"); unique across live and soft-deleted rows.
    employee_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    factory: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    designation: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[EmployeeStatus] = mapped_column(
        Enum(EmployeeStatus), nullable=False, default=EmployeeStatus.active
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    is_deleted: Mapped[bool] = mapped_column(nullable=False, default=False)


class Investigation(Base):
    __tablename__ = "investigations"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("employees.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    case_type: Mapped[CaseType] = mapped_column(Enum(CaseType), nullable=False, index=True)
    status: Mapped[CaseStatus] = mapped_column(
        Enum(CaseStatus), nullable=False, default=CaseStatus.open, index=True
    )
    outcome: Mapped[CaseOutcome | None] = mapped_column(Enum(CaseOutcome), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    is_deleted: Mapped[bool] = mapped_column(nullable=False, default=False)

    # Many-to-one is eager-joined so list/detail views never lazy-load under asyncio.
    employee: Mapped[Employee] = relationship(lazy="joined", innerjoin=True)

    __table_args__ = (Index("ix_investigations_employee_created", "employee_id", "created_at"),)


class InvestigationRemark(Base):
    __tablename__ = "investigation_remarks"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    investigation_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("investigations.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user_name: Mapped[str] = mapped_column(String(256), nullable=False)
    remark: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)


class InvestigationAttachment(Base):
    __tablename__ = "investigation_attachments"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    investigation_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("investigations.id"), nullable=False, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Path relative to the storage root.
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)


class CaseHistory(Base):
    __tablename__ = "case_history"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    investigation_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("investigations.id"), nullable=False, index=True
    )
    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    user_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    event_type: Mapped[HistoryEventType] = mapped_column(Enum(HistoryEventType), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    old_value: Mapped[str | None] = mapped_column(String(200), nullable=True)
    new_value: Mapped[str | None] = mapped_column(String(200), nullable=True)
    reference_id: Mapped[uuid.UUID | None] = mapped_column(SAUuid(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    __table_args__ = (Index("ix_case_history_case_created", "investigation_id", "created_at"),)


class WarningLetter(Base):
    __tablename__ = "warning_letters"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    investigation_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("investigations.id"), nullable=False, index=True
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("employees.id"), nullable=False, index=True
    )
    outcome: Mapped[CaseOutcome] = mapped_column(Enum(CaseOutcome), nullable=False)
    # "standard" / "manual" render HTML; "pdf" is the formal reportlab letter.
    template: Mapped[str] = mapped_column(String(50), nullable=False, default="standard")
    letter_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    pdf_path: Mapped[str] = mapped_column(String(500), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)

    employee: Mapped[Employee] = relationship(lazy="joined", innerjoin=True)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    employee_code: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    employee_name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[LeaveType] = mapped_column(Enum(LeaveType), nullable=False)
    status: Mapped[LeaveStatus] = mapped_column(
        Enum(LeaveStatus), nullable=False, default=LeaveStatus.draft, index=True
    )
    start_date: Mapped[date] = mapped_column(nullable=False)
    end_date: Mapped[date] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)
    created_by_name: Mapped[str | None] = mapped_column(String(256), nullable=True)

    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reviewed_by_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    review_remark: Mapped[str | None] = mapped_column(String(2000), nullable=True)

    attachments: Mapped[list[LeaveAttachment]] = relationship(
        back_populates="leave_request", cascade="all, delete-orphan", lazy="selectin"
    )


class LeaveAttachment(Base):
    __tablename__ = "leave_attachments"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    leave_request_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("leave_requests.id"), nullable=False, index=True
    )
    file_id: Mapped[str] = mapped_column(String(128), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(nullable=False, default=0)
    url: Mapped[str] = mapped_column(String(512), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)
    uploaded_by: Mapped[str] = mapped_column(String(128), nullable=False)

    leave_request: Mapped[LeaveRequest] = relationship(back_populates="attachments")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    user_name: Mapped[str] = mapped_column(String(256), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(256), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    old_values: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_values: Mapped[str | None] = mapped_column(Text, nullable=True)
    endpoint: Mapped[str | None] = mapped_column(String(256), nullable=True)
    http_method: Mapped[str | None] = mapped_column(String(10), nullable=True)
    status_code: Mapped[int | None] = mapped_column(nullable=True)
    timestamp: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    __table_args__ = (Index("ix_audit_entity", "entity_type", "entity_id"),)


class QrToken(Base):
    __tablename__ = "qr_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    token: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    target_type: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    target_id: Mapped[str] = mapped_column(String(100), nullable=False, default="general")
    label: Mapped[str | None] = mapped_column(String(200), nullable=True)
    qr_png_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow, index=True)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)

    @property
    def is_usable(self) -> bool:
        return self.is_active and self.expires_at > utcnow()


class QrSubmission(Base):
    __tablename__ = "qr_submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    token_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("qr_tokens.id"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    submitter_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    submitter_email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    submitter_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # Comma-joined list of URLs returned by the files API.
    attachment_urls: Mapped[str | None] = mapped_column(Text, nullable=True)
    related_investigation_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("investigations.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)


# --- Module Notes -----------------------------------------------------------
# Enums are persisted by member name (SQLAlchemy `Enum` default) and exposed by the API
# as `<int value>` plus a display label; sorting by enum columns maps names back to
# their integer values (see InvestigationRepo).
