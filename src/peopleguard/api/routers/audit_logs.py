"""
peopleguard.api.routers.audit_logs

Raw audit-log queries for compliance staff (Admin, ITAdmin).

Responsibilities:
- Lookups by entity and by user.
- Time-window listing with an exact action filter.
- Retention cleanup (Admin only).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.api.deps import db_session, settings_dep
from peopleguard.auth.deps import require_roles
from peopleguard.auth.models import Role
from peopleguard.db.models import AuditLog, utcnow
from peopleguard.db.repositories.audit import AuditRepo
from peopleguard.observability.logging import get_logger
from peopleguard.services.errors import NotFoundError, ValidationFailedError
from peopleguard.settings import Settings

log = get_logger(__name__)

router = APIRouter(
    prefix="/api/auditlogs",
    tags=["audit"],
    dependencies=[Depends(require_roles(Role.admin, Role.it_admin))],
)


class AuditLogOut(BaseModel):
    id: uuid.UUID
    user_id: str
    user_name: str
    entity_type: str
    entity_id: str
    action: str
    old_values: str | None
    new_values: str | None
    endpoint: str | None
    http_method: str | None
    status_code: int | None
    timestamp: datetime
    ip_address: str | None
    duration_ms: int | None
    notes: str | None

    @classmethod
    def of(cls, row: AuditLog) -> AuditLogOut:
        return cls(
            id=row.id,
            user_id=row.user_id,
            user_name=row.user_name,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            action=row.action,
            old_values=row.old_values,
            new_values=row.new_values,
            endpoint=row.endpoint,
            http_method=row.http_method,
            status_code=row.status_code,
            timestamp=row.timestamp,
            ip_address=row.ip_address,
            duration_ms=row.duration_ms,
            notes=row.notes,
        )


class CleanupResult(BaseModel):
    deleted: int
    retention_days: int


@router.get("/entity/{entity_id}", response_model=list[AuditLogOut])
async def by_entity(
    entity_id: str, session: AsyncSession = Depends(db_session)
) -> list[AuditLogOut]:
    rows = await AuditRepo(session).list_for_entity(entity_id)
    if not rows:
        raise NotFoundError("No audit logs found for this entity")
    return [AuditLogOut.of(r) for r in rows]


@router.get("/user/{user_id}", response_model=list[AuditLogOut])
async def by_user(user_id: str, session: AsyncSession = Depends(db_session)) -> list[AuditLogOut]:
    rows = await AuditRepo(session).list_for_user(user_id)
    if not rows:
        raise NotFoundError("No audit logs found for this user")
    return [AuditLogOut.of(r) for r in rows]


@router.get("", response_model=list[AuditLogOut])
async def list_logs(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    action: str | None = None,
    session: AsyncSession = Depends(db_session),
) -> list[AuditLogOut]:
    rows = await AuditRepo(session).list_between(start=start_date, end=end_date, action=action)
    return [AuditLogOut.of(r) for r in rows]


@router.delete(
    "/cleanup",
    response_model=CleanupResult,
    dependencies=[Depends(require_roles(Role.admin))],
)
async def cleanup(
    retention_days: int | None = None,
    settings: Settings = Depends(settings_dep),
    session: AsyncSession = Depends(db_session),
) -> CleanupResult:
    if retention_days is None:
        retention_days = settings.audit_retention_days
    if retention_days < 1:
        raise ValidationFailedError("retention_days must be at least 1")
    deleted = await AuditRepo(session).delete_older_than(utcnow() - timedelta(days=retention_days))
    await session.commit()
    log.info("audit_cleanup", deleted=deleted, retention_days=retention_days)
    return CleanupResult(deleted=deleted, retention_days=retention_days)
