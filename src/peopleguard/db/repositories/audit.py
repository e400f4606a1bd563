"""
peopleguard.db.repositories.audit

Repository for `AuditLog` entities.

Responsibilities:
- Append audit rows (HTTP middleware and service-level events).
- Query the trail by entity, user, time window and free-text filters.
- Retention cleanup.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.db.models import AuditLog


@dataclass(frozen=True, slots=True)
class AuditFilter:
    user_name: str | None = None
    action: str | None = None
    entity_type: str | None = None
    date_from: date | None = None
    date_to: date | None = None


class AuditRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        user_id: str,
        user_name: str,
        entity_type: str,
        entity_id: str,
        action: str,
        old_values: str | None = None,
        new_values: str | None = None,
        endpoint: str | None = None,
        http_method: str | None = None,
        status_code: int | None = None,
        ip_address: str | None = None,
        duration_ms: int | None = None,
        notes: str | None = None,
    ) -> AuditLog:
        # Audit rows are append-only (no update) in normal operation.
        row = AuditLog(
            user_id=user_id,
            user_name=user_name,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            old_values=old_values,
            new_values=new_values,
            endpoint=endpoint,
            http_method=http_method,
            status_code=status_code,
            ip_address=ip_address,
            duration_ms=duration_ms,
            notes=notes,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_for_entity(self, entity_id: str) -> list[AuditLog]:
        stmt = (
            select(AuditLog)
            .where(AuditLog.entity_id == entity_id)
            .order_by(desc(AuditLog.timestamp))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_for_user(self, user_id: str) -> list[AuditLog]:
        stmt = (
            select(AuditLog).where(AuditLog.user_id == user_id).order_by(desc(AuditLog.timestamp))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_between(
        self,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        action: str | None = None,
        limit: int = 1000,
    ) -> list[AuditLog]:
        stmt = select(AuditLog)
        if start is not None:
            stmt = stmt.where(AuditLog.timestamp >= start)
        if end is not None:
            stmt = stmt.where(AuditLog.timestamp <= end)
        if action:
            stmt = stmt.where(AuditLog.action == action)
        stmt = stmt.order_by(desc(AuditLog.timestamp)).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    def _filtered(self, f: AuditFilter):
        stmt = select(AuditLog)
        if f.user_name and f.user_name.strip():
            stmt = stmt.where(AuditLog.user_name.ilike(f"%{f.user_name.strip()}%"))
        if f.action and f.action.strip():
            stmt = stmt.where(AuditLog.action.ilike(f"%{f.action.strip()}%"))
        if f.entity_type and f.entity_type.strip():
            stmt = stmt.where(AuditLog.entity_type.ilike(f"%{f.entity_type.strip()}%"))
        if f.date_from is not None:
            stmt = stmt.where(AuditLog.timestamp >= datetime.combine(f.date_from, time.min))
        if f.date_to is not None:
            end = datetime.combine(f.date_to, time.min) + timedelta(days=1)
            stmt = stmt.where(AuditLog.timestamp < end)
        return stmt

    async def page(self, f: AuditFilter, *, page: int, size: int) -> tuple[list[AuditLog], int]:
        stmt = self._filtered(f)
        total = int(
            (await self._session.execute(select(func.count()).select_from(stmt.subquery())))
            .scalar_one()
        )
        stmt = stmt.order_by(desc(AuditLog.timestamp)).offset((page - 1) * size).limit(size)
        return list((await self._session.execute(stmt)).scalars().all()), total

    async def export_rows(self, f: AuditFilter, *, limit: int) -> list[AuditLog]:
        stmt = self._filtered(f).order_by(desc(AuditLog.timestamp)).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    async def delete_older_than(self, cutoff: datetime) -> int:
        result = await self._session.execute(delete(AuditLog).where(AuditLog.timestamp < cutoff))
        return int(result.rowcount or 0)


# --- Module Notes -----------------------------------------------------------
# Retention cleanup is the only delete path; it is Admin-gated at the API layer.
