"""
peopleguard.api.routers.audit

Audit viewer with masked output and CSV export (Admin, ITAdmin).
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.api.deps import db_session
from peopleguard.api.pagination import Paged, clamp_paging
from peopleguard.auth.deps import require_roles
from peopleguard.auth.models import Role
from peopleguard.db.models import AuditLog, utcnow
from peopleguard.db.repositories.audit import AuditFilter, AuditRepo
from peopleguard.services.audit import EXPORT_LIMIT, export_csv, mask_details, mask_ip

router = APIRouter(
    prefix="/api/audit",
    tags=["audit"],
    dependencies=[Depends(require_roles(Role.admin, Role.it_admin))],
)


class AuditEntryOut(BaseModel):
    id: uuid.UUID
    user_name: str
    action: str
    entity_type: str
    entity_id: str
    endpoint: str | None
    http_method: str | None
    status_code: int | None
    ip_address: str | None
    timestamp: datetime
    details: str | None

    @classmethod
    def of(cls, row: AuditLog) -> AuditEntryOut:
        return cls(
            id=row.id,
            user_name=row.user_name,
            action=row.action,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            endpoint=row.endpoint,
            http_method=row.http_method,
            status_code=row.status_code,
            ip_address=mask_ip(row.ip_address),
            timestamp=row.timestamp,
            details=mask_details(row.old_values),
        )


def _filter(
    user_name: str | None = None,
    action: str | None = None,
    entity_type: str | None = None,
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
) -> AuditFilter:
    return AuditFilter(
        user_name=user_name,
        action=action,
        entity_type=entity_type,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("", response_model=Paged[AuditEntryOut])
async def list_entries(
    f: AuditFilter = Depends(_filter),
    page: int = 1,
    size: int = 20,
    session: AsyncSession = Depends(db_session),
) -> Paged[AuditEntryOut]:
    page, size = clamp_paging(page, size)
    rows, total = await AuditRepo(session).page(f, page=page, size=size)
    return Paged[AuditEntryOut].create(
        data=[AuditEntryOut.of(r) for r in rows], page=page, size=size, total=total
    )


@router.get("/export")
async def export_entries(
    f: AuditFilter = Depends(_filter), session: AsyncSession = Depends(db_session)
) -> Response:
    rows = await AuditRepo(session).export_rows(f, limit=EXPORT_LIMIT)
    filename = f"audit-export-{utcnow():%Y%m%d%H%M%S}.csv"
    return Response(
        content=export_csv(rows),
        media_type="text/csv",
        headers={"content-disposition": f'attachment; filename="{filename}"'},
    )
