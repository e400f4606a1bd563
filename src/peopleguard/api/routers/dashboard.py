"""
peopleguard.api.routers.dashboard

Dashboard summary and its Excel export.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.api.deps import db_session
from peopleguard.auth.deps import get_principal
from peopleguard.db.models import utcnow
from peopleguard.services.dashboard import Dashboard, DashboardService, dashboard_workbook

router = APIRouter(
    prefix="/api/dashboard", tags=["dashboard"], dependencies=[Depends(get_principal)]
)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class SliceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    value: int
    percentage: float


class ViolatorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: uuid.UUID
    employee_code: str
    name: str
    factory: str
    department: str
    violations: int
    warning_letters: int
    written_warnings: int
    risk_score: float
    risk_level: str


class RecentCaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_name: str
    factory: str
    case_type: str
    status: str
    created_at: datetime


class DashboardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_violations: int
    active_investigations: int
    total_warning_letters: int
    total_employees: int
    employees_with_recent_violations: int
    by_factory: list[SliceOut]
    by_department: list[SliceOut]
    by_type: list[SliceOut]
    by_outcome: list[SliceOut]
    monthly_trend: list[SliceOut]
    top_violators: list[ViolatorOut]
    recent_investigations: list[RecentCaseOut]

    @classmethod
    def of(cls, d: Dashboard) -> DashboardOut:
        return cls.model_validate(d)


@router.get("", response_model=DashboardOut)
async def dashboard(session: AsyncSession = Depends(db_session)) -> DashboardOut:
    return DashboardOut.of(await DashboardService(session=session).build())


@router.get("/export")
async def export_dashboard(session: AsyncSession = Depends(db_session)) -> Response:
    data = dashboard_workbook(await DashboardService(session=session).build())
    filename = f"dashboard-{utcnow():%Y%m%d%H%M%S}.xlsx"
    return Response(
        content=data,
        media_type=XLSX_MEDIA_TYPE,
        headers={"content-disposition": f'attachment; filename="{filename}"'},
    )
