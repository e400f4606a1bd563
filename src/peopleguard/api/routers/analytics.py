"""
peopleguard.api.routers.analytics

Chart-ready violation breakdowns.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.api.deps import db_session
from peopleguard.api.routers.dashboard import SliceOut
from peopleguard.auth.deps import get_principal
from peopleguard.services.dashboard import GROUPINGS, DashboardService
from peopleguard.services.errors import ValidationFailedError

router = APIRouter(
    prefix="/api/analytics", tags=["analytics"], dependencies=[Depends(get_principal)]
)


class ViolationsChart(BaseModel):
    group_by: str
    labels: list[str]
    values: list[int]
    items: list[SliceOut]


@router.get("/violations", response_model=ViolationsChart)
async def violations(
    group_by: str = "factory",
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    session: AsyncSession = Depends(db_session),
) -> ViolationsChart:
    group_by = group_by.strip().lower()
    if group_by not in GROUPINGS:
        raise ValidationFailedError(f"group_by must be one of: {', '.join(GROUPINGS)}")
    slices = await DashboardService(session=session).violations(
        group_by=group_by, date_from=date_from, date_to=date_to
    )
    return ViolationsChart(
        group_by=group_by,
        labels=[s.label for s in slices],
        values=[s.value for s in slices],
        items=[SliceOut(label=s.label, value=s.value, percentage=s.percentage) for s in slices],
    )
