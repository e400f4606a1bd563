"""
peopleguard.db.repositories.case_history

Repository for the append-only `CaseHistory` log.
"""

from __future__ import annotations

import uuid

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.db.models import CaseHistory, HistoryEventType


class CaseHistoryRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        investigation_id: uuid.UUID,
        event_type: HistoryEventType,
        description: str,
        user_id: str | None = None,
        user_name: str | None = None,
        old_value: str | None = None,
        new_value: str | None = None,
        reference_id: uuid.UUID | None = None,
    ) -> CaseHistory:
        # History rows are never updated or deleted.
        row = CaseHistory(
            investigation_id=investigation_id,
            event_type=event_type,
            description=description[:1000],
            user_id=user_id,
            user_name=user_name,
            old_value=old_value,
            new_value=new_value,
            reference_id=reference_id,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_for_case(self, investigation_id: uuid.UUID) -> list[CaseHistory]:
        stmt = (
            select(CaseHistory)
            .where(CaseHistory.investigation_id == investigation_id)
            .order_by(desc(CaseHistory.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())
