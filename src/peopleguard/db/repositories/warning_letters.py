"""
peopleguard.db.repositories.warning_letters

Repository for `WarningLetter` entities.
"""

from __future__ import annotations

import uuid

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.db.models import CaseOutcome, WarningLetter


class WarningLetterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        investigation_id: uuid.UUID,
        employee_id: uuid.UUID,
        outcome: CaseOutcome,
        template: str,
        pdf_path: str,
        letter_content: str | None = None,
        html_content: str | None = None,
    ) -> WarningLetter:
        letter = WarningLetter(
            investigation_id=investigation_id,
            employee_id=employee_id,
            outcome=outcome,
            template=template,
            pdf_path=pdf_path,
            letter_content=letter_content,
            html_content=html_content,
        )
        self._session.add(letter)
        await self._session.flush()
        return letter

    async def get(self, letter_id: uuid.UUID) -> WarningLetter | None:
        return await self._session.get(WarningLetter, letter_id)

    async def list_all(self) -> list[WarningLetter]:
        stmt = select(WarningLetter).order_by(desc(WarningLetter.issued_at))
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_for_case(self, investigation_id: uuid.UUID) -> list[WarningLetter]:
        stmt = (
            select(WarningLetter)
            .where(WarningLetter.investigation_id == investigation_id)
            .order_by(desc(WarningLetter.issued_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_for_employee(self, employee_id: uuid.UUID) -> list[WarningLetter]:
        stmt = (
            select(WarningLetter)
            .where(WarningLetter.employee_id == employee_id)
            .order_by(desc(WarningLetter.issued_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def latest_for_case(self, investigation_id: uuid.UUID) -> WarningLetter | None:
        letters = await self.list_for_case(investigation_id)
        return letters[0] if letters else None

    async def outcome_counts_for_employee(self, employee_id: uuid.UUID) -> dict[CaseOutcome, int]:
        stmt = (
            select(WarningLetter.outcome, func.count(WarningLetter.id))
            .where(WarningLetter.employee_id == employee_id)
            .group_by(WarningLetter.outcome)
        )
        counts = {o: 0 for o in CaseOutcome}
        for outcome, n in (await self._session.execute(stmt)).all():
            counts[outcome] = int(n)
        return counts
