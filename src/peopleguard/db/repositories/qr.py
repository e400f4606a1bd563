"""
peopleguard.db.repositories.qr

Repositories for `QrToken` and `QrSubmission` entities.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.db.models import QrSubmission, QrToken


class QrRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_token(
        self,
        *,
        token: str,
        target_type: str,
        target_id: str,
        label: str | None,
        expires_at: datetime,
        created_by: str,
    ) -> QrToken:
        t = QrToken(
            token=token,
            target_type=target_type,
            target_id=target_id,
            label=label,
            expires_at=expires_at,
            created_by=created_by,
        )
        self._session.add(t)
        await self._session.flush()
        return t

    async def get(self, token_id: uuid.UUID) -> QrToken | None:
        return await self._session.get(QrToken, token_id)

    async def get_by_token(self, token: str) -> QrToken | None:
        stmt = select(QrToken).where(QrToken.token == token)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def page(self, *, page: int, size: int) -> tuple[list[QrToken], int]:
        total = int((await self._session.execute(select(func.count(QrToken.id)))).scalar_one())
        stmt = (
            select(QrToken)
            .order_by(desc(QrToken.created_at))
            .offset((page - 1) * size)
            .limit(size)
        )
        return list((await self._session.execute(stmt)).scalars().all()), total

    async def add_submission(
        self,
        *,
        token_id: uuid.UUID,
        category: str,
        message: str,
        submitter_name: str | None,
        submitter_email: str | None,
        submitter_phone: str | None,
        attachment_urls: list[str],
    ) -> QrSubmission:
        sub = QrSubmission(
            token_id=token_id,
            category=category,
            message=message,
            submitter_name=submitter_name,
            submitter_email=submitter_email,
            submitter_phone=submitter_phone,
            attachment_urls=",".join(attachment_urls) if attachment_urls else None,
        )
        self._session.add(sub)
        await self._session.flush()
        return sub

    async def list_submissions(self, token_id: uuid.UUID) -> list[QrSubmission]:
        stmt = (
            select(QrSubmission)
            .where(QrSubmission.token_id == token_id)
            .order_by(desc(QrSubmission.created_at))
        )
        return list((await self._session.execute(stmt)).scalars().all())
