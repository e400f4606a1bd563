"""
peopleguard.db.repositories.users

Repositories for `User` and `RefreshToken` entities.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.db.models import RefreshToken, User, utcnow


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: uuid.UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def create(
        self,
        *,
        email: str,
        display_name: str,
        password_hash: str,
        roles: list[str],
        is_active: bool = True,
    ) -> User:
        user = User(
            email=email.strip().lower(),
            display_name=display_name,
            password_hash=password_hash,
            roles=roles,
            is_active=is_active,
        )
        self._session.add(user)
        await self._session.flush()
        return user

    async def count(self) -> int:
        return int((await self._session.execute(select(func.count(User.id)))).scalar_one())


class RefreshTokenRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, *, user_id: uuid.UUID, token: str, expires_at: datetime) -> RefreshToken:
        rt = RefreshToken(user_id=user_id, token=token, expires_at=expires_at)
        self._session.add(rt)
        await self._session.flush()
        return rt

    async def get_by_token(self, token: str) -> RefreshToken | None:
        stmt = select(RefreshToken).where(RefreshToken.token == token)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def revoke(self, rt: RefreshToken, *, replaced_by: str | None = None) -> None:
        rt.is_revoked = True
        rt.revoked_at = utcnow()
        rt.replaced_by_token = replaced_by
        await self._session.flush()
