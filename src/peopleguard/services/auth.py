"""
peopleguard.services.auth

Identity service: login, refresh-token rotation, logout, user provisioning.

Responsibilities:
- Verify credentials and issue access tokens (JWT) plus opaque refresh tokens.
- Rotate refresh tokens on use; revoke on logout.
- Provision users (Admin-only at the API layer) and seed the bootstrap admin.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from peopleguard.auth.jwt import JwtConfig, issue_token
from peopleguard.auth.models import ALL_ROLES, Role
from peopleguard.auth.passwords import hash_password, meets_policy, verify_password
from peopleguard.db.models import User, utcnow
from peopleguard.db.repositories.users import RefreshTokenRepo, UserRepo
from peopleguard.observability.logging import get_logger
from peopleguard.services.errors import (
    AuthenticationError,
    ConflictError,
    ValidationFailedError,
)
from peopleguard.settings import Settings

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class IssuedSession:
    user: User
    access_token: str
    expires_at: datetime
    refresh_token: str | None


class AuthService:
    def __init__(self, *, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._users = UserRepo(session)
        self._refresh = RefreshTokenRepo(session)

    def _access_token(self, user: User) -> tuple[str, datetime]:
        return issue_token(
            cfg=JwtConfig.from_settings(self._settings),
            subject=str(user.id),
            roles=list(user.roles),
            name=user.display_name,
            email=user.email,
            ttl=timedelta(minutes=self._settings.access_token_ttl_minutes),
        )

    async def _new_refresh_token(self, user: User) -> str:
        token = secrets.token_urlsafe(64)
        await self._refresh.add(
            user_id=user.id,
            token=token,
            expires_at=utcnow() + timedelta(days=self._settings.refresh_token_ttl_days),
        )
        return token

    async def login(self, *, email: str, password: str) -> IssuedSession:
        user = await self._users.get_by_email(email)
        if user is None or not user.is_active or not verify_password(user.password_hash, password):
            log.info("login_failed")
            raise AuthenticationError("Invalid credentials.")

        access, expires = self._access_token(user)
        refresh = await self._new_refresh_token(user)
        await self._session.commit()
        log.info("login_succeeded", user_id=str(user.id))
        return IssuedSession(
            user=user, access_token=access, expires_at=expires, refresh_token=refresh
        )

    async def refresh(self, *, token: str) -> IssuedSession:
        current = await self._refresh.get_by_token(token)
        if current is None or not current.is_active:
            raise AuthenticationError("Invalid or expired refresh token")
        user = await self._users.get(current.user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("Invalid or expired refresh token")

        replacement = await self._new_refresh_token(user)
        await self._refresh.revoke(current, replaced_by=replacement)
        access, expires = self._access_token(user)
        await self._session.commit()
        return IssuedSession(
            user=user, access_token=access, expires_at=expires, refresh_token=replacement
        )

    async def logout(self, *, token: str | None) -> None:
        if not token:
            return
        current = await self._refresh.get_by_token(token)
        if current is not None and not current.is_revoked:
            await self._refresh.revoke(current)
            await self._session.commit()

    async def create_user(
        self,
        *,
        email: str,
        password: str,
        role: str,
        display_name: str | None = None,
        is_active: bool = True,
    ) -> IssuedSession:
        if not meets_policy(password):
            raise ValidationFailedError(
                "Password must be at least 8 characters, alphanumeric, "
                "and contain at least one letter and one digit."
            )
        if role not in ALL_ROLES:
            raise ValidationFailedError(f"Role must be one of: {', '.join(ALL_ROLES)}")
        if await self._users.get_by_email(email) is not None:
            raise ConflictError("A user with this email already exists.")

        user = await self._users.create(
            email=email,
            display_name=display_name or email.split("@", 1)[0],
            password_hash=hash_password(password),
            roles=[role],
            is_active=is_active,
        )
        await self._session.commit()
        log.info("user_created", user_id=str(user.id), role=role)
        access, expires = self._access_token(user)
        return IssuedSession(user=user, access_token=access, expires_at=expires, refresh_token=None)


async def seed_identity(session: AsyncSession, settings: Settings) -> None:
    """Create the bootstrap admin when the users table is empty."""
    users = UserRepo(session)
    if await users.count() > 0:
        return
    await users.create(
        email=settings.seed_admin_email,
        display_name="System Administrator",
        password_hash=hash_password(settings.seed_admin_password),
        roles=[Role.admin.value],
    )
    await session.commit()
    log.info("identity_seeded")


# --- Module Notes -----------------------------------------------------------
# Refresh tokens never appear in response bodies; the router sets them as an
# httpOnly cookie. Rotation keeps `replaced_by_token` for reuse forensics.
