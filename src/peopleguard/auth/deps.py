"""
peopleguard.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal`.
- Enforce RBAC via reusable dependency factories.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from peopleguard.api.deps import settings_dep
from peopleguard.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from peopleguard.auth.models import Principal
from peopleguard.settings import Settings

_bearer = HTTPBearer(auto_error=False)


def principal_from_token(*, settings: Settings, token: str) -> Principal:
    payload = decode_and_validate(cfg=JwtConfig.from_settings(settings), token=token)

    subject = str(payload.get("sub", ""))
    roles_raw = payload.get("roles", [])
    if not subject:
        raise JwtValidationError("Invalid token subject")
    if not isinstance(roles_raw, list):
        raise JwtValidationError("Invalid token roles")

    return Principal(
        subject=subject,
        name=str(payload.get("name") or ""),
        email=str(payload.get("email") or ""),
        roles=frozenset(str(r) for r in roles_raw),
    )


def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(settings_dep),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    try:
        return principal_from_token(settings=settings, token=creds.credentials)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e


def require_roles(*allowed: str):
    allowed_set = frozenset(allowed)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        # Authz: any one of the listed roles is sufficient.
        if not principal.has_any(allowed_set):
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient role")
        return principal

    return _dep


# --- Module Notes -----------------------------------------------------------
# Admin is listed explicitly on every gate that allows it; there is no implicit bypass,
# so e.g. leave review stays ER-only.
