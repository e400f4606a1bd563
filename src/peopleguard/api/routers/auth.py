"""
peopleguard.api.routers.auth

Authentication endpoints.

Responsibilities:
- Login (access token in body, refresh token in an httpOnly cookie).
- Refresh-token rotation and logout.
- Admin user provisioning and the current-principal lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT, HTTP_401_UNAUTHORIZED

from peopleguard.api.deps import db_session, settings_dep
from peopleguard.auth.deps import get_principal, require_roles
from peopleguard.auth.models import Principal, Role
from peopleguard.services.auth import AuthService, IssuedSession
from peopleguard.services.errors import AuthenticationError
from peopleguard.settings import Settings

router = APIRouter(prefix="/api/auth", tags=["auth"])

_EMAIL = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
_COOKIE_PATH = "/api/auth"


class LoginRequest(BaseModel):
    email: str = Field(pattern=_EMAIL, max_length=256)
    password: str = Field(min_length=8, max_length=128)


class CreateUserRequest(BaseModel):
    email: str = Field(pattern=_EMAIL, max_length=256)
    password: str = Field(min_length=8, max_length=128)
    role: str = Role.hr.value
    display_name: str | None = Field(default=None, max_length=256)
    is_active: bool = True


class AuthResponse(BaseModel):
    user_id: uuid.UUID
    email: str
    roles: list[str]
    access_token: str
    expires_at_utc: datetime


class TokenResponse(BaseModel):
    access_token: str
    expires_at_utc: datetime


class MeResponse(BaseModel):
    user_id: str
    name: str
    email: str
    roles: list[str]


def _set_refresh_cookie(response: Response, settings: Settings, token: str | None) -> None:
    if not token:
        return
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=token,
        max_age=settings.refresh_token_ttl_days * 24 * 3600,
        path=_COOKIE_PATH,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="strict",
    )


def _clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        path=_COOKIE_PATH,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="strict",
    )


def _auth_response(issued: IssuedSession) -> AuthResponse:
    return AuthResponse(
        user_id=issued.user.id,
        email=issued.user.email,
        roles=list(issued.user.roles),
        access_token=issued.access_token,
        expires_at_utc=issued.expires_at,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> AuthResponse:
    issued = await AuthService(session=session, settings=settings).login(
        email=body.email, password=body.password
    )
    _set_refresh_cookie(response, settings, issued.refresh_token)
    return _auth_response(issued)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    request: Request,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
):
    token = request.cookies.get(settings.refresh_cookie_name)
    if not token:
        return JSONResponse(
            status_code=HTTP_401_UNAUTHORIZED, content={"detail": "Refresh token not found"}
        )
    try:
        issued = await AuthService(session=session, settings=settings).refresh(token=token)
    except AuthenticationError as e:
        # A dead cookie is cleared so the client stops replaying it.
        failed = JSONResponse(status_code=HTTP_401_UNAUTHORIZED, content={"detail": e.detail})
        _clear_refresh_cookie(failed, settings)
        return failed

    ok = JSONResponse(
        content=TokenResponse(
            access_token=issued.access_token, expires_at_utc=issued.expires_at
        ).model_dump(mode="json")
    )
    _set_refresh_cookie(ok, settings, issued.refresh_token)
    return ok


@router.post("/logout", status_code=HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> Response:
    await AuthService(session=session, settings=settings).logout(
        token=request.cookies.get(settings.refresh_cookie_name)
    )
    response = Response(status_code=HTTP_204_NO_CONTENT)
    _clear_refresh_cookie(response, settings)
    return response


@router.post(
    "/users",
    response_model=AuthResponse,
    status_code=HTTP_201_CREATED,
    dependencies=[Depends(require_roles(Role.admin))],
)
async def create_user(
    body: CreateUserRequest,
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(settings_dep),
) -> AuthResponse:
    issued = await AuthService(session=session, settings=settings).create_user(
        email=body.email,
        password=body.password,
        role=body.role,
        display_name=body.display_name,
        is_active=body.is_active,
    )
    return _auth_response(issued)


@router.get("/me", response_model=MeResponse)
async def me(principal: Principal = Depends(get_principal)) -> MeResponse:
    return MeResponse(
        user_id=principal.subject,
        name=principal.name,
        email=principal.email,
        roles=sorted(principal.roles),
    )
