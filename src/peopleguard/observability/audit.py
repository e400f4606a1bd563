"""
peopleguard.observability.audit

HTTP middleware that writes one `AuditLog` row per mutating request.

Responsibilities:
- Select audited requests (POST/PUT/PATCH/DELETE under audited API prefixes).
- Attribute the request to the bearer-token principal (or "Unknown").
- Derive entity type/id from the path and record status, client IP and duration.

Audit failures are logged and never change the response.
"""

from __future__ import annotations

import re
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from peopleguard.auth.deps import principal_from_token
from peopleguard.auth.jwt import JwtValidationError
from peopleguard.db.repositories.audit import AuditRepo
from peopleguard.observability.logging import get_logger

log = get_logger(__name__)

AUDITED_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# First path segment after /api/ -> entity type.
AUDITED_ENTITIES = {
    "employees": "Employee",
    "investigations": "Investigation",
    "cases": "Case",
    "warningletters": "WarningLetter",
    "leaves": "LeaveRequest",
    "qr": "QrToken",
}

_UUID = re.compile(
    r"^[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}$"
)


def entity_for_path(path: str) -> tuple[str, str] | None:
    segments = [s for s in path.split("/") if s]
    if len(segments) < 2 or segments[0] != "api":
        return None
    entity_type = AUDITED_ENTITIES.get(segments[1].lower())
    if entity_type is None:
        return None
    entity_id = next((s for s in reversed(segments) if _UUID.match(s)), "Unknown")
    return entity_type, entity_id


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return request.client.host if request.client else None


class AuditLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        target = entity_for_path(request.url.path)
        if request.method not in AUDITED_METHODS or target is None:
            return await call_next(request)

        started = time.perf_counter()
        status_code = 500
        try:
            response: Response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            await self._record(
                request,
                entity_type=target[0],
                entity_id=target[1],
                status_code=status_code,
                duration_ms=int((time.perf_counter() - started) * 1000),
            )

    async def _record(
        self,
        request: Request,
        *,
        entity_type: str,
        entity_id: str,
        status_code: int,
        duration_ms: int,
    ) -> None:
        user_id, user_name = "Unknown", "Unknown"
        auth = request.headers.get("authorization", "")
        if auth.lower().startswith("bearer "):
            try:
                principal = principal_from_token(
                    settings=request.app.state.settings, token=auth[7:].strip()
                )
                user_id = principal.subject
                user_name = principal.name or principal.email or principal.subject
            except JwtValidationError:
                pass

        ok = 200 <= status_code < 300
        try:
            async with request.app.state.sessionmaker() as session:
                await AuditRepo(session).add(
                    user_id=user_id,
                    user_name=user_name,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    action=request.method,
                    endpoint=request.url.path[:256],
                    http_method=request.method,
                    status_code=status_code,
                    ip_address=client_ip(request),
                    duration_ms=duration_ms,
                    notes=(
                        "Request processed successfully"
                        if ok
                        else f"Request failed with status {status_code}"
                    ),
                )
                await session.commit()
        except Exception:
            log.warning("audit_write_failed", entity_type=entity_type, exc_info=True)


# --- Module Notes -----------------------------------------------------------
# Reads are never audited. Service-level rows (e.g. leave reviews) carry before/after
# snapshots; rows from this middleware describe the HTTP call only.
