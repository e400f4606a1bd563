"""
peopleguard.api.app

FastAPI app factory for the PeopleGuard HR case-management API.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Map service-layer exceptions to HTTP responses.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from peopleguard import __version__
from peopleguard.api.routers.analytics import router as analytics_router
from peopleguard.api.routers.audit import router as audit_router
from peopleguard.api.routers.audit_logs import router as audit_logs_router
from peopleguard.api.routers.auth import router as auth_router
from peopleguard.api.routers.cases import router as cases_router
from peopleguard.api.routers.dashboard import router as dashboard_router
from peopleguard.api.routers.employees import router as employees_router
from peopleguard.api.routers.files import router as files_router
from peopleguard.api.routers.health import router as health_router
from peopleguard.api.routers.investigations import router as investigations_router
from peopleguard.api.routers.leaves import router as leaves_router
from peopleguard.api.routers.qr import router as qr_router
from peopleguard.api.routers.warning_letters import router as warning_letters_router
from peopleguard.db.init_db import init_db
from peopleguard.db.session import create_engine, create_sessionmaker, session_scope
from peopleguard.observability.audit import AuditLoggingMiddleware
from peopleguard.observability.logging import configure_logging, get_logger
from peopleguard.observability.middleware import RequestContextMiddleware
from peopleguard.services.auth import seed_identity
from peopleguard.services.errors import ServiceError
from peopleguard.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Prod uses Alembic migrations and provisions users explicitly.
            await init_db(engine)
            async with session_scope(app.state.sessionmaker) as session:
                await seed_identity(session, settings)
        try:
            yield
        finally:
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="PeopleGuard API",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Registration order: the last middleware added is the outermost.
    app.add_middleware(AuditLoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)
    allow_all = "*" in settings.cors_allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allowed_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-request-id", "content-disposition"],
    )

    @app.exception_handler(ServiceError)
    async def _service_error(_: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(employees_router)
    app.include_router(cases_router)
    app.include_router(investigations_router)
    app.include_router(warning_letters_router)
    app.include_router(leaves_router)
    app.include_router(files_router)
    app.include_router(qr_router)
    app.include_router(audit_logs_router)
    app.include_router(audit_router)
    app.include_router(dashboard_router)
    app.include_router(analytics_router)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; business rules live in `peopleguard.services`.
