"""
peopleguard.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (JWT secret, bootstrap admin password).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PEOPLEGUARD_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables and seeding.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "peopleguard-api"
    system_name: str = "PeopleGuard"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "peopleguard"
    jwt_audience: str = "peopleguard-api"
    jwt_secret: str = Field(default="dev-secret-change-me-at-least-32-bytes", repr=False)
    access_token_ttl_minutes: int = 60
    refresh_token_ttl_days: int = 7
    refresh_cookie_name: str = "pg_refresh_token"
    refresh_cookie_secure: bool = True

    # Bootstrap admin, seeded in dev/test when the users table is empty
    seed_admin_email: str = "admin@peopleguard.local"
    seed_admin_password: str = Field(default="Admin12345", repr=False)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./peopleguard.db"

    # File storage (attachments, letters, QR images)
    storage_root: str = "./storage"
    max_upload_bytes: int = 10 * 1024 * 1024

    # QR intake
    qr_expiry_days: int = 30
    qr_allow_anonymous: bool = True
    public_base_url: str = "http://localhost:5173"

    # HTTP
    cors_allowed_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Audit
    audit_retention_days: int = 90


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Lists (cors_allowed_origins) are read from env as JSON, e.g.
# PEOPLEGUARD_CORS_ALLOWED_ORIGINS='["https://hr.example.com"]'.
