# app/core/config.py
from __future__ import annotations

"""
# StreamGate — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; explicit where prod needs secrets.
- Entitlement policy knobs (free-tier threshold, grant TTL, plan catalog)
  live here and are passed into the services, never inlined.
- Optional external systems (S3/CDN) so imports never crash in dev.

## Usage
    from app.core.config import settings
"""

import logging
from typing import Dict, List, Optional, Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr, AnyHttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Entitlement policy constants
# ─────────────────────────────────────────────────────────────
# Episodes with order <= this value are playable without a subscription.
FREE_EPISODE_THRESHOLD: int = 2

# Fixed plan catalog: days per billing period and list price (minor units).
PLAN_DURATION_DAYS: Dict[str, int] = {"weekly": 7, "monthly": 30}
PLAN_PRICES: Dict[str, int] = {"weekly": 99, "monthly": 199}


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


def _normalize_url_like(v: str | None, *, require_scheme: bool = True) -> str:
    """Normalize to a string URL without trailing slash."""
    s = (v or "").strip()
    if not s:
        return ""
    if require_scheme and not (s.startswith("http://") or s.startswith("https://")):
        s = "https://" + s
    return s.rstrip("/")


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Security:
        - Explicit secrets for JWT and the playback URL signer.
        - S3 presigning is optional; the HMAC signer works without AWS.

    Notes:
        - Policy constants (free threshold, plan catalog) are module-level
          and intentionally not env-overridable.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "StreamGate API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True

    # ── Security / JWT ────────────────────────────────────────
    JWT_SECRET_KEY: SecretStr = Field(...)
    JWT_ALGORITHM: Literal["HS256", "HS384", "HS512"] = "HS256"
    JWT_ISSUER: Optional[str] = None
    JWT_AUDIENCE: Optional[str] = None

    # ── Redis / Rate limiting ─────────────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    DEFAULT_RATE_LIMIT: Optional[str] = None  # e.g., "200/minute"
    RATELIMIT_STORAGE_URI: Optional[str] = None  # fallback to REDIS_URL if unset

    # ── Database (PostgreSQL) ─────────────────────────────────
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = Field(...)
    POSTGRES_DB: str = "streamgate"
    DB_STATEMENT_TIMEOUT_MS: int = Field(5000, ge=100, le=120_000)

    # ── CORS ─────────────────────────────────────────────────
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = Field(
        default_factory=lambda: ["http://localhost:8000", "http://localhost:5173"]
    )
    FRONTEND_ORIGINS: Optional[str] = None  # CSV

    # ── Entitlement / playback ────────────────────────────────
    PLAYBACK_GRANT_TTL_SECONDS: int = Field(300, ge=30, le=3600)
    SUBSCRIPTION_STATE_CACHE_TTL_SECONDS: int = Field(60, ge=0, le=3600)
    RECENT_PROGRESS_DEFAULT_LIMIT: int = Field(5, ge=1, le=50)

    # ── Playback URL signing ──────────────────────────────────
    PLAYBACK_SIGNER: Literal["hmac", "s3"] = "hmac"
    STREAM_URL_SIGNING_SECRET: Optional[SecretStr] = None
    STREAM_BASE_URL: str = "/media"
    ALLOW_DEV_SIGNING: bool = False

    # ── S3 (optional in dev) ──────────────────────────────────
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[SecretStr] = None
    AWS_REGION: str = "us-east-1"
    AWS_BUCKET_NAME: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _assemble_cors_origins(cls, v: str | List[str]):
        if isinstance(v, str):
            return _split_csv(v)
        return v

    @field_validator("FRONTEND_ORIGINS", mode="before")
    @classmethod
    def _normalize_frontend_csv(cls, v):
        return None if v is None else ",".join(_split_csv(str(v)))

    @field_validator("STREAM_BASE_URL", mode="before")
    @classmethod
    def _normalize_stream_base(cls, v) -> str:
        """Relative paths stay relative; hosts get a scheme. No trailing slash."""
        s = str(v or "/media").strip()
        if s.startswith("/"):
            return s.rstrip("/") or "/"
        return _normalize_url_like(s)

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENV.lower() == "development"

    # Database DSNs (stringified for simplicity)
    @property
    def DATABASE_URL(self) -> str:
        """Sync DSN."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN."""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def frontend_origins_list(self) -> List[str]:
        """
        Preferred CORS allowlist:
        Priority → FRONTEND_ORIGINS (CSV) → BACKEND_CORS_ORIGINS (typed list).
        """
        if self.FRONTEND_ORIGINS:
            return _split_csv(self.FRONTEND_ORIGINS)
        return [str(u).rstrip("/") for u in (self.BACKEND_CORS_ORIGINS or [])]

    @property
    def ratelimit_storage(self) -> Optional[str]:
        """Storage URI for SlowAPI; prefer RATELIMIT_STORAGE_URI, else REDIS_URL."""
        return self.RATELIMIT_STORAGE_URI or (self.REDIS_URL if self.REDIS_URL else None)

    @property
    def free_episode_threshold(self) -> int:
        return FREE_EPISODE_THRESHOLD

    @property
    def plan_duration_days(self) -> Dict[str, int]:
        return dict(PLAN_DURATION_DAYS)

    @property
    def plan_prices(self) -> Dict[str, int]:
        return dict(PLAN_PRICES)


# Singleton instance
settings = Settings()
