# app/main.py
from __future__ import annotations

"""
# StreamGate API — Application Entrypoint (FastAPI)

ASGI application factory and lifecycle for the entitlement & secure playback
authorization service.

## Design Goals
- Deterministic, testable **app factory** (`create_app`) with explicit lifespan.
- Explicit **middleware order**:
  1) request id → 2) security headers → 3) CORS → 4) gzip → 5) rate limits →
  6) strip `Server` header.
- Centralized problem+json error handling (`app.core.exception_handlers`).
- Best-effort infra at startup: Redis is an optimisation, never a hard dependency.

## Probes
- `/healthz` — liveness (process up).
- `/readyz` — readiness (DB `SELECT 1` + Redis ping).
- `/metrics` — Prometheus exposition.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable
import logging
import os

from fastapi import FastAPI, Request
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse, Response

# Importing configures Loguru sinks and the stdlib intercept.
from app.core import logger as _logsetup  # noqa: F401

from app.api.v1.routers import router as api_v1_router
from app.core.config import settings
from app.core.exception_handlers import register_exception_handlers
from app.core.limiter import install_rate_limiter, rate_limit_exempt
from app.core.redis_client import redis_wrapper
from app.db.session import db_healthcheck, dispose_engine
from app.middleware.request_id import RequestIDMiddleware
from app.security_headers import configure_cors, install_security

logger = logging.getLogger("streamgate")


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan: startup & shutdown
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup:
        - Best-effort connect to Redis (listing cache, token revocation).
    Shutdown:
        - Dispose the DB engine and close Redis.
    """
    logger.info("✅ StreamGate API starting up (env=%s)", settings.ENV)
    try:
        await redis_wrapper.connect()
        logger.info("🔌 Redis connected")
    except RuntimeError:
        logger.warning("Redis unavailable; continuing without listing cache")

    try:
        yield
    finally:
        await dispose_engine()
        await redis_wrapper.close()
        logger.info("🛑 StreamGate API shutting down")


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app() -> FastAPI:
    """Build the FastAPI app with middleware, handlers, routers and probes."""
    docs = settings.ENABLE_DOCS
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=lifespan,
    )

    # ── Middlewares (added inner-most first) ────────────────────────────────
    install_rate_limiter(app)
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    configure_cors(app)
    install_security(app)
    app.add_middleware(RequestIDMiddleware)

    @app.middleware("http")
    async def _strip_server_header(request: Request, call_next: Callable) -> Response:
        response: Response = await call_next(request)
        if "server" in response.headers:
            del response.headers["server"]
        return response

    register_exception_handlers(app)

    # ── Routers (versioned API) ─────────────────────────────────────────────
    app.include_router(api_v1_router, prefix=settings.API_V1_STR)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    @rate_limit_exempt()
    async def healthz(request: Request) -> dict[str, bool]:
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    @rate_limit_exempt()
    async def readyz(request: Request) -> JSONResponse:
        """Readiness: DB is required, Redis is reported but optional."""
        db_ok = await db_healthcheck()
        redis_ok = await redis_wrapper.is_connected()
        body = {"ready": db_ok, "checks": {"db": db_ok, "redis": redis_ok}}
        return JSONResponse(body, status_code=200 if db_ok else 503)

    @app.get("/metrics", include_in_schema=False)
    @rate_limit_exempt()
    async def metrics(request: Request) -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        return JSONResponse({"name": settings.PROJECT_NAME, "docs": app.docs_url or "", "version": settings.VERSION})

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn/Gunicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


# Local dev runner (prefer: `uvicorn app.main:app --reload`)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") == "1",
        workers=int(os.getenv("WORKERS", "1")),
        log_level=os.getenv("LOG_LEVEL", "info"),
    )
