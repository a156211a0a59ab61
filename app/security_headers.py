# app/security_headers.py
from __future__ import annotations

"""
# StreamGate — Security Headers & CORS

The API only serves JSON, so the header set is the locked-down API profile:

- `Content-Security-Policy: default-src 'none'; frame-ancestors 'none'`
- HSTS (production only), `X-Content-Type-Options`, `X-Frame-Options`,
  `Referrer-Policy: no-referrer`, `Cross-Origin-Resource-Policy`
- Strict CORS allow-list from settings (`FRONTEND_ORIGINS` / `BACKEND_CORS_ORIGINS`)

## Env knobs
- ENABLE_HTTPS_REDIRECT (default "false"; TLS usually terminates at the edge)
- SECURITY_SKIP_PATHS (CSV; default "/docs,/redoc,/openapi.json")
- HSTS_MAX_AGE (31536000)
- ALLOW_ORIGINS_REGEX (single regex)
"""

import os
from dataclasses import dataclass, field
from typing import List, Tuple

from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.config import settings


@dataclass(frozen=True)
class SecurityHeadersConfig:
    hsts_max_age: int = int(os.getenv("HSTS_MAX_AGE", "31536000"))
    enable_hsts: bool = settings.is_production
    skip_prefixes: Tuple[str, ...] = field(
        default_factory=lambda: tuple(
            p.strip() for p in os.getenv("SECURITY_SKIP_PATHS", "/docs,/redoc,/openapi.json").split(",") if p.strip()
        )
    )

    def headers(self) -> List[Tuple[str, str]]:
        out = [
            ("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'"),
            ("X-Content-Type-Options", "nosniff"),
            ("X-Frame-Options", "DENY"),
            ("Referrer-Policy", "no-referrer"),
            ("Cross-Origin-Resource-Policy", "same-site"),
        ]
        if self.enable_hsts:
            out.append(("Strict-Transport-Security", f"max-age={self.hsts_max_age}; includeSubDomains"))
        return out


class SecurityHeadersMiddleware:
    """Append the API security headers unless the handler already set them."""

    def __init__(self, app: ASGIApp, cfg: SecurityHeadersConfig | None = None) -> None:
        self.app = app
        self.cfg = cfg or SecurityHeadersConfig()
        self._encoded = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in self.cfg.headers()]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "").startswith(self.cfg.skip_prefixes):
            await self.app(scope, receive, send)
            return

        async def _send(message: Message) -> None:
            if message["type"] == "http.response.start":
                raw = list(message.get("headers", []))
                present = {k.lower() for k, _ in raw}
                raw.extend((k, v) for k, v in self._encoded if k not in present)
                message["headers"] = raw
            await send(message)

        await self.app(scope, receive, _send)


def configure_cors(app) -> None:
    """Install CORS from the configured allow-list (never '*')."""
    origins = settings.frontend_origins_list
    origins_regex = os.getenv("ALLOW_ORIGINS_REGEX", "").strip() or None
    if not origins and not origins_regex and settings.is_development:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=origins_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID", "X-API-Key", "traceparent"],
        expose_headers=["X-Request-ID", "Retry-After"],
        max_age=3600,
    )


def install_security(app) -> None:
    if os.getenv("ENABLE_HTTPS_REDIRECT", "false").lower() == "true":
        app.add_middleware(HTTPSRedirectMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)


__all__ = ["SecurityHeadersConfig", "SecurityHeadersMiddleware", "install_security", "configure_cors"]
