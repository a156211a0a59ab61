# app/middleware/request_id.py
from __future__ import annotations

"""
# StreamGate — Request ID Middleware (pure ASGI)

- Reuses a client-supplied `X-Request-ID` / `X-Correlation-ID` when it is a
  short, log-safe token; otherwise generates a UUIDv4.
- Stores it on `request.state.request_id` and echoes it on the response.
- Binds `request_id` into the loguru context for the lifetime of the request,
  so service logs (`logging.getLogger(__name__)`) are correlated.

## Env
- `REQUEST_ID_HEADER_NAME` (default: `X-Request-ID`)
- `REQUEST_ID_TRUST_CLIENT_IDS` (default: "true")
- `REQUEST_ID_MAX_LENGTH` (default: 128)
"""

import os
import re
import uuid

from loguru import logger
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER_NAME = os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID")
TRUST_CLIENT_IDS = os.getenv("REQUEST_ID_TRUST_CLIENT_IDS", "true").lower() == "true"
MAX_ID_LENGTH = int(os.getenv("REQUEST_ID_MAX_LENGTH", "128"))

# letters, digits and a few separators only; keeps ids out of log-injection territory
_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9._:-]+$")


def choose_request_id(headers: Headers, header_name: str = HEADER_NAME) -> str:
    if TRUST_CLIENT_IDS:
        incoming = (headers.get(header_name) or headers.get("X-Correlation-ID") or "").strip()
        if 0 < len(incoming) <= MAX_ID_LENGTH and _SAFE_ID_RE.fullmatch(incoming):
            return incoming
    return str(uuid.uuid4())


class RequestIDMiddleware:
    def __init__(self, app: ASGIApp, header_name: str = HEADER_NAME) -> None:
        self.app = app
        self.header_name = header_name
        self._header_bytes = header_name.lower().encode("latin-1")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        req_id = choose_request_id(Headers(scope=scope), self.header_name)
        scope.setdefault("state", {})["request_id"] = req_id

        async def _send(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = [(k, v) for (k, v) in message.get("headers", []) if k.lower() != self._header_bytes]
                headers.append((self._header_bytes, req_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        with logger.contextualize(request_id=req_id):
            await self.app(scope, receive, _send)


def get_request_id(request) -> str:
    """Current request id, or "" outside a request."""
    return getattr(getattr(request, "state", None), "request_id", "") or ""


__all__ = ["RequestIDMiddleware", "choose_request_id", "get_request_id"]
