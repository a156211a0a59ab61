# app/core/exceptions.py
from __future__ import annotations

"""
StreamGate — Application Exceptions
===================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
lets us attach structured metadata and integrate cleanly with the problem+json
shape rendered by `app.core.exception_handlers`.

Key ideas
---------
- One base `AppException` that carries `code`, `request_id`, `details`, `extra`.
- `EngineError` adds a stable `ReasonCode`; its subclasses fix the HTTP status
  for each outcome so routers never map codes by hand.
- Policy denials (`PlaybackDenied`) and infrastructure failures
  (`EngineUnavailable`) are distinct types and are never converted into one
  another.

Usage
-----
    raise PlaybackDenied(ReasonCode.FORBIDDEN_NOT_SUBSCRIBED)
    raise EngineUnavailable("subscription lookup failed") from exc
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from app.schemas.enums import ReasonCode

__all__ = [
    "AppException",
    "EngineError",
    "PlaybackDenied",
    "InvalidInput",
    "Unauthenticated",
    "EngineUnavailable",
    "REASON_STATUS",
]


# HTTP status for each reason code.
REASON_STATUS: Dict[ReasonCode, int] = {
    ReasonCode.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ReasonCode.FORBIDDEN_NOT_SUBSCRIBED: status.HTTP_403_FORBIDDEN,
    ReasonCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ReasonCode.ASSET_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ReasonCode.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ReasonCode.INTERNAL: status.HTTP_503_SERVICE_UNAVAILABLE,
}

_DEFAULT_MESSAGES: Dict[ReasonCode, str] = {
    ReasonCode.UNAUTHENTICATED: "Sign in to watch this episode",
    ReasonCode.FORBIDDEN_NOT_SUBSCRIBED: "An active subscription is required",
    ReasonCode.NOT_FOUND: "Episode not found",
    ReasonCode.ASSET_UNAVAILABLE: "Video is not available yet",
    ReasonCode.INVALID_INPUT: "Invalid input",
    ReasonCode.INTERNAL: "Service temporarily unavailable",
}


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with optional metadata.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable error message (serialized as `detail` as well).
    code : str | int
        Machine-readable code. Defaults to `status_code`.
    request_id : str | None
        Optional request correlation id.
    details : Any
        Machine-readable details (validation errors, ids, ...).
    extra : dict | None
        Additional non-sensitive metadata to surface to clients.
    """

    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        code: Optional[Any] = None,
        request_id: Optional[str] = None,
        details: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = code if code is not None else status_code
        self.message: str = message
        self.request_id: Optional[str] = request_id
        self.details: Optional[Any] = details
        self.extra: Dict[str, Any] = extra or {}

    # ── [Helper] Canonical body used by handlers ───────────────────────────
    def to_problem(self, *, fallback_request_id: Optional[str] = None) -> Dict[str, Any]:
        """Return the extension members merged into the problem+json body."""
        body: Dict[str, Any] = {
            "code": self.code,
            "request_id": self.request_id or fallback_request_id or "N/A",
        }
        if self.details is not None:
            body["details"] = self.details
        extra_sanitized = dict(self.extra) if self.extra else {}
        for k in ("token", "authorization", "url", "secret"):
            extra_sanitized.pop(k, None)
        body.update(extra_sanitized)
        return body


# ──────────────────────────────────────────────────────────────
# 🎬 Engine outcomes
# ──────────────────────────────────────────────────────────────
class EngineError(AppException):
    """Any engine outcome carrying a stable `ReasonCode`."""

    def __init__(
        self,
        reason: ReasonCode,
        message: Optional[str] = None,
        *,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.reason = ReasonCode(reason)
        super().__init__(
            status_code=REASON_STATUS[self.reason],
            message=message or _DEFAULT_MESSAGES[self.reason],
            code=self.reason.value,
            details=details,
            extra={"reason": self.reason.value},
            headers=headers,
        )


class PlaybackDenied(EngineError):
    """A policy outcome: the request is well-formed but may not proceed."""


class Unauthenticated(PlaybackDenied):
    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            ReasonCode.UNAUTHENTICATED,
            message,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidInput(EngineError):
    def __init__(self, message: Optional[str] = None, *, details: Optional[Any] = None) -> None:
        super().__init__(ReasonCode.INVALID_INPUT, message, details=details)


class EngineUnavailable(EngineError):
    """Infrastructure failure (storage, signer). Never a policy decision."""

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(ReasonCode.INTERNAL, message)
