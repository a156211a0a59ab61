from __future__ import annotations

"""
Signing utilities for time-limited playback URLs.

Two interchangeable signers back a playback grant:

- `HmacUrlSigner` (default): CDN/edge-friendly URL carrying
  `exp` and `sig = HMAC-SHA256(secret, path|purpose|exp)`. The media edge (or
  `verify_signed_url`) rejects the URL once `exp` has passed.
- `S3UrlSigner`: SigV4 presigned GET straight from the media bucket.

Both are pure functions of (storage key, now, ttl, secret) and hold no state
between calls. Configuration problems and storage failures raise
`SigningError`, which callers treat as an infrastructure failure.
"""

import hashlib
import hmac
import logging
import time
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

from pydantic import BaseModel

from app.core.config import settings
from app.utils.aws import S3Client, S3StorageError

logger = logging.getLogger(__name__)

_DEV_SECRET = "dev-secret-change-me"
DEFAULT_PURPOSE = "play"


class SigningError(RuntimeError):
    """The signer could not produce a URL (missing secret, storage failure)."""


class InvalidSignature(ValueError):
    """A presented URL is malformed, tampered with, or expired."""


class SignedURL(BaseModel):
    """Data returned when issuing a signed media URL.

    - url: path (or absolute URL) including query params (exp, sig, use).
    - expires_at: epoch seconds when the URL stops being valid.
    - token: the signature (hex for HMAC; empty for S3 presigns).
    """

    url: str
    expires_at: int
    token: str = ""


# ─────────────────────────────────────────────────────────────
# HMAC signer
# ─────────────────────────────────────────────────────────────
def _secret() -> bytes:
    configured = settings.STREAM_URL_SIGNING_SECRET
    if configured and configured.get_secret_value():
        return configured.get_secret_value().encode("utf-8")
    if settings.ALLOW_DEV_SIGNING:
        logger.warning("STREAM_URL_SIGNING_SECRET missing; using dev secret (DEV MODE)")
        return _DEV_SECRET.encode("utf-8")
    raise SigningError("Signing secret not configured")


def _safe_path(resource_path: str) -> str:
    resource_path = "/" + str(resource_path or "").lstrip("/")
    return "/" + "/".join(seg for seg in resource_path.split("/") if seg and seg not in {"..", "."})


def _signature(secret: bytes, path: str, purpose: str, exp: int) -> str:
    to_sign = f"{path}|{purpose}|{exp}".encode("utf-8")
    return hmac.new(secret, to_sign, hashlib.sha256).hexdigest()


def generate_signed_url(
    *,
    resource_path: str,
    expires_in: int,
    now: Optional[int] = None,
    purpose: str = DEFAULT_PURPOSE,
) -> SignedURL:
    """Generate an HMAC-signed URL for `resource_path` valid for `expires_in` seconds."""
    safe_path = _safe_path(resource_path)
    if safe_path == "/":
        raise SigningError("Empty resource path")
    now = int(time.time()) if now is None else int(now)
    exp = now + int(expires_in)
    sig = _signature(_secret(), safe_path, purpose, exp)
    query = urlencode({"exp": exp, "sig": sig, "use": purpose})
    return SignedURL(url=f"{settings.STREAM_BASE_URL.rstrip('/')}{safe_path}?{query}", expires_at=exp, token=sig)


def verify_signed_url(url: str, *, now: Optional[int] = None) -> str:
    """Validate an HMAC-signed URL and return the resource path it grants.

    Raises `InvalidSignature` when the URL is malformed, the signature does not
    match, or `now` has reached `exp`.
    """
    parsed = urlparse(url)
    params = parse_qs(parsed.query)
    try:
        exp = int(params["exp"][0])
        sig = params["sig"][0]
        purpose = params.get("use", [DEFAULT_PURPOSE])[0]
    except (KeyError, IndexError, ValueError):
        raise InvalidSignature("Missing or malformed signature parameters")

    base_path = urlparse(settings.STREAM_BASE_URL).path.rstrip("/")
    path = parsed.path
    if base_path and path.startswith(base_path):
        path = path[len(base_path):]
    path = _safe_path(path)

    expected = _signature(_secret(), path, purpose, exp)
    if not hmac.compare_digest(expected, sig):
        raise InvalidSignature("Signature mismatch")

    now = int(time.time()) if now is None else int(now)
    if now >= exp:
        raise InvalidSignature("URL expired")
    return path


class HmacUrlSigner:
    def sign(self, storage_key: str, *, ttl_seconds: int, now: Optional[int] = None) -> SignedURL:
        return generate_signed_url(resource_path=storage_key, expires_in=ttl_seconds, now=now)


# ─────────────────────────────────────────────────────────────
# S3 presign signer
# ─────────────────────────────────────────────────────────────
class S3UrlSigner:
    def __init__(self, client: Optional[S3Client] = None) -> None:
        self._client = client

    def _s3(self) -> S3Client:
        if self._client is None:
            try:
                self._client = S3Client()
            except S3StorageError as e:
                raise SigningError(str(e)) from e
        return self._client

    def sign(self, storage_key: str, *, ttl_seconds: int, now: Optional[int] = None) -> SignedURL:
        now = int(time.time()) if now is None else int(now)
        try:
            url = self._s3().presigned_get(storage_key, expires_in=ttl_seconds)
        except S3StorageError as e:
            raise SigningError(str(e)) from e
        return SignedURL(url=url, expires_at=now + int(ttl_seconds))


def get_url_signer():
    """Return the signer selected by `PLAYBACK_SIGNER` (hmac | s3)."""
    if settings.PLAYBACK_SIGNER == "s3":
        return S3UrlSigner()
    return HmacUrlSigner()


__all__ = [
    "SignedURL",
    "SigningError",
    "InvalidSignature",
    "generate_signed_url",
    "verify_signed_url",
    "HmacUrlSigner",
    "S3UrlSigner",
    "get_url_signer",
]
