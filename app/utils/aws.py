# app/utils/aws.py
from __future__ import annotations

"""
🧊 StreamGate • S3 Utilities
============================

Thin boto3 wrapper used by the S3 playback signer to mint short-lived
presigned GET URLs for video assets.

🎯 Goals
--------
- SigV4 presigned GET with explicit TTL
- Explicit timeouts + bounded retries
- Defensive key normalization (no leading slash, no `..`)
- Pluggable creds (env / role / IRSA) with explicit override if provided
- Zero secret leakage in logs

Failures surface as `S3StorageError`; callers translate them into an
infrastructure outcome, never a policy denial.
"""

from typing import Any, Dict, Optional
import logging
import re

import boto3
from botocore.config import Config as BotoConfig

from app.core.config import settings

logger = logging.getLogger(__name__)


class S3StorageError(RuntimeError):
    """Raised when a storage operation fails (config, network, auth, policy)."""


# Keep keys strict: readable + safe across tools, CDNs, and logs.
_KEY_ALLOWED_RE = re.compile(r"[A-Za-z0-9._\-/+=@() ]+")


def normalize_key(key: str) -> str:
    """
    Normalize and validate object keys.

    Steps
    -----
    1) Coerce to str, strip whitespace
    2) Remove leading '/'
    3) Collapse '//' runs
    4) Reject path traversal ('..') and disallowed characters
    """
    k = str(key or "").strip().lstrip("/")
    k = re.sub(r"/{2,}", "/", k)
    if not k:
        raise S3StorageError("Invalid storage key: empty")
    if ".." in k:
        raise S3StorageError("Invalid storage key: path traversal detected")
    if not _KEY_ALLOWED_RE.fullmatch(k):
        raise S3StorageError("Invalid storage key: contains forbidden characters")
    return k


class S3Client:
    """
    S3 wrapper with safe defaults.

    * Credentials: explicit `AWS_ACCESS_KEY_ID` / `AWS_SECRET_ACCESS_KEY` when
      configured, otherwise the standard AWS credential chain.
    * `S3_ENDPOINT_URL` supports S3-compatible stores (MinIO, LocalStack).
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        *,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.bucket = bucket or settings.AWS_BUCKET_NAME
        if not self.bucket:
            raise S3StorageError("AWS_BUCKET_NAME not configured")

        if client is not None:
            self.client = client
            return

        cfg = BotoConfig(
            signature_version="s3v4",
            retries={"max_attempts": 3, "mode": "standard"},
            connect_timeout=3,
            read_timeout=5,
        )
        client_kwargs: Dict[str, Any] = {"config": cfg, "region_name": region_name or settings.AWS_REGION}
        endpoint = endpoint_url or settings.S3_ENDPOINT_URL
        if endpoint:
            client_kwargs["endpoint_url"] = endpoint
        ak = settings.AWS_ACCESS_KEY_ID
        sk = settings.AWS_SECRET_ACCESS_KEY.get_secret_value() if settings.AWS_SECRET_ACCESS_KEY else None
        if ak and sk:
            client_kwargs["aws_access_key_id"] = ak
            client_kwargs["aws_secret_access_key"] = sk

        try:
            self.client = boto3.client("s3", **client_kwargs)
        except Exception as e:  # pragma: no cover
            raise S3StorageError(f"Failed to create S3 client: {e}") from e

    def presigned_get(self, key: str, *, expires_in: int = 300) -> str:
        """Generate a short-lived presigned GET URL for `key`."""
        params = {"Bucket": self.bucket, "Key": normalize_key(key)}
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params=params,
                ExpiresIn=int(expires_in),
            )
        except Exception as e:
            raise S3StorageError(f"Failed to create presigned GET: {e}") from e

    def __repr__(self) -> str:  # pragma: no cover
        return f"S3Client(bucket={self.bucket})"


__all__ = ["S3Client", "S3StorageError", "normalize_key"]
