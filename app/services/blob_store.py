# app/services/blob_store.py
"""
Local-filesystem blob store for payment screenshots.

Blobs live under a root folder and are addressed by relative paths such as
"screenshots/1700000000000_a1b2c3.png". Read access goes through signed,
expiring URLs (/blobs/<token>) so stored files are never served by path.

Public API:
    upload(path, data, content_type) -> path
    signed_url(path, ttl_seconds) -> url
    resolve(token) -> (absolute file path, content_type)
    remove(paths)
"""

from __future__ import annotations

import logging
import mimetypes
import os
import time
from typing import Callable, Iterable, Tuple

from itsdangerous import BadSignature, SignatureExpired, TimestampSigner, URLSafeTimedSerializer

from app.errors import BlobNotFound, BlobStoreError

logger = logging.getLogger(__name__)

# URL prefix handled by routes_investments.serve_blob
SIGNED_URL_PREFIX = "/blobs/"


class _ClockSigner(TimestampSigner):
    """TimestampSigner that reads time from the store's clock."""

    def __init__(self, *args, clock: Callable[[], float] = time.time, **kwargs):
        super().__init__(*args, **kwargs)
        self.clock = clock

    def get_timestamp(self) -> int:
        return int(self.clock())


class LocalBlobStore:
    def __init__(
        self,
        root_dir: str,
        secret: str,
        clock: Callable[[], float] = time.time,
    ):
        self.root_dir = os.path.abspath(root_dir)
        self.clock = clock
        self._serializer = URLSafeTimedSerializer(
            secret,
            salt="blob-url",
            signer=_ClockSigner,
            signer_kwargs={"clock": clock},
        )
        os.makedirs(self.root_dir, exist_ok=True)

    def _full_path(self, path: str) -> str:
        """Map a blob path to a file under root_dir, refusing anything that escapes it."""
        if not path or os.path.isabs(path):
            raise BlobStoreError(f"Invalid blob path: {path!r}")

        full = os.path.abspath(os.path.join(self.root_dir, path))
        if os.path.commonpath([full, self.root_dir]) != self.root_dir:
            raise BlobStoreError(f"Invalid blob path: {path!r}")
        return full

    def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        """
        Store bytes at `path`. Existing blobs are never overwritten.
        """
        full = self._full_path(path)
        if os.path.exists(full):
            raise BlobStoreError(f"Blob already exists: {path}")

        try:
            os.makedirs(os.path.dirname(full), exist_ok=True)
            with open(full, "xb") as f:
                f.write(data)
        except OSError as e:
            raise BlobStoreError(f"Upload failed for {path}: {e}") from e

        logger.info("[blob] stored %s (%d bytes, %s)", path, len(data), content_type or "unknown")
        return path

    def signed_url(self, path: str, ttl_seconds: int) -> str:
        """Return a URL that serves `path` until now + ttl_seconds."""
        full = self._full_path(path)
        if not os.path.isfile(full):
            raise BlobNotFound(f"No blob at {path}")

        token = self._serializer.dumps({"path": path, "ttl": int(ttl_seconds)})
        return SIGNED_URL_PREFIX + token

    def resolve(self, token: str) -> Tuple[str, str]:
        """
        Validate a signed URL token and return (file path, content type).
        Raises BlobNotFound for bad signatures, expired links, or missing files.
        """
        try:
            payload = self._serializer.loads(token)
        except BadSignature as e:
            raise BlobNotFound("Invalid signed URL") from e

        if not isinstance(payload, dict) or "path" not in payload or "ttl" not in payload:
            raise BlobNotFound("Invalid signed URL")

        # The ttl is only trusted once the signature above has checked out.
        try:
            self._serializer.loads(token, max_age=payload["ttl"])
        except SignatureExpired as e:
            raise BlobNotFound("Signed URL has expired") from e

        full = self._full_path(payload["path"])
        if not os.path.isfile(full):
            raise BlobNotFound(f"No blob at {payload['path']}")

        content_type = mimetypes.guess_type(full)[0] or "application/octet-stream"
        return full, content_type

    def remove(self, paths: Iterable[str]) -> None:
        """Delete blobs; paths that are already gone are skipped."""
        for path in paths:
            full = self._full_path(path)
            try:
                os.remove(full)
            except FileNotFoundError:
                logger.debug("[blob] %s already removed", path)
                continue
            except OSError as e:
                raise BlobStoreError(f"Failed to remove {path}: {e}") from e
            logger.info("[blob] removed %s", path)
