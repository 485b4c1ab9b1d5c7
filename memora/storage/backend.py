"""Object storage backends for generated stickers and archived uploads."""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import PurePosixPath
from typing import Any, Protocol

from supabase import Client

from memora.errors import StorageUploadFailed

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "public"


def object_path(prefix: str, extension: str) -> str:
    """Return a collision-free object key such as ``public/edited-<uuid>.png``."""

    extension = extension.lstrip(".") or "bin"
    return f"{PUBLIC_PREFIX}/{prefix}{uuid.uuid4()}.{extension}"


def extension_for(filename: str | None, default: str = "bin") -> str:
    """Return the lower-cased extension of ``filename`` without the dot."""

    if not filename:
        return default
    suffix = PurePosixPath(filename).suffix
    return suffix[1:].lower() if len(suffix) > 1 else default


def _storage_message(exc: Exception) -> str:
    message = getattr(exc, "message", None)
    if message:
        return str(message)
    if exc.args and isinstance(exc.args[0], dict):
        return str(exc.args[0].get("message") or exc.args[0])
    return str(exc) or exc.__class__.__name__


class StorageBackend(Protocol):
    """Write-once object storage with public URLs."""

    async def save(self, path: str, data: bytes, *, content_type: str) -> str:
        """Store ``data`` under ``path`` and return the stored key."""

    async def public_url(self, path: str) -> str | None:
        """Return a public URL for ``path`` or ``None`` when unavailable."""


class SupabaseStorage:
    """Handles uploads to a single Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str, *, cache_control: str = "3600") -> None:
        self._client = client
        self._bucket = bucket
        self._cache_control = cache_control

    @property
    def bucket(self) -> str:
        return self._bucket

    def _upload(self, path: str, data: bytes, content_type: str) -> Any:
        return self._client.storage.from_(self._bucket).upload(
            path=path,
            file=data,
            file_options={
                "cache-control": self._cache_control,
                "content-type": content_type,
                "upsert": "false",
            },
        )

    async def save(self, path: str, data: bytes, *, content_type: str) -> str:
        """Upload ``data`` without overwriting an existing object.

        Raises:
            StorageUploadFailed: the storage service rejected the upload
        """

        try:
            await asyncio.to_thread(self._upload, path, data, content_type)
        except Exception as exc:
            message = _storage_message(exc)
            logger.error("Failed to upload file to %s/%s: %s", self._bucket, path, message)
            raise StorageUploadFailed.from_storage(message) from exc

        logger.info("Uploaded file to %s/%s", self._bucket, path)
        return path

    async def public_url(self, path: str) -> str | None:
        url = await asyncio.to_thread(self._client.storage.from_(self._bucket).get_public_url, path)
        return url or None

    async def ping(self) -> bool:
        """Return ``True`` when the configured bucket can be fetched."""

        bucket = await asyncio.to_thread(self._client.storage.get_bucket, self._bucket)
        return bucket is not None
