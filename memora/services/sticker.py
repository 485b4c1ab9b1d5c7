"""Sticker generation pipeline: resize, restyle, persist, publish."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol

from memora.errors import (
    InvalidProviderResponse,
    ProviderError,
    PublicUrlUnavailable,
    StickerError,
)
from memora.imggen.generator_client import TransformProviderError
from memora.imgproc.normalize import ImageNormalizer
from memora.metrics.prometheus_exporter import (
    sticker_archive_total,
    sticker_generation_total,
    sticker_provider_retries_total,
)
from memora.storage.backend import StorageBackend, extension_for, object_path

logger = logging.getLogger(__name__)

EDITED_PREFIX = "edited-"
EDITED_CONTENT_TYPE = "image/png"

Sleep = Callable[[float], Awaitable[None]]


class ImageTransformer(Protocol):
    async def edit_image(self, image_png: bytes, prompt: str) -> str:
        ...


@dataclass(slots=True)
class StickerResult:
    """Published sticker returned to the caller."""

    image_url: str
    object_path: str


class StickerService:
    """Runs one upload through the provider and stores the generated sticker."""

    def __init__(
        self,
        generator: ImageTransformer,
        storage: StorageBackend,
        normalizer: ImageNormalizer,
        *,
        max_attempts: int = 2,
        retry_delay: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._generator = generator
        self._storage = storage
        self._normalizer = normalizer
        self._max_attempts = max(1, max_attempts)
        self._retry_delay = retry_delay
        self._sleep = sleep

    async def generate(self, image_bytes: bytes, prompt: str | None) -> StickerResult:
        """Return the public URL of a sticker rendered from ``image_bytes``.

        Raises:
            StickerError: any pipeline step failed; nothing is published in that case
        """

        try:
            result = await self._generate(image_bytes, prompt)
        except StickerError as exc:
            sticker_generation_total.labels(outcome=type(exc).__name__).inc()
            raise
        except Exception:
            sticker_generation_total.labels(outcome="InternalError").inc()
            raise
        sticker_generation_total.labels(outcome="success").inc()
        return result

    async def _generate(self, image_bytes: bytes, prompt: str | None) -> StickerResult:
        if prompt:
            logger.info("Received prompt: %s...", prompt[:100])
        else:
            logger.warning("No prompt provided; calling the image provider without one.")

        logger.info("Resizing user image to fit within %dx%d", self._normalizer.max_side, self._normalizer.max_side)
        resized = await asyncio.to_thread(self._normalizer.normalize, image_bytes)

        image_base64 = await self._transform_with_retry(resized, prompt or "")
        try:
            sticker_bytes = base64.b64decode(image_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            logger.error("Image provider returned undecodable base64 data: %s", exc)
            raise InvalidProviderResponse(details="Result image data is not valid base64.") from exc

        path = object_path(EDITED_PREFIX, "png")
        await self._storage.save(path, sticker_bytes, content_type=EDITED_CONTENT_TYPE)

        image_url = await self._storage.public_url(path)
        if not image_url:
            logger.error("Public URL not found for %s", path)
            raise PublicUrlUnavailable()

        logger.info("Final edited image URL: %s", image_url)
        return StickerResult(image_url=image_url, object_path=path)

    async def _transform_with_retry(self, image_png: bytes, prompt: str) -> str:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._generator.edit_image(image_png, prompt)
            except TransformProviderError as exc:
                logger.error("Image provider call attempt %d failed: %s", attempt, exc.message)
                if not exc.transient or attempt >= self._max_attempts:
                    raise ProviderError.from_provider(exc.message, exc.status_code) from exc

            sticker_provider_retries_total.inc()
            logger.info("Retrying image provider call (%d/%d)...", attempt, self._max_attempts - 1)
            await self._sleep(self._retry_delay)

    async def archive_original(self, image_bytes: bytes, filename: str | None, content_type: str | None) -> str | None:
        """Store the untouched upload for audit; failures are logged, never raised."""

        path = object_path("", extension_for(filename))
        try:
            await self._storage.save(
                path,
                image_bytes,
                content_type=content_type or "application/octet-stream",
            )
        except Exception:
            sticker_archive_total.labels(outcome="failure").inc()
            logger.exception("Upload of original image to %s failed", path)
            return None

        sticker_archive_total.labels(outcome="success").inc()
        logger.info("Original image archived at %s", path)
        return path
