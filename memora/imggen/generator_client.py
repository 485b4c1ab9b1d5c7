"""Async client for the sticker image transform (OpenAI images.edit)."""

from __future__ import annotations

import logging
import re
from io import BytesIO
from typing import Any, Mapping

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI, OpenAIError

from memora.config.settings import Settings, get_settings
from memora.errors import InvalidProviderResponse

logger = logging.getLogger(__name__)

_CONNECTION_ERROR_PATTERN = re.compile(r"connection error", re.IGNORECASE)

# Models that always answer with base64 and reject ``response_format``.
_B64_ONLY_MODELS = ("gpt-image-",)


class TransformProviderError(RuntimeError):
    """Raised when the image provider call fails.

    ``transient`` marks failures worth one more attempt: dropped connections
    and transport-level errors. Timeouts and HTTP status errors are final.
    """

    def __init__(self, message: str, *, status_code: int | None = None, transient: bool = False) -> None:
        self.message = message
        self.status_code = status_code
        self.transient = transient
        super().__init__(message)


def classify_failure(exc: BaseException) -> TransformProviderError:
    """Map an exception raised during a provider call onto ``TransformProviderError``."""

    if isinstance(exc, TransformProviderError):
        return exc

    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    if isinstance(exc, APIStatusError):
        return TransformProviderError(message, status_code=exc.status_code)
    if isinstance(exc, (APITimeoutError, httpx.TimeoutException)):
        return TransformProviderError(message)
    if isinstance(exc, (APIConnectionError, httpx.TransportError, ConnectionResetError)):
        return TransformProviderError(message, transient=True)
    return TransformProviderError(message, transient=bool(_CONNECTION_ERROR_PATTERN.search(message)))


class StickerGeneratorClient:
    """Sends a single image plus prompt to the provider and returns base64 PNG data."""

    def __init__(self, settings: Settings | None = None, *, client: AsyncOpenAI | None = None) -> None:
        settings = settings or get_settings()
        if client is None:
            if not settings.openai_api_key:
                raise RuntimeError("OpenAI API key is not configured.")
            client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url.rstrip("/") or None,
                # Retries are decided by StickerService using classify_failure.
                max_retries=0,
            )

        self._settings = settings
        self._client = client

    def _as_upload(self, image_png: bytes, name: str = "user_input.png") -> BytesIO:
        buffer = BytesIO(image_png)
        buffer.name = name
        return buffer

    def _request_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "model": self._settings.image_model,
            "n": 1,
            "size": self._settings.image_size,
        }
        if not self._settings.image_model.startswith(_B64_ONLY_MODELS):
            options["response_format"] = "b64_json"
        return options

    async def edit_image(self, image_png: bytes, prompt: str) -> str:
        """Run one images.edit call and return the base64 payload of the first result.

        Raises:
            TransformProviderError: the call itself failed (see ``transient``).
            InvalidProviderResponse: the provider answered without image data.
        """

        upload = self._as_upload(image_png)
        try:
            result = await self._client.images.edit(
                image=upload,
                prompt=prompt,
                timeout=self._settings.image_timeout,
                **self._request_options(),
            )
        except (OpenAIError, httpx.HTTPError, OSError) as exc:
            raise classify_failure(exc) from exc
        finally:
            upload.close()

        return self._extract_b64(result)

    def _extract_b64(self, result: Any) -> str:
        data_attr = getattr(result, "data", None)
        if data_attr is None and isinstance(result, Mapping):
            data_attr = result.get("data")
        if not isinstance(data_attr, list) or not data_attr:
            logger.error("Image provider response does not contain data: %r", result)
            raise InvalidProviderResponse()

        primary = data_attr[0]
        image_base64 = getattr(primary, "b64_json", None)
        if image_base64 is None and isinstance(primary, Mapping):
            image_base64 = primary.get("b64_json")
        if not image_base64:
            logger.error("Image provider did not return image data (b64_json): %r", result)
            raise InvalidProviderResponse(details="Result is missing b64_json image data.")
        return image_base64

    async def ping(self) -> bool:
        """Return ``True`` when the service responds to a model listing call."""

        models = await self._client.models.list()
        return bool(models.data)

    async def close(self) -> None:
        """Close the underlying HTTP session."""

        await self._client.close()
