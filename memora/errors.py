"""Error taxonomy for the sticker endpoint.

Every failure that reaches the HTTP boundary is a :class:`StickerError`
subclass carrying the status code and the message returned to the client.
"""

from __future__ import annotations

from typing import Any

from fastapi import status


class StickerError(Exception):
    """Base class for failures converted into JSON error responses."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal Server Error"

    def __init__(
        self,
        message: str | None = None,
        *,
        details: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body sent to the client."""

        payload: dict[str, Any] = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class Unauthorized(StickerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized: User not logged in"


class AuthCheckFailed(StickerError):
    default_message = "Failed to retrieve user session"


class MissingInput(StickerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "No image file provided"


class PreprocessingFailed(StickerError):
    default_message = "Failed to resize user image"


class ProviderError(StickerError):
    """Image provider failure; keeps the provider's status when it reported one."""

    @classmethod
    def from_provider(cls, message: str, status_code: int | None) -> "ProviderError":
        return cls(f"OpenAI API Error: {message}", status_code=status_code)


class InvalidProviderResponse(StickerError):
    default_message = "Invalid response structure from image provider"


class StorageUploadFailed(StickerError):
    @classmethod
    def from_storage(cls, message: str) -> "StorageUploadFailed":
        return cls(f"Failed to upload edited image: {message}")


class PublicUrlUnavailable(StickerError):
    default_message = "Failed to get public URL for the edited image"


class InternalError(StickerError):
    """Catch-all for unexpected failures inside the pipeline."""
