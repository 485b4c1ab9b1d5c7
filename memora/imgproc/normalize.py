"""Image normalisation helpers."""

from __future__ import annotations

import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from memora.errors import PreprocessingFailed

logger = logging.getLogger(__name__)


class ImageNormalizer:
    """Shrinks uploads to fit a square bounding box and re-encodes them as PNG."""

    def __init__(self, max_side: int = 128) -> None:
        if max_side <= 0:
            raise ValueError("max_side must be positive.")
        self._max_side = max_side

    @property
    def max_side(self) -> int:
        return self._max_side

    def normalize(self, image_bytes: bytes) -> bytes:
        """Return PNG bytes that fit within ``max_side`` x ``max_side``.

        Aspect ratio is preserved and images already inside the box keep
        their original dimensions.
        """

        if not image_bytes:
            raise PreprocessingFailed(details="Uploaded file is empty.")

        try:
            with Image.open(BytesIO(image_bytes)) as img:
                img = img.convert("RGBA")
                img.thumbnail((self._max_side, self._max_side), Image.Resampling.LANCZOS)
                buffer = BytesIO()
                img.save(buffer, format="PNG", optimize=True, compress_level=9)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            logger.error("User image resize error: %s", exc)
            raise PreprocessingFailed(details=str(exc)) from exc

        data = buffer.getvalue()
        logger.info("Resized user image buffer length: %d", len(data))
        return data
