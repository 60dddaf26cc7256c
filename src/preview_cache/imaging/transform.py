from __future__ import annotations

import asyncio
import io
from typing import Protocol

from PIL import Image, UnidentifiedImageError

from preview_cache.utils import ImageDecodeError, ImageEncodeError, get_logger


logger = get_logger(__name__)

DEFAULT_JPEG_QUALITY = 80
OUTPUT_MIME_TYPE = "image/jpeg"


class ImageTransform(Protocol):
    """Produces a bounded derivative of an encoded image, or ``None``."""

    async def derive(
        self,
        data: bytes,
        max_width: int,
        max_height: int,
    ) -> bytes | None: ...


def constrain_dimensions(
    width: float,
    height: float,
    max_width: float,
    max_height: float,
) -> tuple[int, int]:
    """Shrink ``width`` x ``height`` into the bounding box, keeping aspect ratio.

    Width is clamped first and the height re-checked afterwards; images that
    already fit are left alone. Fractional results are truncated, with a
    floor of one pixel per side.
    """

    if width > max_width:
        height = height * max_width / width
        width = max_width
    if height > max_height:
        width = width * max_height / height
        height = max_height
    return max(1, int(width)), max(1, int(height))


class PillowImageTransform:
    """Decode, resize, and re-encode images as JPEG with Pillow."""

    def __init__(self, *, quality: int = DEFAULT_JPEG_QUALITY) -> None:
        self._quality = quality

    @property
    def quality(self) -> int:
        return self._quality

    async def derive(
        self,
        data: bytes,
        max_width: int,
        max_height: int,
    ) -> bytes | None:
        try:
            return await asyncio.to_thread(self.derive_sync, data, max_width, max_height)
        except (ImageDecodeError, ImageEncodeError) as exc:
            logger.warning(
                "Image derivation failed",
                category=exc.category.value,
                error=exc.message,
            )
            return None

    def derive_sync(self, data: bytes, max_width: int, max_height: int) -> bytes:
        source = self._decode(data)
        try:
            target = constrain_dimensions(source.width, source.height, max_width, max_height)
            try:
                image = source.convert("RGB") if source.mode != "RGB" else source
                if target != image.size:
                    image = image.resize(target, Image.Resampling.LANCZOS)
            except (OSError, ValueError) as exc:
                raise ImageDecodeError(f"Cannot resample image: {exc}") from exc
            return self._encode(image)
        finally:
            source.close()

    @staticmethod
    def _decode(data: bytes) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
            raise ImageDecodeError(f"Cannot decode image: {exc}") from exc
        return image

    def _encode(self, image: Image.Image) -> bytes:
        buffer = io.BytesIO()
        try:
            image.save(buffer, format="JPEG", quality=self._quality)
        except (OSError, ValueError) as exc:
            raise ImageEncodeError(f"Cannot encode image: {exc}") from exc
        return buffer.getvalue()


__all__ = [
    "DEFAULT_JPEG_QUALITY",
    "ImageTransform",
    "OUTPUT_MIME_TYPE",
    "PillowImageTransform",
    "constrain_dimensions",
]
