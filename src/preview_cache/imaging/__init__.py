"""Image derivation pipeline for thumbnails and previews."""

from .transform import (
    DEFAULT_JPEG_QUALITY,
    OUTPUT_MIME_TYPE,
    ImageTransform,
    PillowImageTransform,
    constrain_dimensions,
)

__all__ = [
    "DEFAULT_JPEG_QUALITY",
    "ImageTransform",
    "OUTPUT_MIME_TYPE",
    "PillowImageTransform",
    "constrain_dimensions",
]
