from __future__ import annotations

import io

import pytest
from PIL import Image

from preview_cache.imaging import PillowImageTransform, constrain_dimensions
from preview_cache.utils import ImageDecodeError

from tests.factories import make_image_bytes


@pytest.mark.parametrize(
    ("source", "bounds", "expected"),
    [
        ((400, 100), (200, 200), (200, 50)),
        ((100, 1000), (200, 200), (20, 200)),
        ((3000, 2000), (800, 600), (800, 533)),
        ((1000, 3000), (200, 200), (66, 200)),
        ((10000, 10), (200, 200), (200, 1)),
        ((50, 40), (200, 200), (50, 40)),
        ((200, 200), (200, 200), (200, 200)),
    ],
)
def test_constrain_dimensions_clamps_width_then_height(source, bounds, expected) -> None:
    assert constrain_dimensions(*source, *bounds) == expected


@pytest.mark.asyncio
async def test_derive_produces_bounded_jpeg() -> None:
    transform = PillowImageTransform()
    source = make_image_bytes(1000, 500, mode="RGBA", color=(10, 20, 30, 128))

    derived = await transform.derive(source, 200, 200)

    assert derived is not None
    with Image.open(io.BytesIO(derived)) as image:
        assert image.format == "JPEG"
        assert image.size == (200, 100)


@pytest.mark.asyncio
async def test_derive_never_upscales() -> None:
    transform = PillowImageTransform(quality=60)
    source = make_image_bytes(50, 40, image_format="GIF")

    derived = await transform.derive(source, 800, 600)

    assert derived is not None
    with Image.open(io.BytesIO(derived)) as image:
        assert image.size == (50, 40)
        assert image.mode == "RGB"


@pytest.mark.asyncio
async def test_derive_returns_none_for_undecodable_input() -> None:
    transform = PillowImageTransform()

    assert await transform.derive(b"definitely not an image", 200, 200) is None
    assert await transform.derive(b"", 200, 200) is None


def test_derive_sync_raises_decode_error() -> None:
    transform = PillowImageTransform()

    with pytest.raises(ImageDecodeError):
        transform.derive_sync(b"\x89PNG\r\n\x1a\nbroken", 100, 100)
