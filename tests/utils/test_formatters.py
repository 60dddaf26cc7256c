from __future__ import annotations

import pytest

from preview_cache.utils import bytes_to_megabytes, format_file_size


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "-"),
        (0, "0 B"),
        (512, "512 B"),
        (1024, "1.0 KB"),
        (1536 * 1024, "1.5 MB"),
    ],
)
def test_format_file_size(value, expected) -> None:
    assert format_file_size(value) == expected


def test_bytes_to_megabytes() -> None:
    assert bytes_to_megabytes(3 * 1024 * 1024) == 3.0
