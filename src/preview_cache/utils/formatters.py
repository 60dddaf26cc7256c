"""Formatting utilities for cache statistics."""

from __future__ import annotations


def format_file_size(bytes_value: int | None) -> str:
    """Convert bytes to human-readable format (KB, MB, GB).

    Examples:
        >>> format_file_size(1024)
        '1.0 KB'
        >>> format_file_size(0)
        '0 B'
        >>> format_file_size(None)
        '-'
    """
    if bytes_value is None:
        return "-"

    units = ["B", "KB", "MB", "GB", "TB"]
    size = float(bytes_value)
    unit_index = 0

    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    return f"{size:.1f} {units[unit_index]}"


def bytes_to_megabytes(bytes_value: int) -> float:
    return bytes_value / (1024 * 1024)


__all__ = ["bytes_to_megabytes", "format_file_size"]
