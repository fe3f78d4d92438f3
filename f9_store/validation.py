"""Validation helpers shared by store implementations.

Example:
    >>> validate_range(2, 3)
    (2, 3)
    >>> validate_range(4, -1)
    (4, 0)

"""

from __future__ import annotations

from typing import Any

from .interfaces import ValidationError


def validate_range(offset: int, length: int) -> tuple[int, int]:
    """Validate a byte range and normalise the "to end" sentinel.

    Any non-positive ``length`` means "read to the end of the object" and is
    returned as ``0``.

    Raises:
        ValidationError: If ``offset`` is negative.

    """
    if offset < 0:
        raise ValidationError.negative_offset(offset)
    return offset, max(length, 0)


def format_range_header(offset: int, length: int) -> str:
    """Return an HTTP ``Range`` header value for a validated range.

    Example:

        >>> format_range_header(2, 3)
        'bytes=2-4'
        >>> format_range_header(10, 0)
        'bytes=10-'

    """
    if length > 0:
        return f"bytes={offset}-{offset + length - 1}"
    return f"bytes={offset}-"


def slice_range(payload: bytes, offset: int, length: int) -> bytes:
    """Apply a validated range to an in-memory payload, truncating at the end."""
    if length > 0:
        return payload[offset : offset + length]
    return payload[offset:]


def validate_metadata(metadata: Any) -> dict[str, str] | None:
    """Return ``metadata`` as a plain dict of strings, or None.

    Raises:
        ValidationError: If ``metadata`` is not a mapping of strings.

    """
    if metadata is None:
        return None
    if not hasattr(metadata, "items"):
        message = f"Metadata must be a mapping, got {type(metadata).__name__}"
        raise ValidationError(message)
    result: dict[str, str] = {}
    for key, value in metadata.items():
        if not isinstance(key, str) or not isinstance(value, str):
            message = "Metadata keys and values must be strings"
            raise ValidationError(message)
        result[key] = value
    return result
