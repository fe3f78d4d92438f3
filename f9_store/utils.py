"""Shared utility functions for store implementations.

Key utilities:
- Data type coercion (bytes, str, BinaryIO)
- Fixed-size chunking of streams and chunk iterators
- A bounded reader exposing a byte range of an open file

Example usage:
    >>> from f9_store.utils import coerce_to_bytes
    >>> data = coerce_to_bytes("Hello, world!")
    >>> assert isinstance(data, bytes)
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, BinaryIO

from .interfaces import LOCAL_CHUNK_SIZE

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .interfaces import ChunkSource, DataSource


def coerce_to_bytes(data: DataSource) -> bytes:
    """Coerce supported input types to raw bytes.

    Handles bytes, strings (UTF-8 encoded), and file-like objects.

    Raises:
        TypeError: If data type is not supported.

    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")

    if hasattr(data, "read"):
        result = data.read()
        if isinstance(result, str):
            return result.encode("utf-8")
        if isinstance(result, (bytes, bytearray)):
            return bytes(result)
        message = f"Unsupported stream payload type: {type(result).__name__}"
        raise TypeError(message)

    message = f"Unsupported data type: {type(data).__name__}"
    raise TypeError(message)


def _as_bytes(chunk: bytes | str) -> bytes:
    """Encode text chunks as UTF-8 and pass bytes through."""
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return bytes(chunk)


def iter_chunks(
    source: ChunkSource,
    chunk_size: int = LOCAL_CHUNK_SIZE,
) -> Iterator[bytes]:
    """Yield chunks of at most ``chunk_size`` bytes as they are read.

    File-like sources are read with ``read(chunk_size)``; iterators are passed
    through unchanged apart from text encoding. Empty chunks are skipped and a
    zero-length read ends the stream.
    """
    if hasattr(source, "read"):
        while True:
            chunk = source.read(chunk_size)
            if not chunk:
                break
            yield _as_bytes(chunk)
        return

    for chunk in source:
        if chunk:
            yield _as_bytes(chunk)


def iter_fixed_chunks(
    source: ChunkSource,
    chunk_size: int,
) -> Iterator[bytes]:
    """Yield chunks of exactly ``chunk_size`` bytes; only the last may be shorter.

    Short reads from the underlying source are buffered until a full chunk is
    available or the source is exhausted.
    """
    buffer = bytearray()
    for chunk in iter_chunks(source, chunk_size):
        buffer.extend(chunk)
        while len(buffer) >= chunk_size:
            yield bytes(buffer[:chunk_size])
            del buffer[:chunk_size]
    if buffer:
        yield bytes(buffer)


class RangeReader(io.RawIOBase):
    """Read-only stream limited to ``length`` bytes of an underlying stream."""

    def __init__(self, stream: BinaryIO, length: int) -> None:
        """Wrap ``stream``, which must already be positioned at the range start."""
        super().__init__()
        self._stream = stream
        self._remaining = length

    def readable(self) -> bool:
        """Return True; the range is always readable."""
        return True

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        """Fill ``buffer`` without crossing the end of the range."""
        if self._remaining <= 0:
            return 0
        size = min(len(buffer), self._remaining)
        data = self._stream.read(size)
        count = len(data)
        buffer[:count] = data
        self._remaining -= count
        return count

    def close(self) -> None:
        """Close the range and the underlying stream."""
        if not self.closed:
            self._stream.close()
        super().close()
