"""Store that keeps nothing.

Every query reports absence or an empty result and every mutation is
accepted and discarded. Useful as a placeholder in tests and for disabling
storage through configuration. Cancellation tokens are ignored.
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, Any, BinaryIO

from .interfaces import PathLike, Store

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from .cancellation import CancellationToken
    from .interfaces import ChunkSource, DataSource, FileDescriptor, Metadata


class NullStore(Store):
    """No-op store."""

    def exists(self, path: PathLike, *, token: CancellationToken | None = None) -> bool:
        return False

    def create(
        self,
        path: PathLike,
        data: DataSource,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        return None

    def copy(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        return None

    def move(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        return None

    def stream_in(
        self,
        path: PathLike,
        source: ChunkSource,
        *,
        expires: datetime | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        return None

    def read(self, path: PathLike, *, token: CancellationToken | None = None) -> bytes:
        return b""

    def read_range(
        self,
        path: PathLike,
        offset: int,
        length: int,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        return b""

    def open_reader(
        self,
        path: PathLike,
        offset: int = 0,
        length: int = 0,
        *,
        token: CancellationToken | None = None,
    ) -> BinaryIO:
        return io.BytesIO(b"")

    def remove(self, path: PathLike, *, token: CancellationToken | None = None) -> None:
        return None

    def stat(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> tuple[FileDescriptor | None, Metadata]:  # type: ignore[override]
        """Return ``(None, {})``; there is never anything to describe."""
        return None, {}

    def clear_directory(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        return None

    def make_directory_path(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        return None

    def read_json(self, path: PathLike, *, token: CancellationToken | None = None) -> Any:
        return None
