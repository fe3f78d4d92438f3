"""Asynchronous adapter over any synchronous store.

Every :class:`~f9_store.interfaces.Store` operation is exposed as a
coroutine that runs the blocking call with ``asyncio.to_thread()`` so the
event loop stays responsive. Cancellation tokens are passed through
unchanged; canceling the awaiting task does not interrupt the worker
thread, so fire the token as well to stop a long transfer.

Example:

    >>> import asyncio
    >>> from f9_store import AsyncStore, LocalStore
    >>>
    >>> async def main():
    ...     store = AsyncStore(LocalStore(root="/data"))
    ...     await store.create("file.txt", b"Hello!")
    ...     print(await store.read("file.txt"))
    ...     await store.remove("file.txt")
    >>>
    >>> asyncio.run(main())

"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, BinaryIO

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from .cancellation import CancellationToken
    from .interfaces import (
        ChunkSource,
        DataSource,
        FileDescriptor,
        Metadata,
        PathLike,
        Store,
    )


class AsyncStore:
    """Coroutine facade delegating each call to a wrapped store in a thread."""

    def __init__(self, store: Store) -> None:
        """Wrap ``store``; the wrapped instance is shared, not copied."""
        self._store = store

    @property
    def store(self) -> Store:
        """The wrapped synchronous store."""
        return self._store

    async def exists(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> bool:
        return await asyncio.to_thread(self._store.exists, path, token=token)

    async def create(
        self,
        path: PathLike,
        data: DataSource,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        await asyncio.to_thread(
            self._store.create,
            path,
            data,
            expires=expires,
            metadata=metadata,
            token=token,
        )

    async def copy(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        await asyncio.to_thread(
            self._store.copy,
            src,
            dst,
            expires=expires,
            metadata=metadata,
            token=token,
        )

    async def move(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        await asyncio.to_thread(self._store.move, src, dst, token=token)

    async def stream_in(
        self,
        path: PathLike,
        source: ChunkSource,
        *,
        expires: datetime | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Upload ``source`` in a worker thread.

        ``source`` is consumed from that thread, so it must be a blocking
        file object or a plain iterator, not an async iterator.
        """
        await asyncio.to_thread(
            self._store.stream_in,
            path,
            source,
            expires=expires,
            token=token,
        )

    async def read(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        return await asyncio.to_thread(self._store.read, path, token=token)

    async def read_range(
        self,
        path: PathLike,
        offset: int,
        length: int,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        return await asyncio.to_thread(
            self._store.read_range,
            path,
            offset,
            length,
            token=token,
        )

    async def open_reader(
        self,
        path: PathLike,
        offset: int = 0,
        length: int = 0,
        *,
        token: CancellationToken | None = None,
    ) -> BinaryIO:
        """Open a reader in a worker thread; reading from it still blocks."""
        return await asyncio.to_thread(
            self._store.open_reader,
            path,
            offset,
            length,
            token=token,
        )

    async def remove(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        await asyncio.to_thread(self._store.remove, path, token=token)

    async def stat(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> tuple[FileDescriptor, Metadata]:
        return await asyncio.to_thread(self._store.stat, path, token=token)

    async def clear_directory(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        await asyncio.to_thread(self._store.clear_directory, path, token=token)

    async def make_directory_path(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        await asyncio.to_thread(self._store.make_directory_path, path, token=token)

    async def create_json(
        self,
        path: PathLike,
        value: Any,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        await asyncio.to_thread(
            self._store.create_json,
            path,
            value,
            expires=expires,
            metadata=metadata,
            token=token,
        )

    async def read_json(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> Any:
        return await asyncio.to_thread(self._store.read_json, path, token=token)
