"""WebDAV store implementation.

Objects are addressed by slash-separated keys relative to the configured
base URL. Metadata is emulated with the same ``<key>.meta`` sidecar records
used by :class:`~f9_store.local.LocalStore`.

Behaviour Notes:
    - ``create`` with metadata writes the sidecar first, then the content.
    - ``move`` issues a server-side ``MOVE`` for the primary and then for the
      sidecar; a missing sidecar is ignored.
    - ``clear_directory`` on an absent collection does nothing.
    - Range reads tolerate servers that ignore ``Range`` and answer ``200``.
    - Cancellation tokens are checked once, before the first request.

Example:

    >>> from f9_store import WebDAVStore
    >>> store = WebDAVStore("https://dav.example.com/files", "alice", "secret")
    >>> store.create("notes/today.txt", b"hello")
    >>> store.read_range("notes/today.txt", 2, 3)
    b'llo'

"""

from __future__ import annotations

import contextlib
import io
import logging
from typing import TYPE_CHECKING, Any, BinaryIO

from .cancellation import check_token
from .interfaces import (
    LOCAL_CHUNK_SIZE,
    SIDECAR_SUFFIX,
    FileDescriptor,
    NotFoundError,
    PathLike,
    Store,
    TransportError,
)
from .metadata import decode_metadata, encode_metadata, merge_metadata, sidecar_path
from .path_utils import normalise_key
from .utils import RangeReader, coerce_to_bytes, iter_chunks
from .validation import (
    format_range_header,
    slice_range,
    validate_metadata,
    validate_range,
)
from .webdav_client import WebDAVClient

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from .cancellation import CancellationToken
    from .interfaces import ChunkSource, DataSource, Metadata

logger = logging.getLogger(__name__)

HTTP_PARTIAL_CONTENT = 206
HTTP_RANGE_NOT_SATISFIABLE = 416


class WebDAVStore(Store):
    """Store implementation backed by a WebDAV server."""

    def __init__(
        self,
        host: str | None = None,
        username: str | None = None,
        password: str | None = None,
        *,
        client: WebDAVClient | None = None,
        session: Any | None = None,
        timeout: float = 30.0,
        sidecar_suffix: str = SIDECAR_SUFFIX,
        chunk_size: int = LOCAL_CHUNK_SIZE,
    ) -> None:
        """Initialise the store.

        Args:
            host: Base URL of the WebDAV share.
            username: Optional basic-auth user.
            password: Optional basic-auth password.
            client: Pre-built client; ``host`` and credentials are then ignored.
            session: Optional ``requests.Session`` compatible object.
            timeout: Per-request timeout in seconds.
            sidecar_suffix: Suffix appended to keys for metadata records.
            chunk_size: Chunk size used when streaming uploads.

        """
        if client is None:
            if host is None:
                message = "Either host or client must be provided"
                raise ValueError(message)
            client = WebDAVClient(
                host,
                username,
                password,
                session=session,
                timeout=timeout,
            )
        self._client = client
        self._suffix = sidecar_suffix
        self._chunk_size = chunk_size

    @property
    def client(self) -> WebDAVClient:
        """Underlying protocol client."""
        return self._client

    def exists(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> bool:
        """Return True when the resource exists with a non-zero size."""
        check_token(token, path)
        return self._has_content(normalise_key(path))

    def create(
        self,
        path: PathLike,
        data: DataSource,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Upload content, writing the sidecar first when metadata is given."""
        check_token(token, path)
        key = normalise_key(path)
        record = validate_metadata(metadata)
        if record is not None:
            self._client.write(self._sidecar(key), encode_metadata(record))
        self._client.write(key, coerce_to_bytes(data))

    def copy(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Copy a resource server-side and merge ``metadata`` into its sidecar."""
        check_token(token, src)
        source = normalise_key(src)
        destination = normalise_key(dst)
        override = validate_metadata(metadata)

        current = self._read_sidecar(source)
        self._client.copy(source, destination)
        if current is not None or override is not None:
            merged = merge_metadata(current, override)
            self._client.write(self._sidecar(destination), encode_metadata(merged))

    def move(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Move a resource and then its sidecar."""
        check_token(token, src)
        source = normalise_key(src)
        destination = normalise_key(dst)
        self._client.rename(source, destination)
        with contextlib.suppress(NotFoundError):
            self._client.rename(self._sidecar(source), self._sidecar(destination))
        logger.info("Moved %s to %s", source, destination)

    def stream_in(
        self,
        path: PathLike,
        source: ChunkSource,
        *,
        expires: datetime | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Stream ``source`` into a chunked ``PUT``; no rollback on failure."""
        check_token(token, path)
        key = normalise_key(path)
        self._client.write_stream(key, iter_chunks(source, self._chunk_size))

    def read(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        """Return the full resource body."""
        check_token(token, path)
        return self._client.read(normalise_key(path))

    def read_range(
        self,
        path: PathLike,
        offset: int,
        length: int,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        """Return a byte range using an HTTP ``Range`` request."""
        check_token(token, path)
        offset, length = validate_range(offset, length)
        key = normalise_key(path)
        header = format_range_header(offset, length)
        logger.debug("Range read %s %s", key, header)

        response = self._client.read_stream_range(key, header)
        try:
            if response.status_code == HTTP_RANGE_NOT_SATISFIABLE:
                return b""
            content = response.content
        finally:
            response.close()
        if response.status_code == HTTP_PARTIAL_CONTENT:
            return content
        return slice_range(content, offset, length)

    def open_reader(
        self,
        path: PathLike,
        offset: int = 0,
        length: int = 0,
        *,
        token: CancellationToken | None = None,
    ) -> BinaryIO:
        """Open a streaming ``GET`` positioned at ``offset``."""
        check_token(token, path)
        offset, length = validate_range(offset, length)
        key = normalise_key(path)
        ranged = offset > 0 or length > 0
        header = format_range_header(offset, length) if ranged else None

        response = self._client.read_stream_range(key, header)
        if response.status_code == HTTP_RANGE_NOT_SATISFIABLE:
            response.close()
            return io.BytesIO(b"")

        stream = response.raw
        stream.decode_content = True
        if ranged and response.status_code != HTTP_PARTIAL_CONTENT:
            _discard(stream, offset)
        if length == 0:
            return stream
        return io.BufferedReader(RangeReader(stream, length))

    def remove(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Delete the resource and its sidecar."""
        check_token(token, path)
        key = normalise_key(path)
        with contextlib.suppress(NotFoundError):
            self._client.remove(self._sidecar(key))
        self._client.remove(key)

    def stat(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> tuple[FileDescriptor, Metadata]:
        """Return the PROPFIND descriptor and sidecar metadata."""
        check_token(token, path)
        key = normalise_key(path)
        descriptor = self._client.stat(key)
        return descriptor, self._read_sidecar(key) or {}

    def clear_directory(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Delete every immediate child of a collection."""
        check_token(token, path)
        key = normalise_key(path)
        try:
            entries = self._client.read_dir(key)
        except NotFoundError:
            logger.debug("Nothing to clear at %s", key)
            return
        for entry in entries:
            self._client.remove(entry.name)
        logger.debug("Cleared %d entries below %s", len(entries), key)

    def make_directory_path(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Create the collection and each missing ancestor with ``MKCOL``."""
        check_token(token, path)
        self._client.mkdir_all(normalise_key(path))

    def _has_content(self, key: str) -> bool:
        """Return True when ``key`` resolves to a non-empty resource."""
        try:
            return self._client.stat(key).size > 0
        except (NotFoundError, TransportError):
            return False

    def _read_sidecar(self, key: str) -> Metadata | None:
        """Return the decoded sidecar for ``key``, or None when absent/empty."""
        try:
            payload = self._client.read(self._sidecar(key))
        except NotFoundError:
            return None
        if not payload:
            return None
        return decode_metadata(payload)

    def _sidecar(self, key: str) -> str:
        """Return the sidecar key paired with ``key``."""
        return sidecar_path(key.rstrip("/"), self._suffix)


def _discard(stream: BinaryIO, count: int) -> None:
    """Consume ``count`` bytes from ``stream`` for servers that ignore ``Range``."""
    remaining = count
    while remaining > 0:
        chunk = stream.read(min(remaining, LOCAL_CHUNK_SIZE))
        if not chunk:
            break
        remaining -= len(chunk)
