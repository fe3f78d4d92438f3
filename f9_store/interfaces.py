"""Core interfaces and data structures for store implementations."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Union

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from .cancellation import CancellationToken

PathLike = Union[str, Path]
DataSource = Union[bytes, str, BinaryIO]
ChunkSource = Union[BinaryIO, Iterable[Union[bytes, str]]]
Metadata = dict[str, str]

SIDECAR_SUFFIX = ".meta"
LOCAL_CHUNK_SIZE = 1024 * 1024
MULTIPART_CHUNK_SIZE = 5 * 1024 * 1024
DEFAULT_FILE_MODE = 0o664
DEFAULT_DIR_MODE = 0o775


class StoreError(RuntimeError):
    """Base exception for store operations."""

    def __init__(
        self,
        message: str,
        *,
        path: PathLike | None = None,
    ) -> None:
        """Initialise the base error with an optional path context."""
        path_str = str(path) if path is not None else None
        detail = message if path_str is None else ": ".join((message, path_str))
        super().__init__(detail)
        self.message = message
        self.path = path_str


class NotFoundError(StoreError):
    """Raised when an expected object or directory is missing."""

    def __init__(self, path: PathLike) -> None:
        """Create a not-found error for the provided path."""
        super().__init__("Path not found", path=path)


class NotDirectoryError(StoreError):
    """Raised when a directory operation targets something else."""

    def __init__(self, path: PathLike) -> None:
        """Create a not-a-directory error for the provided path."""
        super().__init__("Path is not a directory", path=path)


class CanceledError(StoreError):
    """Raised when a cancellation token fires before or during an operation."""

    def __init__(self, path: PathLike | None = None) -> None:
        """Create a canceled error, optionally scoped to a path."""
        super().__init__("Operation canceled", path=path)


class ValidationError(StoreError):
    """Raised when an operation receives malformed input."""

    @classmethod
    def negative_offset(cls, offset: int) -> ValidationError:
        """Return an error describing a negative range offset."""
        return cls(f"Range offset must be non-negative, got {offset}")

    @classmethod
    def cannot_read_directory(cls, path: PathLike) -> ValidationError:
        """Return an error indicating directories cannot be read as files."""
        return cls("Cannot read directory", path=path)

    @classmethod
    def path_outside_root(cls, path: PathLike) -> ValidationError:
        """Return an error showing the path escapes the store root."""
        return cls("Path escapes store root", path=path)

    @classmethod
    def empty_path_not_allowed(cls, path: PathLike) -> ValidationError:
        """Return an error when an operation targets an empty path."""
        return cls("Path cannot be empty", path=path)

    @classmethod
    def invalid_transition(cls, current: str, target: str) -> ValidationError:
        """Return an error for an illegal upload state transition."""
        return cls(f"Cannot move upload from {current} to {target}")


class TransportError(StoreError):
    """Raised when the underlying network client fails."""

    @classmethod
    def request_failed(
        cls,
        operation: str,
        path: PathLike | None = None,
    ) -> TransportError:
        """Return an error describing a failed remote request."""
        return cls(f"{operation} request failed", path=path)


@dataclass(frozen=True)
class FileDescriptor:
    """Snapshot of a stored object, derived on demand."""

    name: str
    size: int
    modified: datetime | None
    is_directory: bool

    def as_dict(self) -> dict:
        """Return a JSON-serialisable representation."""
        return {
            "name": self.name,
            "size": self.size,
            "modified": self.modified.isoformat() if self.modified else None,
            "is_directory": self.is_directory,
        }


class Store(ABC):
    """Standardised interface for interchangeable storage backends.

    Every operation accepts an optional ``token``. When supplied, the store
    raises :class:`CanceledError` if the token has fired before the
    operation is dispatched. Remote stores may also observe the token while a
    transfer is in flight.
    """

    @abstractmethod
    def exists(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> bool:
        """Return True when ``path`` exists.

        Sidecar backends (local and WebDAV) only report True for a non-empty
        file; object stores report True for any object, empty ones included.
        """

    @abstractmethod
    def create(
        self,
        path: PathLike,
        data: DataSource,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Write ``data`` to ``path``.

        Args:
            path: Target object path.
            data: Content as bytes, text (UTF-8) or a binary stream.
            expires: Optional expiry honoured by stores that support it.
            metadata: Optional metadata record stored with the object.
            token: Optional cancellation token.

        """

    @abstractmethod
    def copy(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Copy ``src`` to ``dst``, merging ``metadata`` over the source record.

        Keys in ``metadata`` win over keys already stored with ``src``.
        """

    @abstractmethod
    def move(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Relocate ``src`` and its metadata to ``dst``. Not atomic."""

    @abstractmethod
    def stream_in(
        self,
        path: PathLike,
        source: ChunkSource,
        *,
        expires: datetime | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Write an arbitrary-length byte source to ``path``."""

    @abstractmethod
    def read(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        """Return the full content of ``path``."""

    @abstractmethod
    def read_range(
        self,
        path: PathLike,
        offset: int,
        length: int,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        """Return ``length`` bytes starting at ``offset``.

        A non-positive ``length`` reads to the end of the object. Reads past
        the end are truncated.
        """

    @abstractmethod
    def open_reader(
        self,
        path: PathLike,
        offset: int = 0,
        length: int = 0,
        *,
        token: CancellationToken | None = None,
    ) -> BinaryIO:
        """Return a lazily consumed binary stream over a range of ``path``.

        The caller owns the stream and must close it.
        """

    @abstractmethod
    def remove(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Delete ``path`` together with its metadata record."""

    @abstractmethod
    def stat(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> tuple[FileDescriptor, Metadata]:
        """Return the descriptor and metadata record of ``path``."""

    @abstractmethod
    def clear_directory(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Remove every entry below ``path``, keeping ``path`` itself."""

    @abstractmethod
    def make_directory_path(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Create ``path`` and any missing parents. Idempotent."""

    def create_json(
        self,
        path: PathLike,
        value: Any,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Serialise ``value`` as indented JSON and store it at ``path``."""
        payload = json.dumps(value, indent=2).encode("utf-8")
        self.create(
            path,
            payload,
            expires=expires,
            metadata=metadata,
            token=token,
        )

    def read_json(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> Any:
        """Load JSON content from ``path``; empty content yields None."""
        content = self.read(path, token=token)
        if not content:
            return None
        return json.loads(content)
