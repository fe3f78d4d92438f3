"""Local filesystem store implementation.

This module provides direct filesystem access for store operations. All
objects live below a root directory with path traversal protection.

Metadata Emulation:
    The filesystem has no per-file key/value attributes we can rely on, so
    every primary file may be paired with a sidecar record at
    ``<file>.meta`` (see :mod:`f9_store.metadata`). The pair shares one
    lifecycle: copy merges and rewrites the sidecar, move relocates it,
    remove deletes it, and a missing sidecar is never an error.

Behaviour Notes:
    - ``exists`` reports False for empty files.
    - ``create`` with a metadata mapping writes only the sidecar; the content
      argument is not written in that call.
    - ``move`` is copy-then-delete and is not atomic.
    - Cancellation tokens are checked once, before the operation starts.

Example:

    >>> from f9_store import LocalStore
    >>> store = LocalStore(root="/data/files")
    >>> store.create("document.txt", b"Hello, world!")
    >>> store.read("document.txt")
    b'Hello, world!'
    >>> store.read_range("document.txt", 7, 5)
    b'world'

See Also:
    - Store: Abstract interface
    - WebDAVStore: Same sidecar strategy over HTTP

"""

from __future__ import annotations

import contextlib
import io
import logging
import os
import shutil
import stat as stat_module
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from .cancellation import check_token
from .interfaces import (
    DEFAULT_DIR_MODE,
    DEFAULT_FILE_MODE,
    LOCAL_CHUNK_SIZE,
    SIDECAR_SUFFIX,
    FileDescriptor,
    NotDirectoryError,
    NotFoundError,
    PathLike,
    Store,
    ValidationError,
)
from .metadata import decode_metadata, encode_metadata, merge_metadata, sidecar_path
from .utils import RangeReader, coerce_to_bytes, iter_chunks
from .validation import validate_metadata, validate_range

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .cancellation import CancellationToken
    from .interfaces import ChunkSource, DataSource, Metadata

logger = logging.getLogger(__name__)


class LocalStore(Store):
    """Store implementation backed by the local filesystem."""

    def __init__(
        self,
        root: PathLike | None = None,
        *,
        create_root: bool = True,
        sidecar_suffix: str = SIDECAR_SUFFIX,
        chunk_size: int = LOCAL_CHUNK_SIZE,
        file_mode: int = DEFAULT_FILE_MODE,
        dir_mode: int = DEFAULT_DIR_MODE,
    ) -> None:
        """Initialise the store rooted at the given filesystem path."""
        base = Path(root or Path.cwd()).expanduser()
        self._root = base.resolve(strict=False)
        if create_root:
            self._root.mkdir(parents=True, exist_ok=True, mode=dir_mode)
        elif not self._root.exists():
            raise NotFoundError(self._root)
        self._suffix = sidecar_suffix
        self._chunk_size = chunk_size
        self._file_mode = file_mode
        self._dir_mode = dir_mode

    @property
    def root(self) -> Path:
        """Absolute path used as the store root."""
        return self._root

    def exists(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> bool:
        """Return True when the path is present and has a non-zero size."""
        check_token(token, path)
        target = self._ensure_within_root(path)
        try:
            return target.stat().st_size > 0
        except OSError:
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
        """Write content, or only the sidecar record when metadata is given."""
        check_token(token, path)
        target = self._ensure_within_root(path)
        record = validate_metadata(metadata)
        if record is not None:
            logger.debug("Writing metadata only for %s", target)
            self._write_file(self._sidecar(target), encode_metadata(record))
            return
        self._write_file(target, coerce_to_bytes(data))

    def copy(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Copy a file and merge ``metadata`` into the copied sidecar."""
        check_token(token, src)
        source = self._ensure_within_root(src)
        destination = self._ensure_within_root(dst)
        self._require_file(source, src)
        override = validate_metadata(metadata)

        current = self._read_sidecar(source)
        if current is not None or override is not None:
            merged = merge_metadata(current, override)
            self._write_file(self._sidecar(destination), encode_metadata(merged))

        if source == destination:
            return
        with source.open("rb") as reader, self._open_for_write(destination) as writer:
            shutil.copyfileobj(reader, writer, self._chunk_size)
            writer.flush()
            os.fsync(writer.fileno())

    def move(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Move a file and its sidecar by copying then deleting each."""
        check_token(token, src)
        source = self._ensure_within_root(src)
        destination = self._ensure_within_root(dst)
        self._require_file(source, src)
        if source == destination:
            return

        self._relocate(source, destination)
        meta_source = self._sidecar(source)
        if self._has_content(meta_source):
            self._relocate(meta_source, self._sidecar(destination))
        logger.info("Moved %s to %s", source, destination)

    def stream_in(
        self,
        path: PathLike,
        source: ChunkSource,
        *,
        expires: datetime | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Write chunks from ``source`` as they arrive; no rollback on failure."""
        check_token(token, path)
        target = self._ensure_within_root(path)
        with self._open_for_write(target) as writer:
            for chunk in iter_chunks(source, self._chunk_size):
                writer.write(chunk)

    def read(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        """Return file contents."""
        check_token(token, path)
        target = self._ensure_within_root(path)
        self._require_file(target, path)
        return target.read_bytes()

    def read_range(
        self,
        path: PathLike,
        offset: int,
        length: int,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        """Return a byte range; a non-positive length reads to the end."""
        check_token(token, path)
        offset, length = validate_range(offset, length)
        target = self._ensure_within_root(path)
        self._require_file(target, path)

        if length == 0:
            length = max(target.stat().st_size - offset, 0)
        with target.open("rb") as fh:
            fh.seek(offset)
            return fh.read(length)

    def open_reader(
        self,
        path: PathLike,
        offset: int = 0,
        length: int = 0,
        *,
        token: CancellationToken | None = None,
    ) -> BinaryIO:
        """Open the file positioned at ``offset`` and bounded by ``length``."""
        check_token(token, path)
        offset, length = validate_range(offset, length)
        target = self._ensure_within_root(path)
        self._require_file(target, path)

        fh = target.open("rb")
        fh.seek(offset)
        if length == 0:
            return fh
        return io.BufferedReader(RangeReader(fh, length))

    def remove(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Delete a file (or empty directory) and its sidecar."""
        check_token(token, path)
        target = self._ensure_within_root(path)
        with contextlib.suppress(FileNotFoundError):
            self._sidecar(target).unlink()
        try:
            if target.is_dir() and not target.is_symlink():
                target.rmdir()
            else:
                target.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError(path) from exc

    def stat(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> tuple[FileDescriptor, Metadata]:
        """Return the descriptor and sidecar metadata for a path."""
        check_token(token, path)
        target = self._ensure_within_root(path)
        try:
            stat_result = target.stat()
        except FileNotFoundError as exc:
            raise NotFoundError(path) from exc

        descriptor = FileDescriptor(
            name=self._relative_name(target),
            size=stat_result.st_size,
            modified=_timestamp_to_datetime(stat_result.st_mtime),
            is_directory=stat_module.S_ISDIR(stat_result.st_mode),
        )
        return descriptor, self._read_sidecar(target) or {}

    def clear_directory(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Remove every child of a directory, recursing into subdirectories."""
        check_token(token, path)
        target = self._ensure_within_root(path)
        if not target.exists():
            raise NotFoundError(path)
        if not target.is_dir():
            raise NotDirectoryError(path)

        for child in target.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
        logger.debug("Cleared directory %s", target)

    def make_directory_path(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Create a directory and any missing parents."""
        check_token(token, path)
        target = self._ensure_within_root(path)
        try:
            target.mkdir(parents=True, exist_ok=True, mode=self._dir_mode)
        except (FileExistsError, NotADirectoryError) as exc:
            raise NotDirectoryError(path) from exc

    def _relocate(self, source: Path, destination: Path) -> None:
        """Copy ``source`` to ``destination``, delete the source, then sync."""
        with source.open("rb") as reader, self._open_for_write(destination) as writer:
            shutil.copyfileobj(reader, writer, self._chunk_size)
            reader.close()
            source.unlink()
            writer.flush()
            os.fsync(writer.fileno())

    def _open_for_write(self, target: Path) -> BinaryIO:
        """Open ``target`` for truncating writes with the configured mode."""
        target.parent.mkdir(parents=True, exist_ok=True, mode=self._dir_mode)
        flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_BINARY", 0)
        fd = os.open(target, flags, self._file_mode)
        return os.fdopen(fd, "wb")

    def _write_file(self, target: Path, payload: bytes) -> None:
        """Replace the contents of ``target`` with ``payload``."""
        with self._open_for_write(target) as fh:
            fh.write(payload)

    def _read_sidecar(self, target: Path) -> Metadata | None:
        """Return the decoded sidecar for ``target``, or None when absent/empty."""
        sidecar = self._sidecar(target)
        if not self._has_content(sidecar):
            return None
        return decode_metadata(sidecar.read_bytes())

    def _sidecar(self, target: Path) -> Path:
        """Return the sidecar path paired with ``target``."""
        return Path(sidecar_path(str(target), self._suffix))

    @staticmethod
    def _has_content(target: Path) -> bool:
        """Return True when ``target`` exists with a non-zero size."""
        try:
            return target.stat().st_size > 0
        except FileNotFoundError:
            return False

    @staticmethod
    def _require_file(target: Path, path: PathLike) -> None:
        """Raise unless ``target`` is an existing regular file."""
        if not target.exists():
            raise NotFoundError(path)
        if target.is_dir():
            raise ValidationError.cannot_read_directory(path)

    def _relative_name(self, target: Path) -> str:
        """Return the root-relative POSIX name of ``target``."""
        relative = target.relative_to(self._root).as_posix()
        return relative if relative != "." else ""

    def _ensure_within_root(self, path: PathLike) -> Path:
        """Validate path stays within root directory with symlink resolution.

        Leading slashes are treated as root-relative (``"/a.txt"`` is
        ``"a.txt"``) unless the path already starts with the root itself.

        Raises:
            ValidationError: If path is empty or escapes root (including via
                symlinks).

        """
        path_str = str(path)
        if not path_str.strip():
            raise ValidationError.empty_path_not_allowed(path)
        root_str = str(self._root)

        if path_str.startswith("/") and not path_str.startswith(root_str):
            path_str = path_str.lstrip("/") or "."

        candidate = (self._root / Path(path_str)).resolve(strict=False)

        try:
            candidate.relative_to(self._root)
        except ValueError as exc:
            raise ValidationError.path_outside_root(candidate) from exc

        return candidate


def _timestamp_to_datetime(timestamp: float) -> datetime:
    """Convert a POSIX timestamp to an aware datetime in UTC."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)
