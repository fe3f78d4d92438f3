"""Blob storage abstraction over interchangeable backends.

This package provides one interface for storing binary objects and their
key/value metadata across several backends (local filesystem, WebDAV,
S3-compatible object stores, and a no-op store).

Core Components:
    - Store: Abstract interface all backends implement
    - LocalStore: Direct filesystem storage with sidecar metadata
    - WebDAVStore: HTTP storage with sidecar metadata
    - S3Store: Object storage with native metadata and multipart uploads
    - NullStore: Accepts everything, keeps nothing

Quick Start:

    >>> from f9_store import LocalStore
    >>> store = LocalStore(root="/data")
    >>> store.create("document.txt", b"Hello, world!")
    >>> store.read("document.txt")
    b'Hello, world!'

    >>> # Pick the backend from the environment instead
    >>> from f9_store import new_store
    >>> store = new_store()  # honours F9_STORE_STORE_TYPE and friends

Exception Handling:

    >>> from f9_store import NotFoundError
    >>> try:
    ...     store.read("nonexistent.txt")
    ... except NotFoundError:
    ...     print("File not found")

Supported Operations:
    - exists() - Check for a non-empty object
    - create() / create_json() - Write an object, optionally with metadata
    - copy() - Copy an object and merge its metadata
    - move() - Relocate an object and its metadata
    - stream_in() - Upload from a stream or chunk iterator
    - read() / read_range() / read_json() - Read contents
    - open_reader() - Open a lazily consumed range reader
    - remove() - Delete an object and its metadata
    - stat() - Describe an object and return its metadata
    - clear_directory() - Empty a directory or prefix
    - make_directory_path() - Create a directory chain

"""

from .async_store import AsyncStore
from .cancellation import CancellationToken
from .compat import CompatibleStore, translate_exceptions, translate_store_exception
from .config import StoreSettings, StoreType
from .factory import StoreFactory, new_store, register_store_factory, resolve_store
from .interfaces import (
    LOCAL_CHUNK_SIZE,
    MULTIPART_CHUNK_SIZE,
    SIDECAR_SUFFIX,
    CanceledError,
    FileDescriptor,
    Metadata,
    NotDirectoryError,
    NotFoundError,
    PathLike,
    Store,
    StoreError,
    TransportError,
    ValidationError,
)
from .local import LocalStore
from .metadata import decode_metadata, encode_metadata
from .multipart import MultipartUpload, UploadState
from .null import NullStore
from .s3 import S3Store
from .webdav import WebDAVStore

__all__ = [
    "LOCAL_CHUNK_SIZE",
    "MULTIPART_CHUNK_SIZE",
    "SIDECAR_SUFFIX",
    "AsyncStore",
    "CancellationToken",
    "CanceledError",
    "CompatibleStore",
    "FileDescriptor",
    "LocalStore",
    "Metadata",
    "MultipartUpload",
    "NotDirectoryError",
    "NotFoundError",
    "NullStore",
    "PathLike",
    "S3Store",
    "Store",
    "StoreError",
    "StoreFactory",
    "StoreSettings",
    "StoreType",
    "TransportError",
    "UploadState",
    "ValidationError",
    "WebDAVStore",
    "decode_metadata",
    "encode_metadata",
    "new_store",
    "register_store_factory",
    "resolve_store",
    "translate_exceptions",
    "translate_store_exception",
]
