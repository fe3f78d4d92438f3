"""S3-compatible object store implementation.

Objects map one-to-one onto keys in a single bucket. Metadata is stored as
native object metadata, so no sidecar records are involved.

Request Handling:
    Every client call goes through :meth:`S3Store._invoke`, which checks the
    cancellation token, issues the request and translates botocore failures:
    a ``404``/``NoSuchKey``/``NotFound`` code becomes :class:`NotFoundError`,
    anything else :class:`TransportError` chained to the client error.

Behaviour Notes:
    - ``move`` is copy, wait for the destination, delete, wait for the source
      to disappear. It is not atomic.
    - ``stream_in`` uses a multipart upload (see :mod:`f9_store.multipart`);
      a failed or canceled upload is aborted and never becomes visible.
    - ``clear_directory`` deletes every key below the prefix, following
      listing pagination.

Example:

    >>> from f9_store import S3Store
    >>> store = S3Store("reports", region_name="eu-west-1")
    >>> store.create("2024/summary.json", b"{}", metadata={"owner": "bob"})
    >>> store.stat("2024/summary.json")[1]
    {'owner': 'bob'}

"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Any, BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .cancellation import check_token
from .interfaces import (
    MULTIPART_CHUNK_SIZE,
    FileDescriptor,
    NotFoundError,
    PathLike,
    Store,
    TransportError,
)
from .metadata import merge_metadata
from .multipart import MultipartUpload
from .path_utils import normalise_key
from .utils import coerce_to_bytes
from .validation import format_range_header, validate_metadata, validate_range

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from .cancellation import CancellationToken
    from .interfaces import ChunkSource, DataSource, Metadata

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
INVALID_RANGE_CODES = frozenset({"416", "InvalidRange"})


def client_error_code(exc: BaseException) -> str:
    """Return the error code carried by a botocore ``ClientError``."""
    response = getattr(exc, "response", None) or {}
    return str(response.get("Error", {}).get("Code", ""))


class S3Store(Store):
    """Store implementation backed by an S3-compatible bucket."""

    def __init__(
        self,
        bucket: str,
        *,
        client: Any | None = None,
        region_name: str | None = None,
        endpoint_url: str | None = None,
        profile_name: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        chunk_size: int = MULTIPART_CHUNK_SIZE,
        waiter_delay: int = 5,
        waiter_max_attempts: int = 20,
    ) -> None:
        """Initialise the store.

        Args:
            bucket: Bucket holding every object of this store.
            client: Pre-built S3 client; credentials below are then ignored.
            region_name: AWS region for the default client.
            endpoint_url: Custom endpoint (MinIO, LocalStack, ...).
            profile_name: Named profile from the shared AWS config.
            access_key_id: Explicit access key.
            secret_access_key: Explicit secret key.
            chunk_size: Part size for multipart uploads.
            waiter_delay: Seconds between polls while waiting during ``move``.
            waiter_max_attempts: Poll attempts before ``move`` gives up.

        """
        if not bucket:
            message = "bucket must not be empty"
            raise ValueError(message)
        if client is None:
            session = boto3.session.Session(
                profile_name=profile_name,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name=region_name,
            )
            client = session.client("s3", endpoint_url=endpoint_url)
        self._client = client
        self._bucket = bucket
        self._chunk_size = chunk_size
        self._waiter_config = {"Delay": waiter_delay, "MaxAttempts": waiter_max_attempts}

    @property
    def bucket(self) -> str:
        """Name of the backing bucket."""
        return self._bucket

    @property
    def client(self) -> Any:
        """Underlying boto3 S3 client."""
        return self._client

    def exists(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> bool:
        """Return True when ``head_object`` succeeds, whatever the object size."""
        check_token(token, path)
        key = normalise_key(path)
        try:
            self._invoke("head_object", key, Key=key)
        except (NotFoundError, TransportError):
            return False
        return True

    def create(
        self,
        path: PathLike,
        data: DataSource,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Put an object with optional native metadata and expiry."""
        key = normalise_key(path)
        request: dict[str, Any] = {"Key": key, "Body": coerce_to_bytes(data)}
        record = validate_metadata(metadata)
        if record is not None:
            request["Metadata"] = record
        if expires is not None:
            request["Expires"] = expires
        self._invoke("put_object", key, token=token, **request)

    def copy(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        expires: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Copy server-side, replacing metadata with the merged record."""
        source = normalise_key(src)
        destination = normalise_key(dst)
        override = validate_metadata(metadata)

        head = self._invoke("head_object", source, token=token, Key=source)
        merged = merge_metadata(head.get("Metadata"), override)
        request: dict[str, Any] = {
            "Key": destination,
            "CopySource": {"Bucket": self._bucket, "Key": source},
            "Metadata": merged,
            "MetadataDirective": "REPLACE",
        }
        if expires is not None:
            request["Expires"] = expires
        self._invoke("copy_object", destination, token=token, **request)

    def move(
        self,
        src: PathLike,
        dst: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Copy to ``dst``, wait for it, delete ``src`` and wait for removal."""
        source = normalise_key(src)
        destination = normalise_key(dst)
        self._invoke(
            "copy_object",
            source,
            token=token,
            Key=destination,
            CopySource={"Bucket": self._bucket, "Key": source},
        )
        self._wait("object_exists", destination, token)
        self._invoke("delete_object", source, token=token, Key=source)
        self._wait("object_not_exists", source, token)
        logger.info("Moved s3://%s/%s to %s", self._bucket, source, destination)

    def stream_in(
        self,
        path: PathLike,
        source: ChunkSource,
        *,
        expires: datetime | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        """Upload ``source`` as a multipart upload of fixed-size parts."""
        key = normalise_key(path)
        create_args = {"Expires": expires} if expires is not None else None
        upload = MultipartUpload(
            self._invoke,
            key,
            chunk_size=self._chunk_size,
            token=token,
            create_args=create_args,
        )
        upload.run(source)

    def read(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        """Download the whole object."""
        key = normalise_key(path)
        response = self._invoke("get_object", key, token=token, Key=key)
        return _drain(response["Body"])

    def read_range(
        self,
        path: PathLike,
        offset: int,
        length: int,
        *,
        token: CancellationToken | None = None,
    ) -> bytes:
        """Fetch a byte range; an unsatisfiable range yields ``b""``."""
        offset, length = validate_range(offset, length)
        key = normalise_key(path)
        header = format_range_header(offset, length)
        logger.debug("Range read s3://%s/%s %s", self._bucket, key, header)
        response = self._invoke(
            "get_object",
            key,
            token=token,
            tolerate=INVALID_RANGE_CODES,
            Key=key,
            Range=header,
        )
        if response is None:
            return b""
        return _drain(response["Body"])

    def open_reader(
        self,
        path: PathLike,
        offset: int = 0,
        length: int = 0,
        *,
        token: CancellationToken | None = None,
    ) -> BinaryIO:
        """Return the streaming body of a (possibly ranged) ``get_object``."""
        offset, length = validate_range(offset, length)
        key = normalise_key(path)
        request: dict[str, Any] = {"Key": key}
        if offset > 0 or length > 0:
            request["Range"] = format_range_header(offset, length)
        response = self._invoke(
            "get_object",
            key,
            token=token,
            tolerate=INVALID_RANGE_CODES,
            **request,
        )
        if response is None:
            return io.BytesIO(b"")
        return response["Body"]

    def remove(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Delete an object, raising NotFoundError when it is absent."""
        key = normalise_key(path)
        self._invoke("head_object", key, token=token, Key=key)
        self._invoke("delete_object", key, token=token, Key=key)

    def stat(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> tuple[FileDescriptor, Metadata]:
        """Return the descriptor and native metadata of an object."""
        key = normalise_key(path)
        head = self._invoke("head_object", key, token=token, Key=key)
        descriptor = FileDescriptor(
            name=key,
            size=head.get("ContentLength", 0),
            modified=head.get("LastModified"),
            is_directory=key.endswith("/"),
        )
        return descriptor, dict(head.get("Metadata") or {})

    def clear_directory(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Delete every object below the prefix, across all listing pages."""
        prefix = normalise_key(path).rstrip("/") + "/"
        request: dict[str, Any] = {"Prefix": prefix}
        deleted = 0
        while True:
            page = self._invoke("list_objects_v2", prefix, token=token, **request)
            for entry in page.get("Contents", []):
                if entry["Key"] == prefix:
                    continue
                self._invoke("delete_object", entry["Key"], token=token, Key=entry["Key"])
                deleted += 1
            if not page.get("IsTruncated"):
                break
            request["ContinuationToken"] = page["NextContinuationToken"]
        logger.debug("Cleared %d objects below s3://%s/%s", deleted, self._bucket, prefix)

    def make_directory_path(
        self,
        path: PathLike,
        *,
        token: CancellationToken | None = None,
    ) -> None:
        """Put an empty directory marker object at ``<key>/``."""
        key = normalise_key(path).rstrip("/") + "/"
        self._invoke("put_object", key, token=token, Key=key, Body=b"")

    def _invoke(
        self,
        operation: str,
        path: str,
        *,
        token: CancellationToken | None = None,
        check: bool = True,
        tolerate: frozenset[str] = frozenset(),
        **request: Any,
    ) -> Any:
        """Call ``operation`` on the client for this store's bucket.

        Args:
            operation: Client method name, e.g. ``"head_object"``.
            path: Key reported in translated errors.
            token: Cancellation token checked before the request.
            check: Skip the token check when False.
            tolerate: Error codes that return None instead of raising.
            **request: Request parameters besides ``Bucket``.

        Raises:
            CanceledError: If the token has fired.
            NotFoundError: If the key does not exist.
            TransportError: On any other client failure.

        """
        if check:
            check_token(token, path)
        method = getattr(self._client, operation)
        try:
            return method(Bucket=self._bucket, **request)
        except ClientError as exc:
            code = client_error_code(exc)
            if code in tolerate:
                return None
            if code in NOT_FOUND_CODES:
                raise NotFoundError(path) from exc
            raise TransportError.request_failed(operation, path) from exc
        except BotoCoreError as exc:
            raise TransportError.request_failed(operation, path) from exc

    def _wait(self, waiter_name: str, key: str, token: CancellationToken | None) -> None:
        """Block on a bounded botocore waiter for ``key``."""
        check_token(token, key)
        waiter = self._client.get_waiter(waiter_name)
        try:
            waiter.wait(Bucket=self._bucket, Key=key, WaiterConfig=self._waiter_config)
        except BotoCoreError as exc:
            raise TransportError.request_failed(waiter_name, key) from exc


def _drain(body: Any) -> bytes:
    """Read a streaming body to the end and close it."""
    try:
        return body.read()
    finally:
        body.close()
