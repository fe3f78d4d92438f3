"""Test doubles used across remote store tests."""

from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any
from urllib.parse import quote, unquote, urlparse
from xml.sax.saxutils import escape

from botocore.exceptions import ClientError, WaiterError

_RANGE_PATTERN = re.compile(r"bytes=(\d+)-(\d*)")


def _parse_range(header: str, size: int) -> tuple[int, int] | None:
    """Return ``(start, end_exclusive)`` or None when unsatisfiable."""
    match = _RANGE_PATTERN.fullmatch(header)
    if match is None:
        message = f"Malformed range header {header!r}"
        raise ValueError(message)
    start = int(match.group(1))
    if start >= size:
        return None
    end = int(match.group(2)) + 1 if match.group(2) else size
    return start, min(end, size)


@dataclass
class _StoredObject:
    """In-memory representation of an S3 object."""

    body: bytes
    metadata: dict[str, str]
    last_modified: datetime
    expires: datetime | None = None


@dataclass
class _UploadSession:
    """State of one multipart upload."""

    key: str
    parts: dict[int, bytes] = field(default_factory=dict)
    status: str = "open"


class FakeS3Client:
    """Minimal boto3 S3 client emulation suitable for store tests.

    ``failures`` maps an operation name to an exception raised on its next
    call. ``fail_part_number`` makes ``upload_part`` reject that part.
    """

    def __init__(self, *, page_size: int = 1000) -> None:
        """Initialise an empty bucket namespace."""
        self.objects: dict[tuple[str, str], _StoredObject] = {}
        self.uploads: dict[str, _UploadSession] = {}
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.fail_part_number: int | None = None
        self.page_size = page_size
        self._counter = 0

    @staticmethod
    def error(code: str, operation: str, status: int = 400) -> ClientError:
        """Build a ClientError shaped like a botocore service error."""
        return ClientError(
            {
                "Error": {"Code": code, "Message": code},
                "ResponseMetadata": {"HTTPStatusCode": status},
            },
            operation,
        )

    def keys(self, bucket: str) -> list[str]:
        """Return every stored key in ``bucket`` sorted."""
        return sorted(key for name, key in self.objects if name == bucket)

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        failure = self.failures.pop(operation, None)
        if failure is not None:
            raise failure

    def _lookup(self, bucket: str, key: str, operation: str) -> _StoredObject:
        stored = self.objects.get((bucket, key))
        if stored is None:
            code = "404" if operation == "HeadObject" else "NoSuchKey"
            raise self.error(code, operation, status=404)
        return stored

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter:04d}"

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        self._record("head_object")
        stored = self._lookup(Bucket, Key, "HeadObject")
        return {
            "ContentLength": len(stored.body),
            "LastModified": stored.last_modified,
            "Metadata": dict(stored.metadata),
            "ETag": f'"{self._next_id("etag")}"',
        }

    def put_object(
        self,
        *,
        Bucket: str,  # noqa: N803
        Key: str,  # noqa: N803
        Body: bytes = b"",  # noqa: N803
        Metadata: dict[str, str] | None = None,  # noqa: N803
        Expires: datetime | None = None,  # noqa: N803
    ) -> dict[str, Any]:
        self._record("put_object")
        self.objects[(Bucket, Key)] = _StoredObject(
            body=bytes(Body),
            metadata=dict(Metadata or {}),
            last_modified=datetime.now(timezone.utc),
            expires=Expires,
        )
        return {"ETag": f'"{self._next_id("etag")}"'}

    def get_object(
        self,
        *,
        Bucket: str,  # noqa: N803
        Key: str,  # noqa: N803
        Range: str | None = None,  # noqa: N803
    ) -> dict[str, Any]:
        self._record("get_object")
        stored = self._lookup(Bucket, Key, "GetObject")
        body = stored.body
        if Range is not None:
            bounds = _parse_range(Range, len(body))
            if bounds is None:
                raise self.error("InvalidRange", "GetObject", status=416)
            body = body[bounds[0] : bounds[1]]
        return {
            "Body": io.BytesIO(body),
            "ContentLength": len(body),
            "Metadata": dict(stored.metadata),
        }

    def copy_object(
        self,
        *,
        Bucket: str,  # noqa: N803
        Key: str,  # noqa: N803
        CopySource: dict[str, str],  # noqa: N803
        Metadata: dict[str, str] | None = None,  # noqa: N803
        MetadataDirective: str = "COPY",  # noqa: N803
        Expires: datetime | None = None,  # noqa: N803
    ) -> dict[str, Any]:
        self._record("copy_object")
        source = self._lookup(CopySource["Bucket"], CopySource["Key"], "CopyObject")
        metadata = (
            dict(Metadata or {})
            if MetadataDirective == "REPLACE"
            else dict(source.metadata)
        )
        self.objects[(Bucket, Key)] = _StoredObject(
            body=source.body,
            metadata=metadata,
            last_modified=datetime.now(timezone.utc),
            expires=Expires,
        )
        return {"CopyObjectResult": {"ETag": f'"{self._next_id("etag")}"'}}

    def delete_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        self._record("delete_object")
        self.objects.pop((Bucket, Key), None)
        return {}

    def list_objects_v2(
        self,
        *,
        Bucket: str,  # noqa: N803
        Prefix: str = "",  # noqa: N803
        ContinuationToken: str | None = None,  # noqa: N803
    ) -> dict[str, Any]:
        self._record("list_objects_v2")
        matching = [key for key in self.keys(Bucket) if key.startswith(Prefix)]
        if ContinuationToken:
            matching = [key for key in matching if key > ContinuationToken]
        page = matching[: self.page_size]
        response: dict[str, Any] = {
            "KeyCount": len(page),
            "IsTruncated": len(matching) > self.page_size,
        }
        if page:
            response["Contents"] = [
                {"Key": key, "Size": len(self.objects[(Bucket, key)].body)}
                for key in page
            ]
        if response["IsTruncated"]:
            response["NextContinuationToken"] = page[-1]
        return response

    def create_multipart_upload(
        self,
        *,
        Bucket: str,  # noqa: N803
        Key: str,  # noqa: N803
        **_: Any,
    ) -> dict[str, Any]:
        self._record("create_multipart_upload")
        upload_id = self._next_id("upload")
        self.uploads[upload_id] = _UploadSession(key=Key)
        return {"UploadId": upload_id, "Bucket": Bucket, "Key": Key}

    def upload_part(
        self,
        *,
        Bucket: str,  # noqa: N803
        Key: str,  # noqa: N803
        UploadId: str,  # noqa: N803
        PartNumber: int,  # noqa: N803
        Body: bytes,  # noqa: N803
    ) -> dict[str, Any]:
        self._record("upload_part")
        if PartNumber == self.fail_part_number:
            raise self.error("InternalError", "UploadPart", status=500)
        session = self.uploads[UploadId]
        if session.status != "open":
            raise self.error("NoSuchUpload", "UploadPart", status=404)
        session.parts[PartNumber] = bytes(Body)
        return {"ETag": f'"etag-{UploadId}-{PartNumber}"'}

    def complete_multipart_upload(
        self,
        *,
        Bucket: str,  # noqa: N803
        Key: str,  # noqa: N803
        UploadId: str,  # noqa: N803
        MultipartUpload: dict[str, Any],  # noqa: N803
    ) -> dict[str, Any]:
        self._record("complete_multipart_upload")
        session = self.uploads[UploadId]
        numbers = [part["PartNumber"] for part in MultipartUpload["Parts"]]
        if not numbers or numbers != sorted(numbers):
            raise self.error("InvalidPartOrder", "CompleteMultipartUpload")
        body = b"".join(session.parts[number] for number in numbers)
        session.status = "completed"
        self.objects[(Bucket, Key)] = _StoredObject(
            body=body,
            metadata={},
            last_modified=datetime.now(timezone.utc),
        )
        return {"Key": Key}

    def abort_multipart_upload(
        self,
        *,
        Bucket: str,  # noqa: N803
        Key: str,  # noqa: N803
        UploadId: str,  # noqa: N803
    ) -> dict[str, Any]:
        self._record("abort_multipart_upload")
        session = self.uploads[UploadId]
        session.status = "aborted"
        session.parts.clear()
        return {}

    def get_waiter(self, name: str) -> _FakeWaiter:
        return _FakeWaiter(self, name)


class _FakeWaiter:
    """Waiter that checks the condition once instead of polling."""

    def __init__(self, client: FakeS3Client, name: str) -> None:
        self._client = client
        self._name = name

    def wait(self, *, Bucket: str, Key: str, WaiterConfig: dict[str, int]) -> None:  # noqa: N803
        self._client.calls.append(f"wait:{self._name}")
        present = (Bucket, Key) in self._client.objects
        expected = self._name == "object_exists"
        if present != expected:
            raise WaiterError(
                name=self._name,
                reason="Max attempts exceeded",
                last_response={},
            )


class _RawStream(io.BytesIO):
    """Stand-in for ``urllib3.HTTPResponse`` exposed as ``response.raw``."""

    decode_content = False


class FakeResponse:
    """Subset of ``requests.Response`` used by the WebDAV client."""

    def __init__(self, status_code: int, content: bytes = b"") -> None:
        self.status_code = status_code
        self.content = content
        self.raw = _RawStream(content)
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeWebDAVSession:
    """In-memory WebDAV server reachable through a requests-like session.

    Collections are tracked explicitly; the share root always exists.
    Set ``ignore_ranges`` to emulate servers that answer ``200`` to ranged
    ``GET`` requests.
    """

    def __init__(self, base_url: str = "http://dav.test/share/") -> None:
        """Initialise an empty share served below ``base_url``."""
        self.base_url = base_url
        self._base_path = urlparse(base_url).path
        self.files: dict[str, bytes] = {}
        self.collections: set[str] = {""}
        self.requests: list[tuple[str, str]] = []
        self.ignore_ranges = False
        self.auth: Any = None

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        data: Any = None,
        stream: bool = False,
        timeout: float | None = None,
    ) -> FakeResponse:
        key = self._key(url)
        self.requests.append((method, key))
        headers = headers or {}
        handler = getattr(self, f"_handle_{method.lower()}")
        return handler(key, headers, data)

    def _key(self, url: str) -> str:
        path = unquote(urlparse(url).path)
        if path.startswith(self._base_path):
            path = path[len(self._base_path) :]
        return path.strip("/")

    @staticmethod
    def _parent(key: str) -> str:
        return key.rsplit("/", 1)[0] if "/" in key else ""

    def _exists(self, key: str) -> bool:
        return key in self.files or key in self.collections

    def _href(self, key: str) -> str:
        suffix = "/" if key in self.collections and key else ""
        return self._base_path + quote(key) + suffix

    def _entry_xml(self, key: str) -> str:
        stamp = format_datetime(datetime.now(timezone.utc), usegmt=True)
        if key in self.collections:
            props = "<d:resourcetype><d:collection/></d:resourcetype>"
        else:
            props = (
                "<d:resourcetype/>"
                f"<d:getcontentlength>{len(self.files[key])}</d:getcontentlength>"
            )
        return (
            "<d:response>"
            f"<d:href>{escape(self._href(key))}</d:href>"
            "<d:propstat><d:prop>"
            f"{props}<d:getlastmodified>{stamp}</d:getlastmodified>"
            "</d:prop><d:status>HTTP/1.1 200 OK</d:status></d:propstat>"
            "</d:response>"
        )

    def _children(self, key: str) -> list[str]:
        names = set(self.files) | self.collections
        return sorted(name for name in names if name and self._parent(name) == key)

    def _subtree(self, key: str) -> list[str]:
        names = set(self.files) | self.collections
        return [name for name in names if name == key or name.startswith(key + "/")]

    def _handle_propfind(self, key: str, headers: dict[str, str], data: Any) -> FakeResponse:
        if not self._exists(key):
            return FakeResponse(404)
        keys = [key]
        if headers.get("Depth") == "1" and key in self.collections:
            keys.extend(self._children(key))
        body = (
            '<?xml version="1.0" encoding="utf-8"?><d:multistatus xmlns:d="DAV:">'
            + "".join(self._entry_xml(name) for name in keys)
            + "</d:multistatus>"
        )
        return FakeResponse(207, body.encode("utf-8"))

    def _handle_get(self, key: str, headers: dict[str, str], data: Any) -> FakeResponse:
        if key in self.collections:
            return FakeResponse(200, b"")
        if key not in self.files:
            return FakeResponse(404)
        content = self.files[key]
        range_header = headers.get("Range")
        if range_header is None or self.ignore_ranges:
            return FakeResponse(200, content)
        bounds = _parse_range(range_header, len(content))
        if bounds is None:
            return FakeResponse(416)
        return FakeResponse(206, content[bounds[0] : bounds[1]])

    def _handle_put(self, key: str, headers: dict[str, str], data: Any) -> FakeResponse:
        if self._parent(key) not in self.collections:
            return FakeResponse(409)
        if isinstance(data, (bytes, bytearray)):
            payload = bytes(data)
        elif data is None:
            payload = b""
        else:
            payload = b"".join(data)
        self.files[key] = payload
        return FakeResponse(201)

    def _handle_delete(self, key: str, headers: dict[str, str], data: Any) -> FakeResponse:
        if not self._exists(key):
            return FakeResponse(404)
        for name in self._subtree(key):
            self.files.pop(name, None)
            self.collections.discard(name)
        return FakeResponse(204)

    def _handle_mkcol(self, key: str, headers: dict[str, str], data: Any) -> FakeResponse:
        if self._exists(key):
            return FakeResponse(405)
        if self._parent(key) not in self.collections:
            return FakeResponse(409)
        self.collections.add(key)
        return FakeResponse(201)

    def _handle_copy(self, key: str, headers: dict[str, str], data: Any) -> FakeResponse:
        return self._transfer(key, headers, remove_source=False)

    def _handle_move(self, key: str, headers: dict[str, str], data: Any) -> FakeResponse:
        return self._transfer(key, headers, remove_source=True)

    def _transfer(
        self,
        key: str,
        headers: dict[str, str],
        *,
        remove_source: bool,
    ) -> FakeResponse:
        if not self._exists(key):
            return FakeResponse(404)
        destination = self._key(headers["Destination"])
        if self._parent(destination) not in self.collections:
            return FakeResponse(409)
        for name in self._subtree(key):
            target = destination + name[len(key) :]
            if name in self.collections:
                self.collections.add(target)
            else:
                self.files[target] = self.files[name]
        if remove_source:
            for name in self._subtree(key):
                self.files.pop(name, None)
                self.collections.discard(name)
        return FakeResponse(201)
