"""Chunked upload session for S3-compatible object stores.

A :class:`MultipartUpload` drives one ``create → upload_part* → complete``
sequence with an explicit state:

    IDLE ──begin──▶ UPLOADING ──complete──▶ COMPLETING ──▶ DONE
                        │                        │
                        └───────abort────────────┴──▶ ABORTED

The object becomes visible only once the completion request succeeds. If
anything fails after the session has been opened, the session is aborted
and the original exception is re-raised. An exception raised by the abort
request itself propagates in its place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from .interfaces import MULTIPART_CHUNK_SIZE, ValidationError
from .utils import iter_fixed_chunks

if TYPE_CHECKING:
    from .cancellation import CancellationToken
    from .interfaces import ChunkSource

logger = logging.getLogger(__name__)


class UploadState(str, Enum):
    """Lifecycle states of a chunked upload session."""

    IDLE = "idle"
    UPLOADING = "uploading"
    COMPLETING = "completing"
    DONE = "done"
    ABORTED = "aborted"


_TRANSITIONS: dict[UploadState, frozenset[UploadState]] = {
    UploadState.IDLE: frozenset({UploadState.UPLOADING}),
    UploadState.UPLOADING: frozenset({UploadState.COMPLETING, UploadState.ABORTED}),
    UploadState.COMPLETING: frozenset({UploadState.DONE, UploadState.ABORTED}),
    UploadState.DONE: frozenset(),
    UploadState.ABORTED: frozenset(),
}


@dataclass(frozen=True)
class CompletedPart:
    """A part accepted by the server, identified by number and ETag."""

    part_number: int
    etag: str

    def as_dict(self) -> dict[str, Any]:
        """Return the shape expected by ``complete_multipart_upload``."""
        return {"PartNumber": self.part_number, "ETag": self.etag}


class MultipartUpload:
    """One chunked upload of ``key`` through an S3 client.

    Requests are issued through ``invoke``, a callable with the signature
    ``invoke(operation, path, *, token=None, check=True, **request)`` that
    checks the cancellation token, calls the client and translates client
    errors. :class:`~f9_store.s3.S3Store` passes its own request helper.
    """

    def __init__(
        self,
        invoke: Callable[..., Any],
        key: str,
        *,
        chunk_size: int = MULTIPART_CHUNK_SIZE,
        token: CancellationToken | None = None,
        create_args: dict[str, Any] | None = None,
    ) -> None:
        """Prepare a session; nothing is sent until :meth:`begin`."""
        if chunk_size <= 0:
            message = "chunk_size must be positive"
            raise ValueError(message)
        self._invoke = invoke
        self._key = key
        self._chunk_size = chunk_size
        self._token = token
        self._create_args = dict(create_args or {})
        self._state = UploadState.IDLE
        self._upload_id: str | None = None
        self._parts: list[CompletedPart] = []

    @property
    def key(self) -> str:
        return self._key

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def upload_id(self) -> str | None:
        return self._upload_id

    @property
    def parts(self) -> tuple[CompletedPart, ...]:
        return tuple(self._parts)

    def begin(self) -> None:
        """Open the session on the server."""
        self._require(UploadState.UPLOADING)
        response = self._invoke(
            "create_multipart_upload",
            self._key,
            token=self._token,
            Key=self._key,
            **self._create_args,
        )
        self._upload_id = response["UploadId"]
        self._transition(UploadState.UPLOADING)
        logger.debug("Opened upload %s for %s", self._upload_id, self._key)

    def upload_part(self, chunk: bytes) -> CompletedPart:
        """Upload the next part and record its ETag."""
        if self._state is not UploadState.UPLOADING:
            raise ValidationError.invalid_transition(self._state.value, "upload_part")
        part_number = len(self._parts) + 1
        response = self._invoke(
            "upload_part",
            self._key,
            token=self._token,
            Key=self._key,
            UploadId=self._upload_id,
            PartNumber=part_number,
            Body=chunk,
        )
        part = CompletedPart(part_number=part_number, etag=response["ETag"])
        self._parts.append(part)
        logger.debug(
            "Uploaded part %d (%d bytes) of %s",
            part_number,
            len(chunk),
            self._key,
        )
        return part

    def complete(self) -> None:
        """Commit the recorded parts, making the object visible."""
        self._transition(UploadState.COMPLETING)
        self._invoke(
            "complete_multipart_upload",
            self._key,
            token=self._token,
            Key=self._key,
            UploadId=self._upload_id,
            MultipartUpload={"Parts": [part.as_dict() for part in self._parts]},
        )
        self._transition(UploadState.DONE)
        logger.info("Completed upload of %s in %d parts", self._key, len(self._parts))

    def abort(self) -> None:
        """Discard the session and every uploaded part.

        The abort request is sent even when the cancellation token has fired.
        """
        self._transition(UploadState.ABORTED)
        logger.warning("Aborting upload %s for %s", self._upload_id, self._key)
        self._invoke(
            "abort_multipart_upload",
            self._key,
            check=False,
            Key=self._key,
            UploadId=self._upload_id,
        )

    def run(self, source: ChunkSource) -> None:
        """Upload ``source`` in fixed-size parts and complete the session.

        An empty source is committed as a single empty part.
        """
        self.begin()
        try:
            for chunk in iter_fixed_chunks(source, self._chunk_size):
                self.upload_part(chunk)
            if not self._parts:
                self.upload_part(b"")
            self.complete()
        except Exception:
            self.abort()
            raise

    def _require(self, target: UploadState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise ValidationError.invalid_transition(self._state.value, target.value)

    def _transition(self, target: UploadState) -> None:
        self._require(target)
        self._state = target
