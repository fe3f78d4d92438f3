"""Minimal WebDAV protocol client built on requests.

Only the verbs the store needs are implemented: ``PROPFIND`` (depth 0 and
1), ``GET`` with optional ``Range``, ``PUT``, ``DELETE``, ``COPY``, ``MOVE``
and ``MKCOL``. HTTP 404 responses raise :class:`NotFoundError`; any other
failure raises :class:`TransportError` chained to the original exception.
"""

from __future__ import annotations

import logging
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, unquote, urlparse
from xml.etree import ElementTree

import requests

from .interfaces import (
    FileDescriptor,
    NotDirectoryError,
    NotFoundError,
    TransportError,
)
from .path_utils import parent_segments

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

logger = logging.getLogger(__name__)

DAV_NAMESPACE = "{DAV:}"
HTTP_NOT_FOUND = 404
HTTP_METHOD_NOT_ALLOWED = 405
HTTP_CONFLICT = 409
HTTP_ERROR_THRESHOLD = 400

PROPFIND_BODY = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<d:propfind xmlns:d="DAV:"><d:prop>'
    "<d:resourcetype/><d:getcontentlength/><d:getlastmodified/>"
    "</d:prop></d:propfind>"
)


class WebDAVClient:
    """Blocking WebDAV client bound to one base URL."""

    def __init__(
        self,
        host: str,
        username: str | None = None,
        password: str | None = None,
        *,
        session: Any | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialise the client for ``host`` with optional basic credentials."""
        if not host:
            message = "WebDAV host must not be empty"
            raise ValueError(message)
        self._base = host.rstrip("/") + "/"
        self._base_path = unquote(urlparse(self._base).path)
        self._session = session if session is not None else requests.Session()
        if username is not None:
            self._session.auth = (username, password or "")
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        """Base URL every key is resolved against."""
        return self._base

    def url(self, key: str) -> str:
        """Return the absolute URL of ``key``."""
        return self._base + quote(key.lstrip("/"))

    def request(
        self,
        method: str,
        key: str,
        *,
        headers: Mapping[str, str] | None = None,
        data: Any = None,
        stream: bool = False,
        allowed: tuple[int, ...] = (),
    ) -> Any:
        """Send one request and translate error statuses.

        Args:
            method: HTTP or WebDAV verb.
            key: Object key relative to the base URL.
            headers: Extra request headers.
            data: Request body (bytes or an iterable of bytes).
            stream: Defer downloading the response body.
            allowed: Error statuses returned to the caller instead of raised.

        """
        logger.debug("%s %s", method, key)
        try:
            response = self._session.request(
                method,
                self.url(key),
                headers=dict(headers or {}),
                data=data,
                stream=stream,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise TransportError.request_failed(method, key) from exc

        status = response.status_code
        if status in allowed:
            return response
        if status == HTTP_NOT_FOUND:
            response.close()
            raise NotFoundError(key)
        if status >= HTTP_ERROR_THRESHOLD:
            response.close()
            message = f"{method} request failed with status {status}"
            raise TransportError(message, path=key)
        return response

    def stat(self, key: str) -> FileDescriptor:
        """Return the descriptor of a single resource."""
        entries = self._propfind(key, depth="0")
        if not entries:
            raise NotFoundError(key)
        return entries[0]

    def read_dir(self, key: str) -> list[FileDescriptor]:
        """Return the immediate children of a collection.

        Raises:
            NotFoundError: If the collection does not exist.
            NotDirectoryError: If ``key`` is not a collection.

        """
        own_name = key.rstrip("/")
        children: list[FileDescriptor] = []
        is_collection = False
        for entry in self._propfind(own_name + "/", depth="1"):
            if entry.name == own_name:
                is_collection = entry.is_directory
                continue
            children.append(entry)
        if not is_collection:
            raise NotDirectoryError(key)
        return children

    def read(self, key: str) -> bytes:
        """Download the full body of ``key``."""
        response = self.request("GET", key)
        return response.content

    def read_stream_range(self, key: str, range_header: str | None) -> Any:
        """Open a streaming ``GET``; the caller must close the response.

        A ``416`` (range not satisfiable) response is returned, not raised.
        """
        headers = {"Range": range_header} if range_header else None
        return self.request("GET", key, headers=headers, stream=True, allowed=(416,))

    def write(self, key: str, payload: bytes) -> None:
        """Upload ``payload``, creating missing parent collections on 409."""
        response = self.request("PUT", key, data=payload, allowed=(HTTP_CONFLICT,))
        if response.status_code == HTTP_CONFLICT:
            response.close()
            self.create_parent_collections(key)
            self.request("PUT", key, data=payload).close()
            return
        response.close()

    def write_stream(self, key: str, chunks: Iterable[bytes]) -> None:
        """Upload an iterable of chunks using chunked transfer encoding."""
        self.create_parent_collections(key)
        self.request("PUT", key, data=chunks).close()

    def copy(self, src: str, dst: str, *, overwrite: bool = True) -> None:
        """Server-side copy of ``src`` to ``dst``."""
        self._transfer("COPY", src, dst, overwrite=overwrite)

    def rename(self, src: str, dst: str, *, overwrite: bool = True) -> None:
        """Server-side move of ``src`` to ``dst``."""
        self._transfer("MOVE", src, dst, overwrite=overwrite)

    def remove(self, key: str) -> None:
        """Delete a resource; collections are removed by the server."""
        self.request("DELETE", key).close()

    def mkdir_all(self, key: str) -> None:
        """Create ``key`` and its ancestors; existing collections are kept."""
        for segment in [*parent_segments(key), key.rstrip("/")]:
            if segment:
                self.request(
                    "MKCOL",
                    segment + "/",
                    allowed=(HTTP_METHOD_NOT_ALLOWED,),
                ).close()

    def create_parent_collections(self, key: str) -> None:
        """Ensure every ancestor collection of ``key`` exists."""
        parents = parent_segments(key)
        if parents:
            self.mkdir_all(parents[-1])

    def _transfer(self, method: str, src: str, dst: str, *, overwrite: bool) -> None:
        """Issue a COPY or MOVE request."""
        headers = {
            "Destination": self.url(dst),
            "Overwrite": "T" if overwrite else "F",
        }
        self.request(method, src, headers=headers).close()

    def _propfind(self, key: str, *, depth: str) -> list[FileDescriptor]:
        """Run PROPFIND and parse the multistatus body."""
        headers = {"Depth": depth, "Content-Type": "application/xml; charset=utf-8"}
        response = self.request("PROPFIND", key, headers=headers, data=PROPFIND_BODY)
        try:
            root = ElementTree.fromstring(response.content)
        except ElementTree.ParseError as exc:
            raise TransportError("Malformed PROPFIND response", path=key) from exc
        finally:
            response.close()
        return [
            self._parse_response(node)
            for node in root.iter(f"{DAV_NAMESPACE}response")
        ]

    def _parse_response(self, node: ElementTree.Element) -> FileDescriptor:
        """Convert one ``<d:response>`` element into a descriptor."""
        href = node.findtext(f"{DAV_NAMESPACE}href", default="")
        href_path = unquote(urlparse(href).path)
        if href_path.startswith(self._base_path):
            href_path = href_path[len(self._base_path) :]
        name = href_path.strip("/")

        prop = node.find(f"{DAV_NAMESPACE}propstat/{DAV_NAMESPACE}prop")
        is_dir = False
        size = 0
        modified: datetime | None = None
        if prop is not None:
            resource_type = prop.find(f"{DAV_NAMESPACE}resourcetype")
            is_dir = (
                resource_type is not None
                and resource_type.find(f"{DAV_NAMESPACE}collection") is not None
            )
            length_text = prop.findtext(f"{DAV_NAMESPACE}getcontentlength")
            if length_text and length_text.strip().isdigit():
                size = int(length_text.strip())
            modified = _parse_http_date(prop.findtext(f"{DAV_NAMESPACE}getlastmodified"))
        return FileDescriptor(name=name, size=size, modified=modified, is_directory=is_dir)


def _parse_http_date(value: str | None) -> datetime | None:
    """Parse an RFC 1123 date, returning None when absent or malformed."""
    if not value:
        return None
    try:
        return parsedate_to_datetime(value.strip())
    except (TypeError, ValueError):
        return None
