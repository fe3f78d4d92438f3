"""Line-oriented codec for metadata records kept beside primary objects.

Stores without native per-object metadata (LocalStore, WebDAVStore) persist
the record in a sidecar file at ``<path>.meta``. Each entry is written as a
``key=value`` line. Keys and values must not contain ``=`` or a newline: the
codec does not escape them, and such entries do not survive a round trip.

Example:

    >>> encode_metadata({"owner": "bob"})
    b'owner=bob\\n'
    >>> decode_metadata(b"owner=bob\\n\\nbroken line\\n")
    {'owner': 'bob'}

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .interfaces import SIDECAR_SUFFIX

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .interfaces import Metadata


def encode_metadata(metadata: Mapping[str, str]) -> bytes:
    """Serialise a metadata mapping into ``key=value`` lines."""
    lines = [f"{key}={value}\n" for key, value in metadata.items()]
    return "".join(lines).encode("utf-8")


def decode_metadata(payload: bytes | None) -> Metadata:
    """Parse ``key=value`` lines, dropping blank and malformed lines."""
    metadata: Metadata = {}
    if not payload:
        return metadata
    for line in payload.decode("utf-8", errors="replace").split("\n"):
        if not line:
            continue
        pair = line.split("=")
        if len(pair) != 2:  # noqa: PLR2004
            continue
        metadata[pair[0]] = pair[1]
    return metadata


def merge_metadata(
    current: Mapping[str, str] | None,
    override: Mapping[str, str] | None,
) -> Metadata:
    """Return ``current`` updated with ``override``; override keys win."""
    merged: Metadata = dict(current or {})
    merged.update(override or {})
    return merged


def sidecar_path(path: str, suffix: str = SIDECAR_SUFFIX) -> str:
    """Return the location of the metadata record for ``path``."""
    return f"{path}{suffix}"
