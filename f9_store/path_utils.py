"""Path validation and normalization utilities for remote stores.

Remote stores (WebDAV, S3) address objects by slash-separated keys rather
than filesystem paths. These helpers turn caller input into such keys while
rejecting empty paths and parent-directory traversal.

Key utilities:
- Empty/whitespace path validation
- Path traversal detection
- Windows path normalization
- Key normalisation that preserves a trailing slash (prefix semantics)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .interfaces import ValidationError

if TYPE_CHECKING:
    from .interfaces import PathLike


def validate_not_empty(path: Any) -> None:
    """Validate that path is not empty or whitespace-only.

    Raises:
        ValidationError: If path is empty or whitespace.

    """
    path_str = str(path)
    if not path_str or path_str.strip() == "":
        raise ValidationError.empty_path_not_allowed(path)


def detect_path_traversal_posix(path_parts: tuple[str, ...] | list[str]) -> bool:
    """Return True when any path component is ``..``.

    Example:

        >>> detect_path_traversal_posix(("..", "etc", "passwd"))
        True
        >>> detect_path_traversal_posix(("valid", "relative", "path"))
        False

    """
    return any(part == ".." for part in path_parts)


def normalize_windows_path(path_str: str) -> str:
    """Normalize Windows backslashes to forward slashes.

    Example:

        >>> normalize_windows_path("dir\\\\subdir\\\\file.txt")
        'dir/subdir/file.txt'

    """
    return path_str.replace("\\", "/")


def normalise_key(path: PathLike) -> str:
    """Return a slash-separated object key for ``path``.

    Leading slashes are dropped, repeated slashes collapse, and a trailing
    slash is kept so that prefixes such as ``"reports/"`` stay distinct from
    the object ``"reports"``.

    Raises:
        ValidationError: If the key is empty or traverses upwards.

    """
    validate_not_empty(path)
    path_str = normalize_windows_path(str(path))
    parts = [part for part in path_str.split("/") if part not in ("", ".")]
    if not parts:
        raise ValidationError.empty_path_not_allowed(path)
    if detect_path_traversal_posix(parts):
        raise ValidationError.path_outside_root(path)
    key = "/".join(parts)
    if path_str.endswith("/"):
        key += "/"
    return key


def parent_segments(key: str) -> list[str]:
    """Return every ancestor directory of ``key``, shallowest first.

    Example:

        >>> parent_segments("a/b/c.txt")
        ['a', 'a/b']

    """
    parts = key.rstrip("/").split("/")[:-1]
    return ["/".join(parts[: index + 1]) for index in range(len(parts))]
