"""Exception translation for standard Python compatibility.

This module translates f9_store exceptions into builtin ``OSError``
subclasses, so a store can be handed to code that expects the exceptions
raised by ordinary file operations.

:class:`~f9_store.interfaces.CanceledError` is never translated: a fired
cancellation token is a control-flow signal rather than an I/O failure.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import TYPE_CHECKING, TypeVar

from .interfaces import (
    CanceledError,
    NotDirectoryError,
    NotFoundError,
    StoreError,
    ValidationError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from .interfaces import Store

T = TypeVar("T")


def translate_store_exception(exc: StoreError) -> BaseException:
    """Convert a StoreError to a standard Python OSError.

    Maps:
    - NotFoundError → FileNotFoundError
    - NotDirectoryError → NotADirectoryError
    - ValidationError (cannot read directory) → IsADirectoryError
    - CanceledError → returned unchanged
    - any other StoreError → OSError

    Args:
        exc: The StoreError to translate.

    Returns:
        A standard Python OSError or subclass, or ``exc`` for cancellations.

    """
    if isinstance(exc, CanceledError):
        return exc

    message = str(exc)

    if isinstance(exc, NotFoundError):
        return FileNotFoundError(message)

    if isinstance(exc, NotDirectoryError):
        return NotADirectoryError(message)

    if isinstance(exc, ValidationError) and exc.message == "Cannot read directory":
        return IsADirectoryError(message)

    return OSError(message)


@contextmanager
def translate_exceptions() -> Iterator[None]:
    """Context manager translating StoreError into OSError.

    Example:
        ```python
        with translate_exceptions():
            store.read("nonexistent.txt")  # Raises FileNotFoundError
        ```

    Raises:
        OSError: Any StoreError other than CanceledError, translated.
        CanceledError: Re-raised untouched.

    """
    try:
        yield
    except CanceledError:
        raise
    except StoreError as exc:
        raise translate_store_exception(exc) from exc


def translate_method(method: Callable[..., T]) -> Callable[..., T]:
    """Wrap ``method`` so StoreError raised by the call becomes OSError."""

    @functools.wraps(method)
    def wrapper(*args: object, **kwargs: object) -> T:
        with translate_exceptions():
            return method(*args, **kwargs)

    return wrapper


class CompatibleStore:
    """Wrapper store that raises standard Python OSError subclasses.

    Example:
        ```python
        from f9_store import CompatibleStore, LocalStore

        store = CompatibleStore(LocalStore(root="/data"))
        try:
            store.read("nonexistent.txt")
        except FileNotFoundError:
            print("File not found!")
        ```

    Attributes:
        _store: The wrapped Store instance.

    """

    def __init__(self, store: Store) -> None:
        """Initialize the compatible wrapper around ``store``."""
        self._store = store

    def __getattr__(self, name: str) -> object:
        """Delegate attribute access, wrapping callables with translation.

        Raises:
            AttributeError: If the attribute doesn't exist on the store.

        """
        attr = getattr(self._store, name)
        if callable(attr):
            return translate_method(attr)
        return attr

    def __repr__(self) -> str:
        return f"CompatibleStore({self._store!r})"
