"""Cooperative cancellation tokens for store operations.

A :class:`CancellationToken` is passed as the ``token`` keyword to any store
operation. Stores check it at well-defined points:

    - LocalStore and WebDAVStore check once, before dispatching the operation.
      Synchronous filesystem and HTTP calls cannot be interrupted afterwards.
    - S3Store checks before every request it issues, so a multipart upload can
      be stopped between parts and run its abort path.

Example:

    >>> from f9_store import CancellationToken, LocalStore
    >>> token = CancellationToken()
    >>> store = LocalStore(root="/data")
    >>> token.cancel()
    >>> store.read("report.txt", token=token)
    Traceback (most recent call last):
    ...
    f9_store.interfaces.CanceledError: Operation canceled: report.txt

"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

from .interfaces import CanceledError

if TYPE_CHECKING:
    from .interfaces import PathLike


class CancellationToken:
    """Thread-safe, one-shot cancellation signal with an optional deadline."""

    def __init__(self, *, timeout: float | None = None) -> None:
        """Create a token that also fires once ``timeout`` seconds have passed."""
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        """Fire the token. Subsequent checks raise CanceledError."""
        self._event.set()

    @property
    def canceled(self) -> bool:
        """Return True once the token has fired or its deadline has passed."""
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def raise_if_canceled(self, path: PathLike | None = None) -> None:
        """Raise CanceledError when the token has fired."""
        if self.canceled:
            raise CanceledError(path)


def check_token(token: CancellationToken | None, path: PathLike | None = None) -> None:
    """Raise CanceledError when an optional token has fired."""
    if token is not None:
        token.raise_if_canceled(path)
