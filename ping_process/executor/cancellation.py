"""
Cooperative cancellation for process runs.

A CancellationToken is created by the caller and threaded explicitly through
every run. Work checks it before starting and registers callbacks against it
(the kill trigger of an in-flight process). Registrations are scoped to a
single call and removed when that call finishes.
"""

import itertools
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from ..utils import CancellationError, get_logger

logger = get_logger(__name__)


class CancellationRegistration:
    """
    Handle for one callback registered on a token.

    Usable as a context manager so the callback is always unregistered when
    the owning call leaves its scope.
    """

    def __init__(self, token: Optional["CancellationToken"], key: Optional[int]):
        self._token = token
        self._key = key

    def unregister(self) -> bool:
        """
        Remove the callback from its token.

        Returns:
            True if the callback was still registered and has been removed
        """
        if self._token is None or self._key is None:
            return False
        removed = self._token._remove(self._key)
        self._token = None
        self._key = None
        return removed

    def __enter__(self) -> "CancellationRegistration":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unregister()


class CancellationToken:
    """
    Thread-safe cancellation signal.

    cancel() may be called from any thread (or from an event loop). Callbacks
    run synchronously in the cancelling thread, each at most once. A callback
    registered after cancellation runs immediately in the registering thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._keys = itertools.count()

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._event.is_set()

    def cancel(self) -> None:
        """
        Request cancellation and run registered callbacks.

        Every callback runs even if an earlier one fails.

        Raises:
            Exception: The first exception raised by a callback
        """
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()

        logger.debug(f"Cancellation requested, running {len(callbacks)} callback(s)")

        errors: list[Exception] = []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Cancellation callback failed: {e}")
                errors.append(e)

        if errors:
            raise errors[0]

    def register(self, callback: Callable[[], None]) -> CancellationRegistration:
        """
        Register a callback to run on cancellation.

        Args:
            callback: Zero-argument callable

        Returns:
            Registration handle used to unregister the callback
        """
        with self._lock:
            if not self._event.is_set():
                key = next(self._keys)
                self._callbacks[key] = callback
                return CancellationRegistration(self, key)

        # Already cancelled: run now, nothing left to unregister
        callback()
        return CancellationRegistration(None, None)

    def raise_if_cancelled(self, command: Optional[list[str]] = None) -> None:
        """
        Raise if cancellation has been requested.

        Args:
            command: Command to attach to the error, if any

        Raises:
            CancellationError: If the token is cancelled
        """
        if self.is_cancelled:
            raise CancellationError("Operation was cancelled", command=command)

    def _remove(self, key: int) -> bool:
        with self._lock:
            return self._callbacks.pop(key, None) is not None

    @property
    def registration_count(self) -> int:
        """Get number of callbacks currently registered."""
        with self._lock:
            return len(self._callbacks)


@contextmanager
def linked_token(parent: Optional[CancellationToken] = None) -> Iterator[CancellationToken]:
    """
    Create a child token that is cancelled whenever the parent is.

    Cancelling the child does not touch the parent, so a run can cancel its
    own token (for example when its awaiting task is cancelled) without
    affecting the caller's token. The link is removed on exit.

    Args:
        parent: Caller's token, or None for a standalone token

    Yields:
        Child CancellationToken
    """
    token = CancellationToken()
    if parent is None:
        yield token
        return

    with parent.register(token.cancel):
        yield token
