"""
Cancellation tokens for store I/O.

Every store operation accepts an optional ``cancel`` keyword. Stores check the
token before they touch storage and again before a write is committed, so a
cancelled ``persist`` never leaves a partial batch behind.

Example:
    >>> token = CancellationToken(timeout=2.0)
    >>> blob = repository.find("b1", cancel=token)
    >>>
    >>> # From another thread
    >>> token.cancel()
"""

from __future__ import annotations

import threading
import time

from blobsource.exceptions import OperationCancelledError


class CancellationToken:
    """
    Cooperative cancellation signal with an optional deadline.

    The token is thread-safe: one thread may call ``cancel()`` while another
    is blocked in a store operation that checks the token.

    Args:
        timeout: Seconds from now after which the token counts as cancelled
            (None for no deadline)
    """

    def __init__(self, timeout: float | None = None) -> None:
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must be >= 0")
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        """Signal cancellation to every operation holding this token."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """True once ``cancel()`` was called or the deadline has passed."""
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self, operation: str) -> None:
        """
        Raise if the token is cancelled.

        Args:
            operation: Name of the operation being guarded, used in the error

        Raises:
            OperationCancelledError: If cancelled or past the deadline
        """
        if self.cancelled:
            raise OperationCancelledError(operation)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled}, remaining={self.remaining})"


def check_cancelled(cancel: CancellationToken | None, operation: str) -> None:
    """Raise OperationCancelledError if ``cancel`` is set; a None token never cancels."""
    if cancel is not None:
        cancel.raise_if_cancelled(operation)
