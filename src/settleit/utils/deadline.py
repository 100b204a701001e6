"""Cancellable deadlines threaded through store and collaborator calls."""

import threading
import time
from typing import Optional

from settleit.domain.errors import DeadlineExceeded


class Deadline:
    """A cancellation scope with an optional timeout.

    Services call ``check()`` before each store read/write or remote call;
    it raises ``DeadlineExceeded`` once the timeout has passed or
    ``cancel()`` was called from another thread.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._expires_at = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when there is no timeout."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        if self.cancelled:
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self) -> None:
        """Raise DeadlineExceeded if the scope is cancelled or timed out."""
        if self.cancelled:
            raise DeadlineExceeded("operation cancelled")
        if self.expired:
            raise DeadlineExceeded()


def check_deadline(deadline: Optional[Deadline]) -> None:
    """Check ``deadline`` when one was given."""
    if deadline is not None:
        deadline.check()
