"""
Deadline handle for read calls.

Calls that touch the persistence layer accept an optional Deadline and abort
with DeadlineExceededError once it has passed. There is nothing to roll back
because those calls never write.
"""

import time
from typing import Optional

from .errors import DeadlineExceededError


class Deadline:
    """Point in monotonic time after which work should stop."""

    def __init__(self, timeout: float):
        """
        Args:
            timeout: Seconds from now until the deadline expires
        """
        self.timeout = timeout
        self.expires_at = time.monotonic() + timeout
        self._cancelled = False

    def cancel(self):
        """Expire the deadline immediately."""
        self._cancelled = True

    @property
    def expired(self) -> bool:
        return self._cancelled or time.monotonic() >= self.expires_at

    def remaining(self) -> float:
        """Seconds left, never negative."""
        if self._cancelled:
            return 0.0
        return max(0.0, self.expires_at - time.monotonic())

    def check(self, operation: str = "operation"):
        """Raise DeadlineExceededError if the deadline has passed."""
        if self.expired:
            raise DeadlineExceededError(
                f"{operation} aborted: deadline of {self.timeout}s exceeded"
            )


def check_deadline(deadline: Optional[Deadline], operation: str = "operation"):
    """No-op when deadline is None."""
    if deadline is not None:
        deadline.check(operation)
