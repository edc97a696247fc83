"""
Deadlines bounding the blocking time of one evaluation run.
"""

import threading
import time
from typing import Optional


class Deadline:
    """
    Absolute expiry plus a cancellation flag.

    A deadline created without a timeout never expires on its own but can
    still be cancelled from another thread.
    """

    def __init__(self, timeout_ms: Optional[int] = None):
        self._expires_at = (
            time.monotonic() + timeout_ms / 1000 if timeout_ms is not None else None
        )
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        if self.cancelled:
            return True
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> Optional[float]:
        """Seconds left, 0.0 once expired or cancelled, None if unbounded."""
        if self.cancelled:
            return 0.0
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def bound(self, timeout_seconds: Optional[float]) -> Optional[float]:
        """Clamps a per-call timeout to what is left of this deadline."""
        remaining = self.remaining()
        if remaining is None:
            return timeout_seconds
        if timeout_seconds is None:
            return remaining
        return min(timeout_seconds, remaining)

    def reason(self) -> str:
        return "evaluation cancelled" if self.cancelled else "evaluation deadline exceeded"
