"""
Minimum-interval rate limiter for outbound geocoding requests.

The public geocoding provider enforces its own request-rate policy, so
the client self-throttles: an acquisition is granted only when a fixed
interval has passed since the last granted one. Refused attempts are not
queued; the caller simply tries again on its next trigger.
"""

import time
from typing import Optional

from ..config.logger_module import log_info


class MinIntervalRateLimiter:
    """
    Grants at most one request per ``min_interval_seconds`` (single-threaded).
    """

    def __init__(self, min_interval_seconds: float = 1.0):
        """
        Initialize the rate limiter.
        
        Args:
            min_interval_seconds: Required gap between granted acquisitions
        """
        if min_interval_seconds <= 0:
            raise ValueError(
                f"min_interval_seconds must be positive, got {min_interval_seconds}"
            )
        self.min_interval_seconds = min_interval_seconds
        self._last_granted: Optional[float] = None
        
        log_info(f"RateLimiter initialized: one request per {min_interval_seconds}s")

    def try_acquire(self) -> bool:
        """
        Attempt to take the next request slot.
        
        Returns:
            True (and records the grant time) if the interval has elapsed,
            False otherwise with no state change
        """
        now = time.monotonic()
        
        if self._last_granted is not None:
            elapsed = now - self._last_granted
            if elapsed < self.min_interval_seconds:
                log_info(
                    f"Rate limit: waiting for next request window "
                    f"({self.min_interval_seconds - elapsed:.2f}s left)"
                )
                return False
        
        self._last_granted = now
        return True

    def get_wait_time(self) -> float:
        """
        Seconds until the next acquisition would be granted (0 if now).
        """
        if self._last_granted is None:
            return 0.0
        
        remaining = self.min_interval_seconds - (time.monotonic() - self._last_granted)
        return max(0.0, remaining)

    def reset(self) -> None:
        """Forget the last grant so the next attempt succeeds immediately."""
        self._last_granted = None
