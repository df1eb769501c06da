"""Per-client fixed-window rate limiting."""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from config import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_time: float  # epoch seconds


@dataclass
class RateLimitStatus:
    """Outcome of a rate-limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_time: float  # epoch seconds when the window resets
    retry_after: float = 0.0  # seconds until the window resets, when denied


class RateLimiter:
    """
    Allows `max_requests` per identifier in each window of `window` seconds.

    The window starts at an identifier's first request. Entries whose window
    has passed are reset on their next check and removed by `cleanup()`.
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window: float = RATE_LIMIT_WINDOW,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the rate limiter.

        Args:
            max_requests: Requests allowed per window
            window: Window length in seconds
            clock: Time source returning epoch seconds; injectable for tests
        """
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def check(self, identifier: str) -> RateLimitStatus:
        """
        Count a request against an identifier.

        Args:
            identifier: Client identifier (usually an IP address)

        Returns:
            RateLimitStatus; `allowed` is False once the window's quota is used
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(identifier)

            if entry is None or now > entry.reset_time:
                entry = RateLimitEntry(count=1, reset_time=now + self.window)
                self._entries[identifier] = entry
            elif entry.count >= self.max_requests:
                logger.warning(f"Rate limit exceeded for {identifier}")
                return RateLimitStatus(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_time=entry.reset_time,
                    retry_after=max(0.0, entry.reset_time - now),
                )
            else:
                entry.count += 1

            return RateLimitStatus(
                allowed=True,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - entry.count),
                reset_time=entry.reset_time,
            )

    def cleanup(self) -> int:
        """
        Remove entries whose window has passed.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.reset_time]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Removed {len(expired)} expired rate limit entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
