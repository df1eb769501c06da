"""In-memory TTL cache for embeddings and query responses."""
import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def embedding_cache_key(text: str) -> str:
    """Cache key for an embedding: the text lower-cased and trimmed."""
    return text.lower().strip()


def query_cache_key(query: str, context: Optional[Dict[str, Any]] = None) -> str:
    """Cache key for a query response: normalised query plus the chat context."""
    return json.dumps({"query": query.lower().strip(), "context": context}, sort_keys=True)


class TTLCache(Generic[T]):
    """
    Thread-safe map whose entries expire a fixed time after they are set.

    Expired entries are dropped lazily on read and in bulk by `cleanup()`,
    which the app calls from a periodic background task.
    """

    def __init__(self, ttl: float, name: str = "cache", clock: Callable[[], float] = time.time):
        """
        Initialize the cache.

        Args:
            ttl: Entry lifetime in seconds
            name: Label used in log messages
            clock: Time source returning seconds; injectable for tests
        """
        self.ttl = ttl
        self.name = name
        self._clock = clock
        self._entries: Dict[str, Tuple[T, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            value, expires_at = entry
            if self._clock() > expires_at:
                del self._entries[key]
                return None

            return value

    def set(self, key: str, value: T) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + self.ttl)

    def cleanup(self) -> int:
        """
        Remove every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._entries.items() if now > expires_at]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Removed {len(expired)} expired entries from {self.name}")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
