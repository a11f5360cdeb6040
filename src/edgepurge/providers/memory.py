"""In-memory CDN provider."""

import threading

from edgepurge.types import Invalidation


class MemoryProvider:
    """Records purges instead of sending them anywhere.

    Useful in development and tests. ``fail_next(n)`` makes the next ``n``
    calls report failure.
    """

    def __init__(self, max_urls: int = 1000) -> None:
        self._max_urls = max_urls
        self._failures = 0
        self._lock = threading.Lock()
        self.invalidations: list[Invalidation] = []
        self.full_invalidations = 0
        self.calls = 0

    def fail_next(self, count: int = 1) -> None:
        with self._lock:
            self._failures = count

    def _take_failure(self) -> bool:
        self.calls += 1
        if self._failures > 0:
            self._failures -= 1
            return True
        return False

    def invalidate(self, invalidation: Invalidation) -> Invalidation:
        """Record the invalidation."""
        with self._lock:
            if self._take_failure():
                return invalidation.failed()
            self.invalidations.append(invalidation)
            return invalidation.succeeded()

    def invalidate_all(self) -> Invalidation:
        """Record a full flush."""
        with self._lock:
            if self._take_failure():
                return Invalidation.everything()
            self.full_invalidations += 1
            return Invalidation.everything().succeeded()

    def max_urls(self) -> int:
        return self._max_urls

    def clear(self) -> None:
        """Forget recorded purges."""
        with self._lock:
            self.invalidations.clear()
            self.full_invalidations = 0
            self.calls = 0
            self._failures = 0
