import threading
import time
from collections import deque


class RateLimiter:
    """Sliding-window counter of failed attempts per key."""

    def __init__(self, max_requests: int, window_seconds: int) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._lock = threading.Lock()
        self._requests: dict[str, deque[float]] = {}

    def _prune(self, key: str, now: float) -> deque[float] | None:
        bucket = self._requests.get(key)
        if bucket is None:
            return None
        while bucket and bucket[0] <= now - self.window_seconds:
            bucket.popleft()
        if not bucket:
            self._requests.pop(key, None)
            return None
        return bucket

    def blocked(self, key: str, now: float | None = None) -> bool:
        now = now or time.time()
        with self._lock:
            bucket = self._prune(key, now)
            return bucket is not None and len(bucket) >= self.max_requests

    def record(self, key: str, now: float | None = None) -> None:
        now = now or time.time()
        with self._lock:
            bucket = self._prune(key, now)
            if bucket is None:
                bucket = self._requests[key] = deque()
            bucket.append(now)

    def reset(self, key: str) -> None:
        with self._lock:
            self._requests.pop(key, None)
