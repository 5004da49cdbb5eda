import threading
import time
from collections import OrderedDict
from typing import Callable


class CacheMetrics:
    """Thread-safe cache metrics tracker."""

    hits: int
    misses: int
    evictions: int
    expirations: int
    _lock: threading.Lock

    def __init__(self):
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0

    def record_hit(self):
        with self._lock:
            self.hits += 1

    def record_miss(self):
        with self._lock:
            self.misses += 1

    def record_eviction(self):
        with self._lock:
            self.evictions += 1

    def record_expiration(self):
        with self._lock:
            self.expirations += 1

    def hit_rate(self) -> float:
        """Return cache hit rate as percentage (0-100)."""
        with self._lock:
            total = self.hits + self.misses
            if total == 0:
                return 0.0
            return (self.hits / total) * 100

    def reset(self):
        """Reset all metrics to zero."""
        with self._lock:
            self.hits = 0
            self.misses = 0
            self.evictions = 0
            self.expirations = 0


class ResultCache[VT]:
    """Identifier-keyed cache with lazy TTL expiry.

    Entries older than ``ttl`` seconds are treated as absent and dropped the
    next time they are read; there is no background sweep. ``maxsize`` adds
    an optional LRU bound on top of the TTL policy.
    """

    _cache: OrderedDict[str, tuple[float, VT]]
    _lock: threading.Lock
    _maxsize: int | None
    _metrics: CacheMetrics
    _clock: Callable[[], float]
    ttl: float

    def __init__(
        self,
        ttl: float,
        maxsize: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            ttl: Seconds an entry stays valid after it was stored.
            maxsize: Maximum number of entries. None = unlimited. Uses LRU eviction.
            clock: Monotonic time source, injectable for tests.
        """
        self._cache = OrderedDict()
        self._lock = threading.Lock()
        self._maxsize = maxsize
        self._metrics = CacheMetrics()
        self._clock = clock
        self.ttl = ttl

    def get(self, identifier: str) -> VT | None:
        with self._lock:
            hit = self._cache.get(identifier)
            if hit is None:
                self._metrics.record_miss()
                return None
            stored_at, result = hit
            if stored_at + self.ttl <= self._clock():
                del self._cache[identifier]
                self._metrics.record_expiration()
                self._metrics.record_miss()
                return None
            # Move to end for LRU tracking
            self._cache.move_to_end(identifier)
            self._metrics.record_hit()
            return result

    def put(self, identifier: str, result: VT):
        with self._lock:
            # Remove old entry if exists to update position
            if identifier in self._cache:
                del self._cache[identifier]

            self._cache[identifier] = (self._clock(), result)

            if self._maxsize is not None and len(self._cache) > self._maxsize:
                oldest_key = next(iter(self._cache))
                del self._cache[oldest_key]
                self._metrics.record_eviction()

    def clear(self):
        with self._lock:
            self._cache = OrderedDict()

    def get_metrics(self) -> CacheMetrics:
        """Return the metrics tracker for this cache."""
        return self._metrics

    def size(self) -> int:
        """Return current number of entries in cache, expired ones included."""
        with self._lock:
            return len(self._cache)
