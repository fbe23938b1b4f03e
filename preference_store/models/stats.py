"""
Counters describing how preference lookups were served.
"""

import threading
from dataclasses import dataclass, field


@dataclass
class StoreStats:
    """Tracks cache and store traffic for a PreferenceStore. Thread-safe."""

    cache_hits: int = 0
    cache_misses: int = 0
    store_hits: int = 0
    store_misses: int = 0
    repairs: int = 0
    fallbacks_cached: int = 0
    writes: int = 0
    deletes: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, counter: str, amount: int = 1) -> None:
        """Increments one of the named counters."""
        if counter.startswith("_") or not hasattr(self, counter):
            raise ValueError(f"Unknown stats counter: {counter}")
        with self._lock:
            setattr(self, counter, getattr(self, counter) + amount)

    @property
    def hit_ratio(self) -> float:
        """Fraction of cache reads that were served from the cache."""
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return 0.0
        return self.cache_hits / total

    def as_dict(self) -> dict[str, int]:
        with self._lock:
            return {
                "cache_hits": self.cache_hits,
                "cache_misses": self.cache_misses,
                "store_hits": self.store_hits,
                "store_misses": self.store_misses,
                "repairs": self.repairs,
                "fallbacks_cached": self.fallbacks_cached,
                "writes": self.writes,
                "deletes": self.deletes,
            }

    def reset(self) -> None:
        with self._lock:
            self.cache_hits = self.cache_misses = 0
            self.store_hits = self.store_misses = 0
            self.repairs = self.fallbacks_cached = 0
            self.writes = self.deletes = 0
