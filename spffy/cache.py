"""In-memory SPF result cache with TTL expiry and size-bounded eviction."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import NamedTuple, Optional, Protocol

from spffy.metrics import Counter, Gauge, GaugeVec

_NS_PER_SECOND = 1_000_000_000
# Rough per-entry overhead: expiry timestamp, found flag, size and hit count.
_ENTRY_OVERHEAD = 24 + 1 + 8 + 8


@dataclass
class CacheEntry:
    """A cached SPF lookup result."""

    spf_record: str
    expiry_ns: int
    found: bool
    size: int = 0
    hits: int = 0

    @property
    def expiry(self) -> float:
        """Expiry as seconds since the epoch."""
        return self.expiry_ns / _NS_PER_SECOND


class CacheProtocol(Protocol):
    """What DNS query processing needs from a cache."""

    def get(self, key: str) -> Optional[CacheEntry]: ...

    def set(self, key: str, spf_record: str, found: bool) -> None: ...

    def set_limit(self, limit: int) -> None: ...

    def set_ttl(self, ttl_seconds: int) -> None: ...


class CacheStats(NamedTuple):
    entries: int
    total_size: int
    limit: int


def calc_entry_size(key: str, spf_record: str) -> int:
    """Approximate memory footprint of an entry, in bytes."""
    return len(key) + len(spf_record) + _ENTRY_OVERHEAD


class DNSCache:
    """Thread-safe in-memory cache that evicts entries closest to expiry first."""

    def __init__(
        self,
        ttl_seconds: int,
        limit_bytes: int,
        entries_gauge: Optional[Gauge] = None,
        size_bytes_gauge: Optional[Gauge] = None,
        limit_bytes_gauge: Optional[Gauge] = None,
        hit_ratio_gauge: Optional[Gauge] = None,
        oldest_entry_age_gauge: Optional[Gauge] = None,
        youngest_entry_age_gauge: Optional[Gauge] = None,
        most_used_entry_gauge_vec: Optional[GaugeVec] = None,
        hits_total_counter: Optional[Counter] = None,
        misses_total_counter: Optional[Counter] = None,
    ) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._total_size = 0
        self._total_hits = 0
        self._total_misses = 0
        self._ttl_seconds = ttl_seconds
        self._limit_bytes = limit_bytes

        self._entries_gauge = entries_gauge
        self._size_bytes_gauge = size_bytes_gauge
        self._limit_bytes_gauge = limit_bytes_gauge
        self._hit_ratio_gauge = hit_ratio_gauge
        self._oldest_entry_age_gauge = oldest_entry_age_gauge
        self._youngest_entry_age_gauge = youngest_entry_age_gauge
        self._most_used_entry_gauge_vec = most_used_entry_gauge_vec
        self._hits_total_counter = hits_total_counter
        self._misses_total_counter = misses_total_counter

        if self._limit_bytes_gauge is not None:
            self._limit_bytes_gauge.set(self._limit_bytes)

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    @property
    def limit_bytes(self) -> int:
        return self._limit_bytes

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for key, or None on a miss or expired entry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and time.time_ns() > entry.expiry_ns:
                self._total_size -= entry.size
                del self._entries[key]
                entry = None

            if entry is None:
                self._total_misses += 1
                if self._misses_total_counter is not None:
                    self._misses_total_counter.inc()
                self._update_metrics()
                return None

            entry.hits += 1
            self._total_hits += 1
            if self._hits_total_counter is not None:
                self._hits_total_counter.inc()
            self._update_metrics()
            return entry

    def set(self, key: str, spf_record: str, found: bool) -> None:
        """Store a result; entries larger than a positive limit are dropped."""
        with self._lock:
            size = calc_entry_size(key, spf_record)
            if self._limit_bytes > 0 and size > self._limit_bytes:
                return

            existing = self._entries.get(key)
            if existing is not None:
                self._total_size -= existing.size

            self._entries[key] = CacheEntry(
                spf_record=spf_record,
                expiry_ns=time.time_ns() + self._ttl_seconds * _NS_PER_SECOND,
                found=found,
                size=size,
            )
            self._total_size += size
            self._evict()
            self._update_metrics()
            self._publish_size()

    def evict_oldest(self) -> None:
        """Evict entries nearest expiry until the total size fits the limit."""
        with self._lock:
            if self._total_size <= self._limit_bytes:
                return
            self._evict()
            self._publish_size()

    def cleanup(self) -> None:
        """Remove every expired entry."""
        with self._lock:
            now = time.time_ns()
            expired = [key for key, entry in self._entries.items() if now > entry.expiry_ns]
            for key in expired:
                self._total_size -= self._entries.pop(key).size
            self._publish_size()
            self._update_metrics()

    def update_metrics(self) -> None:
        """Refresh hit ratio, age and most-used gauges."""
        with self._lock:
            self._update_metrics()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(len(self._entries), self._total_size, self._limit_bytes)

    def set_limit(self, limit: int) -> None:
        """Change the size limit, evicting at once if the cache is now too large."""
        with self._lock:
            self._limit_bytes = limit
            if self._limit_bytes_gauge is not None:
                self._limit_bytes_gauge.set(limit)
            self._evict()
            self._publish_size()

    def set_ttl(self, ttl_seconds: int) -> None:
        """Change the TTL used for entries stored from now on."""
        with self._lock:
            self._ttl_seconds = ttl_seconds

    def _evict(self) -> None:
        if self._total_size <= self._limit_bytes:
            return
        by_expiry = sorted(self._entries.items(), key=lambda item: item[1].expiry_ns)
        for key, entry in by_expiry:
            if self._total_size <= self._limit_bytes:
                break
            self._total_size -= entry.size
            del self._entries[key]

    def _publish_size(self) -> None:
        if self._entries_gauge is not None:
            self._entries_gauge.set(len(self._entries))
        if self._size_bytes_gauge is not None:
            self._size_bytes_gauge.set(self._total_size)

    def _update_metrics(self) -> None:
        if self._hit_ratio_gauge is not None:
            lookups = self._total_hits + self._total_misses
            self._hit_ratio_gauge.set(self._total_hits / lookups if lookups else 0.0)

        now = time.time_ns()
        ttl_ns = self._ttl_seconds * _NS_PER_SECOND
        ages = [now - (entry.expiry_ns - ttl_ns) for entry in self._entries.values()]
        oldest_age = max(ages, default=0)
        youngest_age = min(ages, default=0)

        most_used_key: Optional[str] = None
        max_hits = 0
        for key, entry in self._entries.items():
            if entry.hits > max_hits:
                max_hits = entry.hits
                most_used_key = key

        if self._oldest_entry_age_gauge is not None:
            self._oldest_entry_age_gauge.set(oldest_age / _NS_PER_SECOND)
        if self._youngest_entry_age_gauge is not None:
            self._youngest_entry_age_gauge.set(youngest_age / _NS_PER_SECOND)
        if self._most_used_entry_gauge_vec is not None and most_used_key is not None:
            self._most_used_entry_gauge_vec.labels(most_used_key).set(max_hits)


def run_cache_cleanup(cache: DNSCache, interval: float) -> threading.Event:
    """Call cache.cleanup() every interval seconds in a daemon thread.

    Setting the returned event stops the thread.
    """
    stop = threading.Event()

    def _loop() -> None:
        while not stop.wait(interval):
            cache.cleanup()

    threading.Thread(target=_loop, name="dns-cache-cleanup", daemon=True).start()
    return stop