"""SPF result cache backed by a Redis server."""

from __future__ import annotations

import json
import re
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import redis

from spffy.cache import CacheEntry
from spffy.metrics import Counter, Gauge

_NS_PER_SECOND = 1_000_000_000
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_CONNECT_TIMEOUT_SECONDS = 5.0
_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d{1,9}))?([Zz]|[+-]\d{2}:\d{2})$"
)
# Timestamp of an unset expiry: midnight, 1 January of year 1, UTC.
_ZERO_TIME_NS = (datetime(1, 1, 1, tzinfo=timezone.utc) - _EPOCH) // timedelta(microseconds=1) * 1000


def _format_rfc3339(ns: int) -> str:
    """Render a nanosecond timestamp as an RFC 3339 UTC string."""
    seconds, fraction = divmod(ns, _NS_PER_SECOND)
    moment = _EPOCH + timedelta(seconds=seconds)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if fraction:
        text += "." + f"{fraction:09d}".rstrip("0")
    return text + "Z"


def _parse_rfc3339(text: str) -> int:
    """Parse an RFC 3339 timestamp into nanoseconds since the epoch."""
    match = _RFC3339.match(text)
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {text!r}")
    date_part, time_part, fraction, offset = match.groups()
    if offset in ("Z", "z"):
        offset = "+00:00"
    moment = datetime.fromisoformat(f"{date_part}T{time_part}{offset}")
    seconds = (moment - _EPOCH) // timedelta(seconds=1)
    nanos = int(fraction.ljust(9, "0")) if fraction else 0
    return seconds * _NS_PER_SECOND + nanos


def _decode_entry(raw: Any) -> CacheEntry:
    """Turn a stored JSON document into a CacheEntry, raising ValueError if malformed."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    data = json.loads(raw)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("cache document is not an object")

    spf_record = data.get("spfRecord", "")
    found = data.get("found", False)
    expiry = data.get("expiry")
    if spf_record is None:
        spf_record = ""
    if found is None:
        found = False
    if not isinstance(spf_record, str):
        raise ValueError("spfRecord is not a string")
    if not isinstance(found, bool):
        raise ValueError("found is not a boolean")
    if expiry is None:
        expiry_ns = _ZERO_TIME_NS
    elif isinstance(expiry, str):
        expiry_ns = _parse_rfc3339(expiry)
    else:
        raise ValueError("expiry is not a timestamp string")
    return CacheEntry(spf_record=spf_record, expiry_ns=expiry_ns, found=found)


def _split_addr(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        return addr or "localhost", 6379
    host = host.strip("[]") or "localhost"
    return host, int(port)


class RedisCache:
    """Cache whose entries live in Redis and expire through Redis key TTLs.

    Per-entry size and hit counts are not tracked; the size limit is left to
    the server's own memory policy.
    """

    def __init__(
        self,
        addr: str = "localhost:6379",
        password: Optional[str] = None,
        db: int = 0,
        ttl_seconds: int = 15,
        hits_counter: Optional[Counter] = None,
        misses_counter: Optional[Counter] = None,
        hit_ratio_gauge: Optional[Gauge] = None,
        client: Any = None,
    ) -> None:
        if client is None:
            host, port = _split_addr(addr)
            client = redis.Redis(
                host=host,
                port=port,
                db=db,
                password=password or None,
                socket_connect_timeout=_CONNECT_TIMEOUT_SECONDS,
                socket_timeout=_CONNECT_TIMEOUT_SECONDS,
            )
        # Fails here, with the client's own error, if the server is unreachable.
        client.ping()

        self._client = client
        self._ttl_seconds = ttl_seconds
        self._hits_counter = hits_counter
        self._misses_counter = misses_counter
        self._hit_ratio_gauge = hit_ratio_gauge
        self._total_hits = 0
        self._total_misses = 0
        self._lock = threading.Lock()

    @property
    def client(self) -> Any:
        return self._client

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the stored entry, or None if absent, unreadable or on a server error."""
        try:
            raw = self._client.get(key)
        except redis.RedisError:
            raw = None

        entry: Optional[CacheEntry] = None
        if raw is not None:
            try:
                entry = _decode_entry(raw)
            except (ValueError, UnicodeDecodeError):
                entry = None

        self._record(hit=entry is not None)
        return entry

    def set(self, key: str, spf_record: str, found: bool) -> None:
        """Store a result with the current TTL; server errors are ignored."""
        ttl = self._ttl_seconds
        payload = json.dumps(
            {
                "spfRecord": spf_record,
                "expiry": _format_rfc3339(time.time_ns() + ttl * _NS_PER_SECOND),
                "found": found,
            },
            separators=(",", ":"),
        )
        try:
            if ttl > 0:
                self._client.set(key, payload, ex=ttl)
            else:
                self._client.set(key, payload)
        except redis.RedisError:
            pass

    def set_limit(self, limit: int) -> None:
        """Accepted for interface compatibility; Redis enforces its own memory limit."""

    def set_ttl(self, ttl_seconds: int) -> None:
        """Change the TTL used for entries stored from now on."""
        self._ttl_seconds = ttl_seconds

    def _record(self, hit: bool) -> None:
        with self._lock:
            if hit:
                self._total_hits += 1
                if self._hits_counter is not None:
                    self._hits_counter.inc()
            else:
                self._total_misses += 1
                if self._misses_counter is not None:
                    self._misses_counter.inc()
            if self._hit_ratio_gauge is not None:
                lookups = self._total_hits + self._total_misses
                self._hit_ratio_gauge.set(self._total_hits / lookups if lookups else 0.0)