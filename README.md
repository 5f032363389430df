# spffy

Caches for SPF lookup results, meant to sit in front of a DNS server that
answers SPF queries.

Two caches share one interface (`get`, `set`, `set_limit`, `set_ttl`),
described by `spffy.cache.CacheProtocol`:

- `spffy.cache.DNSCache` — a thread-safe in-memory cache with a TTL and a
  byte-size limit. Entry sizes are estimated by `calc_entry_size`. When the
  total size exceeds the limit, entries closest to expiry are evicted first;
  an entry larger than a positive limit is not stored at all. Expired entries
  are dropped on lookup, by `cleanup()`, or periodically in a background
  thread started with `run_cache_cleanup(cache, interval)`.
- `spffy.redis_cache.RedisCache` — stores each entry as a JSON document in
  Redis, with the cache TTL applied as the key's expiry. `set_limit` has no
  effect; memory limits belong in the Redis server's configuration. Server
  errors and unreadable documents count as misses.

Both caches record hits, misses and the hit ratio using the small metric
types in `spffy.metrics` (`Gauge`, `Counter`, `GaugeVec`). Pass `None` for any
metric you do not need.

## Installation

```
pip install spffy
```

## In-memory cache

```python
from spffy.cache import DNSCache, run_cache_cleanup
from spffy.metrics import Counter, Gauge, GaugeVec

hits, misses = Counter("cache_hits_total"), Counter("cache_misses_total")
ratio = Gauge("cache_hit_ratio")

cache = DNSCache(
    ttl_seconds=15,
    limit_bytes=1024 * 1024 * 1024,
    entries_gauge=Gauge("cache_entries"),
    size_bytes_gauge=Gauge("cache_size_bytes"),
    limit_bytes_gauge=Gauge("cache_limit_bytes"),
    hit_ratio_gauge=ratio,
    oldest_entry_age_gauge=Gauge("cache_oldest_entry_age_seconds"),
    youngest_entry_age_gauge=Gauge("cache_youngest_entry_age_seconds"),
    most_used_entry_gauge_vec=GaugeVec("cache_most_used_entry", ["key"]),
    hits_total_counter=hits,
    misses_total_counter=misses,
)

cache.set("example.com|192.0.2.1", "v=spf1 mx -all", True)
entry = cache.get("example.com|192.0.2.1")
if entry is not None:
    print(entry.spf_record, entry.found, entry.hits)

print(cache.stats())                 # CacheStats(entries, total_size, limit)
print(hits.value, ratio.value)

stop = run_cache_cleanup(cache, 30)  # drop expired entries every 30 seconds
stop.set()                           # stop the cleanup thread
```

`get` returns a `CacheEntry` (`spf_record`, `found`, `expiry_ns`, `expiry`,
`size`, `hits`), or `None` on a miss or an expired entry. `set_ttl` affects
only entries stored afterwards; `set_limit` evicts at once if needed.

## Redis cache

```python
from spffy.redis_cache import RedisCache

password = "password"
cache = RedisCache("localhost:6379", password=password, db=0, ttl_seconds=15)
cache.set("example.com|192.0.2.1", "v=spf1 -all", True)
print(cache.get("example.com|192.0.2.1"))
```

Creating a `RedisCache` pings the server and raises the client's error if it
cannot be reached. An existing `redis.Redis` client may be passed as `client`
instead of an address.

## What this package does not do

It provides the caches and metric types only. It does not answer DNS
queries, evaluate SPF records, read configuration from flags or the
environment, export metrics over HTTP, or provide a command to run.

## Tests

```
pip install "spffy[test]"
pytest
```