"""Caches for SPF lookup results, in memory or in Redis, with in-process metrics."""

__version__ = "0.1.0"
__all__ = ["cache", "metrics", "redis_cache"]