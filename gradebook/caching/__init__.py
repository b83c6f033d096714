"""Caching primitives shared by the gradebook services."""

from .concurrent_cache import CacheEntry, CacheStats, ConcurrentCache
from .refresh import RefreshScheduler

__all__ = ["CacheEntry", "CacheStats", "ConcurrentCache", "RefreshScheduler"]
