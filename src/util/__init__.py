"""Shared utilities.

Modules:
    cache — single-flight CachedValue / CachedSet / CachedMap with refresh policy
"""

from src.util.cache import CacheConfig, CachedMap, CachedSet, CachedValue

__all__ = ["CacheConfig", "CachedValue", "CachedSet", "CachedMap"]
