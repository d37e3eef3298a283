"""
TTL cache for CI provider responses.

Example:
    >>> from cisync.core.cache import ResponseCache, is_fresh
    >>> cache = ResponseCache()
    >>> cache.set_latest_tag("octo/repo/latest-tag", "v1.2.3")
    >>> is_fresh(cache.get_latest_tag("octo/repo/latest-tag"), 10)
    True
"""

from cisync.core.cache.store import CacheEntry, CacheNamespace, ResponseCache, is_fresh

__all__ = [
    "CacheEntry",
    "CacheNamespace",
    "ResponseCache",
    "is_fresh",
]
