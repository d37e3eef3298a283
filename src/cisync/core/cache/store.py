"""
In-memory TTL cache for provider responses.

The cache keeps three independent namespaces (workflow-run lists, tag lists
and the single latest tag). Entries carry the time they were written; the
cache never decides staleness itself. Callers pass their own expiration
threshold to :func:`is_fresh`, so each Build can tolerate a different age.

Example:
    >>> cache = ResponseCache()
    >>> cache.set_tags("octo/repo/tags:100", ["v2.0.0", "v1.0.0"])
    >>> entry = cache.get_tags("octo/repo/tags:100")
    >>> is_fresh(entry, expiration_minutes=5)
    True
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from cisync.core.provider.models import WorkflowRun

T = TypeVar("T")


class CacheNamespace(str, Enum):
    """Independent key spaces held by the cache."""

    WORKFLOW_RUNS = "workflow_runs"
    TAGS = "tags"
    LATEST_TAG = "latest_tag"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """
    A cached value and the moment it was stored.

    Entries are replaced wholesale on every write and never mutated.
    """

    data: T
    cached_at: datetime


def is_fresh(
    entry: CacheEntry[Any] | None,
    expiration_minutes: float,
    now: datetime | None = None,
) -> bool:
    """
    Check whether a cache entry is still within the caller's tolerance.

    An entry is valid iff ``now - cached_at < expiration_minutes``.

    Args:
        entry: Entry returned by the cache, or None on a miss
        expiration_minutes: Maximum tolerated age in minutes
        now: Reference time (defaults to current UTC time)

    Returns:
        True if the entry exists and is younger than the threshold
    """
    if entry is None:
        return False
    if now is None:
        now = datetime.now(timezone.utc)
    return now - entry.cached_at < timedelta(minutes=expiration_minutes)


class ResponseCache:
    """
    Expiring key-value store over provider responses.

    Construct one per process (or per test) and inject it into
    :class:`~cisync.core.provider.cached.CachedProviderClient`. There is no
    locking: writes are whole-entry replacements, so a race costs at most a
    redundant fetch.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheNamespace, dict[str, CacheEntry[Any]]] = {
            namespace: {} for namespace in CacheNamespace
        }

    # ------------------------------------------------------------------
    # Generic access
    # ------------------------------------------------------------------

    def get(self, namespace: CacheNamespace, key: str) -> CacheEntry[Any] | None:
        """Return the entry stored under ``key`` in ``namespace``, if any."""
        return self._entries[namespace].get(key)

    def set(self, namespace: CacheNamespace, key: str, value: Any) -> CacheEntry[Any]:
        """
        Store ``value`` under ``key``, stamping the current time.

        Returns:
            The newly written entry
        """
        entry = CacheEntry(data=value, cached_at=datetime.now(timezone.utc))
        self._entries[namespace][key] = entry
        return entry

    def invalidate(self, key: str) -> None:
        """Remove ``key`` from every namespace."""
        for entries in self._entries.values():
            entries.pop(key, None)

    def invalidate_by_prefix(self, prefix: str) -> None:
        """Remove every key starting with ``prefix`` across all namespaces."""
        for entries in self._entries.values():
            for key in [k for k in entries if k.startswith(prefix)]:
                del entries[key]

    def invalidate_all(self) -> None:
        """Drop every entry in every namespace."""
        for entries in self._entries.values():
            entries.clear()

    def clear(self) -> None:
        """Alias for :meth:`invalidate_all`."""
        self.invalidate_all()

    def size(self) -> dict[str, int]:
        """Return the number of entries held per namespace."""
        return {namespace.value: len(entries) for namespace, entries in self._entries.items()}

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    def get_workflow_runs(self, key: str) -> CacheEntry[list[WorkflowRun]] | None:
        return self.get(CacheNamespace.WORKFLOW_RUNS, key)

    def set_workflow_runs(self, key: str, runs: list[WorkflowRun]) -> None:
        self.set(CacheNamespace.WORKFLOW_RUNS, key, runs)

    def get_tags(self, key: str) -> CacheEntry[list[str]] | None:
        return self.get(CacheNamespace.TAGS, key)

    def set_tags(self, key: str, tags: list[str]) -> None:
        self.set(CacheNamespace.TAGS, key, tags)

    def get_latest_tag(self, key: str) -> CacheEntry[str | None] | None:
        return self.get(CacheNamespace.LATEST_TAG, key)

    def set_latest_tag(self, key: str, tag: str | None) -> None:
        self.set(CacheNamespace.LATEST_TAG, key, tag)
