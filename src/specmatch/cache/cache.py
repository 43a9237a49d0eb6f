"""Bounded caches for normalized specifications.

Two interchangeable backends store :class:`CacheEntry` objects keyed by the
resolved absolute path of a spec file:

* :class:`SpecCache` -- in-process LRU built on :class:`collections.OrderedDict`
  and guarded by a lock, so concurrent reads from worker threads are safe.
* :class:`DiskSpecCache` -- persistent cache built on :mod:`diskcache` with a
  least-recently-used eviction policy, shared across CLI runs.

Each path holds at most one entry; storing a path again replaces its entry.
Entries carry the source file fingerprint and the load options they were
built with, and :class:`~specmatch.parser.normalizer.SpecNormalizer` treats a
mismatch on either as a miss.

See Also:
    :class:`~specmatch.models.CacheConfig` -- selects the backend and its bounds.
"""

from __future__ import annotations

import hashlib
import threading
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol

import diskcache

from specmatch.models import CacheConfig, NormalizedSpec


@dataclass(frozen=True)
class CacheEntry:
    """A cached spec together with what it was built from.

    Attributes:
        spec: The normalized spec.
        fingerprint: ``(mtime_ns, size)`` of the source file at load time.
        stamp: The load options that affect the normalized result.
    """

    spec: NormalizedSpec
    fingerprint: tuple[int, int]
    stamp: tuple[Any, ...]


class SpecCacheBackend(Protocol):
    """Interface shared by the cache backends."""

    def get(self, key: str) -> Optional[CacheEntry]: ...

    def set(self, key: str, entry: CacheEntry) -> None: ...

    def invalidate(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def stats(self) -> dict[str, Any]: ...

    def close(self) -> None: ...


class SpecCache:
    """Thread-safe in-memory LRU cache of normalized specs.

    Args:
        max_entries: Number of specs retained before the least recently
            used one is evicted.

    Example::

        cache = SpecCache(max_entries=8)
        normalizer = SpecNormalizer(cache=cache)
        normalizer.load("openapi.yaml")   # parsed
        normalizer.load("openapi.yaml")   # served from cache
    """

    def __init__(self, max_entries: int = 32) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for *key* and mark it most recently used."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        """Store *entry* under *key*, evicting the oldest entry when full."""
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, key: str) -> None:
        """Remove the entry for *key*, if any."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """Return ``backend``, ``size``, ``max_entries``, ``hits``, and ``misses``."""
        with self._lock:
            return {
                "backend": "memory",
                "size": len(self._entries),
                "max_entries": self._max_entries,
                "hits": self._hits,
                "misses": self._misses,
            }

    def close(self) -> None:
        """Release resources. A no-op for the in-memory backend."""

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class DiskSpecCache:
    """Disk-backed cache of normalized specs using :class:`diskcache.Cache`.

    Args:
        cache_dir: Root directory for the cache.  A ``specs/`` subdirectory
            is created inside it.
        size_limit_mb: Upper bound on the cache size; least recently used
            entries are culled beyond it.
    """

    def __init__(self, cache_dir: str | Path, size_limit_mb: int = 64) -> None:
        self._directory = Path(cache_dir) / "specs"
        self._size_limit_mb = size_limit_mb
        self._cache = diskcache.Cache(
            str(self._directory),
            size_limit=size_limit_mb * 1024 * 1024,
            eviction_policy="least-recently-used",
        )

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for *key*, or ``None`` on a miss."""
        entry = self._cache.get(self._make_key(key))
        return entry if isinstance(entry, CacheEntry) else None

    def set(self, key: str, entry: CacheEntry) -> None:
        """Store *entry* under *key*, replacing any previous entry."""
        self._cache.set(self._make_key(key), entry)

    def invalidate(self, key: str) -> None:
        """Remove the entry for *key*, if any."""
        self._cache.delete(self._make_key(key))

    def clear(self) -> None:
        """Remove all entries."""
        self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return ``backend``, ``size``, ``directory``, and ``size_limit_mb``."""
        return {
            "backend": "disk",
            "size": len(self._cache),
            "directory": str(self._directory),
            "size_limit_mb": self._size_limit_mb,
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()

    def _make_key(self, key: str) -> str:
        """Hash the resolved path into a fixed-length key."""
        return hashlib.sha256(key.encode()).hexdigest()


def create_spec_cache(
    config: CacheConfig, cache_dir: str | Path | None = None
) -> Optional[SpecCacheBackend]:
    """Build the cache backend selected by *config*.

    Args:
        config: Cache settings.
        cache_dir: Directory for the disk backend.  Required when
            ``config.backend == "disk"``.

    Returns:
        A cache backend, or ``None`` when caching is disabled.

    Raises:
        ValueError: For an unknown backend, or the disk backend without a
            directory.
    """
    if not config.enabled:
        return None
    if config.backend == "memory":
        return SpecCache(max_entries=config.max_entries)
    if config.backend == "disk":
        if cache_dir is None:
            raise ValueError("The disk cache backend needs a cache directory")
        return DiskSpecCache(cache_dir, size_limit_mb=config.size_limit_mb)
    raise ValueError(f"Unknown cache backend: {config.backend}")
