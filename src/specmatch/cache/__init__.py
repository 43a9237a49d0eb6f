"""Bounded caching of normalized specifications.

This package provides :class:`SpecCache`, a thread-safe in-memory LRU, and
:class:`DiskSpecCache`, a persistent :mod:`diskcache` store.  Both hold
:class:`CacheEntry` objects keyed by resolved spec path and are injected into
:class:`~specmatch.parser.normalizer.SpecNormalizer`; nothing is cached at
module level.

The backend is chosen by the ``cache`` section of the configuration
(:class:`~specmatch.models.CacheConfig`) via :func:`create_spec_cache`.
"""

from specmatch.cache.cache import (
    CacheEntry,
    DiskSpecCache,
    SpecCache,
    SpecCacheBackend,
    create_spec_cache,
)

__all__ = ["CacheEntry", "DiskSpecCache", "SpecCache", "SpecCacheBackend", "create_spec_cache"]
