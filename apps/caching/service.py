import logging
from django.conf import settings
from django.core.cache import caches

from .tags import CacheTag

logger = logging.getLogger(__name__)

TAG_INDEX_PREFIX = "cache_tags:"
_MISSING = object()


class CacheService:
    """
    Tag-aware wrapper over a Django cache backend.

    Django's cache has no native tags, so each tag keeps an index entry
    (``cache_tags:{tag}``) holding the keys written under it. Updating the
    index is a plain read-modify-write: an invalidation racing a write can
    leave a fresh key unindexed until its TTL expires.
    """

    def __init__(self, alias="default", backend=None):
        self.cache = backend if backend is not None else caches[alias]
        self.ttls = dict(settings.CAMPAIGN_CACHE_TTL)
        # Index entries must outlive every entry they point at
        self.tag_index_ttl = max(self.ttls.values())

    def ttl_for(self, ttl):
        """Resolve a tier name ("short", "medium", ...) or pass seconds through."""
        if isinstance(ttl, str):
            return int(self.ttls[ttl])
        return int(ttl)

    def _index_key(self, tag):
        if not isinstance(tag, CacheTag):
            raise TypeError(f"Cache tags must be CacheTag instances, got {tag!r}")
        return f"{TAG_INDEX_PREFIX}{tag}"

    def remember(self, key, ttl, tags, producer):
        """
        Return the cached value for ``key`` or compute it with ``producer``.

        A producer returning None is treated as "nothing to cache".
        """
        value = self.cache.get(key, _MISSING)
        if value is not _MISSING:
            return value

        value = producer()
        if value is not None:
            self.put(key, value, ttl, tags)
        return value

    def put(self, key, value, ttl, tags=()):
        self.cache.set(key, value, self.ttl_for(ttl))
        for tag in tags:
            index_key = self._index_key(tag)
            keys = self.cache.get(index_key) or set()
            if key not in keys:
                keys.add(key)
                self.cache.set(index_key, keys, self.tag_index_ttl)

    def get(self, key, default=None):
        return self.cache.get(key, default)

    def get_many(self, keys) -> dict:
        if not keys:
            return {}
        return self.cache.get_many(list(keys))

    def has(self, key) -> bool:
        return self.cache.get(key, _MISSING) is not _MISSING

    def forget(self, key):
        self.cache.delete(key)

    def invalidate_by_tags(self, tags) -> int:
        """Delete every entry written under any of ``tags``. Returns the number of keys dropped."""
        removed = 0
        for tag in tags:
            index_key = self._index_key(tag)
            keys = self.cache.get(index_key) or set()
            if keys:
                self.cache.delete_many(list(keys))
                removed += len(keys)
            self.cache.delete(index_key)
            logger.debug(f"Invalidated {len(keys)} cache entries for tag {tag}")
        return removed

    @property
    def supports_pattern_delete(self) -> bool:
        return callable(getattr(self.cache, "delete_pattern", None))

    def delete_pattern(self, pattern) -> int:
        """Glob-style key deletion. Only django-redis offers this; other backends skip it."""
        if not self.supports_pattern_delete:
            logger.debug(f"Cache backend has no pattern deletion, skipped {pattern}")
            return 0
        return self.cache.delete_pattern(pattern) or 0
