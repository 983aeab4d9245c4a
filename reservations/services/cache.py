"""
Configuration cache.

Seasons, rooms, pricing rules and refund policies change only on admin
edits but are read on every booking request. ConfigCache keeps them in a
Django cache backend (RESERVATIONS['CACHE_ALIAS']) with:

- a generation number: invalidate_all() bumps it and every older entry
  becomes unreadable at once
- a max age checked against an injectable clock
- invalidate(key) for a single entry

Model save/delete signals call invalidate_all(), so a process never reads
configuration older than its own last write.
"""

import logging
import time

from django.core.cache import caches

from reservations.conf import get_setting

logger = logging.getLogger(__name__)

_MISSING = object()


class ConfigCache:
    """
    Usage:
        cache = ConfigCache()
        rules = cache.get_or_set('pricing_rules:tahoe:room', load_rules)
        cache.invalidate('pricing_rules:tahoe:room')
        cache.invalidate_all()
    """

    def __init__(self, alias=None, max_age=_MISSING, clock=None, namespace='reservations'):
        """
        Args:
            alias: Django cache alias (default: RESERVATIONS['CACHE_ALIAS'])
            max_age: seconds an entry stays fresh; None disables expiry
                     (default: RESERVATIONS['CACHE_MAX_AGE'])
            clock: zero-argument callable returning seconds (default: time.time)
            namespace: key prefix
        """
        self._alias = alias
        self._max_age = max_age
        self.clock = clock or time.time
        self.namespace = namespace

    @property
    def backend(self):
        return caches[self._alias or get_setting('CACHE_ALIAS')]

    @property
    def max_age(self):
        if self._max_age is _MISSING:
            return get_setting('CACHE_MAX_AGE')
        return self._max_age

    # =========================================================================
    # KEYS / GENERATION
    # =========================================================================

    def _key(self, key):
        return f"{self.namespace}:{key}"

    @property
    def _generation_key(self):
        return f"{self.namespace}:__generation__"

    def generation(self):
        value = self.backend.get(self._generation_key)
        if value is None:
            value = 1
            self.backend.set(self._generation_key, value, timeout=None)
        return value

    # =========================================================================
    # READ / WRITE
    # =========================================================================

    def get(self, key, default=None):
        entry = self.backend.get(self._key(key))
        if entry is None:
            logger.debug("Config cache miss: %s", key)
            return default

        generation, stored_at, value = entry
        if generation != self.generation():
            logger.debug("Config cache stale generation: %s", key)
            return default

        max_age = self.max_age
        if max_age is not None and self.clock() - stored_at > max_age:
            logger.debug("Config cache expired: %s", key)
            return default

        logger.debug("Config cache hit: %s", key)
        return value

    def set(self, key, value):
        self.backend.set(self._key(key), (self.generation(), self.clock(), value), timeout=None)

    def get_or_set(self, key, loader):
        """Return the cached value, calling loader() and storing its result on a miss."""
        value = self.get(key, _MISSING)
        if value is _MISSING:
            value = loader()
            self.set(key, value)
        return value

    # =========================================================================
    # INVALIDATION
    # =========================================================================

    def invalidate(self, key):
        self.backend.delete(self._key(key))
        logger.debug("Config cache invalidated: %s", key)

    def invalidate_all(self):
        """Drop every entry by moving to a new generation."""
        generation = self.generation() + 1
        self.backend.set(self._generation_key, generation, timeout=None)
        logger.debug("Config cache generation bumped to %s", generation)
        return generation
