"""
The read-through, write-through coordinator between the cache and the
persistent store.
"""

import logging
from typing import Any

from preference_store.models.stats import StoreStats
from preference_store.storage.cache import Cache
from preference_store.storage.repository import PersistentStore

log = logging.getLogger(__name__)


def _validate_key(key: str) -> None:
    if not isinstance(key, str):
        raise ValueError(f"Preference keys must be strings, got {key!r}.")


class PreferenceStore:
    """
    Single point of access for preference values.

    Reads consult the cache first, then the persistent store, repairing the
    cache from the store on a miss. Writes go to both layers. Each layer can be
    switched off at runtime through `caching_enabled` and `persistence_enabled`;
    the flags are read on every operation.

    No locking is done here. Each single-key operation is delegated to a
    collaborator that is atomic per key, and the two layers may diverge
    briefly under concurrent writes or when a persistent write fails after the
    cache write has already happened.
    """

    def __init__(
        self,
        cache: Cache | None = None,
        repository: PersistentStore | None = None,
        persistence_enabled: bool = True,
        caching_enabled: bool = True,
        stats: StoreStats | None = None,
    ):
        """
        Args:
            cache: The fast layer. None behaves like caching being disabled.
            repository: The durable layer. None behaves like persistence being
                disabled.
            persistence_enabled: Whether the persistent store is consulted.
            caching_enabled: Whether the cache is consulted.
            stats: Counters to update; a fresh StoreStats when omitted.
        """
        self.cache = cache
        self.repository = repository
        self.persistence_enabled = persistence_enabled
        self.caching_enabled = caching_enabled
        self.stats = stats if stats is not None else StoreStats()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(cache={type(self.cache).__name__}, "
            f"repository={type(self.repository).__name__}, "
            f"persistence_enabled={self.persistence_enabled}, "
            f"caching_enabled={self.caching_enabled})"
        )

    def _should_cache(self) -> bool:
        return self.caching_enabled and self.cache is not None

    def _should_persist(self) -> bool:
        # available() is probed on every call; an unprovisioned store reads as empty.
        return (
            self.persistence_enabled
            and self.repository is not None
            and self.repository.available()
        )

    def get(self, key: str, fallback: Any = None) -> Any:
        """
        Returns the value stored under `key`.

        Falsy values such as False, "" or 0 are returned as found, never
        replaced by the fallback. When neither layer has the key, a non-None
        fallback is written to the cache so later misses skip the persistent
        store.

        Args:
            key: The preference key.
            fallback: Value returned when the key is absent from both layers.
                None means no fallback was supplied.
        """
        _validate_key(key)

        if self._should_cache():
            entry = self.cache.read(key)
            if entry is not None:
                self.stats.record("cache_hits")
                return entry.value
            self.stats.record("cache_misses")

        if self._should_persist():
            preference = self.repository.find_by_key(key)
            if preference is not None:
                self.stats.record("store_hits")
                if self._should_cache():
                    self.cache.write(key, preference.value)
                    self.stats.record("repairs")
                    log.debug(f"Repaired cache entry for '{key}' from the store.")
                return preference.value
            self.stats.record("store_misses")

        if fallback is not None and self._should_cache():
            self.cache.write(key, fallback)
            self.stats.record("fallbacks_cached")
            log.debug(f"Cached fallback for missing preference '{key}'.")

        return fallback

    def set(self, key: str, value: Any, value_type: str | None = None) -> None:
        """
        Writes a value to the cache and upserts it into the persistent store.

        Raises:
            PersistenceError: If the store rejects the write. The cache entry
            written just before is left in place.
        """
        _validate_key(key)

        if self._should_cache():
            self.cache.write(key, value)

        if self._should_persist():
            self.repository.upsert(key, value, value_type)

        self.stats.record("writes")

    def exists(self, key: str) -> bool:
        """True if either enabled layer holds the key. Divergence is not repaired."""
        _validate_key(key)
        return (self._should_cache() and self.cache.exists(key)) or (
            self._should_persist() and self.repository.exists_by_key(key)
        )

    def delete(self, key: str) -> None:
        """
        Removes a key from both layers. Deleting an absent key is a no-op.

        The store removal is attempted even if the cache removal raised. The
        cache error is then re-raised, unless the store removal raised too, in
        which case the store error propagates with the cache error as its
        `__context__`.
        """
        _validate_key(key)

        try:
            if self._should_cache():
                self.cache.delete(key)
        finally:
            if self._should_persist():
                if self.repository.delete_by_key(key):
                    log.debug(f"Deleted preference '{key}' from the store.")

        self.stats.record("deletes")

    def clear_cache(self) -> None:
        """Empties the whole cache. The persistent store is left untouched."""
        if self._should_cache():
            log.debug("Clearing the preference cache.")
            self.cache.clear()
