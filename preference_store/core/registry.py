"""
Lifecycle of the process-wide PreferenceStore.

The store is built once, lazily, on first access and lives for the rest of
the process. Applications that need different collaborators install their own
instance with `configure_store`; tests drop it again with `reset_store`.
"""

import logging
import os
import threading
from pathlib import Path

from preference_store.core.store import PreferenceStore
from preference_store.models.config import StoreConfig
from preference_store.storage.cache import Cache, FileCache, MemoryCache
from preference_store.storage.config_manager import ConfigManager
from preference_store.storage.repository import (
    PersistentStore,
    SQLitePreferenceRepository,
)

log = logging.getLogger(__name__)

CONFIG_PATH_ENV = "PREFERENCES_CONFIG"

_store: PreferenceStore | None = None
_store_lock = threading.Lock()


def build_cache(config: StoreConfig) -> Cache:
    """Creates the cache backend named by the configuration."""
    if config.cache_backend == "file":
        return FileCache(Path(config.cache_dir), max_age_days=config.cache_max_age_days)
    return MemoryCache(max_entries=config.cache_max_entries)


def build_repository(config: StoreConfig) -> PersistentStore | None:
    """
    Creates the persistent store, provisioning its table when configured to.

    Returns None when no database path is configured.
    """
    if not config.database_path:
        log.debug("No database path configured, preferences will not be persisted.")
        return None
    repository = SQLitePreferenceRepository(Path(config.database_path))
    if config.auto_provision:
        repository.provision()
    return repository


def build_store(
    config: StoreConfig | None = None,
    *,
    cache: Cache | None = None,
    repository: PersistentStore | None = None,
) -> PreferenceStore:
    """
    Constructs a PreferenceStore without installing it.

    Collaborators passed explicitly take precedence over those the
    configuration would create.
    """
    config = config or StoreConfig()
    return PreferenceStore(
        cache=cache if cache is not None else build_cache(config),
        repository=repository if repository is not None else build_repository(config),
        persistence_enabled=config.persistence_enabled,
        caching_enabled=config.caching_enabled,
    )


def configure_store(
    config: StoreConfig | None = None,
    *,
    cache: Cache | None = None,
    repository: PersistentStore | None = None,
) -> PreferenceStore:
    """Builds a store and installs it as the process-wide instance."""
    global _store
    store = build_store(config, cache=cache, repository=repository)
    with _store_lock:
        _store = store
    log.debug(f"Installed preference store: {store!r}")
    return store


def get_store() -> PreferenceStore:
    """
    Gets or creates the process-wide PreferenceStore.

    On first access the configuration is loaded from the INI file named by the
    PREFERENCES_CONFIG environment variable, if any, and the environment.
    """
    global _store
    with _store_lock:
        if _store is not None:
            return _store
        config_path = os.getenv(CONFIG_PATH_ENV)
        config = ConfigManager(Path(config_path) if config_path else None).load_config()
        _store = build_store(config)
        log.debug(f"Created preference store: {_store!r}")
        return _store


def reset_store() -> None:
    """Drops the process-wide instance so the next access builds a new one."""
    global _store
    with _store_lock:
        _store = None
