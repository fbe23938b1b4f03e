"""
Storage Layer.

This package holds the two layers a preference can live in, the fast cache and
the durable persistent store, plus the configuration file loader.
"""

from .cache import Cache, CacheEntry, FileCache, MemoryCache
from .config_manager import ConfigManager
from .repository import (
    InMemoryPreferenceRepository,
    PersistentStore,
    SQLitePreferenceRepository,
)

__all__ = [
    "Cache",
    "CacheEntry",
    "ConfigManager",
    "FileCache",
    "InMemoryPreferenceRepository",
    "MemoryCache",
    "PersistentStore",
    "SQLitePreferenceRepository",
]
