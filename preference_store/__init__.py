"""
preference_store: a read-through, write-through key/value preference store.

Values are served from a fast cache layer and backed by a durable persistent
store. Either layer can be switched off at runtime.
"""

__version__ = "0.1.0"

from preference_store.core.registry import (
    build_store,
    configure_store,
    get_store,
    reset_store,
)
from preference_store.core.store import PreferenceStore
from preference_store.exceptions import (
    CacheError,
    ConfigurationError,
    PersistenceError,
    PreferenceStoreError,
)

__all__ = [
    "CacheError",
    "ConfigurationError",
    "PersistenceError",
    "PreferenceStore",
    "PreferenceStoreError",
    "build_store",
    "configure_store",
    "get_store",
    "reset_store",
]
