"""
Cache backends consulted before the persistent store.

Every backend reports presence explicitly: `read` returns a `CacheEntry`
wrapper for a stored key, even when the stored value is falsy, and `None`
only when the key is absent.
"""

import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from preference_store.exceptions import CacheError

log = logging.getLogger(__name__)


def same_after_json(original: Any, decoded: Any) -> bool:
    """
    Checks that a JSON-decoded value is identical to the one that was encoded.

    Tuples decode as lists and non-string dict keys decode as strings, so such
    values fail the type or key comparison at whatever depth they appear.
    """
    if type(original) is not type(decoded):
        return False
    if isinstance(original, dict):
        return original.keys() == decoded.keys() and all(
            same_after_json(original[k], decoded[k]) for k in original
        )
    if isinstance(original, list):
        return len(original) == len(decoded) and all(
            same_after_json(a, b) for a, b in zip(original, decoded)
        )
    return original == decoded


@dataclass(frozen=True)
class CacheEntry:
    """A value found in the cache. `value` may be False, "", 0 or None."""

    value: Any


class Cache(ABC):
    """Abstract interface for cache backends."""

    @abstractmethod
    def write(self, key: str, value: Any) -> None:
        """Stores a value, overwriting any prior entry."""

    @abstractmethod
    def read(self, key: str) -> CacheEntry | None:
        """Returns the entry for a key, or None if the key is absent."""

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Checks if a key is present in the cache."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Removes a key. Removing an absent key is a no-op."""

    @abstractmethod
    def clear(self) -> None:
        """Removes every entry, including those written by other users."""


class MemoryCache(Cache):
    """
    A process-local cache backed by a dict.

    Each single-key operation holds a lock, so concurrent callers never see a
    torn entry. When `max_entries` is set, the least recently written key is
    evicted once the limit is exceeded.
    """

    def __init__(self, max_entries: int | None = None):
        self.max_entries = max_entries
        self._entries: OrderedDict[str, Any] = OrderedDict()
        self._lock = threading.Lock()

    def write(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    log.debug(f"Memory cache full, evicted '{evicted}'.")

    def read(self, key: str) -> CacheEntry | None:
        with self._lock:
            if key not in self._entries:
                return None
            return CacheEntry(self._entries[key])

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class FileCache(Cache):
    """
    A JSON-file cache with a time-to-live, one file per key.

    Entries survive process restarts and can be shared between processes that
    point at the same directory.
    """

    MAX_CACHE_VALUE_KB = 500

    def __init__(self, cache_dir_path: Path, max_age_days: int = 1):
        """
        Initializes the file cache.

        Args:
            cache_dir_path: The directory where cache files will be stored.
            max_age_days: The maximum age of a cache entry in days before it expires.
        """
        self.cache_dir = Path(cache_dir_path) / "cache"
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.max_age_seconds = max_age_days * 86400

    def _get_cache_path(self, key: str) -> Path:
        """Generates a safe filename for a given cache key."""
        hashed_key = hashlib.md5(key.encode("utf-8")).hexdigest()  # noqa: S324
        return self.cache_dir / f"{hashed_key}.json"

    def _is_expired(self, cache_path: Path) -> bool:
        return time.time() - cache_path.stat().st_mtime > self.max_age_seconds

    def cleanup_expired(self) -> int:
        """Scans the cache directory, removes expired files and returns the count."""
        cleaned_count = 0
        for cache_file in self.cache_dir.glob("*.json"):
            try:
                if self._is_expired(cache_file):
                    cache_file.unlink()
                    cleaned_count += 1
            except OSError as e:
                log.warning(
                    f"Failed to remove expired cache file {cache_file.name}: {e}"
                )
        if cleaned_count > 0:
            log.debug(f"Cache cleanup: removed {cleaned_count} expired entries.")
        return cleaned_count

    def write(self, key: str, value: Any) -> None:
        """
        Saves a value to the cache, with a size limit check.

        Raises:
            CacheError: If the value cannot be serialized, is too large, or the
            file cannot be written.
        """
        cache_path = self._get_cache_path(key)
        payload = {
            "key": key,
            "timestamp": time.time(),
            "value": value,
        }
        try:
            serialized_payload = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise CacheError(
                f"Cache value for key '{key}' is not serializable: {e}"
            ) from e

        if not same_after_json(value, json.loads(serialized_payload)["value"]):
            raise CacheError(
                f"Cache value for key '{key}' would not survive JSON unchanged."
            )

        size_kb = len(serialized_payload) / 1024
        if size_kb > self.MAX_CACHE_VALUE_KB:
            raise CacheError(
                f"Cache value for key '{key}' is too large ({size_kb:.1f} KB)."
            )

        # Readers see either the previous file or the complete new one.
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.cache_dir, suffix=".tmp", delete=False
            ) as f:
                tmp_path = f.name
                f.write(serialized_payload)
            os.replace(tmp_path, cache_path)
        except OSError as e:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
            raise CacheError(f"Cache write failed for key '{key}': {e}") from e

    def read(self, key: str) -> CacheEntry | None:
        """
        Retrieves an entry from the cache. Returns None if the key is not found,
        expired, or the file is unreadable.
        """
        cache_path = self._get_cache_path(key)

        if not cache_path.is_file():
            return None

        try:
            if self._is_expired(cache_path):
                cache_path.unlink(missing_ok=True)
                return None

            with open(cache_path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            log.debug(f"Cache read failed for key '{key}': {e}")
            return None

        if not isinstance(data, dict) or data.get("key") != key or "value" not in data:
            return None
        return CacheEntry(data["value"])

    def exists(self, key: str) -> bool:
        return self.read(key) is not None

    def delete(self, key: str) -> None:
        try:
            self._get_cache_path(key).unlink(missing_ok=True)
        except OSError as e:
            raise CacheError(f"Cache delete failed for key '{key}': {e}") from e

    def clear(self) -> None:
        """Removes all items from the cache."""
        log.info("Clearing all cache entries...")
        try:
            for cache_file in self.cache_dir.glob("*.json"):
                cache_file.unlink(missing_ok=True)
        except OSError as e:
            raise CacheError(f"Failed to clear cache: {e}") from e
