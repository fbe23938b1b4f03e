"""
Persistent stores that hold preferences durably, one row per key.
"""

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Any

from preference_store.exceptions import PersistenceError
from preference_store.models.preference import Preference
from preference_store.storage.cache import same_after_json

log = logging.getLogger(__name__)


class PersistentStore(ABC):
    """Abstract interface for durable preference storage."""

    @abstractmethod
    def available(self) -> bool:
        """True once the backing schema has been provisioned."""

    @abstractmethod
    def find_by_key(self, key: str) -> Preference | None:
        """Returns the preference stored under a key, or None."""

    @abstractmethod
    def upsert(self, key: str, value: Any, value_type: str | None) -> Preference:
        """Creates the row for a key, or updates its value and type in place."""

    @abstractmethod
    def delete_by_key(self, key: str) -> bool:
        """Removes the row for a key. Returns False if there was none."""

    @abstractmethod
    def exists_by_key(self, key: str) -> bool:
        """Checks if a row exists for a key."""

    def provision(self) -> None:
        """Creates the backing schema. Stores without a schema do nothing."""


class SQLitePreferenceRepository(PersistentStore):
    """
    A SQLite table of preferences keyed by a unique string key.

    Values are stored JSON-encoded so that booleans, numbers and empty strings
    come back exactly as they were written.
    """

    TABLE_NAME = "preferences"

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._write_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Gets a new database connection with optimized PRAGMA settings."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            return conn
        except sqlite3.Error as e:
            log.error(f"Failed to connect to preferences database: {e}")
            raise

    def provision(self) -> None:
        """
        Creates the database and table if they don't exist.

        Raises:
            PersistenceError: If the schema cannot be created.
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with closing(self._get_connection()) as conn, conn:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self.TABLE_NAME} (
                        key TEXT PRIMARY KEY NOT NULL,
                        value TEXT NOT NULL,
                        value_type TEXT,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(
                f"Failed to provision preferences database at '{self.db_path}': {e}"
            ) from e
        log.info(f"Preferences table ready at '{self.db_path}'.")

    def available(self) -> bool:
        # Re-checked on every call so a table created mid-process is picked up.
        if not self.db_path.is_file():
            return False
        try:
            with closing(self._get_connection()) as conn:
                row = conn.execute(
                    "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                    (self.TABLE_NAME,),
                ).fetchone()
        except sqlite3.Error as e:
            log.debug(f"Preferences database is not available: {e}")
            return False
        return row is not None

    @staticmethod
    def _encode(key: str, value: Any) -> str:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceError(
                f"Value for preference '{key}' cannot be persisted: {e}"
            ) from e
        if not same_after_json(value, json.loads(encoded)):
            raise PersistenceError(
                f"Value for preference '{key}' would not be read back unchanged."
            )
        return encoded

    @staticmethod
    def _parse_timestamp(raw: str | None) -> datetime | None:
        return datetime.fromisoformat(raw) if raw else None

    def _row_to_preference(self, row: tuple) -> Preference:
        key, raw_value, value_type, created_at, updated_at = row
        return Preference(
            key=key,
            value=json.loads(raw_value),
            value_type=value_type,
            created_at=self._parse_timestamp(created_at),
            updated_at=self._parse_timestamp(updated_at),
        )

    def find_by_key(self, key: str) -> Preference | None:
        try:
            with closing(self._get_connection()) as conn:
                row = conn.execute(
                    "SELECT key, value, value_type, created_at, updated_at "
                    f"FROM {self.TABLE_NAME} WHERE key = ?",  # noqa: S608
                    (key,),
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Lookup failed for preference '{key}': {e}") from e
        if row is None:
            return None
        return self._row_to_preference(row)

    def upsert(self, key: str, value: Any, value_type: str | None) -> Preference:
        encoded = self._encode(key, value)
        try:
            with self._write_lock, closing(self._get_connection()) as conn, conn:
                conn.execute(
                    f"INSERT INTO {self.TABLE_NAME} (key, value, value_type) "
                    "VALUES (?, ?, ?) "  # noqa: S608
                    "ON CONFLICT(key) DO UPDATE SET "
                    "value = excluded.value, "
                    "value_type = excluded.value_type, "
                    "updated_at = CURRENT_TIMESTAMP",
                    (key, encoded, value_type),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Saving preference '{key}' failed: {e}") from e
        return Preference(key=key, value=value, value_type=value_type)

    def delete_by_key(self, key: str) -> bool:
        try:
            with self._write_lock, closing(self._get_connection()) as conn, conn:
                cursor = conn.execute(
                    f"DELETE FROM {self.TABLE_NAME} WHERE key = ?",  # noqa: S608
                    (key,),
                )
                removed = cursor.rowcount > 0
        except sqlite3.Error as e:
            raise PersistenceError(f"Deleting preference '{key}' failed: {e}") from e
        return removed

    def exists_by_key(self, key: str) -> bool:
        try:
            with closing(self._get_connection()) as conn:
                row = conn.execute(
                    f"SELECT 1 FROM {self.TABLE_NAME} WHERE key = ?",  # noqa: S608
                    (key,),
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Existence check failed for '{key}': {e}") from e
        return row is not None

    def keys(self) -> list[str]:
        """Returns all stored keys in sorted order."""
        try:
            with closing(self._get_connection()) as conn:
                rows = conn.execute(
                    f"SELECT key FROM {self.TABLE_NAME} ORDER BY key"  # noqa: S608
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Listing preferences failed: {e}") from e
        return [row[0] for row in rows]

    def count(self) -> int:
        return len(self.keys())


class InMemoryPreferenceRepository(PersistentStore):
    """
    A dict-backed store for tests and for embedding without a database.

    `provisioned` mirrors the table-exists probe of a real database.
    """

    def __init__(self, provisioned: bool = True):
        self.provisioned = provisioned
        self._rows: dict[str, Preference] = {}
        self._lock = threading.Lock()

    def provision(self) -> None:
        self.provisioned = True

    def available(self) -> bool:
        return self.provisioned

    def find_by_key(self, key: str) -> Preference | None:
        with self._lock:
            return self._rows.get(key)

    def upsert(self, key: str, value: Any, value_type: str | None) -> Preference:
        now = datetime.now()
        with self._lock:
            preference = self._rows.get(key)
            if preference is None:
                preference = Preference(
                    key=key,
                    value=value,
                    value_type=value_type,
                    created_at=now,
                    updated_at=now,
                )
                self._rows[key] = preference
            else:
                preference.value = value
                preference.value_type = value_type
                preference.updated_at = now
            return preference

    def delete_by_key(self, key: str) -> bool:
        with self._lock:
            return self._rows.pop(key, None) is not None

    def exists_by_key(self, key: str) -> bool:
        with self._lock:
            return key in self._rows

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._rows)

    def count(self) -> int:
        with self._lock:
            return len(self._rows)
