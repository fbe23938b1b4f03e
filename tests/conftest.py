import sys
from collections import Counter
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from preference_store import reset_store
from preference_store.core.store import PreferenceStore
from preference_store.storage.cache import MemoryCache
from preference_store.storage.repository import InMemoryPreferenceRepository


class SpyCache(MemoryCache):
    """MemoryCache that counts every call made to it."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = Counter()

    def write(self, key, value):
        self.calls["write"] += 1
        super().write(key, value)

    def read(self, key):
        self.calls["read"] += 1
        return super().read(key)

    def exists(self, key):
        self.calls["exists"] += 1
        return super().exists(key)

    def delete(self, key):
        self.calls["delete"] += 1
        super().delete(key)

    def clear(self):
        self.calls["clear"] += 1
        super().clear()

    @property
    def total_calls(self):
        return sum(self.calls.values())


class SpyRepository(InMemoryPreferenceRepository):
    """InMemoryPreferenceRepository that counts every call made to it."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = Counter()

    def available(self):
        self.calls["available"] += 1
        return super().available()

    def find_by_key(self, key):
        self.calls["find_by_key"] += 1
        return super().find_by_key(key)

    def upsert(self, key, value, value_type):
        self.calls["upsert"] += 1
        return super().upsert(key, value, value_type)

    def delete_by_key(self, key):
        self.calls["delete_by_key"] += 1
        return super().delete_by_key(key)

    def exists_by_key(self, key):
        self.calls["exists_by_key"] += 1
        return super().exists_by_key(key)

    @property
    def total_calls(self):
        return sum(self.calls.values())


@pytest.fixture
def cache():
    return SpyCache()


@pytest.fixture
def repository():
    return SpyRepository()


@pytest.fixture
def store(cache, repository):
    return PreferenceStore(cache=cache, repository=repository)


@pytest.fixture(autouse=True)
def _reset_global_store(monkeypatch):
    for name in (
        "PREFERENCES_CONFIG",
        "PREFERENCES_PERSISTENCE",
        "PREFERENCES_CACHING",
        "PREFERENCES_DATABASE",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_store()
    yield
    reset_store()
