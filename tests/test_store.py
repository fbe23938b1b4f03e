import pytest

from preference_store.core.store import PreferenceStore
from preference_store.exceptions import PersistenceError

from conftest import SpyCache, SpyRepository


@pytest.mark.parametrize("value", [True, False, "", "x", 0, 1])
def test_set_then_get_returns_exact_value(store, value):
    store.set("pref", value, "any")
    result = store.get("pref")
    assert result == value
    assert type(result) is type(value)


def test_falsy_value_wins_over_fallback(store):
    store.set("enabled", False, "boolean")
    assert store.get("enabled", True) is False


def test_falsy_value_from_store_wins_over_fallback(store, cache):
    store.set("name", "", "string")
    cache.clear()
    assert store.get("name", "default") == ""


def test_get_repairs_cache_after_external_clear(store, cache, repository):
    store.set("color", "blue", "string")
    cache.clear()

    assert store.get("color") == "blue"
    assert cache.read("color").value == "blue"
    assert repository.calls["find_by_key"] == 1

    assert store.get("color") == "blue"
    assert repository.calls["find_by_key"] == 1
    assert store.stats.repairs == 1


def test_fallback_is_cached_after_first_miss(store, repository):
    assert store.get("missing", "dflt") == "dflt"
    assert repository.calls["find_by_key"] == 1

    assert store.get("missing", "dflt") == "dflt"
    assert repository.calls["find_by_key"] == 1
    assert store.stats.fallbacks_cached == 1


def test_none_fallback_is_not_cached(store, cache):
    assert store.get("missing") is None
    assert not cache.exists("missing")


def test_get_with_fallback_returns_fallback_without_any_layer():
    store = PreferenceStore(cache=None, repository=None)
    assert store.get("anything", 42) == 42


def test_delete_missing_key_is_noop(store, cache, repository):
    store.delete("ghost")
    store.delete("ghost")
    assert not cache.exists("ghost")
    assert not repository.exists_by_key("ghost")


def test_delete_twice_matches_delete_once(store, cache, repository):
    store.set("k", "v", "string")
    store.delete("k")
    store.delete("k")
    assert not cache.exists("k")
    assert not repository.exists_by_key("k")
    assert store.get("k") is None


def test_delete_reaches_store_even_if_cache_delete_fails(repository):
    class BrokenCache(SpyCache):
        def delete(self, key):
            raise RuntimeError("cache down")

    store = PreferenceStore(cache=BrokenCache(), repository=repository)
    store.set("k", "v", "string")

    with pytest.raises(RuntimeError):
        store.delete("k")
    assert not repository.exists_by_key("k")


@pytest.mark.parametrize("persistence_enabled", [True, False])
def test_caching_disabled_never_touches_cache(cache, repository, persistence_enabled):
    store = PreferenceStore(
        cache=cache,
        repository=repository,
        caching_enabled=False,
        persistence_enabled=persistence_enabled,
    )
    store.set("k", "v", "string")
    store.get("k", "fallback")
    store.get("other", "fallback")
    store.delete("k")
    store.exists("k")
    store.clear_cache()
    assert cache.total_calls == 0


@pytest.mark.parametrize("caching_enabled", [True, False])
def test_persistence_disabled_never_touches_store(cache, repository, caching_enabled):
    store = PreferenceStore(
        cache=cache,
        repository=repository,
        persistence_enabled=False,
        caching_enabled=caching_enabled,
    )
    store.set("k", "v", "string")
    store.get("k")
    store.get("other", "fallback")
    store.exists("k")
    store.delete("k")
    assert repository.total_calls == 0


def test_flags_are_read_on_every_call(store, cache, repository):
    store.persistence_enabled = False
    store.set("k", "cache-only", "string")
    assert repository.count() == 0

    store.persistence_enabled = True
    store.set("k", "both", "string")
    assert repository.find_by_key("k").value == "both"


def test_unprovisioned_store_is_treated_as_empty(cache):
    repository = SpyRepository(provisioned=False)
    store = PreferenceStore(cache=cache, repository=repository)

    store.set("k", "v", "string")
    assert repository.calls["upsert"] == 0
    assert store.get("k") == "v"
    cache.clear()
    assert store.get("k", "fallback") == "fallback"


def test_store_becoming_available_is_picked_up(cache):
    repository = SpyRepository(provisioned=False)
    store = PreferenceStore(cache=cache, repository=repository)
    store.set("k", "v", "string")
    assert repository.count() == 0

    repository.provision()
    store.set("k", "v", "string")
    assert repository.find_by_key("k").value == "v"


def test_set_updates_existing_row_in_place(store, repository):
    store.set("limit", 10, "integer")
    store.set("limit", "ten", "string")
    preference = repository.find_by_key("limit")
    assert repository.count() == 1
    assert preference.value == "ten"
    assert preference.value_type == "string"


def test_persistence_failure_propagates_and_keeps_cache_entry(cache):
    class FailingRepository(SpyRepository):
        def upsert(self, key, value, value_type):
            raise PersistenceError("constraint violated")

    store = PreferenceStore(cache=cache, repository=FailingRepository())
    with pytest.raises(PersistenceError):
        store.set("k", "v", "string")
    assert cache.read("k").value == "v"


def test_cache_failure_propagates(repository):
    class FailingCache(SpyCache):
        def write(self, key, value):
            raise RuntimeError("cache down")

    store = PreferenceStore(cache=FailingCache(), repository=repository)
    with pytest.raises(RuntimeError):
        store.set("k", "v", "string")


def test_exists_checks_either_layer(store, cache, repository):
    assert not store.exists("k")

    cache.write("k", "cached")
    assert store.exists("k")

    cache.clear()
    repository.upsert("k", "stored", "string")
    assert store.exists("k")


def test_exists_does_not_repair_cache(store, cache, repository):
    repository.upsert("k", "stored", "string")
    assert store.exists("k")
    assert not cache.exists("k")


def test_clear_cache_keeps_persisted_rows(store, cache, repository):
    values = {"a": True, "b": "", "c": 0}
    for key, value in values.items():
        store.set(key, value, "any")

    store.clear_cache()
    assert len(cache) == 0
    assert repository.count() == 3
    for key, value in values.items():
        assert store.get(key) == value


def test_clear_cache_clears_foreign_keys(store, cache):
    cache.write("someone-else", 1)
    store.clear_cache()
    assert not cache.exists("someone-else")


@pytest.mark.parametrize("key", [None, 3, b"k"])
def test_invalid_keys_are_rejected(store, key):
    with pytest.raises(ValueError):
        store.get(key)


def test_empty_string_is_a_valid_key(store, cache):
    store.set("", "blank", "string")
    cache.clear()
    assert store.get("") == "blank"
    assert store.exists("")


def test_stats_track_hits_and_misses(store, cache):
    store.set("k", "v", "string")
    store.get("k")
    cache.clear()
    store.get("k")
    store.get("missing")

    stats = store.stats.as_dict()
    assert stats["cache_hits"] == 1
    assert stats["cache_misses"] == 2
    assert stats["store_hits"] == 1
    assert stats["store_misses"] == 1
    assert stats["writes"] == 1
    assert store.stats.hit_ratio == pytest.approx(1 / 3)


def test_delete_store_error_wins_when_both_layers_fail():
    class BrokenCache(SpyCache):
        def delete(self, key):
            raise RuntimeError("cache down")

    class BrokenRepository(SpyRepository):
        def delete_by_key(self, key):
            raise PersistenceError("store down")

    store = PreferenceStore(cache=BrokenCache(), repository=BrokenRepository())
    with pytest.raises(PersistenceError) as excinfo:
        store.delete("k")
    assert isinstance(excinfo.value.__context__, RuntimeError)
