"""Tests for cache regions and the memory cache."""

import gc
from dataclasses import dataclass

import pytest

from catalog_items.infrastructure.caching import (
    CacheEntryOptions,
    CacheRegion,
    ItemCacheRegion,
    MemoryCache,
    cache_key,
)


@dataclass
class Model:
    id: str
    name: str = ""


@dataclass
class _Variation:
    id: str
    main_product_id: str | None = None


class TestCacheKey:
    """Tests for cache key building."""

    def test_joins_parts(self) -> None:
        """Parts are joined with pipes, None as empty."""
        assert cache_key("ItemService", "get", None, "p1") == "ItemService|get||p1"


class TestCacheRegion:
    """Tests for region change tokens."""

    def test_key_token_expires_with_key(self) -> None:
        """Expiring a key flips only that key's token."""
        region = CacheRegion("test")
        first = region.create_change_token_for_key("a")
        second = region.create_change_token_for_key("b")

        region.expire_token_for_key("a")

        assert first.has_changed
        assert not second.has_changed

    def test_key_token_expires_with_region(self) -> None:
        """Expiring the region flips every token it created."""
        region = CacheRegion("test")
        key_token = region.create_change_token_for_key("a")
        region_token = region.create_change_token()

        region.expire_region()

        assert key_token.has_changed
        assert region_token.has_changed

    def test_new_tokens_after_expiry_are_fresh(self) -> None:
        """Tokens created after an expiry are valid again."""
        region = CacheRegion("test")
        region.expire_region()
        region.expire_token_for_key("a")
        assert not region.create_change_token().has_changed
        assert not region.create_change_token_for_key("a").has_changed

    def test_expire_entity_includes_main_product(self) -> None:
        """Expiring a variation expires its main product too."""
        region = ItemCacheRegion("items")
        main_token = region.create_change_token_for_key("p1")
        variation_token = region.create_change_token_for_key("v1")
        other_token = region.create_change_token_for_key("p2")

        region.expire_entity(_Variation(id="v1", main_product_id="p1"))

        assert main_token.has_changed
        assert variation_token.has_changed
        assert not other_token.has_changed

    def test_token_for_products(self) -> None:
        """A products token changes when any product expires."""
        region = ItemCacheRegion("items")
        token = region.create_change_token_for_products([Model(id="v1"), Model(id="v2")])
        assert not token.has_changed
        region.expire_token_for_key("v2")
        assert token.has_changed

    def test_unreferenced_key_tokens_are_released(self) -> None:
        """Key tokens live only as long as something holds them."""
        region = CacheRegion("test")
        held = region.create_change_token_for_key("held")
        for index in range(1000):
            region.create_change_token_for_key(f"key-{index}")
        gc.collect()

        assert region.key_count == 1
        region.expire_token_for_key("held")
        assert held.has_changed


class TestMemoryCache:
    """Tests for basic cache operations."""

    def test_set_and_get(self) -> None:
        """Stored values are returned."""
        cache = MemoryCache()
        cache.set("k", "v")
        assert cache.try_get("k") == (True, "v")

    def test_stored_none_is_a_hit(self) -> None:
        """None values are cached."""
        cache = MemoryCache()
        cache.set("k", None)
        assert cache.try_get("k") == (True, None)

    def test_missing_key(self) -> None:
        """Unknown keys miss."""
        assert MemoryCache().try_get("nope") == (False, None)

    def test_token_expiry_evicts(self) -> None:
        """Entries disappear when one of their tokens changes."""
        cache = MemoryCache()
        region = CacheRegion("test")
        options = cache.default_entry_options()
        options.add_expiration_token(region.create_change_token())
        cache.set("k", "v", options)

        region.expire_region()

        assert cache.try_get("k") == (False, None)
        assert len(cache) == 0

    def test_absolute_expiration(self) -> None:
        """Entries expire after the default lifetime."""
        cache = MemoryCache(default_ttl_seconds=0)
        cache.set("k", "v")
        assert cache.try_get("k") == (False, None)

    def test_disabled_cache_stores_nothing(self) -> None:
        """A disabled cache always misses."""
        cache = MemoryCache(enabled=False)
        cache.set("k", "v")
        assert cache.try_get("k") == (False, None)
        assert len(cache) == 0

    def test_compact_drops_expired_entries(self) -> None:
        """compact removes only stale entries."""
        cache = MemoryCache()
        region = CacheRegion("test")
        stale = CacheEntryOptions(expiration_tokens=[region.create_change_token()])
        cache.set("stale", 1, stale)
        cache.set("fresh", 2)

        region.expire_region()

        assert cache.compact() == 1
        assert cache.try_get("fresh") == (True, 2)

    def test_expired_entries_are_compacted_on_set(self) -> None:
        """Expired entries go away without being read again."""
        cache = MemoryCache(default_ttl_seconds=0, compact_interval=100)
        for index in range(500):
            cache.set(f"miss-{index}", None)
        assert len(cache) == 0

    def test_compaction_can_be_disabled(self) -> None:
        """Without an interval only reads and compact drop entries."""
        cache = MemoryCache(default_ttl_seconds=0, compact_interval=None)
        for index in range(50):
            cache.set(f"miss-{index}", None)
        assert len(cache) == 50
        assert cache.compact() == 50

    def test_compaction_releases_key_tokens(self) -> None:
        """Dropping an entry frees the key token it held."""
        cache = MemoryCache(compact_interval=None)
        region = CacheRegion("test")
        other = CacheRegion("other")
        for index in range(10):
            options = cache.default_entry_options()
            options.add_expiration_token(region.create_change_token_for_key(f"key-{index}"))
            options.add_expiration_token(other.create_change_token())
            cache.set(f"entry-{index}", index, options)
        del options
        assert region.key_count == 10

        other.expire_region()
        cache.compact()
        gc.collect()

        assert len(cache) == 0
        assert region.key_count == 0


class TestGetOrLoadByIds:
    """Tests for batch loading through the cache."""

    @pytest.fixture
    def loader_calls(self) -> list[list[str]]:
        return []

    @pytest.fixture
    def loader(self, loader_calls: list[list[str]]):
        store = {"a": Model(id="a"), "b": Model(id="B")}

        async def load(ids: list[str]) -> list[Model]:
            loader_calls.append(list(ids))
            return [store[i.lower()] for i in ids if i.lower() in store]

        return load

    @staticmethod
    def _no_config(options: CacheEntryOptions, model_id: str, model: Model | None) -> None:
        pass

    @pytest.mark.asyncio
    async def test_misses_are_loaded_in_one_call(self, loader, loader_calls) -> None:
        """All missing ids go to the loader together."""
        cache = MemoryCache()
        result = await cache.get_or_load_by_ids("p", ["a", "b"], loader, self._no_config)
        assert sorted(model.id for model in result) == ["B", "a"]
        assert loader_calls == [["a", "b"]]

    @pytest.mark.asyncio
    async def test_hits_skip_the_loader(self, loader, loader_calls) -> None:
        """Cached ids are not loaded again."""
        cache = MemoryCache()
        await cache.get_or_load_by_ids("p", ["a"], loader, self._no_config)
        result = await cache.get_or_load_by_ids("p", ["a", "b"], loader, self._no_config)
        assert len(result) == 2
        assert loader_calls == [["a"], ["b"]]

    @pytest.mark.asyncio
    async def test_unknown_ids_are_cached_as_missing(self, loader, loader_calls) -> None:
        """Ids the loader does not return are not requested again."""
        cache = MemoryCache()
        assert await cache.get_or_load_by_ids("p", ["zzz"], loader, self._no_config) == []
        assert await cache.get_or_load_by_ids("p", ["zzz"], loader, self._no_config) == []
        assert loader_calls == [["zzz"]]

    @pytest.mark.asyncio
    async def test_duplicates_and_none_are_ignored(self, loader, loader_calls) -> None:
        """Each id is loaded once."""
        cache = MemoryCache()
        result = await cache.get_or_load_by_ids("p", ["a", None, "a"], loader, self._no_config)
        assert len(result) == 1
        assert loader_calls == [["a"]]

    @pytest.mark.asyncio
    async def test_configure_tags_each_entry(self, loader) -> None:
        """configure receives every new entry, found or not."""
        cache = MemoryCache()
        region = CacheRegion("test")
        seen: list[tuple[str, bool]] = []

        def configure(options: CacheEntryOptions, model_id: str, model: Model | None) -> None:
            seen.append((model_id, model is not None))
            options.add_expiration_token(region.create_change_token_for_key(model_id))

        await cache.get_or_load_by_ids("p", ["a", "zzz"], loader, configure)
        region.expire_token_for_key("a")

        assert seen == [("a", True), ("zzz", False)]
        assert cache.try_get("p|a") == (False, None)
        assert cache.try_get("p|zzz") == (True, None)

    @pytest.mark.asyncio
    async def test_prefixes_are_independent(self, loader, loader_calls) -> None:
        """The same id under another prefix is a separate entry."""
        cache = MemoryCache()
        await cache.get_or_load_by_ids("p1", ["a"], loader, self._no_config)
        await cache.get_or_load_by_ids("p2", ["a"], loader, self._no_config)
        assert loader_calls == [["a"], ["a"]]
