"""In-process memory cache with region based invalidation.

Cache entries are tagged with change tokens. A token belongs to a cache
region: expiring the region (or one key inside it) flips the token, and
every entry holding that token is treated as missing on the next read.

Example usage:
    cache = MemoryCache(default_ttl_seconds=300)
    options = cache.default_entry_options()
    options.add_expiration_token(item_cache_region.create_change_token_for_key("p1"))
    cache.set("product|p1", product, options)

    item_cache_region.expire_token_for_key("p1")
    cache.try_get("product|p1")  # (False, None)
"""

import weakref
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, TypeVar

import structlog

from catalog_items.infrastructure.config import settings

logger = structlog.get_logger()

T = TypeVar("T")


class HasId(Protocol):
    id: str | None


M = TypeVar("M", bound=HasId)


def cache_key(*parts: Any) -> str:
    """Build a cache key from its parts.

    Args:
        parts: Key components; ``None`` renders as an empty string.

    Returns:
        Pipe separated key.
    """
    return "|".join("" if part is None else str(part) for part in parts)


# ============================================================================
# Change Tokens
# ============================================================================


class ChangeToken:
    """Signals that cached data depending on it is stale."""

    def __init__(self) -> None:
        self._changed = False

    @property
    def has_changed(self) -> bool:
        """Whether the token has been cancelled."""
        return self._changed

    def cancel(self) -> None:
        """Mark the token as changed."""
        self._changed = True


class CompositeChangeToken(ChangeToken):
    """Token that changes as soon as any of its parts changes."""

    def __init__(self, tokens: Iterable[ChangeToken]) -> None:
        super().__init__()
        self._tokens = list(tokens)

    @property
    def has_changed(self) -> bool:
        return self._changed or any(token.has_changed for token in self._tokens)


# ============================================================================
# Cache Regions
# ============================================================================


class CacheRegion:
    """Named invalidation scope.

    Tokens created by a region expire together when the region is expired.
    Key tokens additionally expire on their own through
    ``expire_token_for_key``. A key token is held weakly and goes away with
    the last cache entry tagged with it.
    """

    def __init__(self, name: str) -> None:
        """Initialize region.

        Args:
            name: Region name, used in logs.
        """
        self.name = name
        self._region_token = ChangeToken()
        self._key_tokens: weakref.WeakValueDictionary[str, ChangeToken] = weakref.WeakValueDictionary()

    @property
    def key_count(self) -> int:
        """Number of keys with a live token."""
        return len(self._key_tokens)

    def create_change_token(self) -> ChangeToken:
        """Get the token shared by the whole region."""
        return self._region_token

    def create_change_token_for_key(self, key: str) -> ChangeToken:
        """Get a token that expires with ``key`` or with the whole region."""
        key_token = self._key_tokens.get(key)
        if key_token is None or key_token.has_changed:
            key_token = ChangeToken()
            self._key_tokens[key] = key_token
        return CompositeChangeToken([self._region_token, key_token])

    def expire_token_for_key(self, key: str) -> None:
        """Expire every entry tagged with the token of ``key``."""
        key_token = self._key_tokens.pop(key, None)
        if key_token is not None:
            key_token.cancel()

    def expire_region(self) -> None:
        """Expire every entry tagged with a token of this region."""
        self._region_token.cancel()
        self._region_token = ChangeToken()
        for key_token in list(self._key_tokens.values()):
            key_token.cancel()
        self._key_tokens.clear()
        logger.debug("Cache region expired", region=self.name)


class ItemCacheRegion(CacheRegion):
    """Region for products, keyed by product id."""

    def create_change_token_for_products(self, products: Iterable[HasId]) -> ChangeToken:
        """Get a token that expires when any of the given products expires."""
        return CompositeChangeToken(
            self.create_change_token_for_key(product.id)
            for product in products
            if product.id
        )

    def expire_entity(self, product: Any) -> None:
        """Expire a product and, for variations, its main product."""
        if product.id:
            self.expire_token_for_key(product.id)
        main_product_id = getattr(product, "main_product_id", None)
        if main_product_id:
            self.expire_token_for_key(main_product_id)


# Catalogs and categories; every product entry depends on this region too
catalog_cache_region = CacheRegion("catalog")
item_cache_region = ItemCacheRegion("item")
product_search_cache_region = CacheRegion("product-search")
association_search_cache_region = CacheRegion("association-search")
seo_info_cache_region = CacheRegion("seo-info")


# ============================================================================
# Memory Cache
# ============================================================================


@dataclass
class CacheEntryOptions:
    """Expiration settings for one cache entry.

    Attributes:
        absolute_expiration: Moment after which the entry is dropped.
        expiration_tokens: Tokens that drop the entry when changed.
    """

    absolute_expiration: datetime | None = None
    expiration_tokens: list[ChangeToken] = field(default_factory=list)

    def add_expiration_token(self, token: ChangeToken) -> None:
        """Tag the entry with a change token."""
        self.expiration_tokens.append(token)

    def is_expired(self, now: datetime) -> bool:
        """Check whether the entry is stale."""
        if self.absolute_expiration is not None and now >= self.absolute_expiration:
            return True
        return any(token.has_changed for token in self.expiration_tokens)


@dataclass
class _CacheEntry:
    value: Any
    options: CacheEntryOptions


class MemoryCache:
    """Process-local cache of loaded models.

    Values are stored as-is; callers that hand out cached objects to
    code that may modify them must clone first.
    """

    def __init__(
        self,
        default_ttl_seconds: int | None = 300,
        enabled: bool = True,
        compact_interval: int | None = 1000,
    ) -> None:
        """Initialize cache.

        Args:
            default_ttl_seconds: Absolute expiration of new entries;
                ``None`` keeps entries until a token expires them.
            enabled: When False the cache never stores nor returns values.
            compact_interval: Drop expired entries after this many ``set``
                calls; ``None`` disables automatic compaction.
        """
        self.default_ttl_seconds = default_ttl_seconds
        self.enabled = enabled
        self.compact_interval = compact_interval
        self._entries: dict[str, _CacheEntry] = {}
        self._sets_since_compact = 0

    def __len__(self) -> int:
        return len(self._entries)

    def default_entry_options(self) -> CacheEntryOptions:
        """Create options for a new entry using the default expiration."""
        options = CacheEntryOptions()
        if self.default_ttl_seconds is not None:
            options.absolute_expiration = datetime.now(timezone.utc) + timedelta(
                seconds=self.default_ttl_seconds
            )
        return options

    def try_get(self, key: str) -> tuple[bool, Any]:
        """Look up a key.

        Args:
            key: Cache key.

        Returns:
            Tuple of (found, value). A stored ``None`` is a hit.
        """
        if not self.enabled:
            return False, None

        entry = self._entries.get(key)
        if entry is None:
            return False, None

        if entry.options.is_expired(datetime.now(timezone.utc)):
            del self._entries[key]
            return False, None

        return True, entry.value

    def set(self, key: str, value: Any, options: CacheEntryOptions | None = None) -> None:
        """Store a value.

        Args:
            key: Cache key.
            value: Value to store, ``None`` included.
            options: Expiration settings; defaults apply when omitted.
        """
        if not self.enabled:
            return
        self._entries[key] = _CacheEntry(value=value, options=options or self.default_entry_options())

        self._sets_since_compact += 1
        if self.compact_interval is not None and self._sets_since_compact >= self.compact_interval:
            self.compact()

    def remove(self, key: str) -> None:
        """Drop a key if present."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop all entries."""
        self._entries.clear()

    def compact(self) -> int:
        """Drop expired entries.

        Returns:
            Number of entries removed.
        """
        now = datetime.now(timezone.utc)
        expired_keys = [
            key for key, entry in self._entries.items() if entry.options.is_expired(now)
        ]
        for key in expired_keys:
            del self._entries[key]
        self._sets_since_compact = 0

        if expired_keys:
            logger.debug("Cache compacted", removed=len(expired_keys), remaining=len(self._entries))
        return len(expired_keys)

    async def get_or_load_by_ids(
        self,
        key_prefix: str,
        ids: Sequence[str | None],
        loader: Callable[[list[str]], Awaitable[Iterable[M]]],
        configure: Callable[[CacheEntryOptions, str, M | None], None],
    ) -> list[M]:
        """Get models by id, loading all misses with a single call.

        Ids that the loader does not return are cached as ``None`` so that
        repeated lookups of unknown ids do not reach the store.

        Args:
            key_prefix: Prefix distinguishing callers and variants.
            ids: Requested ids; ``None`` and duplicates are ignored.
            loader: Loads the models for a list of missing ids.
            configure: Customizes the options of each new entry.

        Returns:
            Found models in no particular order.
        """
        result: list[M] = []
        missing_ids: list[str] = []

        for model_id in dict.fromkeys(ids):
            if model_id is None:
                continue
            found, value = self.try_get(cache_key(key_prefix, model_id))
            if found:
                if value is not None:
                    result.append(value)
            else:
                missing_ids.append(model_id)

        if not missing_ids:
            return result

        loaded = {
            model.id.lower(): model
            for model in await loader(missing_ids)
            if model.id is not None
        }

        for model_id in missing_ids:
            value = loaded.get(model_id.lower())
            options = self.default_entry_options()
            configure(options, model_id, value)
            self.set(cache_key(key_prefix, model_id), value, options)
            if value is not None:
                result.append(value)

        logger.debug(
            "Loaded cache misses",
            key_prefix=key_prefix,
            requested=len(missing_ids),
            found=len(loaded),
        )
        return result


# Global cache instance
_memory_cache: MemoryCache | None = None


def get_memory_cache() -> MemoryCache:
    """Get memory cache singleton."""
    global _memory_cache
    if _memory_cache is None:
        _memory_cache = MemoryCache(
            default_ttl_seconds=settings.cache_absolute_expiration_seconds,
            enabled=settings.cache_enabled,
            compact_interval=settings.cache_compact_interval,
        )
    return _memory_cache


def reset_memory_cache() -> None:
    """Reset memory cache (for testing)."""
    global _memory_cache
    _memory_cache = None
