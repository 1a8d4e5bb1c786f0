"""Product service.

Cached reads and writes of catalog products. Loaded products are
enriched with their catalog, category, inherited data and outlines, then
trimmed to the requested response group before they are cached.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

import structlog

from catalog_items.application.catalog_service import CatalogService, get_catalog_service
from catalog_items.application.category_service import CategoryService, get_category_service
from catalog_items.application.crud_service import CrudService
from catalog_items.application.outline_service import OutlineService, get_outline_service
from catalog_items.application.sku_generator import SkuGenerator
from catalog_items.application.validation import (
    ProductValidator,
    PropertyValuesValidator,
    validate_and_raise,
)
from catalog_items.domain import response_groups
from catalog_items.domain.events import (
    EntryState,
    GenericChangedEntry,
    ProductChangedEvent,
    ProductChangingEvent,
)
from catalog_items.domain.exceptions import DependencyNotFoundError, ValidationError
from catalog_items.domain.models import Catalog, CatalogProduct, Category
from catalog_items.domain.response_groups import ItemResponseGroup
from catalog_items.infrastructure.blob import BlobUrlResolver
from catalog_items.infrastructure.caching import (
    CacheEntryOptions,
    MemoryCache,
    association_search_cache_region,
    cache_key,
    catalog_cache_region,
    get_memory_cache,
    item_cache_region,
    product_search_cache_region,
    seo_info_cache_region,
)
from catalog_items.infrastructure.database import async_session_factory
from catalog_items.infrastructure.events import InMemoryEventPublisher, get_event_publisher
from catalog_items.infrastructure.models import ItemEntity
from catalog_items.infrastructure.repository import (
    CatalogRepository,
    RepositoryFactory,
    catalog_repository_factory,
)

logger = structlog.get_logger()

T = TypeVar("T")

CATALOG_SEO_OBJECT_TYPE = "catalog"

# Sections patched on save; variations are separate rows saved on their own
_EXISTING_RESPONSE_GROUP = ItemResponseGroup.ITEM_LARGE & ~ItemResponseGroup.VARIATIONS


@dataclass
class ProductCodeCacheItem:
    """Cached resolution of one product code.

    Attributes:
        id: Product code (the cache id).
        product_id: Id of the product holding the code.
    """

    id: str
    product_id: str


def _code_token_key(catalog_id: str | None, code: str) -> str:
    return cache_key("code", catalog_id, code.lower())


def _with_variations(products: Sequence[CatalogProduct]) -> list[CatalogProduct]:
    """All loaded variations followed by the products themselves."""
    variations = [variation for product in products for variation in product.variations or []]
    return variations + list(products)


class ItemService(CrudService[CatalogProduct, ItemEntity]):
    """Service for catalog products (items).

    Example usage:
        service = get_item_service()
        products = await service.get_by_ids(["p1"], "ItemInfo,ItemAssets")
        products[0].name = "Renamed"
        await service.save_changes(products)
    """

    entity_class = ItemEntity
    changing_event_class = ProductChangingEvent
    changed_event_class = ProductChangedEvent

    def __init__(
        self,
        repository_factory: RepositoryFactory,
        event_publisher: InMemoryEventPublisher,
        property_validator: PropertyValuesValidator,
        catalog_service: CatalogService,
        category_service: CategoryService,
        outline_service: OutlineService,
        memory_cache: MemoryCache,
        blob_url_resolver: BlobUrlResolver,
        sku_generator: SkuGenerator,
        product_validator: ProductValidator,
    ) -> None:
        """Initialize service.

        Args:
            repository_factory: Creates a repository per unit of work.
            event_publisher: Publisher for product change events.
            property_validator: Validates property values on save.
            catalog_service: Source of product catalogs.
            category_service: Source of product categories.
            outline_service: Computes product outlines.
            memory_cache: Cache for loaded products.
            blob_url_resolver: Makes image and asset URLs absolute.
            sku_generator: Generates codes for products without one.
            product_validator: Validates product fields on save.
        """
        super().__init__(repository_factory, memory_cache, event_publisher)
        self._property_validator = property_validator
        self._catalog_service = catalog_service
        self._category_service = category_service
        self._outline_service = outline_service
        self._blob_url_resolver = blob_url_resolver
        self._sku_generator = sku_generator
        self._product_validator = product_validator

    # ------------------------------------------------------------------
    # Lookups by code
    # ------------------------------------------------------------------

    async def get_by_codes(
        self,
        catalog_id: str,
        codes: Sequence[str],
        response_group: str | None = None,
    ) -> list[CatalogProduct]:
        """Get products of a catalog by code.

        Args:
            catalog_id: Catalog holding the products.
            codes: Product codes.
            response_group: Sections to load.

        Returns:
            Found products; empty when no code resolves.
        """
        ids_by_codes = await self.get_ids_by_codes(catalog_id, codes)
        if not ids_by_codes:
            return []
        return await self.get_by_ids(list(ids_by_codes.values()), response_group, catalog_id)

    async def get_ids_by_codes(self, catalog_id: str, codes: Sequence[str]) -> dict[str, str]:
        """Resolve product codes to product ids.

        Codes are matched case-insensitively; every code is cached on its own.

        Args:
            catalog_id: Catalog holding the products.
            codes: Product codes.

        Returns:
            Mapping of stored product code to product id.
        """
        key_prefix = cache_key(type(self).__name__, "get_ids_by_codes", catalog_id)

        async def load(missing_codes: list[str]) -> list[ProductCodeCacheItem]:
            return await self._get_ids_by_codes_no_cache(catalog_id, missing_codes)

        def configure(options: CacheEntryOptions, code: str, item: ProductCodeCacheItem | None) -> None:
            options.add_expiration_token(catalog_cache_region.create_change_token())
            options.add_expiration_token(
                item_cache_region.create_change_token_for_key(_code_token_key(catalog_id, code))
            )
            if item is not None:
                options.add_expiration_token(item_cache_region.create_change_token_for_key(item.product_id))

        items = await self._memory_cache.get_or_load_by_ids(key_prefix, list(codes), load, configure)
        return {item.id: item.product_id for item in items}

    async def _get_ids_by_codes_no_cache(
        self,
        catalog_id: str,
        codes: Sequence[str],
    ) -> list[ProductCodeCacheItem]:
        async with self._repository_factory() as repository:
            rows = await repository.get_item_ids_by_codes(catalog_id, codes)
        return [ProductCodeCacheItem(id=code, product_id=product_id) for code, product_id in rows]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_by_ids(
        self,
        item_ids: Sequence[str],
        response_group: str | None = None,
        catalog_id: str | None = None,
    ) -> list[CatalogProduct]:
        """Get products by id.

        Args:
            item_ids: Product ids.
            response_group: Sections to load.
            catalog_id: When outlines are requested, keep only the outlines
                passing through this catalog.

        Returns:
            Products in request order (copies).
        """
        products = await self.get(item_ids, response_group)

        if products and catalog_id is not None and response_groups.has_flag(
            response_group, ItemResponseGroup.OUTLINES
        ):
            for product in _with_variations(products):
                product.outlines = [
                    outline
                    for outline in product.outlines
                    if any(
                        item.id.lower() == catalog_id.lower()
                        and item.seo_object_type.lower() == CATALOG_SEO_OBJECT_TYPE
                        for item in outline.items
                    )
                ]

        return products

    async def get_by_id(
        self,
        item_id: str,
        response_group: str | None = None,
        catalog_id: str | None = None,
    ) -> CatalogProduct | None:
        """Get one product by id, or None."""
        products = await self.get_by_ids([item_id], response_group, catalog_id)
        return products[0] if products else None

    def _response_group_key(self, response_group: str | None) -> str:
        return response_groups.to_string(response_group)

    async def _load_entities(
        self,
        repository: CatalogRepository,
        ids: Sequence[str],
        response_group: str | None = None,
    ) -> list[ItemEntity]:
        return await repository.get_item_by_ids(ids, response_group)

    async def _load_existing_entities(
        self,
        repository: CatalogRepository,
        models: Sequence[CatalogProduct],
    ) -> list[ItemEntity]:
        ids = [model.id for model in models if not model.is_transient]
        return await repository.get_item_by_ids(ids, _EXISTING_RESPONSE_GROUP)

    async def _process_models(
        self,
        entities: Sequence[ItemEntity],
        response_group: str | None,
    ) -> list[CatalogProduct]:
        products = [entity.to_model() for entity in entities]
        if not products:
            return products

        await self.load_dependencies(products)
        self.apply_inheritance_rules(products)

        products_and_variations = _with_variations(products)

        if response_groups.has_flag(response_group, ItemResponseGroup.OUTLINES):
            await self._outline_service.fill_outlines_for_objects(products_and_variations, catalog_id=None)

        for product in products_and_variations:
            product.reduce_details(response_group)

        return products

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def load_dependencies(self, products: Sequence[CatalogProduct]) -> None:
        """Attach catalogs and categories and resolve asset URLs.

        Covers the products, their main products and their variations.

        Args:
            products: Freshly converted products.

        Raises:
            DependencyNotFoundError: If a referenced catalog or category
                does not exist.
        """
        flat: list[CatalogProduct] = []
        for product in products:
            flat.append(product)
            if product.main_product is not None:
                flat.append(product.main_product)
            flat.extend(product.variations)

        catalog_ids = {product.catalog_id for product in flat if product.catalog_id}
        catalog_ids.update(link.catalog_id for product in flat for link in product.links if link.catalog_id)
        catalogs = {
            catalog.id.lower(): catalog
            for catalog in await self._catalog_service.get_no_clone(sorted(catalog_ids))
        }

        category_ids = {product.category_id for product in flat if product.category_id}
        category_ids.update(link.category_id for product in flat for link in product.links if link.category_id)
        categories = {
            category.id.lower(): category
            for category in await self._category_service.get_no_clone(sorted(category_ids))
        }

        for product in flat:
            for blob in [*product.images, *product.assets]:
                if blob.url:
                    blob.relative_url = blob.relative_url or blob.url
                    blob.url = self._blob_url_resolver.get_absolute_url(blob.url)

        for product in flat:
            self._set_product_dependencies(product, catalogs, categories)

    def _set_product_dependencies(
        self,
        product: CatalogProduct,
        catalogs: dict[str, Catalog],
        categories: dict[str, Category],
    ) -> None:
        if not product.code:
            product.code = self._sku_generator.generate_sku(product)

        product.catalog = _require(catalogs, "catalog", product.catalog_id, "catalog")

        if product.category_id is not None:
            product.category = _require(categories, "category", product.category_id, "category")

        for link in product.links:
            link.catalog = _require(catalogs, "catalog", link.catalog_id, "link catalog")
            if link.category_id:
                link.category = _require(categories, "category", link.category_id, "link category")

    def apply_inheritance_rules(self, products: Sequence[CatalogProduct]) -> None:
        """Fill unset product data from categories, catalogs and main products.

        Args:
            products: Products with dependencies loaded.
        """
        for product in products:
            parent = product.category or product.catalog
            if product.main_product is not None:
                # The main product has to be complete before the variation copies from it
                if parent is not None:
                    product.main_product.try_inherit_from(parent)
                product.try_inherit_from(product.main_product)
            elif parent is not None:
                product.try_inherit_from(parent)

            for variation in product.variations:
                variation.try_inherit_from(product)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def _before_save_changes(self, models: Sequence[CatalogProduct]) -> None:
        validate_and_raise(self._product_validator, models)

        for product in models:
            result = self._property_validator.validate(product)
            if not result.is_valid:
                raise ValidationError(
                    result.errors,
                    message="Product properties have validation errors: " + "; ".join(result.errors),
                )

    async def delete(self, ids: Sequence[str], soft_delete: bool = False) -> None:
        """Delete products together with their variations.

        Args:
            ids: Product ids; unknown ids are ignored.
            soft_delete: Accepted for interface compatibility; rows are
                always removed.
        """
        item_ids = list(ids)
        items = await self.get_by_ids(item_ids, response_groups.to_string(ItemResponseGroup.ITEM_INFO))
        if not items:
            return

        changed_entries = tuple(
            GenericChangedEntry(new_entry=item, entry_state=EntryState.DELETED) for item in items
        )
        await self._event_publisher.publish(ProductChangingEvent(changed_entries=changed_entries))

        async with self._repository_factory() as repository:
            removed_ids = await repository.remove_items(item_ids)
            await repository.commit()

        self._clear_cache(items)
        for removed_id in removed_ids:
            item_cache_region.expire_token_for_key(removed_id)

        logger.info("Deleted products", requested=len(item_ids), removed=len(removed_ids))

        await self._event_publisher.publish(ProductChangedEvent(changed_entries=changed_entries))

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def _configure_cache(
        self,
        options: CacheEntryOptions,
        model_id: str,
        model: CatalogProduct | None,
    ) -> None:
        options.add_expiration_token(catalog_cache_region.create_change_token())
        options.add_expiration_token(item_cache_region.create_change_token_for_key(model_id))
        if model is not None and model.variations:
            options.add_expiration_token(item_cache_region.create_change_token_for_products(model.variations))

    def _clear_cache(self, models: Sequence[CatalogProduct]) -> None:
        product_search_cache_region.expire_region()
        association_search_cache_region.expire_region()
        seo_info_cache_region.expire_region()

        for model in models:
            item_cache_region.expire_entity(model)
            if model.code:
                item_cache_region.expire_token_for_key(_code_token_key(model.catalog_id, model.code))


def _require(lookup: dict[str, T], entity_type: str, entity_id: str | None, label: str) -> T:
    value = lookup.get((entity_id or "").lower())
    if value is None:
        raise DependencyNotFoundError(
            entity_type=entity_type,
            entity_id=entity_id,
            message=f"{label} with key {entity_id} doesn't exist",
        )
    return value


# Global service instance
_item_service: ItemService | None = None


def get_item_service() -> ItemService:
    """Get item service singleton."""
    global _item_service
    if _item_service is None:
        memory_cache = get_memory_cache()
        event_publisher = get_event_publisher()
        _item_service = ItemService(
            repository_factory=catalog_repository_factory(async_session_factory),
            event_publisher=event_publisher,
            property_validator=PropertyValuesValidator(),
            catalog_service=get_catalog_service(),
            category_service=get_category_service(),
            outline_service=get_outline_service(),
            memory_cache=memory_cache,
            blob_url_resolver=BlobUrlResolver(),
            sku_generator=SkuGenerator(),
            product_validator=ProductValidator(),
        )
    return _item_service


def reset_item_service() -> None:
    """Reset item service (for testing)."""
    global _item_service
    _item_service = None
