"""Category service.

Cached reads and writes of categories. Loaded categories come with their
ancestors, their catalog and the property definitions they inherit.
"""

from collections.abc import Mapping, Sequence

import structlog

from catalog_items.application.catalog_service import CatalogService, get_catalog_service
from catalog_items.application.crud_service import CrudService
from catalog_items.domain.events import CategoryChangedEvent, CategoryChangingEvent
from catalog_items.domain.models import Category
from catalog_items.infrastructure.caching import (
    CacheEntryOptions,
    MemoryCache,
    catalog_cache_region,
    get_memory_cache,
)
from catalog_items.infrastructure.database import async_session_factory
from catalog_items.infrastructure.events import InMemoryEventPublisher, get_event_publisher
from catalog_items.infrastructure.models import CategoryEntity
from catalog_items.infrastructure.repository import (
    CatalogRepository,
    RepositoryFactory,
    catalog_repository_factory,
)

logger = structlog.get_logger()


class CategoryService(CrudService[Category, CategoryEntity]):
    """Service for categories."""

    entity_class = CategoryEntity
    changing_event_class = CategoryChangingEvent
    changed_event_class = CategoryChangedEvent

    def __init__(
        self,
        repository_factory: RepositoryFactory,
        memory_cache: MemoryCache,
        event_publisher: InMemoryEventPublisher,
        catalog_service: CatalogService,
    ) -> None:
        """Initialize service.

        Args:
            repository_factory: Creates a repository per unit of work.
            memory_cache: Cache for loaded categories.
            event_publisher: Publisher for change events.
            catalog_service: Source of the categories' catalogs.
        """
        super().__init__(repository_factory, memory_cache, event_publisher)
        self._catalog_service = catalog_service

    async def _load_entities(
        self,
        repository: CatalogRepository,
        ids: Sequence[str],
        response_group: str | None = None,
    ) -> list[CategoryEntity]:
        return await repository.get_categories_by_ids(ids)

    async def _process_models(
        self,
        entities: Sequence[CategoryEntity],
        response_group: str | None,
    ) -> list[Category]:
        categories = [entity.to_model() for entity in entities]
        if not categories:
            return categories

        requested_ids = {category.id for category in categories}
        async with self._repository_factory() as repository:
            parent_ids = await repository.get_category_parent_ids(requested_ids)
            ancestor_entities = await repository.get_categories_by_ids(
                [category_id for category_id in parent_ids if category_id not in requested_ids]
            )

        known = {category.id: category for category in categories}
        known.update({entity.id: entity.to_model() for entity in ancestor_entities})

        catalog_ids = {category.catalog_id for category in known.values()}
        catalog_ids.update(link.catalog_id for category in categories for link in category.links)
        catalogs = {
            catalog.id: catalog
            for catalog in await self._catalog_service.get_no_clone(sorted(catalog_ids))
        }

        for category in known.values():
            category.catalog = catalogs.get(category.catalog_id)
            if category.catalog is not None:
                category.is_virtual = category.catalog.is_virtual

        for category in categories:
            category.parents = _resolve_parents(category, parent_ids, known)
            for link in category.links:
                link.catalog = catalogs.get(link.catalog_id)
                if link.category_id:
                    link.category = known.get(link.category_id)

            # Nearer definitions win, so apply the catalog first and the parent last
            if category.catalog is not None:
                category.try_inherit_from(category.catalog)
            for parent in category.parents:
                category.try_inherit_from(parent)

        logger.debug(
            "Resolved category hierarchy",
            categories=len(categories),
            ancestors=len(ancestor_entities),
        )
        return categories

    def _configure_cache(self, options: CacheEntryOptions, model_id: str, model: Category | None) -> None:
        options.add_expiration_token(catalog_cache_region.create_change_token())

    def _clear_cache(self, models: Sequence[Category]) -> None:
        catalog_cache_region.expire_region()


def _resolve_parents(
    category: Category,
    parent_ids: Mapping[str, str | None],
    known: Mapping[str, Category],
) -> list[Category]:
    """Collect the ancestors of a category, root first."""
    parents: list[Category] = []
    visited = {category.id}
    parent_id = category.parent_id
    while parent_id and parent_id not in visited:
        visited.add(parent_id)
        parent = known.get(parent_id)
        if parent is None:
            break
        parents.append(parent)
        parent_id = parent_ids.get(parent_id)
    parents.reverse()
    return parents


# Global service instance
_category_service: CategoryService | None = None


def get_category_service() -> CategoryService:
    """Get category service singleton."""
    global _category_service
    if _category_service is None:
        _category_service = CategoryService(
            repository_factory=catalog_repository_factory(async_session_factory),
            memory_cache=get_memory_cache(),
            event_publisher=get_event_publisher(),
            catalog_service=get_catalog_service(),
        )
    return _category_service


def reset_category_service() -> None:
    """Reset category service (for testing)."""
    global _category_service
    _category_service = None
