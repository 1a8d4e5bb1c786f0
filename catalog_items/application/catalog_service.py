"""Catalog service.

Cached reads and writes of catalogs.
"""

from collections.abc import Sequence

from catalog_items.application.crud_service import CrudService
from catalog_items.domain.events import CatalogChangedEvent, CatalogChangingEvent
from catalog_items.domain.models import Catalog
from catalog_items.infrastructure.caching import (
    CacheEntryOptions,
    catalog_cache_region,
    get_memory_cache,
)
from catalog_items.infrastructure.database import async_session_factory
from catalog_items.infrastructure.events import get_event_publisher
from catalog_items.infrastructure.models import CatalogEntity
from catalog_items.infrastructure.repository import CatalogRepository, catalog_repository_factory


class CatalogService(CrudService[Catalog, CatalogEntity]):
    """Service for catalogs."""

    entity_class = CatalogEntity
    changing_event_class = CatalogChangingEvent
    changed_event_class = CatalogChangedEvent

    async def _load_entities(
        self,
        repository: CatalogRepository,
        ids: Sequence[str],
        response_group: str | None = None,
    ) -> list[CatalogEntity]:
        return await repository.get_catalogs_by_ids(ids)

    def _configure_cache(self, options: CacheEntryOptions, model_id: str, model: Catalog | None) -> None:
        options.add_expiration_token(catalog_cache_region.create_change_token())

    def _clear_cache(self, models: Sequence[Catalog]) -> None:
        catalog_cache_region.expire_region()


# Global service instance
_catalog_service: CatalogService | None = None


def get_catalog_service() -> CatalogService:
    """Get catalog service singleton."""
    global _catalog_service
    if _catalog_service is None:
        _catalog_service = CatalogService(
            repository_factory=catalog_repository_factory(async_session_factory),
            memory_cache=get_memory_cache(),
            event_publisher=get_event_publisher(),
        )
    return _catalog_service


def reset_catalog_service() -> None:
    """Reset catalog service (for testing)."""
    global _catalog_service
    _catalog_service = None
