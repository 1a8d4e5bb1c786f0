"""Generic cached CRUD service.

Base class for the catalog services. Reads go through the memory cache
(one store round trip for all misses); writes publish a *changing* event
before commit and a *changed* event after the cache has been cleared.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, ClassVar, Generic, TypeVar

import structlog

from catalog_items.domain.base import Entity
from catalog_items.domain.events import ChangeEvent, EntryState, GenericChangedEntry
from catalog_items.infrastructure.caching import CacheEntryOptions, MemoryCache, cache_key
from catalog_items.infrastructure.events import InMemoryEventPublisher
from catalog_items.infrastructure.repository import CatalogRepository, RepositoryFactory

logger = structlog.get_logger()

TModel = TypeVar("TModel", bound=Entity)
TEntity = TypeVar("TEntity")


class CrudService(ABC, Generic[TModel, TEntity]):
    """Cached read/write service for one kind of model.

    Subclasses define how entities are loaded, converted and cached.

    Attributes:
        entity_class: ORM class with ``to_model``, ``from_model`` and ``patch``.
        changing_event_class: Event published before commit.
        changed_event_class: Event published after commit.
    """

    entity_class: ClassVar[type[Any]]
    changing_event_class: ClassVar[type[ChangeEvent]]
    changed_event_class: ClassVar[type[ChangeEvent]]

    def __init__(
        self,
        repository_factory: RepositoryFactory,
        memory_cache: MemoryCache,
        event_publisher: InMemoryEventPublisher,
    ) -> None:
        """Initialize service.

        Args:
            repository_factory: Creates a repository per unit of work.
            memory_cache: Cache for loaded models.
            event_publisher: Publisher for change events.
        """
        self._repository_factory = repository_factory
        self._memory_cache = memory_cache
        self._event_publisher = event_publisher

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, ids: Sequence[str], response_group: str | None = None) -> list[TModel]:
        """Get models by id.

        Returned models are copies and may be modified freely.

        Args:
            ids: Model ids; unknown ids are skipped.
            response_group: Sections to load.

        Returns:
            Models in request order.
        """
        models = await self._get_cached(ids, response_group)
        return [model.clone() for model in models]

    async def get_no_clone(self, ids: Sequence[str], response_group: str | None = None) -> list[TModel]:
        """Get the cached models themselves.

        Uses less memory than ``get``; callers must not modify the result.
        """
        return await self._get_cached(ids, response_group)

    async def get_by_id(self, model_id: str, response_group: str | None = None) -> TModel | None:
        """Get one model by id, or None."""
        models = await self.get([model_id], response_group)
        return models[0] if models else None

    async def _get_cached(self, ids: Sequence[str], response_group: str | None) -> list[TModel]:
        key_prefix = cache_key(type(self).__name__, "get", self._response_group_key(response_group))

        async def load(missing_ids: list[str]) -> list[TModel]:
            return await self._get_by_ids_no_cache(missing_ids, response_group)

        models = await self._memory_cache.get_or_load_by_ids(
            key_prefix,
            list(ids),
            load,
            self._configure_cache,
        )

        positions = {model_id.lower(): index for index, model_id in enumerate(ids) if model_id}
        return sorted(models, key=lambda model: positions.get((model.id or "").lower(), len(positions)))

    async def _get_by_ids_no_cache(self, ids: list[str], response_group: str | None) -> list[TModel]:
        async with self._repository_factory() as repository:
            entities = await self._load_entities(repository, ids, response_group)
        # Entities are detached here; only eagerly loaded sections are used
        return await self._process_models(entities, response_group)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save_changes(self, models: Sequence[TModel]) -> None:
        """Insert new models and update existing ones.

        Args:
            models: Models to save; models without an id are inserted and
                receive their generated id.
        """
        models = list(models)
        await self._before_save_changes(models)

        changed_entries: list[GenericChangedEntry[TModel]] = []
        saved: list[tuple[TModel, Any]] = []

        async with self._repository_factory() as repository:
            existing = {
                entity.id: entity
                for entity in await self._load_existing_entities(repository, models)
            }

            for model in models:
                original = existing.get(model.id) if model.id else None
                modified = self._from_model(model)

                if original is not None:
                    changed_entries.append(
                        GenericChangedEntry(
                            new_entry=model,
                            old_entry=self._to_model(original),
                            entry_state=EntryState.MODIFIED,
                        )
                    )
                    self._patch(modified, original)
                else:
                    repository.add(modified)
                    changed_entries.append(
                        GenericChangedEntry(new_entry=model, entry_state=EntryState.ADDED)
                    )
                saved.append((model, modified))

            await self._event_publisher.publish(
                self.changing_event_class(changed_entries=tuple(changed_entries))
            )
            await repository.commit()

        # Hand generated primary keys back to the models
        for model, entity in saved:
            model.id = entity.id

        self._clear_cache(models)
        await self._after_save_changes(models, changed_entries)

        logger.info(
            "Saved changes",
            service=type(self).__name__,
            added=sum(1 for entry in changed_entries if entry.entry_state == EntryState.ADDED),
            modified=sum(1 for entry in changed_entries if entry.entry_state == EntryState.MODIFIED),
        )

        await self._event_publisher.publish(
            self.changed_event_class(changed_entries=tuple(changed_entries))
        )

    async def delete(self, ids: Sequence[str], soft_delete: bool = False) -> None:
        """Delete models by id.

        Args:
            ids: Model ids; unknown ids are ignored.
            soft_delete: Accepted for interface compatibility; rows are
                always removed.
        """
        models = await self.get(ids)
        if not models:
            return

        changed_entries = tuple(
            GenericChangedEntry(new_entry=model, entry_state=EntryState.DELETED)
            for model in models
        )
        await self._event_publisher.publish(self.changing_event_class(changed_entries=changed_entries))

        async with self._repository_factory() as repository:
            await self._remove(repository, [model.id for model in models])
            await repository.commit()

        self._clear_cache(models)

        logger.info("Deleted models", service=type(self).__name__, count=len(models))

        await self._event_publisher.publish(self.changed_event_class(changed_entries=changed_entries))

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _load_entities(
        self,
        repository: CatalogRepository,
        ids: Sequence[str],
        response_group: str | None = None,
    ) -> list[TEntity]:
        """Load entities by id."""

    async def _load_existing_entities(
        self,
        repository: CatalogRepository,
        models: Sequence[TModel],
    ) -> list[TEntity]:
        ids = [model.id for model in models if not model.is_transient]
        return await self._load_entities(repository, ids)

    async def _process_models(self, entities: Sequence[TEntity], response_group: str | None) -> list[TModel]:
        return [self._to_model(entity) for entity in entities]

    def _to_model(self, entity: TEntity) -> TModel:
        return entity.to_model()

    def _from_model(self, model: TModel) -> TEntity:
        return self.entity_class.from_model(model)

    def _patch(self, modified: TEntity, original: TEntity) -> None:
        modified.patch(original)

    async def _remove(self, repository: CatalogRepository, ids: Sequence[str]) -> None:
        for entity in await self._load_entities(repository, ids):
            await repository.delete(entity)

    async def _before_save_changes(self, models: Sequence[TModel]) -> None:
        pass

    async def _after_save_changes(
        self,
        models: Sequence[TModel],
        changed_entries: Sequence[GenericChangedEntry[TModel]],
    ) -> None:
        pass

    def _response_group_key(self, response_group: str | None) -> str:
        return response_group or ""

    @abstractmethod
    def _configure_cache(self, options: CacheEntryOptions, model_id: str, model: TModel | None) -> None:
        """Attach expiration tokens to a new cache entry."""

    @abstractmethod
    def _clear_cache(self, models: Sequence[TModel]) -> None:
        """Invalidate cache entries affected by a write."""
