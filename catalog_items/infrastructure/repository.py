"""Catalog repository for database operations.

Loads catalogs, categories and products with exactly the sections a
response group asks for, and acts as the unit of work for writes.
"""

from collections.abc import Callable, Iterable, Sequence
from types import TracebackType

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Load, selectinload

from catalog_items.domain import response_groups
from catalog_items.domain.response_groups import ItemResponseGroup
from catalog_items.infrastructure.database import Base
from catalog_items.infrastructure.models import (
    CatalogEntity,
    CategoryEntity,
    ItemEntity,
)

logger = structlog.get_logger()

RepositoryFactory = Callable[[], "CatalogRepository"]


def _item_section_options(flags: ItemResponseGroup) -> list[Load]:
    """Eager-load options for the product sections selected by ``flags``."""
    options = []
    if flags & ItemResponseGroup.ITEM_ASSETS:
        options.append(selectinload(ItemEntity.images))
        options.append(selectinload(ItemEntity.assets))
    if flags & ItemResponseGroup.ITEM_EDITORIAL_REVIEWS:
        options.append(selectinload(ItemEntity.editorial_reviews))
    if flags & ItemResponseGroup.ITEM_PROPERTIES:
        options.append(selectinload(ItemEntity.property_values))
    if flags & ItemResponseGroup.LINKS:
        options.append(selectinload(ItemEntity.category_links))
    return options


class CatalogRepository:
    """Repository for catalog database operations.

    Wraps one session; leaving the context without ``commit()`` discards
    pending changes.

    Example usage:
        async with repository_factory() as repository:
            items = await repository.get_item_by_ids(["p1"], "ItemInfo,ItemAssets")
            repository.add(ItemEntity.from_model(product))
            await repository.commit()
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def __aenter__(self) -> "CatalogRepository":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            await self.session.rollback()
        await self.session.close()

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def add(self, entity: Base) -> None:
        """Schedule a new entity for insertion."""
        self.session.add(entity)

    async def delete(self, entity: Base) -> None:
        """Schedule an entity (and its cascaded children) for deletion."""
        await self.session.delete(entity)

    async def commit(self) -> None:
        """Commit pending changes."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Discard pending changes."""
        await self.session.rollback()

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    async def get_item_by_ids(
        self,
        item_ids: Sequence[str],
        response_group: str | ItemResponseGroup | None = None,
    ) -> list[ItemEntity]:
        """Get products by id.

        Args:
            item_ids: Product ids.
            response_group: Sections to load with each product. Variations
                (when requested) and main products are loaded with the
                same sections.

        Returns:
            Found products.
        """
        if not item_ids:
            return []

        flags = response_groups.parse(response_group)
        section_options = _item_section_options(flags)

        query = select(ItemEntity).where(ItemEntity.id.in_(list(item_ids)))
        query = query.options(
            *section_options,
            selectinload(ItemEntity.parent).options(*section_options),
        )
        if flags & ItemResponseGroup.VARIATIONS:
            query = query.options(
                selectinload(ItemEntity.variations).options(*section_options)
            )

        result = await self.session.execute(query)
        return list(result.scalars().unique().all())

    async def get_item_ids_by_codes(
        self,
        catalog_id: str,
        codes: Sequence[str],
    ) -> list[tuple[str, str]]:
        """Resolve product codes inside a catalog.

        Codes are compared case-insensitively.

        Args:
            catalog_id: Catalog to search.
            codes: Product codes.

        Returns:
            List of (code, product id) pairs.
        """
        if not codes:
            return []

        query = select(ItemEntity.code, ItemEntity.id).where(ItemEntity.catalog_id == catalog_id)
        if len(codes) == 1:
            query = query.where(func.lower(ItemEntity.code) == codes[0].lower())
        else:
            query = query.where(func.lower(ItemEntity.code).in_([code.lower() for code in codes]))

        result = await self.session.execute(query)
        return [(row.code, row.id) for row in result.all()]

    async def remove_items(self, item_ids: Sequence[str]) -> list[str]:
        """Delete products together with their variations.

        Args:
            item_ids: Product ids.

        Returns:
            Ids of every deleted product row, variations included.
        """
        if not item_ids:
            return []

        ids = list(item_ids)
        query = select(ItemEntity).where(
            or_(ItemEntity.id.in_(ids), ItemEntity.parent_id.in_(ids))
        )
        result = await self.session.execute(query)
        entities = list(result.scalars().all())

        for entity in entities:
            await self.session.delete(entity)

        await self.session.flush()
        logger.debug("Removed items", requested=len(ids), removed=len(entities))
        return [entity.id for entity in entities]

    # ------------------------------------------------------------------
    # Catalogs & categories
    # ------------------------------------------------------------------

    async def get_catalogs_by_ids(self, catalog_ids: Sequence[str]) -> list[CatalogEntity]:
        """Get catalogs with their properties.

        Args:
            catalog_ids: Catalog ids.

        Returns:
            Found catalogs.
        """
        if not catalog_ids:
            return []

        query = (
            select(CatalogEntity)
            .where(CatalogEntity.id.in_(list(catalog_ids)))
            .options(selectinload(CatalogEntity.properties))
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_categories_by_ids(self, category_ids: Sequence[str]) -> list[CategoryEntity]:
        """Get categories with their properties and links.

        Args:
            category_ids: Category ids.

        Returns:
            Found categories.
        """
        if not category_ids:
            return []

        query = (
            select(CategoryEntity)
            .where(CategoryEntity.id.in_(list(category_ids)))
            .options(
                selectinload(CategoryEntity.properties),
                selectinload(CategoryEntity.outgoing_links),
            )
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_category_parent_ids(self, category_ids: Iterable[str]) -> dict[str, str | None]:
        """Map categories and all their ancestors to their parent ids.

        Walks up the tree one level per query until every chain reaches a
        root category.

        Args:
            category_ids: Starting categories.

        Returns:
            Mapping of category id to parent id (None for roots).
        """
        parents: dict[str, str | None] = {}
        pending = {category_id for category_id in category_ids if category_id}

        while pending:
            query = select(CategoryEntity.id, CategoryEntity.parent_category_id).where(
                CategoryEntity.id.in_(list(pending))
            )
            result = await self.session.execute(query)
            rows = result.all()
            for row in rows:
                parents[row.id] = row.parent_category_id
            pending = {
                row.parent_category_id
                for row in rows
                if row.parent_category_id and row.parent_category_id not in parents
            }

        return parents


def catalog_repository_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> RepositoryFactory:
    """Create a factory producing one repository (and session) per call.

    Args:
        session_factory: Session factory to draw sessions from.

    Returns:
        Callable returning a new ``CatalogRepository``.
    """

    def factory() -> CatalogRepository:
        return CatalogRepository(session_factory())

    return factory
