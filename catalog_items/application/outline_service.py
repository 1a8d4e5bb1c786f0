"""Outline service.

Builds the navigational paths (outlines) of products and categories:
one path through the physical catalog plus one per virtual placement.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import structlog

from catalog_items.application.catalog_service import CatalogService, get_catalog_service
from catalog_items.application.category_service import CategoryService, get_category_service
from catalog_items.domain.models import Catalog, CatalogProduct, Category, Outline, OutlineItem

logger = structlog.get_logger()

CATALOG_OBJECT_TYPE = "Catalog"
CATEGORY_OBJECT_TYPE = "Category"
PRODUCT_OBJECT_TYPE = "CatalogProduct"


@dataclass(frozen=True)
class _Step:
    """One outline item before it is materialized."""

    id: str
    seo_object_type: str
    name: str | None
    is_virtual: bool = False


_Path = tuple[_Step, ...]


def _catalog_step(catalog_id: str, catalog: Catalog | None) -> _Step:
    return _Step(
        id=catalog_id,
        seo_object_type=CATALOG_OBJECT_TYPE,
        name=catalog.name if catalog else None,
        is_virtual=catalog.is_virtual if catalog else False,
    )


def _category_step(category: Category) -> _Step:
    return _Step(
        id=category.id,
        seo_object_type=CATEGORY_OBJECT_TYPE,
        name=category.name,
        is_virtual=category.is_virtual,
    )


def _to_outline(path: _Path) -> Outline:
    items = []
    seen_virtual = False
    for step in path:
        items.append(
            OutlineItem(
                id=step.id,
                seo_object_type=step.seo_object_type,
                name=step.name,
                has_virtual_parent=seen_virtual,
            )
        )
        seen_virtual = seen_virtual or step.is_virtual
    return Outline(items=items)


def _unique(paths: Iterable[_Path]) -> list[_Path]:
    return list(dict.fromkeys(paths))


class OutlineService:
    """Fills ``outlines`` of products and categories."""

    def __init__(self, catalog_service: CatalogService, category_service: CategoryService) -> None:
        """Initialize service.

        Args:
            catalog_service: Source of catalogs.
            category_service: Source of categories with their ancestors.
        """
        self._catalog_service = catalog_service
        self._category_service = category_service

    async def fill_outlines_for_objects(
        self,
        objects: Sequence[CatalogProduct | Category],
        catalog_id: str | None = None,
    ) -> None:
        """Compute outlines and store them on each object.

        Args:
            objects: Products and/or categories.
            catalog_id: Keep only outlines starting in this catalog.
        """
        if not objects:
            return

        categories = await self._load_categories(objects)
        catalog_ids = {category.catalog_id for category in categories.values()}
        for category in categories.values():
            catalog_ids.update(link.catalog_id for link in category.links)
        for obj in objects:
            if obj.catalog_id:
                catalog_ids.add(obj.catalog_id)
            catalog_ids.update(link.catalog_id for link in obj.links or [])
        catalogs = {
            catalog.id: catalog
            for catalog in await self._catalog_service.get_no_clone(sorted(catalog_ids))
        }

        builder = _OutlineBuilder(categories, catalogs)
        for obj in objects:
            if isinstance(obj, Category):
                paths = builder.category_paths(obj)
            else:
                paths = builder.product_paths(obj)

            if catalog_id:
                paths = [path for path in paths if path[0].id.lower() == catalog_id.lower()]
            obj.outlines = [_to_outline(path) for path in paths]

        logger.debug("Filled outlines", objects=len(objects), catalog_id=catalog_id)

    async def _load_categories(self, objects: Sequence[CatalogProduct | Category]) -> dict[str, Category]:
        """Load every category reachable from the objects through links."""
        pending: set[str] = set()
        for obj in objects:
            if isinstance(obj, Category):
                if obj.id:
                    pending.add(obj.id)
            elif obj.category_id:
                pending.add(obj.category_id)
            pending.update(link.category_id for link in obj.links or [] if link.category_id)

        categories: dict[str, Category] = {}
        while pending:
            loaded = await self._category_service.get_no_clone(sorted(pending))
            categories.update({category.id: category for category in loaded})
            pending = {
                link.category_id
                for category in loaded
                for link in category.links
                if link.category_id and link.category_id not in categories
            }
        return categories


class _OutlineBuilder:
    def __init__(self, categories: dict[str, Category], catalogs: dict[str, Catalog]) -> None:
        self._categories = categories
        self._catalogs = catalogs
        self._category_paths: dict[str, list[_Path]] = {}

    def _catalog_path(self, catalog_id: str) -> _Path:
        return (_catalog_step(catalog_id, self._catalogs.get(catalog_id)),)

    def category_paths(self, category: Category, visiting: frozenset[str] = frozenset()) -> list[_Path]:
        """Paths ending at ``category``; link cycles are cut."""
        top_level = not visiting
        if top_level and category.id in self._category_paths:
            return self._category_paths[category.id]

        visiting = visiting | {category.id}
        own = _category_step(category)
        paths: list[_Path] = [
            self._catalog_path(category.catalog_id)
            + tuple(_category_step(parent) for parent in category.parents)
            + (own,)
        ]

        for link in category.links:
            if link.category_id:
                target = self._categories.get(link.category_id)
                if target is None or target.id in visiting:
                    continue
                paths.extend(path + (own,) for path in self.category_paths(target, visiting))
            else:
                paths.append(self._catalog_path(link.catalog_id) + (own,))

        paths = _unique(paths)
        if top_level:
            # Nested results depend on the entry point of the walk
            self._category_paths[category.id] = paths
        return paths

    def _placement_paths(self, catalog_id: str | None, category_id: str | None) -> list[_Path]:
        if category_id:
            category = self._categories.get(category_id)
            if category is not None:
                return self.category_paths(category)
        if catalog_id:
            return [self._catalog_path(catalog_id)]
        return []

    def product_paths(self, product: CatalogProduct) -> list[_Path]:
        """Paths ending at ``product``."""
        own = _Step(id=product.id, seo_object_type=PRODUCT_OBJECT_TYPE, name=product.name)
        paths: list[_Path] = []
        for path in self._placement_paths(product.catalog_id, product.category_id):
            paths.append(path + (own,))
        for link in product.links or []:
            for path in self._placement_paths(link.catalog_id, link.category_id):
                paths.append(path + (own,))
        return _unique(paths)


# Global service instance
_outline_service: OutlineService | None = None


def get_outline_service() -> OutlineService:
    """Get outline service singleton."""
    global _outline_service
    if _outline_service is None:
        _outline_service = OutlineService(
            catalog_service=get_catalog_service(),
            category_service=get_category_service(),
        )
    return _outline_service


def reset_outline_service() -> None:
    """Reset outline service (for testing)."""
    global _outline_service
    _outline_service = None
