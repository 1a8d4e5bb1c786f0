"""Application layer module.

Contains the cached catalog services (use cases) that orchestrate
domain logic and infrastructure.
"""

from catalog_items.application.catalog_service import (
    CatalogService,
    get_catalog_service,
)
from catalog_items.application.category_service import (
    CategoryService,
    get_category_service,
)
from catalog_items.application.item_service import (
    ItemService,
    get_item_service,
)
from catalog_items.application.outline_service import (
    OutlineService,
    get_outline_service,
)

__all__ = [
    "CatalogService",
    "get_catalog_service",
    "CategoryService",
    "get_category_service",
    "ItemService",
    "get_item_service",
    "OutlineService",
    "get_outline_service",
]
