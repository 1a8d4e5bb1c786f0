"""Domain layer for the catalog item service.

Contains the catalog models, response groups, change events and
domain exceptions. Nothing here touches the database or the cache.
"""

from catalog_items.domain.base import DomainEvent, Entity
from catalog_items.domain.events import (
    CatalogChangedEvent,
    CatalogChangingEvent,
    CategoryChangedEvent,
    CategoryChangingEvent,
    EntryState,
    GenericChangedEntry,
    ProductChangedEvent,
    ProductChangingEvent,
)
from catalog_items.domain.exceptions import (
    DependencyNotFoundError,
    DomainError,
    ValidationError,
)
from catalog_items.domain.models import (
    Asset,
    Catalog,
    CatalogProduct,
    Category,
    CategoryLink,
    EditorialReview,
    Image,
    Outline,
    OutlineItem,
    Property,
    PropertyType,
    PropertyValidationRule,
    PropertyValue,
    PropertyValueType,
)
from catalog_items.domain.response_groups import ItemResponseGroup

__all__ = [
    # Base
    "DomainEvent",
    "Entity",
    # Models
    "Asset",
    "Catalog",
    "CatalogProduct",
    "Category",
    "CategoryLink",
    "EditorialReview",
    "Image",
    "Outline",
    "OutlineItem",
    "Property",
    "PropertyType",
    "PropertyValidationRule",
    "PropertyValue",
    "PropertyValueType",
    "ItemResponseGroup",
    # Events
    "CatalogChangedEvent",
    "CatalogChangingEvent",
    "CategoryChangedEvent",
    "CategoryChangingEvent",
    "EntryState",
    "GenericChangedEntry",
    "ProductChangedEvent",
    "ProductChangingEvent",
    # Exceptions
    "DependencyNotFoundError",
    "DomainError",
    "ValidationError",
]
