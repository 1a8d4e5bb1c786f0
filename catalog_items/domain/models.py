"""Catalog domain models.

In-memory representation of catalogs, categories and products together
with the property inheritance rules between them.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from catalog_items.domain import response_groups
from catalog_items.domain.base import Entity
from catalog_items.domain.response_groups import ItemResponseGroup


class PropertyType(str, Enum):
    """Level of the catalog hierarchy a property describes."""

    CATALOG = "Catalog"
    CATEGORY = "Category"
    PRODUCT = "Product"
    VARIATION = "Variation"


class PropertyValueType(str, Enum):
    """Type of the values stored for a property."""

    SHORT_TEXT = "ShortText"
    LONG_TEXT = "LongText"
    NUMBER = "Number"
    DATE_TIME = "DateTime"
    BOOLEAN = "Boolean"
    INTEGER = "Integer"
    GEO_POINT = "GeoPoint"
    HTML = "Html"


# Properties a product can own; anything above is shown read-only on products
PRODUCT_PROPERTY_TYPES = (PropertyType.PRODUCT, PropertyType.VARIATION)


# ============================================================================
# Properties
# ============================================================================


@dataclass
class PropertyValidationRule:
    """Constraints applied to text property values.

    Attributes:
        char_count_min: Minimum number of characters.
        char_count_max: Maximum number of characters.
        reg_exp: Regular expression the whole value must match.
    """

    char_count_min: int | None = None
    char_count_max: int | None = None
    reg_exp: str | None = None


@dataclass(eq=False, kw_only=True)
class PropertyValue(Entity):
    """A single value of a product property."""

    property_id: str | None = None
    property_name: str | None = None
    value_type: PropertyValueType = PropertyValueType.SHORT_TEXT
    value: Any = None
    language_code: str | None = None
    alias: str | None = None
    is_inherited: bool = False
    outer_id: str | None = None


@dataclass(eq=False, kw_only=True)
class Property(Entity):
    """Property definition, optionally carrying the values of an owner.

    Attributes:
        name: Property name, unique per owner (case-insensitive).
        catalog_id: Catalog that defines the property.
        category_id: Category that defines the property.
        type: Hierarchy level the property applies to.
        value_type: Type of the property values.
        required: Whether at least one value is mandatory.
        multivalue: Whether more than one value per language is allowed.
        dictionary: Whether values come from a predefined dictionary.
        is_inherited: Whether the definition came from a parent.
        is_read_only: Whether the values can be edited on this owner.
        values: Values of the owner this property instance belongs to.
        validation_rule: Optional constraints for text values.
    """

    name: str
    catalog_id: str | None = None
    category_id: str | None = None
    type: PropertyType = PropertyType.PRODUCT
    value_type: PropertyValueType = PropertyValueType.SHORT_TEXT
    required: bool = False
    multivalue: bool = False
    dictionary: bool = False
    is_inherited: bool = False
    is_read_only: bool = False
    values: list[PropertyValue] = field(default_factory=list)
    validation_rule: PropertyValidationRule | None = None

    def is_same(self, other: "Property", *types: PropertyType) -> bool:
        """Check whether two properties describe the same thing.

        Names are compared case-insensitively. When ``types`` are given,
        properties whose types both belong to ``types`` match regardless
        of their exact type; otherwise the types must be equal.
        """
        if (self.name or "").lower() != (other.name or "").lower():
            return False
        if types and self.type in types and other.type in types:
            return True
        return self.type == other.type

    def try_inherit_from(self, parent: "Property") -> None:
        """Take the definition of a parent property, keeping own values."""
        self.id = self.id or parent.id
        self.catalog_id = parent.catalog_id
        self.category_id = parent.category_id
        self.type = parent.type
        self.value_type = parent.value_type
        self.required = parent.required
        self.multivalue = parent.multivalue
        self.dictionary = parent.dictionary
        self.validation_rule = copy.deepcopy(parent.validation_rule)
        self.is_inherited = True
        for value in self.values:
            value.property_id = self.id
            value.value_type = self.value_type


def _find_property(properties: list[Property], other: Property) -> Property | None:
    return next(
        (prop for prop in properties if prop.is_same(other, *PRODUCT_PROPERTY_TYPES)),
        None,
    )


def _inherit_property_definitions(
    properties: list[Property],
    parent_properties: list[Property],
) -> None:
    for parent_property in parent_properties:
        existing = _find_property(properties, parent_property)
        if existing is None:
            existing = parent_property.clone()
            existing.values = []
            properties.append(existing)
        existing.try_inherit_from(parent_property)
        existing.is_read_only = existing.type not in PRODUCT_PROPERTY_TYPES
    properties.sort(key=lambda prop: (prop.name or "").lower())


# ============================================================================
# Catalog & Category
# ============================================================================


@dataclass(eq=False, kw_only=True)
class Catalog(Entity):
    """A catalog; virtual catalogs only hold links to other catalogs' items."""

    name: str
    is_virtual: bool = False
    default_language: str | None = None
    properties: list[Property] = field(default_factory=list)
    outer_id: str | None = None


@dataclass(eq=False, kw_only=True)
class CategoryLink:
    """Placement of a product or category into a (virtual) catalog or category."""

    catalog_id: str
    category_id: str | None = None
    priority: int = 0
    catalog: Catalog | None = None
    category: "Category | None" = None


@dataclass(eq=False, kw_only=True)
class OutlineItem:
    """One step of an outline path."""

    id: str
    seo_object_type: str
    name: str | None = None
    has_virtual_parent: bool = False


@dataclass(eq=False, kw_only=True)
class Outline:
    """Navigational path from a catalog down to an object."""

    items: list[OutlineItem] = field(default_factory=list)

    def __str__(self) -> str:
        return "/".join(item.id for item in self.items)


@dataclass(eq=False, kw_only=True)
class Category(Entity):
    """A category inside a catalog.

    Attributes:
        parents: Ancestor categories, root first.
        links: Virtual placements of this category.
    """

    catalog_id: str
    name: str
    parent_id: str | None = None
    code: str | None = None
    is_virtual: bool = False
    is_active: bool = True
    priority: int = 0
    properties: list[Property] = field(default_factory=list)
    links: list[CategoryLink] = field(default_factory=list)
    parents: list["Category"] = field(default_factory=list)
    catalog: Catalog | None = None
    outlines: list[Outline] = field(default_factory=list)

    def try_inherit_from(self, parent: "Catalog | Category") -> None:
        """Inherit property definitions from a catalog or parent category."""
        _inherit_property_definitions(self.properties, parent.properties)


# ============================================================================
# Product
# ============================================================================


@dataclass(eq=False, kw_only=True)
class Image(Entity):
    """Product image."""

    url: str | None = None
    relative_url: str | None = None
    name: str | None = None
    language_code: str | None = None
    group: str | None = None
    sort_order: int = 0
    is_inherited: bool = False


@dataclass(eq=False, kw_only=True)
class Asset(Entity):
    """Downloadable file attached to a product."""

    url: str | None = None
    relative_url: str | None = None
    name: str | None = None
    mime_type: str | None = None
    size: int = 0
    language_code: str | None = None
    group: str | None = None
    is_inherited: bool = False


@dataclass(eq=False, kw_only=True)
class EditorialReview(Entity):
    """Marketing text for a product."""

    content: str | None = None
    review_type: str | None = None
    language_code: str | None = None
    is_inherited: bool = False


# Scalars a variation takes from its main product when it leaves them unset
INHERITED_PRODUCT_FIELDS = (
    "vendor",
    "tax_type",
    "product_type",
    "package_type",
    "weight_unit",
    "weight",
    "measure_unit",
    "height",
    "length",
    "width",
)


def _inherited_copies(items: list[Any]) -> list[Any]:
    copies = []
    for item in items:
        clone = copy.deepcopy(item)
        clone.is_inherited = True
        copies.append(clone)
    return copies


@dataclass(eq=False, kw_only=True)
class CatalogProduct(Entity):
    """A sellable item of a catalog.

    A product with ``main_product_id`` is a variation of that main product
    and inherits unset data from it.
    """

    code: str | None = None
    name: str | None = None
    catalog_id: str | None = None
    category_id: str | None = None
    main_product_id: str | None = None
    is_active: bool = True
    is_buyable: bool = True
    track_inventory: bool = True
    priority: int = 0
    gtin: str | None = None
    vendor: str | None = None
    product_type: str | None = None
    tax_type: str | None = None
    package_type: str | None = None
    weight_unit: str | None = None
    weight: Decimal | None = None
    measure_unit: str | None = None
    height: Decimal | None = None
    length: Decimal | None = None
    width: Decimal | None = None
    min_quantity: int | None = None
    max_quantity: int | None = None
    outer_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    created_date: datetime | None = None
    modified_date: datetime | None = None
    created_by: str | None = None
    modified_by: str | None = None

    catalog: Catalog | None = None
    category: Category | None = None
    main_product: "CatalogProduct | None" = None
    # None marks a section that was not loaded; saving leaves it untouched
    variations: list["CatalogProduct"] | None = field(default_factory=list)
    images: list[Image] | None = field(default_factory=list)
    assets: list[Asset] | None = field(default_factory=list)
    reviews: list[EditorialReview] | None = field(default_factory=list)
    links: list[CategoryLink] | None = field(default_factory=list)
    properties: list[Property] | None = field(default_factory=list)
    outlines: list[Outline] | None = field(default_factory=list)

    @property
    def property_values(self) -> list[PropertyValue]:
        """All values of all properties."""
        return [value for prop in self.properties or [] for value in prop.values]

    def reduce_details(self, response_group: str | ItemResponseGroup | None) -> None:
        """Unload the sections that were not requested.

        Unloaded sections become None, so a later save keeps the stored data.
        """
        flags = response_groups.parse(response_group)

        if not flags & ItemResponseGroup.ITEM_ASSETS:
            self.images = None
            self.assets = None
        if not flags & ItemResponseGroup.ITEM_PROPERTIES:
            self.properties = None
        if not flags & ItemResponseGroup.ITEM_EDITORIAL_REVIEWS:
            self.reviews = None
        if not flags & ItemResponseGroup.LINKS:
            self.links = None
        if not flags & ItemResponseGroup.VARIATIONS:
            self.variations = None
        if not flags & ItemResponseGroup.OUTLINES:
            self.outlines = None

    def try_inherit_from(self, parent: "Catalog | Category | CatalogProduct") -> None:
        """Fill unset data from a catalog, a category or the main product.

        Sections that are not loaded on this product are skipped.
        """
        if isinstance(parent, (Catalog, Category)):
            if self.properties is not None:
                _inherit_property_definitions(self.properties, parent.properties)
        elif isinstance(parent, CatalogProduct):
            self._inherit_from_main_product(parent)

    def _inherit_from_main_product(self, parent: "CatalogProduct") -> None:
        if self.images == [] and parent.images:
            self.images = _inherited_copies(parent.images)
        if self.assets == [] and parent.assets:
            self.assets = _inherited_copies(parent.assets)
        if self.reviews == [] and parent.reviews:
            self.reviews = _inherited_copies(parent.reviews)

        for name in INHERITED_PRODUCT_FIELDS:
            if getattr(self, name) is None:
                setattr(self, name, getattr(parent, name))

        if self.properties is None:
            return
        for parent_property in parent.properties or []:
            existing = _find_property(self.properties, parent_property)
            if existing is None:
                existing = parent_property.clone()
                existing.is_inherited = True
                existing.values = []
                self.properties.append(existing)
            if not existing.values and parent_property.values:
                existing.is_inherited = True
                existing.values = _inherited_copies(parent_property.values)

        self.properties.sort(key=lambda prop: (prop.name or "").lower())
