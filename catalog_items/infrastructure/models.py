"""SQLAlchemy models for the catalog store.

Defines catalog, category, product and related tables, and the
conversions between these entities and the domain models. Conversions
only touch relationships that were eagerly loaded; unloaded sections are
left empty on the domain model. Product sections that are None on the
model are not written back.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.orm import Mapped, foreign, mapped_column, relationship

from catalog_items.domain.models import (
    Asset,
    Catalog,
    CatalogProduct,
    Category,
    CategoryLink,
    EditorialReview,
    Image,
    Property,
    PropertyType,
    PropertyValidationRule,
    PropertyValue,
    PropertyValueType,
)
from catalog_items.infrastructure.database import Base


def new_id() -> str:
    """Generate a primary key."""
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _loaded(entity: Base, name: str) -> Any:
    """Get a relationship only if it has been loaded or assigned.

    Returns:
        The related value, or None when the relationship was never loaded
        or assigned.
    """
    if name in inspect(entity).unloaded:
        return None
    return getattr(entity, name)


def _patch_collection(target: list[Any], source: list[Any]) -> list[Any]:
    """Merge new child entities into the existing ones, matching by id."""
    existing = {entity.id: entity for entity in target}
    result = []
    for entity in source:
        current = existing.get(entity.id)
        if current is None:
            result.append(entity)
        else:
            entity.patch(current)
            result.append(current)
    return result


# ============================================================================
# Properties
# ============================================================================


class PropertyEntity(Base):
    """Property definition owned by a catalog or a category."""

    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_id)
    catalog_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("catalogs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[str | None] = mapped_column(
        String(128),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    property_type: Mapped[str] = mapped_column(String(64), nullable=False, default=PropertyType.PRODUCT.value)
    value_type: Mapped[str] = mapped_column(String(64), nullable=False, default=PropertyValueType.SHORT_TEXT.value)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_multivalue: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_dictionary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    char_count_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    char_count_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reg_exp: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<PropertyEntity(id={self.id}, name={self.name})>"

    def to_model(self) -> Property:
        """Convert to domain model."""
        rule = None
        if self.char_count_min is not None or self.char_count_max is not None or self.reg_exp:
            rule = PropertyValidationRule(
                char_count_min=self.char_count_min,
                char_count_max=self.char_count_max,
                reg_exp=self.reg_exp,
            )
        return Property(
            id=self.id,
            name=self.name,
            catalog_id=self.catalog_id,
            category_id=self.category_id,
            type=PropertyType(self.property_type),
            value_type=PropertyValueType(self.value_type),
            required=self.is_required,
            multivalue=self.is_multivalue,
            dictionary=self.is_dictionary,
            validation_rule=rule,
        )

    @classmethod
    def from_model(cls, prop: Property, catalog_id: str, category_id: str | None = None) -> "PropertyEntity":
        """Create entity from domain model."""
        rule = prop.validation_rule or PropertyValidationRule()
        return cls(
            id=prop.id or new_id(),
            catalog_id=catalog_id,
            category_id=category_id,
            name=prop.name,
            property_type=prop.type.value,
            value_type=prop.value_type.value,
            is_required=prop.required,
            is_multivalue=prop.multivalue,
            is_dictionary=prop.dictionary,
            char_count_min=rule.char_count_min,
            char_count_max=rule.char_count_max,
            reg_exp=rule.reg_exp,
        )

    def patch(self, target: "PropertyEntity") -> None:
        """Copy values onto an existing entity."""
        for name in (
            "name", "property_type", "value_type", "is_required", "is_multivalue",
            "is_dictionary", "char_count_min", "char_count_max", "reg_exp",
        ):
            setattr(target, name, getattr(self, name))


# ============================================================================
# Catalog & Category
# ============================================================================


class CatalogEntity(Base):
    """Catalog table."""

    __tablename__ = "catalogs"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    is_virtual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    default_language: Mapped[str | None] = mapped_column(String(64), nullable=True)
    outer_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    # Catalog-level properties only; category properties share the table
    properties: Mapped[list[PropertyEntity]] = relationship(
        PropertyEntity,
        primaryjoin=lambda: (CatalogEntity.id == foreign(PropertyEntity.catalog_id))
        & PropertyEntity.category_id.is_(None),
        cascade="all, delete-orphan",
        order_by=PropertyEntity.name,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<CatalogEntity(id={self.id}, name={self.name})>"

    def to_model(self) -> Catalog:
        """Convert to domain model."""
        properties = _loaded(self, "properties") or []
        return Catalog(
            id=self.id,
            name=self.name,
            is_virtual=self.is_virtual,
            default_language=self.default_language,
            outer_id=self.outer_id,
            properties=[prop.to_model() for prop in properties],
        )

    @classmethod
    def from_model(cls, catalog: Catalog) -> "CatalogEntity":
        """Create entity from domain model."""
        catalog_id = catalog.id or new_id()
        return cls(
            id=catalog_id,
            name=catalog.name,
            is_virtual=catalog.is_virtual,
            default_language=catalog.default_language,
            outer_id=catalog.outer_id,
            properties=[
                PropertyEntity.from_model(prop, catalog_id)
                for prop in catalog.properties
                if not prop.is_inherited
            ],
        )

    def patch(self, target: "CatalogEntity") -> None:
        """Copy values onto an existing entity."""
        target.name = self.name
        target.is_virtual = self.is_virtual
        target.default_language = self.default_language
        target.outer_id = self.outer_id
        target.properties = _patch_collection(target.properties, self.properties)


class CategoryRelationEntity(Base):
    """Link placing a category into another (virtual) catalog or category."""

    __tablename__ = "category_relations"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_id)
    source_category_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    target_catalog_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("catalogs.id"), nullable=False
    )
    target_category_id: Mapped[str | None] = mapped_column(
        String(128), ForeignKey("categories.id"), nullable=True
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_model(self) -> CategoryLink:
        """Convert to domain model."""
        return CategoryLink(
            catalog_id=self.target_catalog_id,
            category_id=self.target_category_id,
            priority=self.priority,
        )

    def patch(self, target: "CategoryRelationEntity") -> None:
        """Copy values onto an existing entity."""
        target.priority = self.priority


class CategoryEntity(Base):
    """Category table."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_id)
    catalog_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("catalogs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_category_id: Mapped[str | None] = mapped_column(
        String(128),
        ForeignKey("categories.id"),
        nullable=True,
        index=True,
    )
    code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    properties: Mapped[list[PropertyEntity]] = relationship(
        PropertyEntity,
        foreign_keys=[PropertyEntity.category_id],
        cascade="all, delete-orphan",
        order_by=PropertyEntity.name,
    )
    outgoing_links: Mapped[list[CategoryRelationEntity]] = relationship(
        CategoryRelationEntity,
        foreign_keys=[CategoryRelationEntity.source_category_id],
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<CategoryEntity(id={self.id}, name={self.name})>"

    def to_model(self) -> Category:
        """Convert to domain model."""
        properties = _loaded(self, "properties") or []
        links = _loaded(self, "outgoing_links") or []
        return Category(
            id=self.id,
            catalog_id=self.catalog_id,
            parent_id=self.parent_category_id,
            code=self.code,
            name=self.name,
            is_active=self.is_active,
            priority=self.priority,
            properties=[prop.to_model() for prop in properties],
            links=[link.to_model() for link in links],
        )

    @classmethod
    def from_model(cls, category: Category) -> "CategoryEntity":
        """Create entity from domain model."""
        category_id = category.id or new_id()
        return cls(
            id=category_id,
            catalog_id=category.catalog_id,
            parent_category_id=category.parent_id,
            code=category.code,
            name=category.name,
            is_active=category.is_active,
            priority=category.priority,
            properties=[
                PropertyEntity.from_model(prop, category.catalog_id, category_id)
                for prop in category.properties
                if not prop.is_inherited
            ],
            outgoing_links=[
                CategoryRelationEntity(
                    id=new_id(),
                    source_category_id=category_id,
                    target_catalog_id=link.catalog_id,
                    target_category_id=link.category_id,
                    priority=link.priority,
                )
                for link in category.links
            ],
        )

    def patch(self, target: "CategoryEntity") -> None:
        """Copy values onto an existing entity."""
        target.catalog_id = self.catalog_id
        target.parent_category_id = self.parent_category_id
        target.code = self.code
        target.name = self.name
        target.is_active = self.is_active
        target.priority = self.priority
        target.properties = _patch_collection(target.properties, self.properties)

        # Links have no identity of their own, match them by target
        existing = {
            (link.target_catalog_id, link.target_category_id): link
            for link in target.outgoing_links
        }
        links = []
        for link in self.outgoing_links:
            current = existing.get((link.target_catalog_id, link.target_category_id))
            if current is None:
                links.append(link)
            else:
                link.patch(current)
                links.append(current)
        target.outgoing_links = links


# ============================================================================
# Product sections
# ============================================================================


class ImageEntity(Base):
    """Product image table."""

    __tablename__ = "item_images"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_id)
    item_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(2083), nullable=False)
    name: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    language_code: Mapped[str | None] = mapped_column(String(5), nullable=True)
    group: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_model(self) -> Image:
        """Convert to domain model."""
        return Image(
            id=self.id,
            url=self.url,
            name=self.name,
            language_code=self.language_code,
            group=self.group,
            sort_order=self.sort_order,
        )

    @classmethod
    def from_model(cls, image: Image) -> "ImageEntity":
        """Create entity from domain model; the relative path is stored."""
        return cls(
            id=image.id or new_id(),
            url=image.relative_url or image.url,
            name=image.name,
            language_code=image.language_code,
            group=image.group,
            sort_order=image.sort_order,
        )

    def patch(self, target: "ImageEntity") -> None:
        """Copy values onto an existing entity."""
        for name in ("url", "name", "language_code", "group", "sort_order"):
            setattr(target, name, getattr(self, name))


class AssetEntity(Base):
    """Product asset table."""

    __tablename__ = "item_assets"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_id)
    item_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(2083), nullable=False)
    name: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    language_code: Mapped[str | None] = mapped_column(String(5), nullable=True)
    group: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def to_model(self) -> Asset:
        """Convert to domain model."""
        return Asset(
            id=self.id,
            url=self.url,
            name=self.name,
            mime_type=self.mime_type,
            size=self.size,
            language_code=self.language_code,
            group=self.group,
        )

    @classmethod
    def from_model(cls, asset: Asset) -> "AssetEntity":
        """Create entity from domain model; the relative path is stored."""
        return cls(
            id=asset.id or new_id(),
            url=asset.relative_url or asset.url,
            name=asset.name,
            mime_type=asset.mime_type,
            size=asset.size,
            language_code=asset.language_code,
            group=asset.group,
        )

    def patch(self, target: "AssetEntity") -> None:
        """Copy values onto an existing entity."""
        for name in ("url", "name", "mime_type", "size", "language_code", "group"):
            setattr(target, name, getattr(self, name))


class EditorialReviewEntity(Base):
    """Product editorial review table."""

    __tablename__ = "item_editorial_reviews"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_id)
    item_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    review_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    language_code: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def to_model(self) -> EditorialReview:
        """Convert to domain model."""
        return EditorialReview(
            id=self.id,
            content=self.content,
            review_type=self.review_type,
            language_code=self.language_code,
        )

    @classmethod
    def from_model(cls, review: EditorialReview) -> "EditorialReviewEntity":
        """Create entity from domain model."""
        return cls(
            id=review.id or new_id(),
            content=review.content,
            review_type=review.review_type,
            language_code=review.language_code,
        )

    def patch(self, target: "EditorialReviewEntity") -> None:
        """Copy values onto an existing entity."""
        for name in ("content", "review_type", "language_code"):
            setattr(target, name, getattr(self, name))


class PropertyValueEntity(Base):
    """Product property value table.

    Values are stored in the column matching their value type.
    """

    __tablename__ = "property_values"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_id)
    item_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    property_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    value_type: Mapped[str] = mapped_column(String(64), nullable=False)
    short_text_value: Mapped[str | None] = mapped_column(String(512), nullable=True)
    long_text_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    decimal_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 5), nullable=True)
    integer_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    boolean_value: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    datetime_value: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    locale: Mapped[str | None] = mapped_column(String(64), nullable=True)
    alias: Mapped[str | None] = mapped_column(String(512), nullable=True)
    outer_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    _VALUE_COLUMNS = {
        PropertyValueType.SHORT_TEXT: "short_text_value",
        PropertyValueType.GEO_POINT: "short_text_value",
        PropertyValueType.LONG_TEXT: "long_text_value",
        PropertyValueType.HTML: "long_text_value",
        PropertyValueType.NUMBER: "decimal_value",
        PropertyValueType.INTEGER: "integer_value",
        PropertyValueType.BOOLEAN: "boolean_value",
        PropertyValueType.DATE_TIME: "datetime_value",
    }

    def to_model(self) -> PropertyValue:
        """Convert to domain model."""
        value_type = PropertyValueType(self.value_type)
        return PropertyValue(
            id=self.id,
            property_id=self.property_id,
            property_name=self.name,
            value_type=value_type,
            value=getattr(self, self._VALUE_COLUMNS[value_type]),
            language_code=self.locale,
            alias=self.alias,
            outer_id=self.outer_id,
        )

    @classmethod
    def from_model(cls, value: PropertyValue) -> "PropertyValueEntity":
        """Create entity from domain model."""
        entity = cls(
            id=value.id or new_id(),
            property_id=value.property_id,
            name=value.property_name,
            value_type=value.value_type.value,
            locale=value.language_code,
            alias=value.alias,
            outer_id=value.outer_id,
        )
        setattr(entity, cls._VALUE_COLUMNS[value.value_type], _coerce_value(value))
        return entity

    def patch(self, target: "PropertyValueEntity") -> None:
        """Copy values onto an existing entity."""
        for name in (
            "property_id", "name", "value_type", "short_text_value", "long_text_value",
            "decimal_value", "integer_value", "boolean_value", "datetime_value",
            "locale", "alias", "outer_id",
        ):
            setattr(target, name, getattr(self, name))


def _coerce_value(value: PropertyValue) -> Any:
    """Convert a validated property value to its storage type."""
    raw = value.value
    if raw is None:
        return None
    match value.value_type:
        case PropertyValueType.NUMBER:
            try:
                return Decimal(str(raw))
            except InvalidOperation as exc:
                raise ValueError(f"Invalid number value: {raw!r}") from exc
        case PropertyValueType.INTEGER:
            return int(raw)
        case PropertyValueType.BOOLEAN:
            if isinstance(raw, str):
                return raw.strip().lower() in ("true", "1", "yes")
            return bool(raw)
        case PropertyValueType.DATE_TIME:
            if isinstance(raw, str):
                return datetime.fromisoformat(raw)
            return raw
        case _:
            return str(raw)


class CategoryItemRelationEntity(Base):
    """Link placing a product into a (virtual) catalog or category."""

    __tablename__ = "category_item_relations"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_id)
    item_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    catalog_id: Mapped[str] = mapped_column(String(128), ForeignKey("catalogs.id"), nullable=False)
    category_id: Mapped[str | None] = mapped_column(String(128), ForeignKey("categories.id"), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def to_model(self) -> CategoryLink:
        """Convert to domain model."""
        return CategoryLink(
            catalog_id=self.catalog_id,
            category_id=self.category_id,
            priority=self.priority,
        )

    @classmethod
    def from_model(cls, link: CategoryLink) -> "CategoryItemRelationEntity":
        """Create entity from domain model."""
        return cls(
            id=new_id(),
            catalog_id=link.catalog_id,
            category_id=link.category_id,
            priority=link.priority,
        )

    def patch(self, target: "CategoryItemRelationEntity") -> None:
        """Copy values onto an existing entity."""
        target.priority = self.priority


# ============================================================================
# Product
# ============================================================================


# Scalar columns shared one-to-one with CatalogProduct
_ITEM_SCALARS = (
    "code", "name", "catalog_id", "category_id", "is_active", "is_buyable",
    "track_inventory", "priority", "gtin", "vendor", "product_type", "tax_type",
    "package_type", "weight_unit", "weight", "measure_unit", "height", "length",
    "width", "min_quantity", "max_quantity", "outer_id", "start_date", "end_date",
    "created_by", "modified_by",
)


class ItemEntity(Base):
    """Product table.

    Variations are rows whose ``parent_id`` points at the main product.
    """

    __tablename__ = "items"
    __table_args__ = (
        UniqueConstraint("catalog_id", "code", name="uq_items_catalog_code"),
    )

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_id)
    code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(1024), nullable=False)
    catalog_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("catalogs.id"),
        nullable=False,
        index=True,
    )
    category_id: Mapped[str | None] = mapped_column(
        String(128),
        ForeignKey("categories.id"),
        nullable=True,
        index=True,
    )
    parent_id: Mapped[str | None] = mapped_column(
        String(128),
        ForeignKey("items.id"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_buyable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    track_inventory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gtin: Mapped[str | None] = mapped_column(String(64), nullable=True)
    vendor: Mapped[str | None] = mapped_column(String(128), nullable=True)
    product_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tax_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    package_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    weight_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    weight: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    measure_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    height: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    length: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    width: Mapped[Decimal | None] = mapped_column(Numeric(18, 4), nullable=True)
    min_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    outer_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    modified_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    # Relationships
    images: Mapped[list[ImageEntity]] = relationship(
        ImageEntity,
        cascade="all, delete-orphan",
        order_by=ImageEntity.sort_order,
    )
    assets: Mapped[list[AssetEntity]] = relationship(AssetEntity, cascade="all, delete-orphan")
    editorial_reviews: Mapped[list[EditorialReviewEntity]] = relationship(
        EditorialReviewEntity,
        cascade="all, delete-orphan",
    )
    property_values: Mapped[list[PropertyValueEntity]] = relationship(
        PropertyValueEntity,
        cascade="all, delete-orphan",
    )
    category_links: Mapped[list[CategoryItemRelationEntity]] = relationship(
        CategoryItemRelationEntity,
        cascade="all, delete-orphan",
    )
    parent: Mapped["ItemEntity | None"] = relationship(
        "ItemEntity",
        remote_side=[id],
        back_populates="variations",
    )
    variations: Mapped[list["ItemEntity"]] = relationship(
        "ItemEntity",
        back_populates="parent",
        cascade="all",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ItemEntity(id={self.id}, code={self.code}, name={(self.name or '')[:30]}...)>"

    def to_model(self, with_relatives: bool = True) -> CatalogProduct:
        """Convert to domain model.

        Property values are grouped into one product property per name.

        Args:
            with_relatives: Also convert the loaded main product and
                variations; relatives are converted without their own.
        """
        product = CatalogProduct(
            id=self.id,
            main_product_id=self.parent_id,
            created_date=self.created_at,
            modified_date=self.updated_at,
            **{name: getattr(self, name) for name in _ITEM_SCALARS},
        )

        product.images = [image.to_model() for image in _loaded(self, "images") or []]
        product.assets = [asset.to_model() for asset in _loaded(self, "assets") or []]
        product.reviews = [review.to_model() for review in _loaded(self, "editorial_reviews") or []]
        product.links = [link.to_model() for link in _loaded(self, "category_links") or []]

        properties: dict[str, Property] = {}
        for value_entity in _loaded(self, "property_values") or []:
            value = value_entity.to_model()
            key = value.property_name.lower()
            if key not in properties:
                properties[key] = Property(
                    id=value.property_id,
                    name=value.property_name,
                    type=PropertyType.VARIATION if self.parent_id else PropertyType.PRODUCT,
                    value_type=value.value_type,
                )
            properties[key].values.append(value)
        product.properties = sorted(properties.values(), key=lambda prop: prop.name.lower())

        if with_relatives:
            parent = _loaded(self, "parent")
            if parent is not None:
                product.main_product = parent.to_model(with_relatives=False)
            product.variations = [
                variation.to_model(with_relatives=False)
                for variation in _loaded(self, "variations") or []
            ]
        return product

    @classmethod
    def from_model(cls, product: CatalogProduct) -> "ItemEntity":
        """Create entity from domain model.

        Inherited images, assets, reviews and property values are not stored.
        Sections that are None on the model are left unset on the entity.
        """
        entity = cls(
            id=product.id or new_id(),
            parent_id=product.main_product_id,
            **{name: getattr(product, name) for name in _ITEM_SCALARS},
        )
        if product.images is not None:
            entity.images = [ImageEntity.from_model(image) for image in product.images if not image.is_inherited]
        if product.assets is not None:
            entity.assets = [AssetEntity.from_model(asset) for asset in product.assets if not asset.is_inherited]
        if product.reviews is not None:
            entity.editorial_reviews = [
                EditorialReviewEntity.from_model(review)
                for review in product.reviews
                if not review.is_inherited
            ]
        if product.properties is not None:
            entity.property_values = [
                PropertyValueEntity.from_model(_with_property(value, prop))
                for prop in product.properties
                for value in prop.values
                if not value.is_inherited
            ]
        if product.links is not None:
            entity.category_links = [CategoryItemRelationEntity.from_model(link) for link in product.links]
        return entity

    def patch(self, target: "ItemEntity") -> None:
        """Copy values onto an existing entity.

        Only the child collections set on this entity replace the target's.
        """
        target.parent_id = self.parent_id
        for name in _ITEM_SCALARS:
            setattr(target, name, getattr(self, name))

        for name in ("images", "assets", "editorial_reviews", "property_values"):
            source = _loaded(self, name)
            if source is not None:
                setattr(target, name, _patch_collection(getattr(target, name), source))

        source_links = _loaded(self, "category_links")
        if source_links is None:
            return
        existing = {(link.catalog_id, link.category_id): link for link in target.category_links}
        links = []
        for link in source_links:
            current = existing.get((link.catalog_id, link.category_id))
            if current is None:
                links.append(link)
            else:
                link.patch(current)
                links.append(current)
        target.category_links = links


def _with_property(value: PropertyValue, prop: Property) -> PropertyValue:
    """Fill property reference fields a value may be missing."""
    if value.property_name and value.property_id and value.value_type == prop.value_type:
        return value
    filled = value.clone()
    filled.property_name = value.property_name or prop.name
    filled.property_id = value.property_id or prop.id
    filled.value_type = prop.value_type
    return filled
