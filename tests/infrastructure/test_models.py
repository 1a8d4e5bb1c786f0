"""Tests for ORM entities and their domain conversions."""

from catalog_items.domain.models import (
    CatalogProduct,
    CategoryLink,
    Image,
    Property,
    PropertyType,
    PropertyValue,
    PropertyValueType,
)
from catalog_items.infrastructure.models import (
    CategoryItemRelationEntity,
    EditorialReviewEntity,
    ImageEntity,
    ItemEntity,
    PropertyValueEntity,
)


def _product() -> CatalogProduct:
    return CatalogProduct(
        id="p1",
        code="PHONE-1",
        name="Smartphone",
        catalog_id="catalog-1",
        images=[
            Image(id="own", url="https://cdn.example.com/assets/a.png", relative_url="a.png"),
            Image(id="inherited", url="b.png", is_inherited=True),
        ],
        properties=[
            Property(
                id="prop-weight",
                name="Weight",
                value_type=PropertyValueType.NUMBER,
                values=[PropertyValue(value="1.5")],
            ),
            Property(
                name="Color",
                values=[
                    PropertyValue(property_name="Color", value="Black"),
                    PropertyValue(property_name="Color", value="Red", is_inherited=True),
                ],
            ),
        ],
        links=[CategoryLink(catalog_id="virtual-1", category_id="cat-sale")],
    )


class TestItemEntityFromModel:
    """Tests for building item rows from products."""

    def test_inherited_sections_are_not_stored(self) -> None:
        """Only own images and values become rows."""
        entity = ItemEntity.from_model(_product())
        assert [image.id for image in entity.images] == ["own"]
        assert [value.short_text_value for value in entity.property_values if value.name == "Color"] == ["Black"]

    def test_relative_image_url_is_stored(self) -> None:
        """The relative path replaces the resolved URL."""
        entity = ItemEntity.from_model(_product())
        assert entity.images[0].url == "a.png"

    def test_values_take_property_reference(self) -> None:
        """Values without name or id get them from their property."""
        entity = ItemEntity.from_model(_product())
        weight = next(value for value in entity.property_values if value.name == "Weight")
        assert weight.property_id == "prop-weight"
        assert weight.value_type == "Number"
        assert str(weight.decimal_value) == "1.5"

    def test_links_are_stored(self) -> None:
        """Category links become relation rows."""
        entity = ItemEntity.from_model(_product())
        assert [(link.catalog_id, link.category_id) for link in entity.category_links] == [
            ("virtual-1", "cat-sale")
        ]

    def test_transient_product_gets_id(self) -> None:
        """New products receive a generated id."""
        entity = ItemEntity.from_model(CatalogProduct(code="NEW", name="New", catalog_id="catalog-1"))
        assert entity.id

    def test_unloaded_sections_are_left_unset(self) -> None:
        """Sections that are None on the product are not assigned."""
        product = _product()
        product.images = None
        product.properties = None
        product.links = None

        entity = ItemEntity.from_model(product)
        original = ItemEntity(
            id="p1",
            code="PHONE-1",
            name="Old",
            catalog_id="catalog-1",
            images=[ImageEntity(id="img-1", url="p1.png")],
            editorial_reviews=[EditorialReviewEntity(id="rev-1", content="Great")],
            property_values=[PropertyValueEntity(id="pv-1", name="Color", short_text_value="Black")],
            category_links=[CategoryItemRelationEntity(id="link-1", catalog_id="virtual-1")],
        )
        entity.patch(original)

        assert original.name == "Smartphone"
        assert [image.id for image in original.images] == ["img-1"]
        assert [value.id for value in original.property_values] == ["pv-1"]
        assert [link.id for link in original.category_links] == ["link-1"]
        assert original.editorial_reviews == []


class TestItemEntityToModel:
    """Tests for converting item rows to products."""

    def test_values_are_grouped_by_property(self) -> None:
        """Values of one property name form one property."""
        entity = ItemEntity(
            id="v1",
            code="V1",
            name="Variation",
            catalog_id="catalog-1",
            parent_id="p1",
            property_values=[
                PropertyValueEntity(id="a", name="Color", value_type="ShortText", short_text_value="Red"),
                PropertyValueEntity(id="b", name="color", value_type="ShortText", short_text_value="Blue"),
                PropertyValueEntity(id="c", name="Size", value_type="Integer", integer_value=42),
            ],
        )

        product = entity.to_model()

        assert product.main_product_id == "p1"
        assert [prop.name for prop in product.properties] == ["Color", "Size"]
        assert [value.value for value in product.properties[0].values] == ["Red", "Blue"]
        assert product.properties[0].type == PropertyType.VARIATION
        assert product.properties[1].values[0].value == 42

    def test_unset_sections_stay_empty(self) -> None:
        """Relationships that were never loaded convert to empty lists."""
        product = ItemEntity(id="p1", code="P1", name="Product", catalog_id="catalog-1").to_model()
        assert product.images == []
        assert product.main_product is None
        assert product.variations == []


class TestPatch:
    """Tests for copying changes onto loaded rows."""

    def test_patch_updates_children_by_id(self) -> None:
        """Children with known ids are updated in place; others are replaced."""
        original = ItemEntity(
            id="p1",
            code="P1",
            name="Old",
            catalog_id="catalog-1",
            images=[
                ImageEntity(id="keep", url="old.png"),
                ImageEntity(id="drop", url="gone.png"),
            ],
        )
        kept = original.images[0]
        modified = ItemEntity(
            id="p1",
            code="P1",
            name="New",
            catalog_id="catalog-1",
            images=[
                ImageEntity(id="keep", url="new.png"),
                ImageEntity(id="add", url="added.png"),
            ],
        )

        modified.patch(original)

        assert original.name == "New"
        assert [image.id for image in original.images] == ["keep", "add"]
        assert original.images[0] is kept
        assert kept.url == "new.png"
