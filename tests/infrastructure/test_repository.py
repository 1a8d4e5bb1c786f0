"""Tests for the catalog repository against SQLite."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_items.domain.response_groups import ItemResponseGroup
from catalog_items.infrastructure.repository import catalog_repository_factory


class TestGetItemByIds:
    """Tests for loading products."""

    @pytest.mark.asyncio
    async def test_item_info_loads_no_sections(self, seeded: async_sessionmaker[AsyncSession]) -> None:
        """Only scalars and the main product are loaded for ItemInfo."""
        async with catalog_repository_factory(seeded)() as repository:
            entities = await repository.get_item_by_ids(["v1"], "ItemInfo")

        product = entities[0].to_model()
        assert product.code == "PHONE-1-RED"
        assert product.properties == []
        assert product.main_product is not None
        assert product.main_product.id == "p1"

    @pytest.mark.asyncio
    async def test_item_large_loads_sections_and_variations(
        self, seeded: async_sessionmaker[AsyncSession]
    ) -> None:
        """ItemLarge loads every section and the variations."""
        async with catalog_repository_factory(seeded)() as repository:
            entities = await repository.get_item_by_ids(["p1"], ItemResponseGroup.ITEM_LARGE)

        product = entities[0].to_model()
        assert [image.url for image in product.images] == ["images/p1.png"]
        assert [review.content for review in product.reviews] == ["Great phone"]
        assert [prop.name for prop in product.properties] == ["Color"]
        assert [variation.id for variation in product.variations] == ["v1"]

    @pytest.mark.asyncio
    async def test_unknown_ids(self, seeded: async_sessionmaker[AsyncSession]) -> None:
        """Unknown ids are skipped."""
        async with catalog_repository_factory(seeded)() as repository:
            assert await repository.get_item_by_ids(["missing"]) == []
            assert await repository.get_item_by_ids([]) == []


class TestCodesAndHierarchy:
    """Tests for code lookup and category ancestry."""

    @pytest.mark.asyncio
    async def test_codes_match_case_insensitively(self, seeded: async_sessionmaker[AsyncSession]) -> None:
        """Codes resolve regardless of case."""
        async with catalog_repository_factory(seeded)() as repository:
            rows = await repository.get_item_ids_by_codes("catalog-1", ["phone-1", "CASE-1"])
        assert sorted(rows) == [("CASE-1", "p2"), ("PHONE-1", "p1")]

    @pytest.mark.asyncio
    async def test_codes_are_scoped_to_catalog(self, seeded: async_sessionmaker[AsyncSession]) -> None:
        """Codes of other catalogs do not resolve."""
        async with catalog_repository_factory(seeded)() as repository:
            assert await repository.get_item_ids_by_codes("virtual-1", ["PHONE-1"]) == []

    @pytest.mark.asyncio
    async def test_category_parent_ids(self, seeded: async_sessionmaker[AsyncSession]) -> None:
        """Ancestors are collected up to the root."""
        async with catalog_repository_factory(seeded)() as repository:
            parents = await repository.get_category_parent_ids(["cat-phones"])
        assert parents == {"cat-phones": "cat-root", "cat-root": None}


class TestRemoveItems:
    """Tests for deleting products."""

    @pytest.mark.asyncio
    async def test_variations_are_removed_with_main_product(
        self, seeded: async_sessionmaker[AsyncSession]
    ) -> None:
        """Removing a main product removes its variations."""
        factory = catalog_repository_factory(seeded)
        async with factory() as repository:
            removed = await repository.remove_items(["p1"])
            await repository.commit()

        assert sorted(removed) == ["p1", "v1"]
        async with factory() as repository:
            remaining = await repository.get_item_by_ids(["p1", "v1", "p2"], "ItemInfo")
        assert [entity.id for entity in remaining] == ["p2"]
