"""Tests for product code generation."""

import random
import re

from catalog_items.application.sku_generator import SkuGenerator
from catalog_items.domain.models import CatalogProduct


class TestSkuGenerator:
    """Tests for SkuGenerator."""

    def test_default_format(self) -> None:
        """Default codes are three letters, a dash and eight digits."""
        sku = SkuGenerator("AAA-99999999").generate_sku(CatalogProduct())
        assert re.fullmatch(r"[A-Z]{3}-\d{8}", sku)

    def test_literal_characters_are_kept(self) -> None:
        """Characters other than A and 9 are copied."""
        sku = SkuGenerator("SKU_A9").generate_sku()
        assert re.fullmatch(r"SKU_[A-Z]\d", sku)

    def test_seeded_generation_is_reproducible(self) -> None:
        """The same seed produces the same codes."""
        first = SkuGenerator("AAA-999", rng=random.Random(42)).generate_sku()
        second = SkuGenerator("AAA-999", rng=random.Random(42)).generate_sku()
        assert first == second

    def test_configured_format_is_default(self) -> None:
        """Without a format the configured one is used."""
        from catalog_items.infrastructure.config import settings

        assert SkuGenerator().sku_format == settings.sku_format
