"""Product code generator."""

import random
import string

from catalog_items.domain.models import CatalogProduct
from catalog_items.infrastructure.config import settings

LETTER_PLACEHOLDER = "A"
DIGIT_PLACEHOLDER = "9"


class SkuGenerator:
    """Generates product codes from a format string.

    In the format, ``A`` stands for a random uppercase letter and ``9`` for
    a random digit; every other character is copied as is. The default
    format ``AAA-99999999`` yields codes such as ``QXF-20481937``.
    """

    def __init__(self, sku_format: str | None = None, rng: random.Random | None = None) -> None:
        """Initialize generator.

        Args:
            sku_format: Code format; defaults to the configured format.
            rng: Random source, for reproducible codes in tests.
        """
        self.sku_format = sku_format or settings.sku_format
        self._rng = rng or random.Random()

    def generate_sku(self, product: CatalogProduct | None = None) -> str:
        """Generate a new code.

        Args:
            product: Product the code is meant for (not used by this format).

        Returns:
            Generated code.
        """
        chars = []
        for placeholder in self.sku_format:
            if placeholder == LETTER_PLACEHOLDER:
                chars.append(self._rng.choice(string.ascii_uppercase))
            elif placeholder == DIGIT_PLACEHOLDER:
                chars.append(self._rng.choice(string.digits))
            else:
                chars.append(placeholder)
        return "".join(chars)
