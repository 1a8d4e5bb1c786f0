"""Validation of products before they are saved.

Validators collect every failure into a ``ValidationResult``;
``validate_and_raise`` turns failures into a ``ValidationError``.
"""

import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

from catalog_items.domain.exceptions import ValidationError
from catalog_items.domain.models import (
    PRODUCT_PROPERTY_TYPES,
    CatalogProduct,
    Property,
    PropertyValue,
    PropertyValueType,
)

CODE_MAX_LENGTH = 64
NAME_MAX_LENGTH = 1024
GTIN_MAX_LENGTH = 64
SHORT_TEXT_MAX_LENGTH = 512

# Characters not allowed anywhere in a product code
FORBIDDEN_CODE_CHARS = frozenset("$+;=%{}[]|\\/@ ~!^*&()?:'<>,")

TEXT_VALUE_TYPES = (
    PropertyValueType.SHORT_TEXT,
    PropertyValueType.LONG_TEXT,
    PropertyValueType.HTML,
)

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
_BOOLEAN_STRINGS = frozenset(["true", "false", "1", "0", "yes", "no"])


@dataclass
class ValidationResult:
    """Outcome of a validation run.

    Attributes:
        errors: Failure messages, empty when valid.
    """

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Whether no failure was found."""
        return not self.errors

    def add(self, message: str) -> None:
        """Record a failure."""
        self.errors.append(message)


class Validator(Protocol):
    def validate(self, instance: Any) -> ValidationResult: ...


# ============================================================================
# Product
# ============================================================================


class ProductValidator:
    """Checks the scalar fields of a product."""

    def validate(self, product: CatalogProduct) -> ValidationResult:
        """Validate a product.

        Args:
            product: Product to check.

        Returns:
            Validation result listing every failure.
        """
        result = ValidationResult()

        if not product.catalog_id:
            result.add("Catalog id is required")

        if not product.name:
            result.add("Name is required")
        elif len(product.name) > NAME_MAX_LENGTH:
            result.add(f"Name must not exceed {NAME_MAX_LENGTH} characters")

        if not product.code:
            result.add("Code is required")
        else:
            if len(product.code) > CODE_MAX_LENGTH:
                result.add(f"Code must not exceed {CODE_MAX_LENGTH} characters")
            forbidden = sorted({char for char in product.code if char in FORBIDDEN_CODE_CHARS})
            if forbidden:
                result.add(f"Code '{product.code}' contains forbidden characters: {''.join(forbidden)!r}")

        if product.gtin and len(product.gtin) > GTIN_MAX_LENGTH:
            result.add(f"GTIN must not exceed {GTIN_MAX_LENGTH} characters")

        if (
            product.id
            and product.main_product_id
            and product.id.lower() == product.main_product_id.lower()
        ):
            result.add("A product cannot be its own main product")

        if (
            product.min_quantity
            and product.max_quantity
            and product.min_quantity > 0
            and product.max_quantity > 0
            and product.min_quantity > product.max_quantity
        ):
            result.add("Min quantity must not exceed max quantity")

        return result


# ============================================================================
# Property values
# ============================================================================


def _is_empty(value: PropertyValue) -> bool:
    return value.value is None or (isinstance(value.value, str) and not value.value.strip())


def _parses_as(value: Any, value_type: PropertyValueType) -> bool:
    match value_type:
        case PropertyValueType.NUMBER:
            if isinstance(value, bool):
                return False
            try:
                return Decimal(str(value)).is_finite()
            except InvalidOperation:
                return False
        case PropertyValueType.INTEGER:
            if isinstance(value, bool):
                return False
            if isinstance(value, int):
                return True
            return isinstance(value, str) and bool(_INTEGER_PATTERN.match(value.strip()))
        case PropertyValueType.BOOLEAN:
            if isinstance(value, bool):
                return True
            return isinstance(value, str) and value.strip().lower() in _BOOLEAN_STRINGS
        case PropertyValueType.DATE_TIME:
            if isinstance(value, datetime):
                return True
            if not isinstance(value, str):
                return False
            try:
                datetime.fromisoformat(value)
            except ValueError:
                return False
            return True
        case _:
            return True


class PropertyValuesValidator:
    """Checks the property values of a product against their definitions."""

    def validate(self, owner: Any) -> ValidationResult:
        """Validate the values of every property of ``owner``.

        Args:
            owner: Object with a ``properties`` list (a product); None
                means the properties were not loaded.

        Returns:
            Validation result listing every failure.
        """
        result = ValidationResult()
        for prop in owner.properties or []:
            self._validate_property(prop, result)
        return result

    def _validate_property(self, prop: Property, result: ValidationResult) -> None:
        values = [value for value in prop.values if not _is_empty(value)]

        if prop.required and not prop.is_read_only and prop.type in PRODUCT_PROPERTY_TYPES and not values:
            result.add(f"Property '{prop.name}' is required")

        if not prop.multivalue and not prop.dictionary:
            per_language = Counter((value.language_code or "").lower() for value in values)
            if any(count > 1 for count in per_language.values()):
                result.add(f"Property '{prop.name}' accepts a single value per language")

        for value in values:
            self._validate_value(prop, value, result)

    def _validate_value(self, prop: Property, value: PropertyValue, result: ValidationResult) -> None:
        if not _parses_as(value.value, prop.value_type):
            result.add(f"Value {value.value!r} of property '{prop.name}' is not a valid {prop.value_type.value}")
            return

        if prop.value_type not in TEXT_VALUE_TYPES:
            return

        text = str(value.value)
        if prop.value_type == PropertyValueType.SHORT_TEXT and len(text) > SHORT_TEXT_MAX_LENGTH:
            result.add(f"Value of property '{prop.name}' must not exceed {SHORT_TEXT_MAX_LENGTH} characters")

        rule = prop.validation_rule
        if rule is None:
            return
        if rule.char_count_min is not None and len(text) < rule.char_count_min:
            result.add(f"Value of property '{prop.name}' must have at least {rule.char_count_min} characters")
        if rule.char_count_max is not None and len(text) > rule.char_count_max:
            result.add(f"Value of property '{prop.name}' must have at most {rule.char_count_max} characters")
        if rule.reg_exp and re.fullmatch(rule.reg_exp, text) is None:
            result.add(f"Value of property '{prop.name}' does not match pattern {rule.reg_exp!r}")


def validate_and_raise(validator: Validator, instances: Sequence[Any]) -> None:
    """Validate instances and raise on the first invalid one.

    Args:
        validator: Validator to apply.
        instances: Objects to validate.

    Raises:
        ValidationError: If any instance is invalid.
    """
    for instance in instances:
        result = validator.validate(instance)
        if not result.is_valid:
            raise ValidationError(result.errors)
