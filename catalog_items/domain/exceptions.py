"""Domain exceptions.

All domain-level errors raised by the catalog services. The API layer
renders any ``DomainError`` as a JSON error body.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    error_code = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Validation Errors
# ============================================================================


class ValidationError(DomainError):
    """Raised when a model fails validation before it is saved."""

    error_code = "VALIDATION_ERROR"

    def __init__(self, errors: list[str], message: str | None = None) -> None:
        """Initialize validation error.

        Args:
            errors: Individual validation failures.
            message: Summary message; defaults to the joined failures.
        """
        super().__init__(
            message or "Validation failed: " + "; ".join(errors),
            details={"errors": errors},
        )
        self.errors = errors


# ============================================================================
# Dependency Errors
# ============================================================================


class DependencyNotFoundError(DomainError):
    """Raised when a product references a catalog or category that does not exist."""

    error_code = "DEPENDENCY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str | None, message: str) -> None:
        """Initialize dependency error.

        Args:
            entity_type: Kind of missing entity ("catalog", "category").
            entity_id: Id that could not be resolved.
            message: Human-readable error message.
        """
        super().__init__(
            message,
            details={"entity_type": entity_type, "entity_id": entity_id},
        )
