"""Domain events for catalog changes.

Every write through a catalog service publishes a *changing* event before
the unit of work is committed and a *changed* event after the cache has
been invalidated. Both carry the same list of changed entries.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from catalog_items.domain.base import DomainEvent, Entity

TModel = TypeVar("TModel", bound=Entity)


class EntryState(str, Enum):
    """What happened to a changed entry."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass
class GenericChangedEntry(Generic[TModel]):
    """A model together with its state before the change.

    Attributes:
        new_entry: Model as saved (or as deleted).
        old_entry: Model as it was before a modification.
        entry_state: Kind of change.
    """

    new_entry: TModel
    entry_state: EntryState
    old_entry: TModel | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert entry to a serializable summary."""
        return {
            "id": self.new_entry.id,
            "entry_state": self.entry_state.value,
        }


@dataclass(frozen=True)
class ChangeEvent(DomainEvent):
    """Base for events that carry changed entries."""

    changed_entries: tuple[GenericChangedEntry, ...] = field(default_factory=tuple)

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {"changed_entries": [entry.to_dict() for entry in self.changed_entries]}


# ============================================================================
# Product Events
# ============================================================================


@dataclass(frozen=True)
class ProductChangingEvent(ChangeEvent):
    """Event raised before product changes are committed."""

    event_type: ClassVar[str] = "product.changing"


@dataclass(frozen=True)
class ProductChangedEvent(ChangeEvent):
    """Event raised after product changes are committed."""

    event_type: ClassVar[str] = "product.changed"


# ============================================================================
# Catalog Events
# ============================================================================


@dataclass(frozen=True)
class CatalogChangingEvent(ChangeEvent):
    """Event raised before catalog changes are committed."""

    event_type: ClassVar[str] = "catalog.changing"


@dataclass(frozen=True)
class CatalogChangedEvent(ChangeEvent):
    """Event raised after catalog changes are committed."""

    event_type: ClassVar[str] = "catalog.changed"


# ============================================================================
# Category Events
# ============================================================================


@dataclass(frozen=True)
class CategoryChangingEvent(ChangeEvent):
    """Event raised before category changes are committed."""

    event_type: ClassVar[str] = "category.changing"


@dataclass(frozen=True)
class CategoryChangedEvent(ChangeEvent):
    """Event raised after category changes are committed."""

    event_type: ClassVar[str] = "category.changed"
