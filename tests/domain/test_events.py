"""Tests for change events and domain exceptions."""

from catalog_items.domain.events import (
    EntryState,
    GenericChangedEntry,
    ProductChangedEvent,
    ProductChangingEvent,
)
from catalog_items.domain.exceptions import DependencyNotFoundError, DomainError, ValidationError
from catalog_items.domain.models import CatalogProduct


class TestChangeEvents:
    """Tests for change event serialization."""

    def test_to_dict(self) -> None:
        """Events serialize their entries."""
        entry = GenericChangedEntry(
            new_entry=CatalogProduct(id="p1", name="New"),
            old_entry=CatalogProduct(id="p1", name="Old"),
            entry_state=EntryState.MODIFIED,
        )
        event = ProductChangedEvent(changed_entries=(entry,))

        data = event.to_dict()

        assert data["event_type"] == "product.changed"
        assert data["payload"] == {"changed_entries": [{"id": "p1", "entry_state": "modified"}]}
        assert "event_id" in data
        assert "occurred_at" in data

    def test_event_types(self) -> None:
        """Changing and changed events are distinct types."""
        assert ProductChangingEvent.event_type == "product.changing"
        assert ProductChangedEvent.event_type == "product.changed"

    def test_events_get_unique_ids(self) -> None:
        """Each event instance has its own id."""
        assert ProductChangedEvent().event_id != ProductChangedEvent().event_id


class TestDomainErrors:
    """Tests for domain exceptions."""

    def test_validation_error_joins_messages(self) -> None:
        """The summary lists every failure."""
        error = ValidationError(["Name is required", "Code is required"])
        assert error.message == "Validation failed: Name is required; Code is required"
        assert error.errors == ["Name is required", "Code is required"]
        assert error.details == {"errors": error.errors}
        assert error.error_code == "VALIDATION_ERROR"
        assert isinstance(error, DomainError)

    def test_dependency_not_found_details(self) -> None:
        """Missing dependencies carry their type and id."""
        error = DependencyNotFoundError("catalog", "missing", "catalog with key missing doesn't exist")
        assert error.details == {"entity_type": "catalog", "entity_id": "missing"}
        assert str(error) == "catalog with key missing doesn't exist"
