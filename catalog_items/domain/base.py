"""Base classes for the domain layer.

Provides the entity and domain event abstractions shared by the
catalog models and change notifications.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, TypeVar
from uuid import UUID, uuid4

E = TypeVar("E", bound="Entity")


# ============================================================================
# Entity Base
# ============================================================================


@dataclass(eq=False, kw_only=True)
class Entity:
    """Base class for entities.

    Entities have identity that persists across state changes.
    Two persisted entities are equal if they have the same type and id,
    regardless of their other attributes. Transient entities (no id yet)
    are only equal to themselves.

    Attributes:
        id: Unique identifier, ``None`` until the entity is persisted.
    """

    id: str | None = None

    @property
    def is_transient(self) -> bool:
        """Whether the entity has not been assigned an id yet."""
        return not self.id

    def clone(self: E) -> E:
        """Create a deep copy of the entity graph."""
        return copy.deepcopy(self)

    def __eq__(self, other: object) -> bool:
        """Compare entities by identity.

        Args:
            other: Object to compare with.

        Returns:
            True if other is same type with same id.
        """
        if not isinstance(other, self.__class__):
            return False
        if self.is_transient or other.is_transient:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash entity by identity.

        Returns:
            Hash of the entity id.
        """
        if self.is_transient:
            return id(self)
        return hash((self.__class__.__name__, self.id))


# ============================================================================
# Domain Event Base
# ============================================================================


@dataclass(frozen=True)
class DomainEvent(ABC):
    """Base class for domain events.

    Domain events represent something significant that happened
    in the domain. They are immutable and contain all information
    about what happened.

    Attributes:
        event_id: Unique identifier for this event instance.
        event_type: String identifier for the event type (set by subclass).
        occurred_at: Timestamp when the event occurred.
    """

    event_type: ClassVar[str]

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert event to dictionary for serialization.

        Returns:
            Dictionary representation of the event.
        """
        return {
            "event_id": str(self.event_id),
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": self._payload(),
        }

    @abstractmethod
    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload data.

        Returns:
            Dictionary with event-specific data.
        """
        pass
