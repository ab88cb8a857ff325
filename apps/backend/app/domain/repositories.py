"""
CRC — domain/repositories.py

Name
- Domain Repository Interfaces (Protocols)

Responsibilities
- Define the persistence contract of the event log (port).
- Keep application/domain independent from infrastructure (PostgreSQL, in-memory).
- Enable dependency inversion and straightforward unit testing.

Collaborators
- domain.events: Event, NewEvent
- infrastructure.repositories: postgres / in_memory implementations

Constraints
- Pure interfaces only: no side effects, no infrastructure imports, no SQL.
- Implementations MUST match method signatures exactly.

Notes
- `connection` is an optional ambient transaction. Implementations that have
  no notion of one (in-memory) ignore it.
"""

from typing import Any, List, Optional, Protocol
from uuid import UUID

from .events import Event, NewEvent


class EventRepository(Protocol):
    """
    R: Interface for the append-only event log.

    Implementations must provide:
      - Per-aggregate sequence numbering (1, 2, 3, ... never duplicated)
      - Atomic sequence-then-insert under concurrent writers
      - Bounded retry on sequence conflicts
    """

    def append(self, new_event: NewEvent, *, connection: Any | None = None) -> Event:
        """
        R: Assign the next sequence number for new_event.aggregate_id and
        persist the event atomically.

        Raises:
            InvalidAggregateIdError: blank aggregate id (nothing written)
            RoleElevationError: privileged role could not be set
            SequenceRetriesExhaustedError: every attempt hit a conflict
            DatabaseError: any other persistence failure
        """
        ...

    def list_events(
        self,
        aggregate_id: str,
        *,
        from_sequence: int = 0,
        limit: int = 100,
        connection: Any | None = None,
    ) -> List[Event]:
        """
        R: Events of an aggregate with sequence_number > from_sequence,
        ordered by sequence_number ascending.
        """
        ...

    def get_event(
        self, event_id: UUID, *, connection: Any | None = None
    ) -> Optional[Event]:
        """R: Fetch one event by id (None if missing)."""
        ...
