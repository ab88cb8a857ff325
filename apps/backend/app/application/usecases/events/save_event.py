"""
===============================================================================
USE CASE: Save Event (primary write path)
===============================================================================

Name:
    Save Event Use Case

Business Goal:
    Append one event to the log of an aggregate and return the persisted
    Event with its id and sequence number.

Why (Context):
    - Callers never choose sequence numbers: the repository assigns the next
      one under the aggregate's advisory lock.
    - An ambient connection lets the event commit (or roll back) together
      with the caller's own writes.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    SaveEventUseCase

Responsibilities:
    - Reject blank aggregate ids before touching the database.
    - Map SaveEventInput to a NewEvent.
    - Delegate the atomic append to EventRepository.

Collaborators:
    - EventRepository.append(new_event, connection=...)
    - domain.events.require_aggregate_id

Errors (propagated, never swallowed):
    - InvalidAggregateIdError, RoleElevationError,
      SequenceRetriesExhaustedError, DatabaseError
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from ....domain.events import (
    DEFAULT_AGGREGATE_VERSION,
    DEFAULT_EVENT_VERSION,
    Event,
    NewEvent,
    require_aggregate_id,
)
from ....domain.repositories import EventRepository


@dataclass(frozen=True)
class SaveEventInput:
    aggregate_id: str
    aggregate_type: str
    event_type: str
    event_data: dict[str, Any] = field(default_factory=dict)
    event_version: str = DEFAULT_EVENT_VERSION
    aggregate_version: int = DEFAULT_AGGREGATE_VERSION
    metadata: dict[str, Any] | None = None
    causation_id: UUID | None = None
    correlation_id: UUID | None = None
    organization_id: UUID | None = None
    user_id: UUID | None = None
    session_id: str | None = None


class SaveEventUseCase:
    """
    Use Case (Application Service / Command):
        Persists one event with the next sequence number of its aggregate.
    """

    def __init__(self, repository: EventRepository) -> None:
        self._repository = repository

    def execute(self, input_data: SaveEventInput, connection: Any | None = None) -> Event:
        aggregate_id = require_aggregate_id(input_data.aggregate_id)

        new_event = NewEvent(
            aggregate_id=aggregate_id,
            aggregate_type=input_data.aggregate_type,
            event_type=input_data.event_type,
            event_data=dict(input_data.event_data or {}),
            event_version=input_data.event_version,
            aggregate_version=input_data.aggregate_version,
            metadata=input_data.metadata,
            causation_id=input_data.causation_id,
            correlation_id=input_data.correlation_id,
            organization_id=input_data.organization_id,
            user_id=input_data.user_id,
            session_id=input_data.session_id,
        )
        return self._repository.append(new_event, connection=connection)
