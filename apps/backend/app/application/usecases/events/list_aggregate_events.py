"""
===============================================================================
USE CASE: List Aggregate Events (read side)
===============================================================================

Returns an aggregate's events ordered by sequence_number ascending, starting
after `from_sequence` (0 = from the beginning), at most `limit` of them.
Replaying an aggregate is paging with from_sequence = last seen number.
===============================================================================
"""

from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from ....domain.events import Event, require_aggregate_id
from ....domain.repositories import EventRepository

MAX_LIMIT = 1000


class ListAggregateEventsUseCase:
    def __init__(self, repository: EventRepository) -> None:
        self._repository = repository

    def execute(
        self,
        aggregate_id: str,
        *,
        from_sequence: int = 0,
        limit: int = 100,
        connection: Any | None = None,
    ) -> List[Event]:
        aggregate_id = require_aggregate_id(aggregate_id)
        if from_sequence < 0:
            raise ValueError("from_sequence must be >= 0")
        if not 0 < limit <= MAX_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_LIMIT}")

        return self._repository.list_events(
            aggregate_id,
            from_sequence=from_sequence,
            limit=limit,
            connection=connection,
        )


class GetEventUseCase:
    def __init__(self, repository: EventRepository) -> None:
        self._repository = repository

    def execute(
        self, event_id: UUID, *, connection: Any | None = None
    ) -> Optional[Event]:
        return self._repository.get_event(event_id, connection=connection)
