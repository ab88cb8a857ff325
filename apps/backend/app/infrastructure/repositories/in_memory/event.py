"""
============================================================
CRC CARD — infrastructure/repositories/in_memory/event.py
============================================================
Class: InMemoryEventRepository

Responsibilities:
  - Event log in memory (unit tests / local dev with
    EVENT_STORE_BACKEND=memory).
  - Same sequencing semantics as Postgres: per-aggregate lock (advisory lock
    equivalent), MAX + 1, uniqueness check (unique index equivalent), bounded
    retry on conflict.

Collaborators:
  - domain.events (Event, NewEvent, require_aggregate_id)
  - infrastructure.services.retry (same tenacity policy)

Constraints / Notes:
  - Thread-safe.
  - serialize_writers=False drops the per-aggregate lock, leaving only the
    uniqueness check: racing writers then conflict and go through the retry
    path.
  - `connection` is accepted and ignored.
  - Data is lost on process restart. NOT FOR PRODUCTION.
============================================================
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import asdict
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

from ....crosscutting.exceptions import (
    SequenceConflictError,
    SequenceRetriesExhaustedError,
)
from ....crosscutting.logger import logger
from ....crosscutting.metrics import (
    record_event_appended,
    record_event_write_failure,
    record_sequence_conflict,
)
from ....domain.events import Event, NewEvent, require_aggregate_id
from ...services.retry import (
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY_SECONDS,
    create_sequence_retrying,
)


class InMemoryEventRepository:
    """
    Thread-safe in-memory event log.

    Mental model:
    - _events is the "table" (aggregate_id -> events in sequence order).
    - _table_lock guards the table itself (the unique index).
    - _aggregate_locks serialize writers of one aggregate (the advisory lock).
    """

    def __init__(
        self,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        serialize_writers: bool = True,
    ) -> None:
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sleep = sleep
        self._serialize_writers = serialize_writers

        self._table_lock = Lock()
        self._locks_guard = Lock()
        self._aggregate_locks: Dict[str, Lock] = {}
        self._events: Dict[str, List[Event]] = defaultdict(list)
        self._by_id: Dict[UUID, Event] = {}

    @classmethod
    def from_settings(
        cls, settings, *, sleep: Callable[[float], None] = time.sleep
    ) -> "InMemoryEventRepository":
        return cls(
            max_attempts=settings.event_retry_max_attempts,
            base_delay=settings.event_retry_base_delay_seconds,
            max_delay=settings.event_retry_max_delay_seconds,
            sleep=sleep,
        )

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def _aggregate_lock(self, aggregate_id: str) -> Lock:
        with self._locks_guard:
            lock = self._aggregate_locks.get(aggregate_id)
            if lock is None:
                lock = self._aggregate_locks[aggregate_id] = Lock()
            return lock

    def _next_sequence(self, aggregate_id: str) -> int:
        with self._table_lock:
            events = self._events.get(aggregate_id)
            return events[-1].sequence_number + 1 if events else 1

    def _insert(self, new_event: NewEvent, sequence_number: int) -> Event:
        now = datetime.now(timezone.utc)
        with self._table_lock:
            events = self._events[new_event.aggregate_id]
            if any(e.sequence_number == sequence_number for e in events):
                record_sequence_conflict()
                raise SequenceConflictError(new_event.aggregate_id, sequence_number)

            fields = asdict(new_event)
            fields["event_data"] = dict(new_event.event_data or {})
            event = Event(
                id=uuid4(),
                sequence_number=sequence_number,
                created_at=now,
                updated_at=now,
                **fields,
            )
            events.append(event)
            events.sort(key=lambda e: e.sequence_number)
            self._by_id[event.id] = event
            return event

    def _append_once(self, new_event: NewEvent) -> Event:
        if not self._serialize_writers:
            return self._insert(new_event, self._next_sequence(new_event.aggregate_id))

        with self._aggregate_lock(new_event.aggregate_id):
            return self._insert(new_event, self._next_sequence(new_event.aggregate_id))

    def append(self, new_event: NewEvent, *, connection: Any | None = None) -> Event:
        aggregate_id = require_aggregate_id(new_event.aggregate_id)
        retrying = create_sequence_retrying(
            self._max_attempts, self._base_delay, self._max_delay, sleep=self._sleep
        )
        try:
            event = retrying(self._append_once, new_event)
        except SequenceConflictError as exc:
            record_event_write_failure("retries_exhausted")
            raise SequenceRetriesExhaustedError(
                aggregate_id, self._max_attempts, exc
            ) from exc

        record_event_appended(event.aggregate_type)
        logger.debug(
            "Event appended (in-memory)",
            extra={
                "aggregate_id": aggregate_id,
                "sequence_number": event.sequence_number,
            },
        )
        return event

    def list_events(
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
        if limit <= 0:
            raise ValueError("limit must be > 0")

        with self._table_lock:
            events = [
                e
                for e in self._events.get(aggregate_id, [])
                if e.sequence_number > from_sequence
            ]
        return events[:limit]

    def get_event(
        self, event_id: UUID, *, connection: Any | None = None
    ) -> Optional[Event]:
        with self._table_lock:
            return self._by_id.get(event_id)

    def count(self) -> int:
        with self._table_lock:
            return len(self._by_id)
