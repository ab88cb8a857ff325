"""
============================================================
CRC CARD — infrastructure/repositories/postgres/event.py
============================================================
Class: PostgresEventRepository

Responsibilities:
  - Append events to the `event` table with a per-aggregate sequence number
    (1, 2, 3, ...), never duplicated under concurrent writers.
  - Serialize writers of one aggregate with pg_advisory_xact_lock; the unique
    constraint event_aggregate_sequence_unique is the backstop.
  - Retry the whole lock/sequence/insert attempt on a sequence conflict.
  - List an aggregate's events in sequence order; fetch one by id.

Collaborators:
  - infrastructure.db.rls (system_transaction, elevated_role)
  - infrastructure.services.retry (tenacity policy)
  - domain.sequencing.aggregate_lock_key
  - psycopg.types.json.Json (jsonb parameters)
  - crosscutting.metrics / crosscutting.logger

Constraints / Notes:
  - Writes run as the system role (RLS bypass), restored afterwards.
  - With an ambient connection every attempt (role switch included) runs in a
    savepoint: a conflict or a failed SET ROLE rolls back the attempt only,
    never the caller's transaction.
  - Queries ALWAYS parameterized.
============================================================
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional
from uuid import UUID

import psycopg
from psycopg.types.json import Json

from ....crosscutting.exceptions import (
    DatabaseError,
    SequenceConflictError,
    SequenceRetriesExhaustedError,
)
from ....crosscutting.logger import logger
from ....crosscutting.metrics import (
    observe_event_write_latency,
    record_event_appended,
    record_event_write_failure,
    record_sequence_conflict,
)
from ....domain.events import Event, NewEvent, require_aggregate_id
from ....domain.sequencing import aggregate_lock_key
from ...db.errors import DatabasePoolError
from ...db.rls import SYSTEM_ROLE, elevated_role, system_transaction
from ...services.retry import (
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY_SECONDS,
    create_sequence_retrying,
)

SEQUENCE_CONSTRAINT = "event_aggregate_sequence_unique"

_EVENT_COLUMNS = """
    id, event_type, event_version, aggregate_id, aggregate_type,
    aggregate_version, sequence_number, event_data, metadata,
    causation_id, correlation_id, organization_id, user_id, session_id,
    created_at, updated_at
"""

_LOCK_SQL = "SELECT pg_advisory_xact_lock(%s)"

_NEXT_SEQUENCE_SQL = """
    SELECT COALESCE(MAX(sequence_number), 0) + 1
    FROM event
    WHERE aggregate_id = %s
"""

_INSERT_SQL = f"""
    INSERT INTO event (
        event_type, event_version, aggregate_id, aggregate_type,
        aggregate_version, sequence_number, event_data, metadata,
        causation_id, correlation_id, organization_id, user_id, session_id
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
    RETURNING {_EVENT_COLUMNS}
"""


def is_sequence_violation(exc: psycopg.errors.UniqueViolation) -> bool:
    """True when the violated constraint is the per-aggregate sequence one."""
    constraint = getattr(exc.diag, "constraint_name", None)
    if constraint:
        return constraint == SEQUENCE_CONSTRAINT
    return SEQUENCE_CONSTRAINT in str(exc)


def _row_to_event(row) -> Event:
    return Event(
        id=row[0],
        event_type=row[1],
        event_version=row[2],
        aggregate_id=row[3],
        aggregate_type=row[4],
        aggregate_version=row[5],
        sequence_number=row[6],
        event_data=row[7] or {},
        metadata=row[8],
        causation_id=row[9],
        correlation_id=row[10],
        organization_id=row[11],
        user_id=row[12],
        session_id=row[13],
        created_at=row[14],
        updated_at=row[15],
    )


class PostgresEventRepository:
    """PostgreSQL event log (table `event`)."""

    def __init__(
        self,
        pool=None,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
        system_role: str = SYSTEM_ROLE,
        sleep: Callable[[float], None] = time.sleep,
    ):
        # Without a pool, every call must bring its own connection.
        self._pool = pool
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._system_role = system_role
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls, pool, settings, *, sleep: Callable[[float], None] = time.sleep
    ) -> "PostgresEventRepository":
        return cls(
            pool,
            max_attempts=settings.event_retry_max_attempts,
            base_delay=settings.event_retry_base_delay_seconds,
            max_delay=settings.event_retry_max_delay_seconds,
            system_role=settings.db_system_role,
            sleep=sleep,
        )

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def _get_pool(self):
        if self._pool is None:
            raise DatabaseError(
                "PostgresEventRepository has no pool; pass connection= explicitly"
            )
        return self._pool

    # ------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------
    def append(self, new_event: NewEvent, *, connection: Any | None = None) -> Event:
        """
        Persist new_event with the next sequence number of its aggregate.

        Raises:
            InvalidAggregateIdError: blank aggregate id (nothing written)
            RoleElevationError: SET ROLE failed (not retried)
            SequenceRetriesExhaustedError: every attempt conflicted
            DatabaseError: any other failure
        """
        aggregate_id = require_aggregate_id(new_event.aggregate_id)
        retrying = create_sequence_retrying(
            self._max_attempts, self._base_delay, self._max_delay, sleep=self._sleep
        )
        start = time.perf_counter()

        try:
            event = retrying(self._append_once, new_event, connection)
        except SequenceConflictError as exc:
            record_event_write_failure("retries_exhausted")
            logger.error(
                "Event sequence retries exhausted",
                extra={
                    "aggregate_id": aggregate_id,
                    "event_type": new_event.event_type,
                    "attempts": self._max_attempts,
                },
            )
            raise SequenceRetriesExhaustedError(
                aggregate_id, self._max_attempts, exc
            ) from exc
        except DatabaseError as exc:
            record_event_write_failure(exc.error_code.lower())
            raise
        except (psycopg.Error, DatabasePoolError) as exc:
            record_event_write_failure("database")
            logger.exception(
                "PostgresEventRepository: Failed to append event",
                extra={
                    "aggregate_id": aggregate_id,
                    "event_type": new_event.event_type,
                    "error": str(exc),
                },
            )
            raise DatabaseError(
                f"Failed to append event: {exc}", original_error=exc
            ) from exc

        observe_event_write_latency(time.perf_counter() - start)
        record_event_appended(event.aggregate_type)
        logger.info(
            "Event appended",
            extra={
                "event_id": str(event.id),
                "aggregate_id": event.aggregate_id,
                "event_type": event.event_type,
                "sequence_number": event.sequence_number,
            },
        )
        return event

    def _append_once(self, new_event: NewEvent, connection: Any | None) -> Event:
        if connection is not None:
            # Savepoint first: a failed SET ROLE must not abort the caller's transaction.
            with connection.transaction():
                with elevated_role(connection, self._system_role):
                    return self._sequence_and_insert(connection, new_event)

        with system_transaction(self._get_pool(), role=self._system_role) as conn:
            return self._sequence_and_insert(conn, new_event)

    def _sequence_and_insert(self, conn, new_event: NewEvent) -> Event:
        aggregate_id = new_event.aggregate_id

        conn.execute(_LOCK_SQL, (aggregate_lock_key(aggregate_id),))
        row = conn.execute(_NEXT_SEQUENCE_SQL, (aggregate_id,)).fetchone()
        sequence_number = int(row[0]) if row and row[0] is not None else 1

        try:
            inserted = conn.execute(
                _INSERT_SQL,
                (
                    new_event.event_type,
                    new_event.event_version,
                    aggregate_id,
                    new_event.aggregate_type,
                    new_event.aggregate_version,
                    sequence_number,
                    Json(new_event.event_data or {}),
                    Json(new_event.metadata) if new_event.metadata is not None else None,
                    new_event.causation_id,
                    new_event.correlation_id,
                    new_event.organization_id,
                    new_event.user_id,
                    new_event.session_id,
                ),
            ).fetchone()
        except psycopg.errors.UniqueViolation as exc:
            if not is_sequence_violation(exc):
                raise
            record_sequence_conflict()
            raise SequenceConflictError(
                aggregate_id, sequence_number, original_error=exc
            ) from exc

        return _row_to_event(inserted)

    # ------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------
    @contextmanager
    def _read_connection(self, connection: Any | None) -> Iterator:
        if connection is not None:
            yield connection
            return
        with system_transaction(self._get_pool(), role=self._system_role) as conn:
            yield conn

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

        try:
            with self._read_connection(connection) as conn:
                rows = conn.execute(
                    f"""
                    SELECT {_EVENT_COLUMNS}
                    FROM event
                    WHERE aggregate_id = %s AND sequence_number > %s
                    ORDER BY sequence_number ASC
                    LIMIT %s
                    """,
                    (aggregate_id, from_sequence, limit),
                ).fetchall()
        except (psycopg.Error, DatabasePoolError) as exc:
            logger.exception(
                "PostgresEventRepository: Failed to list events",
                extra={"aggregate_id": aggregate_id, "error": str(exc)},
            )
            raise DatabaseError(
                f"Failed to list events: {exc}", original_error=exc
            ) from exc

        return [_row_to_event(row) for row in rows]

    def get_event(
        self, event_id: UUID, *, connection: Any | None = None
    ) -> Optional[Event]:
        try:
            with self._read_connection(connection) as conn:
                row = conn.execute(
                    f"SELECT {_EVENT_COLUMNS} FROM event WHERE id = %s",
                    (event_id,),
                ).fetchone()
        except (psycopg.Error, DatabasePoolError) as exc:
            logger.exception(
                "PostgresEventRepository: Failed to get event",
                extra={"event_id": str(event_id), "error": str(exc)},
            )
            raise DatabaseError(
                f"Failed to get event: {exc}", original_error=exc
            ) from exc

        return _row_to_event(row) if row else None
