"""
===============================================================================
CRC CARD — domain/events.py
===============================================================================

Module:
    Event log entities (domain)

Responsibilities:
    - Define the immutable Event record and the NewEvent write request.
    - Validate aggregate ids before any write is attempted.
    - Provide the NO_OP_EVENT sentinel returned when an audit event is skipped.

Collaborators:
    - domain.repositories.EventRepository: persists NewEvent -> Event.
    - application.usecases.events: builds NewEvent from inputs/payloads.
    - infra repos: map rows to Event.

Notes:
    - Events are append-only: never updated, never deleted.
    - sequence_number is assigned by the repository, never by the caller.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Final
from uuid import UUID

from ..crosscutting.exceptions import InvalidAggregateIdError

DEFAULT_EVENT_VERSION: Final[str] = "1.0"
DEFAULT_AGGREGATE_VERSION: Final[int] = 1


@dataclass(frozen=True, slots=True)
class NewEvent:
    """
    Write request for the event log.

    Everything except the sequence number, id and timestamps, which are
    assigned at write time.
    """

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


@dataclass(frozen=True, slots=True)
class Event:
    """Persisted event (immutable fact)."""

    id: UUID
    event_type: str
    event_version: str
    aggregate_id: str
    aggregate_type: str
    aggregate_version: int
    sequence_number: int
    event_data: dict[str, Any]
    metadata: dict[str, Any] | None = None
    causation_id: UUID | None = None
    correlation_id: UUID | None = None
    organization_id: UUID | None = None
    user_id: UUID | None = None
    session_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class _NoOpEvent:
    """Falsy singleton: "the audit event was intentionally not written"."""

    _instance: "_NoOpEvent | None" = None

    def __new__(cls) -> "_NoOpEvent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_OP_EVENT"


NO_OP_EVENT: Final[_NoOpEvent] = _NoOpEvent()


def is_blank(value: str | None) -> bool:
    return value is None or not str(value).strip()


def require_aggregate_id(aggregate_id: str | None) -> str:
    """
    Return the aggregate id or raise InvalidAggregateIdError.

    The id is returned unchanged (not stripped): it is the key the
    uniqueness constraint sees.
    """
    if is_blank(aggregate_id):
        raise InvalidAggregateIdError(
            "Invalid aggregate_id provided for sequence number generation"
        )
    return str(aggregate_id)
