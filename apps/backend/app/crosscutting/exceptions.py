# apps/backend/app/crosscutting/exceptions.py
"""
===============================================================================
MODULE: Typed backend exceptions
===============================================================================

Goal
----
Internal exceptions with:
- a stable error_code
- an error_id to correlate with log lines
- a human message (never secrets)

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Component:
  BackendError + subclasses

Responsibilities:
  - Standardize internal errors raised by repositories and use cases
  - Classify event log failures (invalid input, conflict, privilege, exhausted)

Collaborators:
  - infrastructure/repositories/* (raise)
  - application/usecases/events/* (propagate)
  - crosscutting/logger.py
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True)
class ErrorResponse:
    """Minimal, consistent error payload for outer layers."""

    error_code: str
    message: str
    error_id: str

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "error_id": self.error_id,
        }


class BackendError(Exception):
    """
    Base for internal errors: error_code + error_id + message, plus the
    underlying error when one exists.
    """

    error_code: str = "BACKEND_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: BaseException | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error_code=self.error_code, message=self.message, error_id=self.error_id
        )


class DatabaseError(BackendError):
    """DB failures (connection, query, timeout, pool)."""

    error_code: str = "DATABASE_ERROR"


class EventStoreError(BackendError):
    """Base for event log failures."""

    error_code: str = "EVENT_STORE_ERROR"


class InvalidAggregateIdError(EventStoreError, ValueError):
    """Empty or blank aggregate id. Rejected before any write is attempted."""

    error_code: str = "INVALID_AGGREGATE_ID"


class SequenceConflictError(EventStoreError):
    """
    Another writer committed the same (aggregate_id, sequence_number).

    Recoverable: the writer retries the whole sequence-then-insert attempt.
    """

    error_code: str = "SEQUENCE_CONFLICT"

    def __init__(
        self,
        aggregate_id: str,
        sequence_number: int,
        original_error: BaseException | None = None,
    ):
        self.aggregate_id = aggregate_id
        self.sequence_number = sequence_number
        super().__init__(
            f"sequence {sequence_number} already taken for aggregate {aggregate_id}",
            original_error=original_error,
        )


class SequenceRetriesExhaustedError(EventStoreError):
    """All attempts hit a sequence conflict. original_error is the last one."""

    error_code: str = "SEQUENCE_RETRIES_EXHAUSTED"

    def __init__(self, aggregate_id: str, attempts: int, last_error: BaseException):
        self.aggregate_id = aggregate_id
        self.attempts = attempts
        super().__init__(
            f"Failed to save event for aggregate {aggregate_id} "
            f"after {attempts} attempts",
            original_error=last_error,
        )


class RoleElevationError(DatabaseError):
    """SET ROLE to the privileged role failed. Never retried."""

    error_code: str = "ROLE_ELEVATION_FAILED"
