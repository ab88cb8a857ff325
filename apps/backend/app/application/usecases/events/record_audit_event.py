"""
===============================================================================
USE CASE: Record Audit Event (auth / organization audit path)
===============================================================================

Name:
    Record Audit Event Use Case

Business Goal:
    Write an auth or organization audit event (login, logout, session,
    token, organization lifecycle) to the event log.

Rules:
    - aggregate id = payload.aggregate_id, else context.user_id.
    - No aggregate id at all -> nothing is written, NO_OP_EVENT is returned
      and the skip is logged at WARNING (plus a metric).
    - event_data = payload fields + a "context" block (session, correlation,
      causation, ip, user agent).
    - IP / user agent are SHA-256 hashed when hash_client_data is on.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    RecordAuditEventUseCase

Collaborators:
    - EventRepository.append
    - domain.audit (EventContext, AuditPayload)
    - crosscutting.metrics.record_audit_event_skipped
===============================================================================
"""

from __future__ import annotations

import hashlib
from typing import Any

from ....crosscutting.logger import logger
from ....crosscutting.metrics import record_audit_event_skipped
from ....domain.audit import AuditPayload, EventContext
from ....domain.events import NO_OP_EVENT, Event, NewEvent, is_blank
from ....domain.repositories import EventRepository

_CLIENT_DATA_KEYS = ("ipAddress", "userAgent")


def hash_client_data(value: str | None) -> str | None:
    """SHA-256 hex digest of an IP / user agent (None stays None)."""
    if value is None:
        return None
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _hash_client_fields(data: dict[str, Any]) -> dict[str, Any]:
    hashed = dict(data)
    for key in _CLIENT_DATA_KEYS:
        if hashed.get(key) is not None:
            hashed[key] = hash_client_data(str(hashed[key]))
    return hashed


def resolve_aggregate_id(context: EventContext, payload: AuditPayload) -> str | None:
    aggregate_id = payload.aggregate_id
    if is_blank(aggregate_id) and context.user_id is not None:
        aggregate_id = str(context.user_id)
    return None if is_blank(aggregate_id) else aggregate_id


class RecordAuditEventUseCase:
    """
    Use Case (Application Service / Command):
        Turns (EventContext, payload) into an event log entry.
    """

    def __init__(
        self, repository: EventRepository, *, hash_client_data: bool = True
    ) -> None:
        self._repository = repository
        self._hash_client_data = hash_client_data

    def execute(
        self,
        context: EventContext,
        payload: AuditPayload,
        connection: Any | None = None,
    ) -> Event:
        aggregate_id = resolve_aggregate_id(context, payload)
        if aggregate_id is None:
            record_audit_event_skipped(payload.EVENT_TYPE)
            logger.warning(
                "Audit event skipped: no aggregate id",
                extra={
                    "event_type": payload.EVENT_TYPE,
                    "session_id": context.session_id,
                },
            )
            return NO_OP_EVENT

        payload_data = payload.to_event_data()
        context_data = context.to_event_data()
        if self._hash_client_data:
            payload_data = _hash_client_fields(payload_data)
            context_data = _hash_client_fields(context_data)

        new_event = NewEvent(
            aggregate_id=aggregate_id,
            aggregate_type=payload.AGGREGATE_TYPE,
            event_type=payload.EVENT_TYPE,
            event_data={**payload_data, "context": context_data},
            causation_id=context.causation_id,
            correlation_id=context.correlation_id,
            organization_id=context.organization_id
            or getattr(payload, "organization_id", None),
            user_id=context.user_id or getattr(payload, "user_id", None),
            session_id=context.session_id or getattr(payload, "session_id", None),
        )
        return self._repository.append(new_event, connection=connection)
