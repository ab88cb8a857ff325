"""
===============================================================================
CRC CARD — domain/__init__.py
===============================================================================

Module:
    Domain layer exports (public domain API)

Responsibilities:
    - Centralize exports for clean imports in application/infrastructure.
    - Keep the domain "surface area" stable.

Collaborators:
    - domain.events: Event, NewEvent, NO_OP_EVENT
    - domain.audit: EventContext and audit payloads
    - domain.repositories: persistence ports
    - domain.sequencing: advisory lock keys

Rules:
    - Only re-exports domain contracts/entities.
    - Never import infrastructure here.
===============================================================================
"""

from .audit import AuditPayload, EventContext
from .events import NO_OP_EVENT, Event, NewEvent, require_aggregate_id
from .repositories import EventRepository
from .sequencing import aggregate_lock_key

__all__ = [
    "AuditPayload",
    "Event",
    "EventContext",
    "EventRepository",
    "NO_OP_EVENT",
    "NewEvent",
    "aggregate_lock_key",
    "require_aggregate_id",
]
