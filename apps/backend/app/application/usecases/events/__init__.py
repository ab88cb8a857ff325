"""
===============================================================================
EVENT LOG USE CASES PACKAGE (Public API / Exports)
===============================================================================

Component:
    events usecases package (__init__.py)

Responsibilities:
    - Re-export the event log use cases and their input DTOs.
    - Define __all__ as the package's public API.
===============================================================================
"""

from __future__ import annotations

from .list_aggregate_events import GetEventUseCase, ListAggregateEventsUseCase
from .record_audit_event import (
    RecordAuditEventUseCase,
    hash_client_data,
    resolve_aggregate_id,
)
from .save_event import SaveEventInput, SaveEventUseCase

__all__ = [
    "SaveEventInput",
    "SaveEventUseCase",
    "RecordAuditEventUseCase",
    "ListAggregateEventsUseCase",
    "GetEventUseCase",
    "hash_client_data",
    "resolve_aggregate_id",
]
