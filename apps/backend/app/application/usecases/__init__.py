"""
Use Cases Layer (Business Operations)

This package exposes entry points for business logic, organized by feature.

Structure
---------
usecases/
└── events/         # Event log: save, audit, read

Usage
-----
    from app.application.usecases.events import SaveEventUseCase
    from app.application.usecases import RecordAuditEventUseCase
"""

from .events import (
    GetEventUseCase,
    ListAggregateEventsUseCase,
    RecordAuditEventUseCase,
    SaveEventInput,
    SaveEventUseCase,
)

__all__ = [
    "SaveEventInput",
    "SaveEventUseCase",
    "RecordAuditEventUseCase",
    "ListAggregateEventsUseCase",
    "GetEventUseCase",
]
