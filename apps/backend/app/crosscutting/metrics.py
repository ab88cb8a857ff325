"""
===============================================================================
ARCHIVO: crosscutting/metrics.py
===============================================================================

CRC CARD (Módulo)
-------------------------------------------------------------------------------
Nombre:
    Métricas (Prometheus), observabilidad de bajo acoplamiento

Responsabilidades:
    - Definir las métricas del event log en un registry privado.
    - Proveer funciones pequeñas y estables para registrar eventos/duraciones.
    - Cuidar cardinalidad (NO aggregate_id, NO user_id, NO SQL completo).
    - Generar el texto de exposición para un endpoint /metrics o un script.

Colaboradores:
    - infrastructure/db/instrumentation: observa duración de queries.
    - infrastructure/repositories/*/event: appends, conflictos, fallos.
    - application/usecases/events/record_audit_event: eventos de auditoría omitidos.
===============================================================================
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_registry = CollectorRegistry()

# ------------------------
# Event log
# ------------------------
_events_appended_total = Counter(
    "events_appended_total",
    "Events persisted to the event log",
    ["aggregate_type"],
    registry=_registry,
)

_sequence_conflicts_total = Counter(
    "event_sequence_conflicts_total",
    "Unique (aggregate_id, sequence_number) violations hit while appending",
    registry=_registry,
)

_event_write_failures_total = Counter(
    "event_write_failures_total",
    "Event appends that failed after all handling",
    ["reason"],
    registry=_registry,
)

_audit_events_skipped_total = Counter(
    "audit_events_skipped_total",
    "Audit events skipped because no aggregate id could be derived",
    ["event_type"],
    registry=_registry,
)

_event_write_latency = Histogram(
    "event_write_latency_seconds",
    "Latency of a full event append, retries included (seconds)",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
    registry=_registry,
)

# ------------------------
# DB (low cardinality)
# ------------------------
_db_query_duration = Histogram(
    "db_query_duration_seconds",
    "Duration of DB statements by kind (seconds)",
    ["kind"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
    registry=_registry,
)


def record_event_appended(aggregate_type: str) -> None:
    _events_appended_total.labels(aggregate_type=aggregate_type or "unknown").inc()


def record_sequence_conflict() -> None:
    _sequence_conflicts_total.inc()


def record_event_write_failure(reason: str) -> None:
    _event_write_failures_total.labels(reason=reason).inc()


def record_audit_event_skipped(event_type: str) -> None:
    _audit_events_skipped_total.labels(event_type=event_type or "unknown").inc()


def observe_event_write_latency(seconds: float) -> None:
    _event_write_latency.observe(seconds)


def observe_db_query_duration(kind: str, seconds: float) -> None:
    _db_query_duration.labels(kind=kind).observe(seconds)


def get_metrics_registry() -> CollectorRegistry:
    return _registry


def generate_metrics() -> tuple[bytes, str]:
    """Return (body, content_type) in Prometheus exposition format."""
    return generate_latest(_registry), CONTENT_TYPE_LATEST
