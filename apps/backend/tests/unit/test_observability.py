"""
Name: Logging and Metrics Tests

Responsibilities:
  - JSONFormatter: one JSON line, context enrichment, secret redaction
  - Metrics: event log counters exposed in Prometheus format
"""

import json
import logging

import pytest
from app.context import clear_context, set_request_context, set_tenant_context
from app.crosscutting.logger import JSONFormatter
from app.crosscutting.metrics import (
    generate_metrics,
    get_metrics_registry,
    record_audit_event_skipped,
    record_event_appended,
    record_sequence_conflict,
)


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("event-log", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestJSONFormatter:
    def teardown_method(self):
        clear_context()

    def test_formats_json_with_context(self):
        set_request_context(request_id="req-1", correlation_id="corr-1")
        set_tenant_context(organization_id="org-1", user_id="user-1")

        payload = json.loads(JSONFormatter().format(_record("Event appended", sequence_number=3)))

        assert payload["message"] == "Event appended"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "req-1"
        assert payload["organization_id"] == "org-1"
        assert payload["sequence_number"] == 3

    def test_redacts_secrets(self):
        payload = json.loads(
            JSONFormatter().format(
                _record("x", database_url="postgresql://u:p@h/db", password="hunter2")
            )
        )

        assert payload["database_url"] == "***REDACTED***"
        assert payload["password"] == "***REDACTED***"


@pytest.mark.unit
class TestMetrics:
    def test_counters_are_exposed(self):
        registry = get_metrics_registry()
        before = registry.get_sample_value(
            "events_appended_total", {"aggregate_type": "order"}
        ) or 0.0

        record_event_appended("order")
        record_sequence_conflict()
        record_audit_event_skipped("UserLoginFailedEvent")

        assert registry.get_sample_value(
            "events_appended_total", {"aggregate_type": "order"}
        ) == before + 1
        body, content_type = generate_metrics()
        assert b"event_sequence_conflicts_total" in body
        assert b"audit_events_skipped_total" in body
        assert content_type.startswith("text/plain")
