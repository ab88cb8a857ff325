"""
Name: Best-effort Audit Emission Tests

Responsibilities:
  - emit_audit_event never raises on event log failures
  - emit_audit_event returns the written event on success
  - a failed emit inside the caller's transaction leaves it usable
"""

from unittest.mock import Mock
from uuid import uuid4

import pytest
from app.application.usecases.events import RecordAuditEventUseCase
from app.audit import emit_audit_event
from app.crosscutting.exceptions import RoleElevationError, SequenceRetriesExhaustedError
from app.domain.audit import EventContext, UserLogoutPayload
from app.infrastructure.repositories.in_memory import InMemoryEventRepository
from app.infrastructure.repositories.postgres import PostgresEventRepository


@pytest.mark.unit
class TestEmitAuditEvent:
    def test_returns_event_on_success(self):
        use_case = RecordAuditEventUseCase(InMemoryEventRepository())
        user_id = uuid4()

        event = emit_audit_event(use_case, EventContext(), UserLogoutPayload(user_id=user_id))

        assert event.aggregate_id == str(user_id)
        assert event.event_type == "UserLogoutEvent"

    def test_none_use_case_is_noop(self):
        assert emit_audit_event(None, EventContext(), UserLogoutPayload(user_id=uuid4())) is None

    @pytest.mark.parametrize(
        "error",
        [
            RoleElevationError("Failed to set system role"),
            SequenceRetriesExhaustedError("u", 5, RuntimeError("conflict")),
        ],
    )
    def test_failures_are_logged_and_swallowed(self, error, caplog):
        use_case = Mock(spec=RecordAuditEventUseCase)
        use_case.execute.side_effect = error

        with caplog.at_level("WARNING", logger="event-log"):
            result = emit_audit_event(
                use_case, EventContext(), UserLogoutPayload(user_id=uuid4())
            )

        assert result is None
        assert any(r.getMessage() == "Audit event write failed" for r in caplog.records)

    def test_programming_errors_propagate(self):
        use_case = Mock(spec=RecordAuditEventUseCase)
        use_case.execute.side_effect = TypeError("bug")

        with pytest.raises(TypeError):
            emit_audit_event(use_case, EventContext(), UserLogoutPayload(user_id=uuid4()))

    def test_failed_emit_keeps_callers_transaction_alive(
        self, fake_connection, fake_db, fake_sleep
    ):
        repository = PostgresEventRepository(system_role="missing_role", sleep=fake_sleep)
        use_case = RecordAuditEventUseCase(repository)
        fake_db.role_error = True

        with fake_connection.transaction():
            result = emit_audit_event(
                use_case,
                EventContext(),
                UserLogoutPayload(user_id=uuid4()),
                connection=fake_connection,
            )
            fake_db.role_error = False

            # the business flow goes on in the same transaction
            assert result is None
            assert fake_connection.execute("SELECT 1").fetchone() == (1,)

        assert fake_db.rows == []
