"""
Name: PostgresEventRepository Integration Tests

Responsibilities:
  - Verify sequencing against a real PostgreSQL (advisory lock + unique index)
  - Verify concurrent writers never duplicate a sequence number
  - Verify the ambient transaction path and role restoration
  - Verify no role is left on a pooled connection after an ambient append

Setup:
  RUN_INTEGRATION=1 DATABASE_URL=postgresql://... pytest -m integration
"""

import os

import pytest

# Skip BEFORE importing app.* to avoid triggering env validation during collection
if os.getenv("RUN_INTEGRATION") != "1":
    pytest.skip(
        "Set RUN_INTEGRATION=1 to run integration tests", allow_module_level=True
    )

from concurrent.futures import ThreadPoolExecutor
from uuid import uuid4

from app.application.usecases.events import RecordAuditEventUseCase
from app.audit import emit_audit_event
from app.crosscutting.config import get_settings
from app.crosscutting.exceptions import InvalidAggregateIdError
from app.domain.audit import EventContext, UserLogoutPayload, UserRole
from app.domain.events import NewEvent
from app.infrastructure.db import close_pool, create_pool
from app.infrastructure.db.rls import RLSContext, rls_transaction
from app.infrastructure.repositories.postgres import PostgresEventRepository

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("clean_events")]


def _new_event(aggregate_id: str = "order-42") -> NewEvent:
    return NewEvent(
        aggregate_id=aggregate_id,
        aggregate_type="order",
        event_type="OrderPlacedEvent",
        event_data={"total": 10},
    )


@pytest.fixture
def repository(db_pool) -> PostgresEventRepository:
    return PostgresEventRepository.from_settings(db_pool, get_settings())


def test_sequential_appends(repository):
    numbers = [repository.append(_new_event()).sequence_number for _ in range(5)]

    assert numbers == [1, 2, 3, 4, 5]


def test_concurrent_appends_have_no_duplicates(repository):
    writers = 8
    with ThreadPoolExecutor(max_workers=writers) as pool:
        futures = [pool.submit(repository.append, _new_event()) for _ in range(writers)]
        numbers = sorted(f.result().sequence_number for f in futures)

    assert numbers == list(range(1, writers + 1))


def test_blank_aggregate_writes_nothing(repository):
    with pytest.raises(InvalidAggregateIdError):
        repository.append(_new_event("  "))

    assert repository.list_events("order-42") == []


def test_ambient_transaction_restores_role(repository, db_pool):
    with db_pool.connection() as conn:
        with conn.transaction():
            before = conn.execute("SHOW role").fetchone()[0]
            event = repository.append(_new_event(), connection=conn)
            after = conn.execute("SHOW role").fetchone()[0]

    assert event.sequence_number == 1
    assert before == after
    assert repository.get_event(event.id) == event


@pytest.fixture
def single_connection_pool(apply_migrations):
    pool = create_pool(get_settings().database_url, min_size=1, max_size=1)
    yield pool
    close_pool(pool)


def test_tenant_transaction_append_leaves_no_role_on_the_connection(
    single_connection_pool,
):
    repository = PostgresEventRepository.from_settings(
        single_connection_pool, get_settings()
    )
    ctx = RLSContext(
        organization_id=uuid4(),
        user_id=uuid4(),
        user_role=UserRole.ORGANIZATION_MEMBER,
    )

    with rls_transaction(single_connection_pool, ctx) as conn:
        repository.append(_new_event(), connection=conn)
        assert conn.execute("SHOW role").fetchone()[0] == "authenticated"

    # max_size=1: this is the same physical connection
    with single_connection_pool.connection() as conn:
        assert conn.execute("SHOW role").fetchone()[0] == "none"


def test_failed_audit_emit_keeps_callers_transaction(db_pool):
    use_case = RecordAuditEventUseCase(
        PostgresEventRepository(db_pool, system_role="missing_role")
    )

    with db_pool.connection() as conn:
        with conn.transaction():
            result = emit_audit_event(
                use_case,
                EventContext(),
                UserLogoutPayload(user_id=uuid4()),
                connection=conn,
            )

            assert result is None
            assert conn.execute("SELECT 1").fetchone()[0] == 1
