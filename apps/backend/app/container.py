"""
===============================================================================
CRC CARD — app/container.py (Composition Root / manual DI)
===============================================================================

Responsibilities:
  - Compose dependencies (pool, repository, use cases) following DIP.
  - Own the DB pool: created lazily on first use, closed by close().
  - Centralize runtime decisions based on Settings (postgres vs memory,
    role names, log level / format).

Collaborators:
  - app.crosscutting.config.get_settings
  - app.infrastructure.db (create_pool_from_settings, close_pool, rls)
  - app.crosscutting.logger.setup_logger (log level / format from Settings)
  - app.infrastructure.repositories.* (implementations)
  - app.application.usecases.events (use cases)

Patterns:
  - Composition Root
  - Dependency Inversion (use cases depend on EventRepository)
  - Lazy singleton via lru_cache (get_container)

Notes:
  - No business logic here.
  - No module-level pool: the Container instance holds it.
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .application.usecases.events import (
    GetEventUseCase,
    ListAggregateEventsUseCase,
    RecordAuditEventUseCase,
    SaveEventUseCase,
)
from .crosscutting.config import Settings, get_settings
from .crosscutting.logger import logger, setup_logger
from .domain.repositories import EventRepository
from .infrastructure.db import close_pool, create_pool_from_settings
from .infrastructure.db.rls import RLSContext, rls_transaction, system_admin_transaction
from .infrastructure.db.instrumentation import InstrumentedConnectionPool
from .infrastructure.repositories import (
    InMemoryEventRepository,
    PostgresEventRepository,
)


class Container:
    """Holds the process-wide resources. Call close() at shutdown."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        setup_logger(settings=self.settings)
        self._pool: InstrumentedConnectionPool | None = None
        self._repository: EventRepository | None = None

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------
    @property
    def uses_postgres(self) -> bool:
        return self.settings.event_store_backend == "postgres"

    @property
    def pool(self) -> InstrumentedConnectionPool:
        if self._pool is None:
            self._pool = create_pool_from_settings(self.settings)
        return self._pool

    @property
    def event_repository(self) -> EventRepository:
        if self._repository is None:
            if self.uses_postgres:
                self._repository = PostgresEventRepository.from_settings(
                    self.pool, self.settings
                )
            else:
                logger.info("Using in-memory event store")
                self._repository = InMemoryEventRepository.from_settings(
                    self.settings
                )
        return self._repository

    # ------------------------------------------------------------------
    # Role-scoped transactions (configured role names)
    # ------------------------------------------------------------------
    def tenant_transaction(self, context: RLSContext):
        """rls_transaction() with the roles from Settings."""
        return rls_transaction(
            self.pool,
            context,
            authenticated_role=self.settings.db_authenticated_role,
            system_admin_role=self.settings.db_system_admin_role,
        )

    def system_admin_transaction(self):
        return system_admin_transaction(
            self.pool, role=self.settings.db_system_admin_role
        )

    # ------------------------------------------------------------------
    # Use cases
    # ------------------------------------------------------------------
    def save_event_use_case(self) -> SaveEventUseCase:
        return SaveEventUseCase(self.event_repository)

    def record_audit_event_use_case(self) -> RecordAuditEventUseCase:
        return RecordAuditEventUseCase(
            self.event_repository,
            hash_client_data=self.settings.audit_hash_client_data,
        )

    def list_aggregate_events_use_case(self) -> ListAggregateEventsUseCase:
        return ListAggregateEventsUseCase(self.event_repository)

    def get_event_use_case(self) -> GetEventUseCase:
        return GetEventUseCase(self.event_repository)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        close_pool(self._pool)
        self._pool = None
        self._repository = None

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@lru_cache(maxsize=1)
def get_container() -> Container:
    return Container()
