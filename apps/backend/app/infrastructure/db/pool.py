"""
===============================================================================
CRC CARD — infrastructure/db/pool.py
===============================================================================

Component:
  PostgreSQL connection pool (explicit lifecycle)

Responsibilities:
  - Build, expose and close the connection pool.
  - Configure every connection: statement_timeout.
  - Return an instrumented pool (observability without touching repos).

Collaborators:
  - psycopg_pool.ConnectionPool
  - infrastructure/db/instrumentation.InstrumentedConnectionPool
  - app/container.Container (owns the pool: opens at start, closes at stop)

Principles:
  - No module-level pool: whoever creates it passes it down and closes it.
  - Fail-fast (bad config, use after close)
===============================================================================
"""

from __future__ import annotations

from functools import partial

from psycopg_pool import ConnectionPool

from ...crosscutting.logger import logger
from .instrumentation import InstrumentedConnectionPool


def _configure_connection(conn, *, statement_timeout_ms: int) -> None:
    """
    Configure a pooled connection when the pool creates it.

    statement_timeout bounds any lock wait, including pg_advisory_xact_lock.
    """
    if statement_timeout_ms > 0:
        conn.execute(f"SET statement_timeout = {int(statement_timeout_ms)}")
        conn.commit()


def create_pool(
    database_url: str,
    *,
    min_size: int,
    max_size: int,
    statement_timeout_ms: int = 0,
    slow_query_seconds: float = 0.25,
    healthcheck: bool = True,
) -> InstrumentedConnectionPool:
    """
    Open a pool. The caller owns it and must close_pool() it.
    """
    if max_size < max(min_size, 1):
        raise ValueError("max_size must be >= min_size and >= 1")

    logger.info(
        "Opening DB pool",
        extra={"min_size": min_size, "max_size": max_size},
    )

    real_pool = ConnectionPool(
        conninfo=database_url,
        min_size=min_size,
        max_size=max_size,
        configure=partial(
            _configure_connection, statement_timeout_ms=statement_timeout_ms
        ),
        open=True,
    )

    pool = InstrumentedConnectionPool(
        real_pool,
        slow_query_seconds=slow_query_seconds,
        healthcheck=healthcheck,
    )

    logger.info(
        "DB pool opened",
        extra={"min_size": min_size, "max_size": max_size},
    )
    return pool


def create_pool_from_settings(settings) -> InstrumentedConnectionPool:
    """create_pool() with the values of app.crosscutting.config.Settings."""
    return create_pool(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        statement_timeout_ms=settings.db_statement_timeout_ms,
        slow_query_seconds=settings.db_slow_query_seconds,
        healthcheck=settings.db_healthcheck_on_acquire,
    )


def close_pool(pool: InstrumentedConnectionPool | None) -> None:
    """
    Close the pool (idempotent).
    """
    if pool is None or pool.closed:
        return
    logger.info("Closing DB pool")
    pool.close()
    logger.info("DB pool closed")
