"""
===============================================================================
CRC CARD — infrastructure/db/instrumentation.py
===============================================================================

Clases:
  - TimedConnection (Proxy)
  - InstrumentedConnectionPool (Facade/Proxy)

Responsabilidades:
  - Medir duración de conn.execute(...) sin tocar repositorios.
  - Loguear slow queries (baja cardinalidad: solo el tipo de statement).
  - Healthcheck opcional al adquirir conexión (SELECT 1).
  - Rechazar checkouts después de close().

Colaboradores:
  - crosscutting.logger
  - crosscutting.metrics.observe_db_query_duration
  - psycopg_pool.ConnectionPool (pool real)
===============================================================================
"""

from __future__ import annotations

import time
from typing import Any, ContextManager

import psycopg

from ...crosscutting.logger import logger
from ...crosscutting.metrics import observe_db_query_duration
from .errors import DatabaseConnectionError, PoolClosedError


def _statement_kind(sql: Any) -> str:
    """
    First keyword of the statement (SELECT, INSERT, SET, ...).
    """
    parts = str(sql).lstrip().split(None, 1)
    return parts[0].upper() if parts else "UNKNOWN"


class TimedConnection:
    """
    Connection proxy: wraps execute() only, delegates everything else.
    """

    def __init__(self, inner_conn, *, slow_query_seconds: float) -> None:
        self._conn = inner_conn
        self._slow = slow_query_seconds

    def execute(self, sql, *args, **kwargs):
        start = time.perf_counter()
        try:
            return self._conn.execute(sql, *args, **kwargs)
        finally:
            elapsed = time.perf_counter() - start
            kind = _statement_kind(sql)
            observe_db_query_duration(kind, elapsed)
            if elapsed >= self._slow:
                logger.warning(
                    "Slow DB query",
                    extra={"kind": kind, "seconds": round(elapsed, 4)},
                )

    def __getattr__(self, item: str):
        return getattr(self._conn, item)


class _ConnectionContext(ContextManager[TimedConnection]):
    """
    Wraps the pool's own context manager.
    """

    def __init__(
        self, inner_ctx, *, slow_query_seconds: float, healthcheck: bool
    ) -> None:
        self._inner_ctx = inner_ctx
        self._slow = slow_query_seconds
        self._healthcheck = healthcheck

    def __enter__(self) -> TimedConnection:
        try:
            conn = self._inner_ctx.__enter__()
        except psycopg.Error as exc:
            raise DatabaseConnectionError("Could not acquire a DB connection.") from exc

        if self._healthcheck:
            try:
                # Leaves no transaction open behind the caller's back.
                conn.execute("SELECT 1")
                conn.rollback()
            except psycopg.Error as exc:
                self._inner_ctx.__exit__(type(exc), exc, exc.__traceback__)
                raise DatabaseConnectionError(
                    "DB connection failed its health check."
                ) from exc

        return TimedConnection(conn, slow_query_seconds=self._slow)

    def __exit__(self, exc_type, exc, tb) -> bool:
        return self._inner_ctx.__exit__(exc_type, exc, tb)


class InstrumentedConnectionPool:
    """
    Facade over the real pool.

    Repositories keep doing `with pool.connection() as conn:`, but `conn` is
    a TimedConnection.
    """

    def __init__(
        self,
        inner_pool,
        *,
        slow_query_seconds: float = 0.25,
        healthcheck: bool = True,
    ) -> None:
        self._pool = inner_pool
        self._slow_seconds = slow_query_seconds
        self._healthcheck = healthcheck
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def connection(self, *args, **kwargs) -> ContextManager[TimedConnection]:
        if self._closed:
            raise PoolClosedError("DB pool is closed.")
        inner_ctx = self._pool.connection(*args, **kwargs)
        return _ConnectionContext(
            inner_ctx,
            slow_query_seconds=self._slow_seconds,
            healthcheck=self._healthcheck,
        )

    def close(self) -> None:
        self._closed = True
        self._pool.close()

    # Everything else is delegated to the real pool.
    def __getattr__(self, item: str):
        return getattr(self._pool, item)
