"""
===============================================================================
CRC CARD — infrastructure/db/rls.py
===============================================================================

Component:
  Row Level Security scoped transactions

Responsibilities:
  - Open transactions carrying the tenant context the RLS policies read
    (app.current_organization_id, app.current_user_id, ...).
  - Run a unit of work under a privileged role (system / system_admin) and
    always restore the previous role on the way out.
  - Read back the RLS context of a session (diagnostics / tests).

Collaborators:
  - psycopg connection (via InstrumentedConnectionPool)
  - app.context (mirrors organization/user into log context)
  - crosscutting.exceptions.RoleElevationError
  - infrastructure.repositories.postgres.event (system role writes)

Constraints:
  - Tenant values always travel as bind parameters (set_config), never as
    interpolated SQL.
  - Role names come from validated Settings and are quoted as identifiers.
  - app.current_* settings are transaction-local: nothing leaks to the next
    user of a pooled connection.
===============================================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Final, Iterator
from uuid import UUID

import psycopg
from psycopg import pq

from ...context import set_tenant_context
from ...crosscutting.exceptions import RoleElevationError
from ...crosscutting.logger import logger
from ...domain.audit import UserRole

SYSTEM_ROLE: Final[str] = "system"
SYSTEM_ADMIN_ROLE: Final[str] = "system_admin"
AUTHENTICATED_ROLE: Final[str] = "authenticated"

# What `SHOW role` answers when no SET ROLE is in effect.
ROLE_NONE: Final[str] = "none"

_SETTING_ORGANIZATION: Final[str] = "app.current_organization_id"
_SETTING_USER: Final[str] = "app.current_user_id"
_SETTING_USER_ROLE: Final[str] = "app.current_user_role"
_SETTING_SESSION: Final[str] = "app.current_session_id"


@dataclass(frozen=True)
class RLSContext:
    organization_id: UUID | str
    user_id: UUID | str | None = None
    user_role: UserRole | None = None
    is_system_admin: bool = False
    session_id: str | None = None


# =============================================================================
# Role helpers
# =============================================================================


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def current_role(conn) -> str:
    row = conn.execute("SHOW role").fetchone()
    return row[0] if row and row[0] else ROLE_NONE


def _set_role(conn, role: str, *, local: bool = False) -> None:
    scope = "LOCAL " if local else ""
    target = "NONE" if role == ROLE_NONE else quote_ident(role)
    conn.execute(f"SET {scope}ROLE {target}")


def _restore_role(conn, prior: str, *, local: bool = False) -> None:
    if prior == ROLE_NONE and not local:
        conn.execute("RESET ROLE")
    else:
        _set_role(conn, prior, local=local)


def _in_transaction(conn) -> bool:
    return conn.info.transaction_status != pq.TransactionStatus.IDLE


def _transaction_failed(conn) -> bool:
    return conn.info.transaction_status == pq.TransactionStatus.INERROR


def _set_local(conn, name: str, value: str) -> None:
    conn.execute("SELECT set_config(%s, %s, true)", (name, value))


@contextmanager
def elevated_role(conn, role: str = SYSTEM_ROLE) -> Iterator:
    """
    Run the block as `role` and restore the previous role on every exit path.

    Inside a transaction both the switch and the restore are SET LOCAL: a
    session-level SET would override the caller's own SET LOCAL ROLE and
    outlive the commit on the pooled connection. Outside a transaction the
    switch is session-level and RESET ROLE / SET ROLE undo it.

    On an aborted transaction the restore is skipped: the rollback that
    follows reverts the SET ROLE anyway, and any statement would fail.

    Raises:
        RoleElevationError: SET ROLE failed (nothing inside the block ran).
    """
    local = _in_transaction(conn)
    try:
        prior = current_role(conn)
        _set_role(conn, role, local=local)
    except psycopg.Error as exc:
        logger.error(
            "Failed to set database role",
            extra={"role": role, "error": str(exc)},
        )
        raise RoleElevationError(
            f"Failed to set {role} role", original_error=exc
        ) from exc

    logger.debug("Database role elevated", extra={"role": role, "prior_role": prior})

    try:
        yield conn
    except BaseException:
        if not _transaction_failed(conn):
            try:
                _restore_role(conn, prior, local=local)
            except psycopg.Error as restore_exc:
                logger.warning(
                    "Could not restore database role after failure",
                    extra={"role": prior, "error": str(restore_exc)},
                )
        raise

    _restore_role(conn, prior, local=local)
    logger.debug("Database role restored", extra={"role": prior, "local": local})


# =============================================================================
# Scoped transactions
# =============================================================================


@contextmanager
def rls_transaction(
    pool,
    context: RLSContext | UUID | str,
    *,
    authenticated_role: str = AUTHENTICATED_ROLE,
    system_admin_role: str = SYSTEM_ADMIN_ROLE,
) -> Iterator:
    """
    Transaction with the tenant context the RLS policies read.

    A bare organization id is accepted for callers without user info.
    """
    ctx = context if isinstance(context, RLSContext) else RLSContext(organization_id=context)

    with pool.connection() as conn:
        with conn.transaction():
            try:
                _set_local(conn, _SETTING_ORGANIZATION, str(ctx.organization_id))
                if ctx.user_id:
                    _set_local(conn, _SETTING_USER, str(ctx.user_id))
                if ctx.user_role:
                    _set_local(conn, _SETTING_USER_ROLE, ctx.user_role.value)
                if ctx.session_id:
                    _set_local(conn, _SETTING_SESSION, ctx.session_id)

                if ctx.user_role == UserRole.SYSTEM_ADMIN or ctx.is_system_admin:
                    _set_role(conn, system_admin_role, local=True)
                elif ctx.user_role:
                    _set_role(conn, authenticated_role, local=True)

                set_tenant_context(
                    organization_id=str(ctx.organization_id),
                    user_id=str(ctx.user_id or ""),
                )
                logger.debug(
                    "RLS context set",
                    extra={
                        "user_role": ctx.user_role.value if ctx.user_role else None,
                        "is_system_admin": ctx.is_system_admin,
                    },
                )

                yield conn
            except Exception:
                logger.exception(
                    "RLS transaction failed",
                    extra={"organization_id": str(ctx.organization_id)},
                )
                raise


@contextmanager
def _role_transaction(pool, role: str, label: str) -> Iterator:
    with pool.connection() as conn:
        with conn.transaction():
            try:
                with elevated_role(conn, role):
                    logger.debug(f"{label} transaction started (RLS bypassed)")
                    yield conn
                logger.debug(f"{label} transaction completed, role reset")
            except Exception as exc:
                logger.warning(
                    f"{label} transaction rolled back",
                    extra={"error_type": type(exc).__name__},
                )
                raise


def system_transaction(pool, *, role: str = SYSTEM_ROLE):
    """Transaction as the system role, for event log writes."""
    return _role_transaction(pool, role, "System")


def system_admin_transaction(pool, *, role: str = SYSTEM_ADMIN_ROLE):
    """Transaction as system admin (bypasses RLS). Seeding / maintenance only."""
    return _role_transaction(pool, role, "System admin")


@contextmanager
def public_transaction(pool) -> Iterator:
    """Transaction with every app.current_* setting cleared (public data)."""
    with pool.connection() as conn:
        with conn.transaction():
            try:
                for name in (_SETTING_ORGANIZATION, _SETTING_USER, _SETTING_SESSION):
                    _set_local(conn, name, "")
                logger.debug("Public transaction started (no RLS context)")
                yield conn
            except Exception:
                logger.exception("Public transaction failed")
                raise


def get_current_rls_context(conn) -> dict[str, str | None]:
    """RLS settings currently visible to the session (None when unset)."""
    row = conn.execute(
        """
        SELECT current_setting(%s, true),
               current_setting(%s, true),
               current_setting(%s, true)
        """,
        (_SETTING_ORGANIZATION, _SETTING_USER, _SETTING_SESSION),
    ).fetchone()

    organization_id, user_id, session_id = row if row else (None, None, None)
    return {
        "organization_id": organization_id or None,
        "user_id": user_id or None,
        "session_id": session_id or None,
    }
