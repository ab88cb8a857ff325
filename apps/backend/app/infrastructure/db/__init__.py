"""Infra DB: pool lifecycle + RLS-scoped transactions + typed errors."""

from .errors import DatabaseConnectionError, DatabasePoolError, PoolClosedError
from .pool import close_pool, create_pool, create_pool_from_settings
from .rls import (
    RLSContext,
    elevated_role,
    get_current_rls_context,
    public_transaction,
    rls_transaction,
    system_admin_transaction,
    system_transaction,
)

__all__ = [
    "create_pool",
    "create_pool_from_settings",
    "close_pool",
    "RLSContext",
    "elevated_role",
    "get_current_rls_context",
    "public_transaction",
    "rls_transaction",
    "system_admin_transaction",
    "system_transaction",
    "DatabasePoolError",
    "PoolClosedError",
    "DatabaseConnectionError",
]
