"""
===============================================================================
TARJETA CRC — app/context.py (Contexto por request / por job)
===============================================================================

Responsabilidades:
  - Mantener el contexto del request en ContextVars (seguro en async y threads).
  - Correlacionar logs con el request, el tenant y el actor que los produjo.
  - Proveer helpers mínimos: set_*(), get_context_dict(), clear_context().

Colaboradores:
  - app.crosscutting.logger: enriquece cada línea vía get_context_dict().
  - app.infrastructure.db.rls: setea el tenant al abrir una transacción RLS.
  - scripts/event_log.py: setea un request_id por invocación.

Restricciones:
  - Solo strings primitivos (serialización JSON siempre segura).
  - Defaults vacíos ("") en vez de None.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Final

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Tenant / actor (mirrors the app.current_* settings of the RLS session)
organization_id_var: ContextVar[str] = ContextVar("organization_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

_CTX_REQUEST_ID: Final[str] = "request_id"
_CTX_CORRELATION_ID: Final[str] = "correlation_id"
_CTX_ORGANIZATION_ID: Final[str] = "organization_id"
_CTX_USER_ID: Final[str] = "user_id"


def set_request_context(*, request_id: str = "", correlation_id: str = "") -> None:
    """
    Set the minimal request context.

    Empty strings mean "not available".
    """
    request_id_var.set(request_id or "")
    correlation_id_var.set(correlation_id or "")


def set_tenant_context(*, organization_id: str = "", user_id: str = "") -> None:
    """Set the tenant/actor the current unit of work runs for."""
    organization_id_var.set(organization_id or "")
    user_id_var.set(user_id or "")


def get_context_dict() -> dict[str, str]:
    """
    Return the current context as a dict, omitting empty keys.
    """
    ctx: dict[str, str] = {}

    if val := request_id_var.get():
        ctx[_CTX_REQUEST_ID] = val
    if val := correlation_id_var.get():
        ctx[_CTX_CORRELATION_ID] = val
    if val := organization_id_var.get():
        ctx[_CTX_ORGANIZATION_ID] = val
    if val := user_id_var.get():
        ctx[_CTX_USER_ID] = val

    return ctx


def clear_context() -> None:
    """
    Clear the context at the end of a request/job so it does not leak into
    the next unit of work handled by the same worker.
    """
    request_id_var.set("")
    correlation_id_var.set("")
    organization_id_var.set("")
    user_id_var.set("")
