"""
===============================================================================
TARJETA CRC — app/audit.py (Emisión de auditoría)
===============================================================================

Responsabilidades:
  - Emitir eventos de auditoría de auth / organización desde los flujos de
    negocio (login, logout, refresh de token, ciclo de vida de la organización).
  - “Best-effort”: si falla la escritura, NO rompe el flujo de negocio.
  - Hashear datos del cliente (IP / user agent) antes de loguear o persistir.

Colaboradores:
  - application.usecases.events.RecordAuditEventUseCase
  - app.domain.audit (EventContext, payloads)
  - app.crosscutting.logger.logger

Notas:
  - Único lugar donde se tragan errores del event log. Quien necesite el
    error usa RecordAuditEventUseCase directamente.
===============================================================================
"""

from __future__ import annotations

from typing import Any

from .application.usecases.events import RecordAuditEventUseCase, hash_client_data
from .crosscutting.exceptions import BackendError
from .crosscutting.logger import logger
from .domain.audit import AuditPayload, EventContext
from .domain.events import Event

__all__ = ["emit_audit_event", "hash_client_data"]


def emit_audit_event(
    use_case: RecordAuditEventUseCase | None,
    context: EventContext,
    payload: AuditPayload,
    *,
    connection: Any | None = None,
) -> Event | None:
    """
    Record an audit event.

    Key rule:
      - If use_case is None or the write fails, NO exception is raised; the
        failure is logged and None is returned.
    """
    if use_case is None:
        return None

    try:
        return use_case.execute(context, payload, connection=connection)
    except BackendError as exc:
        # Best-effort: log and move on.
        logger.warning(
            "Audit event write failed",
            extra={
                "event_type": payload.EVENT_TYPE,
                "error_code": exc.error_code,
                "error_id": exc.error_id,
                "error": str(exc),
            },
        )
        return None
