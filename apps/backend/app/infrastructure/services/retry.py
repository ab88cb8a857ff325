"""app.infrastructure.services.retry

Name: Política de reintento ante conflictos de secuencia (tenacity)

Qué es
------
Utilidad de **resiliencia** para las escrituras del event log. Dos writers del
mismo aggregate todavía pueden chocar en la constraint única
(aggregate_id, sequence_number); el intento perdedor se repite completo con
backoff exponencial.

Política
--------
  - retry: SOLO SequenceConflictError (todo lo demás es fail-fast)
  - stop: stop_after_attempt(max_attempts), incluye el primer intento
  - wait: base_delay * 2 ** (attempt - 1), con tope max_delay
          (defaults: 0.1, 0.2, 0.4, 0.8 segundos)
  - before_sleep: warning estructurado por cada reintento
  - reraise: True (el último SequenceConflictError se propaga; el caller lo
    mapea a SequenceRetriesExhaustedError)

CRC (Component Card)
--------------------
Component: retry helper
Responsibilities:
  - Decidir qué errores son reintentables
  - Construir un tenacity Retrying con el backoff de arriba
  - Loguear cada reintento con el aggregate que se está escribiendo
Collaborators:
  - tenacity (motor de retry)
  - crosscutting.config.Settings (attempts/delays)
  - crosscutting.logger
Constraints:
  - Sin jitter: los delays son deterministas y los tests los verifican
  - `sleep` es inyectable (los tests registran los delays en vez de dormir)
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ...crosscutting.exceptions import SequenceConflictError
from ...crosscutting.logger import logger

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BASE_DELAY_SECONDS = 0.1
DEFAULT_MAX_DELAY_SECONDS = 1.0


def is_sequence_conflict(exception: BaseException) -> bool:
    return isinstance(exception, SequenceConflictError)


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay slept after failed attempt number `attempt` (1-based)."""
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


def _log_retry(retry_state: RetryCallState) -> None:
    """Log each attempt before sleeping (before_sleep)."""
    wait_time = (
        retry_state.next_action.sleep
        if getattr(retry_state, "next_action", None) is not None
        else 0
    )

    exc: Optional[BaseException] = None
    if getattr(retry_state, "outcome", None) is not None:
        exc = retry_state.outcome.exception()

    logger.warning(
        "Sequence conflict, retrying event write",
        extra={
            "aggregate_id": getattr(exc, "aggregate_id", None),
            "sequence_number": getattr(exc, "sequence_number", None),
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(float(wait_time), 3),
        },
    )


def create_sequence_retrying(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    max_delay: float = DEFAULT_MAX_DELAY_SECONDS,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """
    Build a fresh Retrying for one write. Not shared between threads.
    """
    if max_attempts <= 0:
        raise ValueError("max_attempts must be > 0")
    if base_delay <= 0:
        raise ValueError("base_delay must be > 0")
    if max_delay < base_delay:
        raise ValueError("max_delay must be >= base_delay")

    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, max=max_delay),
        retry=retry_if_exception_type(SequenceConflictError),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
