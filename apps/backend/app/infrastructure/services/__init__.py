"""
Infrastructure Services (Infrastructure Layer)

Facade/Barrel of `infrastructure.services`: re-exports the public surface so
the container and repositories import from one place.
"""

# ---------------------------------------------------------------------------
# Resilience / Retry utilities
# ---------------------------------------------------------------------------
from .retry import (  # noqa: F401
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_DELAY_SECONDS,
    backoff_delay,
    create_sequence_retrying,
    is_sequence_conflict,
)

__all__ = [
    "create_sequence_retrying",
    "backoff_delay",
    "is_sequence_conflict",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_BASE_DELAY_SECONDS",
    "DEFAULT_MAX_DELAY_SECONDS",
]
