"""
===============================================================================
CRC CARD — infrastructure/db/errors.py
===============================================================================

Component:
  Typed pool / connectivity errors

Responsibilities:
  - Avoid generic RuntimeErrors.
  - Clear semantics: "closed", "could not acquire", etc.
===============================================================================
"""


class DatabasePoolError(Exception):
    """Base of database pool errors."""


class PoolClosedError(DatabasePoolError):
    """The pool was used after close_pool()."""


class DatabaseConnectionError(DatabasePoolError):
    """A connection could not be acquired or validated."""
