"""
============================================================
CRC CARD
============================================================
Class: app.infrastructure.repositories (Package exports)

Responsibilities:
- Expose the concrete event log repositories (Postgres and InMemory) from a
  single import point.
- Keep a stable API for the application layer (use cases).

Collaborators:
- Postgres repositories (raw SQL)
- InMemory repositories (testing / local dev)
============================================================
"""

from .in_memory import InMemoryEventRepository
from .postgres import PostgresEventRepository

__all__ = [
    "PostgresEventRepository",
    "InMemoryEventRepository",
]
