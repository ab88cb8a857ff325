"""
PostgreSQL Repository Implementations.

Raw SQL over psycopg 3 (no ORM).
"""

from .event import PostgresEventRepository

__all__ = [
    "PostgresEventRepository",
]
