"""
Name: Integration Test DB Setup

Responsibilities:
  - Apply the Alembic migrations once per test session
  - Provide a real pool (owned by the fixture, closed at session end)
  - Clean the event table between tests

Notes:
  - Only runs when RUN_INTEGRATION=1
  - Uses DATABASE_URL from environment (see alembic/env.py); the user must be
    allowed to create roles (CREATEROLE) for the first migration.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from app.crosscutting.config import get_settings
from app.infrastructure.db import close_pool, create_pool_from_settings, system_admin_transaction

if os.getenv("RUN_INTEGRATION") == "1":
    os.environ["APP_ENV"] = "integration"
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def apply_migrations() -> None:
    """Run Alembic migrations for integration tests."""
    backend_dir = Path(__file__).resolve().parents[2]
    config = Config(str(backend_dir / "alembic.ini"))
    config.set_main_option("script_location", str(backend_dir / "alembic"))

    command.upgrade(config, "head")


@pytest.fixture(scope="session")
def db_pool(apply_migrations):
    pool = create_pool_from_settings(get_settings())
    yield pool
    close_pool(pool)


@pytest.fixture
def clean_events(db_pool):
    yield
    with system_admin_transaction(db_pool) as conn:
        conn.execute("DELETE FROM event")
