"""
Name: Application Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Provide defaults for the event log (retry policy, database roles)

Collaborators:
  - container.py: reads settings to build the pool and repositories
  - infrastructure/db/pool.py: statement timeout, slow query threshold
  - infrastructure/repositories/postgres/event.py: retry policy and roles
  - crosscutting/logger.py: log level and format

Constraints:
  - Lives in the infrastructure layer, NOT in domain/application
  - No business logic, only configuration

Notes:
  - Singleton via lru_cache
  - Role names are interpolated into SET ROLE, so they are validated as
    plain SQL identifiers here
"""

import re
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ROLE_NAME_RE = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        database_url: PostgreSQL connection string
        app_env: Application environment (development/test/production)
        log_level: Root log level (default: INFO)
        log_json: Emit JSON log lines (default: True)
        db_pool_min_size: Minimum pooled connections
        db_pool_max_size: Maximum pooled connections
        db_statement_timeout_ms: statement_timeout applied to every connection
        db_slow_query_seconds: Threshold for slow query warnings
        db_healthcheck_on_acquire: Run SELECT 1 when a connection is checked out
        event_store_backend: postgres | memory
        event_retry_max_attempts: Attempts for a sequence conflict (default: 5)
        event_retry_base_delay_seconds: First backoff delay (default: 0.1)
        event_retry_max_delay_seconds: Backoff cap (default: 1.0)
        db_system_role: Role used for event log writes (bypasses RLS)
        db_system_admin_role: Role for system administrators
        db_authenticated_role: Role for regular tenant users
        audit_hash_client_data: Hash IP / user agent before storing them
    """

    # Required (no defaults)
    database_url: str

    # Environment
    app_env: str = "development"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Database - Connection Pool
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10
    db_statement_timeout_ms: int = 30000  # 30 seconds
    db_slow_query_seconds: float = 0.25
    db_healthcheck_on_acquire: bool = True

    # Event log
    event_store_backend: str = "postgres"
    event_retry_max_attempts: int = 5
    event_retry_base_delay_seconds: float = 0.1
    event_retry_max_delay_seconds: float = 1.0

    # Database roles (RLS)
    db_system_role: str = "system"
    db_system_admin_role: str = "system_admin"
    db_authenticated_role: str = "authenticated"

    # Audit
    audit_hash_client_data: bool = True

    @field_validator("log_level")
    @classmethod
    def log_level_valid(cls, v: str) -> str:
        level = (v or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"invalid log_level: {v!r}")
        return level

    @field_validator("event_store_backend")
    @classmethod
    def event_store_backend_valid(cls, v: str) -> str:
        backend = (v or "postgres").strip().lower()
        if backend not in {"postgres", "memory"}:
            raise ValueError("event_store_backend must be postgres or memory")
        return backend

    @field_validator("event_retry_max_attempts")
    @classmethod
    def max_attempts_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("event_retry_max_attempts must be greater than 0")
        return v

    @field_validator("event_retry_base_delay_seconds", "event_retry_max_delay_seconds")
    @classmethod
    def delays_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("retry delays must be greater than 0")
        return v

    @field_validator("db_system_role", "db_system_admin_role", "db_authenticated_role")
    @classmethod
    def role_must_be_identifier(cls, v: str) -> str:
        role = (v or "").strip()
        if not _ROLE_NAME_RE.match(role):
            raise ValueError(f"invalid database role name: {v!r}")
        return role

    @model_validator(mode="after")
    def validate_pool_bounds(self):
        if self.db_pool_min_size < 0:
            raise ValueError("db_pool_min_size must be >= 0")
        if self.db_pool_max_size < max(self.db_pool_min_size, 1):
            raise ValueError(
                f"db_pool_max_size ({self.db_pool_max_size}) must be >= "
                f"db_pool_min_size ({self.db_pool_min_size}) and >= 1"
            )
        return self

    @model_validator(mode="after")
    def validate_retry_window(self):
        if self.event_retry_max_delay_seconds < self.event_retry_base_delay_seconds:
            raise ValueError(
                "event_retry_max_delay_seconds must be >= event_retry_base_delay_seconds"
            )
        return self

    def is_production(self) -> bool:
        return self.app_env.strip().lower() == "production"

    def is_test(self) -> bool:
        return self.app_env.strip().lower() in {"test", "testing", "ci"}

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()
