"""
===============================================================================
CRC CARD — domain/audit.py
===============================================================================

Module:
    Audit event models (domain)

Responsibilities:
    - Define the EventContext every audit event is written with.
    - Define the typed payloads of the auth / organization audit events.
    - Tell the audit path which aggregate a payload belongs to.

Collaborators:
    - application.usecases.events.RecordAuditEventUseCase: turns
      (context, payload) into a NewEvent.
    - app/audit.py: best-effort emission helpers.

Notes:
    - Payloads are plain dataclasses; to_event_data() is the JSON written to
      event.event_data.
    - aggregate_id may be None (e.g. a failed login for an unknown email):
      the audit path then falls back to context.user_id, and skips the write
      when that is empty too.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID


class UserRole(str, Enum):
    ORGANIZATION_OWNER = "organization_owner"
    ORGANIZATION_ADMIN = "organization_admin"
    ORGANIZATION_MEMBER = "organization_member"
    SYSTEM_ADMIN = "system_admin"


class LoginFailureReason(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    USER_NOT_FOUND = "user_not_found"
    USER_INACTIVE = "user_inactive"
    USER_NOT_VERIFIED = "user_not_verified"
    ORGANIZATION_INACTIVE = "organization_inactive"
    ACCOUNT_LOCKED = "account_locked"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"


class LogoutReason(str, Enum):
    USER_LOGOUT = "user_logout"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_REVOKED = "token_revoked"
    SESSION_TIMEOUT = "session_timeout"
    ADMIN_LOGOUT = "admin_logout"
    SECURITY_LOGOUT = "security_logout"


class AggregateType(str, Enum):
    USER = "user"
    ORGANIZATION = "organization"


@dataclass(frozen=True, slots=True)
class EventContext:
    """Provenance of the request that produced an audit event."""

    correlation_id: UUID | None = None
    causation_id: UUID | None = None
    session_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    user_id: UUID | None = None
    organization_id: UUID | None = None

    def to_event_data(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "correlationId": _jsonable(self.correlation_id),
            "causationId": _jsonable(self.causation_id),
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return str(value)


@dataclass(frozen=True, kw_only=True)
class AuditPayload:
    """
    Base of every audit payload.

    Subclasses set EVENT_TYPE / AGGREGATE_TYPE and, when the payload
    identifies its aggregate, override aggregate_id.
    """

    EVENT_TYPE: ClassVar[str] = "audit_event"
    AGGREGATE_TYPE: ClassVar[str] = AggregateType.USER.value

    ip_address: str | None = None
    user_agent: str | None = None
    timestamp: datetime | None = None

    @property
    def aggregate_id(self) -> str | None:
        return None

    def to_event_data(self) -> dict[str, Any]:
        """Payload fields in camelCase, tagged with its event and aggregate."""
        data: dict[str, Any] = {
            "eventType": self.EVENT_TYPE,
            "aggregateType": self.AGGREGATE_TYPE,
        }
        if self.aggregate_id is not None:
            data["aggregateId"] = self.aggregate_id
        data.update(
            {_camel(f.name): _jsonable(getattr(self, f.name)) for f in fields(self)}
        )
        if data.get("timestamp") is None:
            data["timestamp"] = _utcnow().isoformat()
        return data


@dataclass(frozen=True, kw_only=True)
class _UserPayload(AuditPayload):
    user_id: UUID
    organization_id: UUID | None = None

    @property
    def aggregate_id(self) -> str | None:
        return str(self.user_id)


@dataclass(frozen=True, kw_only=True)
class _OrganizationPayload(AuditPayload):
    AGGREGATE_TYPE: ClassVar[str] = AggregateType.ORGANIZATION.value

    organization_id: UUID

    @property
    def aggregate_id(self) -> str | None:
        return str(self.organization_id)


# -----------------------------------------------------------------------------
# User / auth events
# -----------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class UserCreatedPayload(_UserPayload):
    EVENT_TYPE: ClassVar[str] = "UserCreatedEvent"

    email: str
    role: UserRole = UserRole.ORGANIZATION_MEMBER


@dataclass(frozen=True, kw_only=True)
class UserLoggedInPayload(_UserPayload):
    EVENT_TYPE: ClassVar[str] = "UserLoggedInEvent"

    login_method: str = "password"
    session_id: str | None = None


@dataclass(frozen=True, kw_only=True)
class UserLoginFailedPayload(AuditPayload):
    """No user id: the login may have failed for an unknown email."""

    EVENT_TYPE: ClassVar[str] = "UserLoginFailedEvent"

    email: str
    reason: LoginFailureReason
    organization_id: UUID | None = None


@dataclass(frozen=True, kw_only=True)
class UserLogoutPayload(_UserPayload):
    EVENT_TYPE: ClassVar[str] = "UserLogoutEvent"

    reason: LogoutReason = LogoutReason.USER_LOGOUT
    session_id: str | None = None


@dataclass(frozen=True, kw_only=True)
class AuthSessionCreatedPayload(_UserPayload):
    EVENT_TYPE: ClassVar[str] = "AuthSessionCreatedEvent"

    session_id: str
    expires_at: datetime | None = None


@dataclass(frozen=True, kw_only=True)
class AuthSessionEndedPayload(_UserPayload):
    EVENT_TYPE: ClassVar[str] = "AuthSessionEndedEvent"

    session_id: str
    reason: LogoutReason = LogoutReason.USER_LOGOUT
    duration_seconds: int | None = None


@dataclass(frozen=True, kw_only=True)
class TokenRefreshedPayload(_UserPayload):
    EVENT_TYPE: ClassVar[str] = "TokenRefreshedEvent"

    old_token_id: str
    new_token_id: str
    session_id: str | None = None


@dataclass(frozen=True, kw_only=True)
class RefreshTokenRevokedPayload(_UserPayload):
    EVENT_TYPE: ClassVar[str] = "RefreshTokenRevokedEvent"

    token_id: str
    reason: str = "logout"


@dataclass(frozen=True, kw_only=True)
class SessionExpiredPayload(_UserPayload):
    EVENT_TYPE: ClassVar[str] = "SessionExpiredEvent"

    session_id: str


# -----------------------------------------------------------------------------
# Organization events
# -----------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class OrganizationCreatedPayload(_OrganizationPayload):
    EVENT_TYPE: ClassVar[str] = "OrganizationCreatedEvent"

    name: str
    slug: str
    created_by: UUID | None = None


@dataclass(frozen=True, kw_only=True)
class OrganizationUpdatedPayload(_OrganizationPayload):
    EVENT_TYPE: ClassVar[str] = "OrganizationUpdatedEvent"

    changes: dict[str, Any]
    updated_by: UUID | None = None


@dataclass(frozen=True, kw_only=True)
class OrganizationDeletedPayload(_OrganizationPayload):
    EVENT_TYPE: ClassVar[str] = "OrganizationDeletedEvent"

    deleted_by: UUID | None = None


@dataclass(frozen=True, kw_only=True)
class OrganizationSignupCompletedPayload(_OrganizationPayload):
    EVENT_TYPE: ClassVar[str] = "OrganizationSignupCompletedEvent"

    owner_user_id: UUID
    slug: str
