"""Type definitions for authentication and authorization."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class Role(Enum):
    """Roles an identity may hold, least privileged last."""

    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"

    @classmethod
    def parse(cls, value: "str | Role | None") -> "Role | None":
        """Parse a role name, returning None for absent or unknown values."""
        if value is None or isinstance(value, Role):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class DenialReason(Enum):
    NO_SESSION = "NoSession"
    ROLE_NOT_ALLOWED = "RoleNotAllowed"


class GuardState(Enum):
    """Lifecycle of a guarded view."""

    UNRESOLVED = "unresolved"
    LOADING = "loading"
    AUTHORIZED = "authorized"
    DENIED = "denied"


@dataclass(frozen=True)
class Identity:
    """An authenticated principal.

    Attributes:
        id: Stable identity ID (e.g. the JWT subject)
        email: Optional contact address, display only
    """

    id: str
    email: str | None = None


@dataclass(frozen=True)
class Session:
    """Proof of an authenticated identity."""

    identity: Identity
    issued_at: datetime | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class RequestContext:
    """Everything a guarded operation needs to know about its caller.

    ``override_role`` bypasses the persisted role lookup entirely. It is
    carried here explicitly so every call site that honours it is visible.

    Attributes:
        session: The caller's session, None when unauthenticated
        override_role: Operator-selected role that shadows the persisted one
    """

    session: Session | None = None
    override_role: Role | None = None

    @property
    def identity(self) -> Identity | None:
        return self.session.identity if self.session else None

    @classmethod
    def for_identity(
        cls, identity_id: str | None, override_role: Role | None = None
    ) -> "RequestContext":
        session = Session(identity=Identity(id=identity_id)) if identity_id else None
        return cls(session=session, override_role=override_role)


@dataclass(frozen=True)
class AccessDecision:
    """Verdict of the access control engine for one operation.

    Attributes:
        allowed: True when every guard passed (Authorized)
        operation: The operation that was checked
        role: The resolved role, None if unresolved
        reason: Why access was denied (None when allowed)
        redirect_to: Where a denied caller should be sent
    """

    allowed: bool
    operation: str
    role: Role | None = None
    reason: DenialReason | None = None
    redirect_to: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "allowed": self.allowed,
            "operation": self.operation,
            "role": self.role.value if self.role else None,
        }
        if not self.allowed:
            result["reason"] = self.reason.value if self.reason else None
            result["redirectTo"] = self.redirect_to
        return result


@dataclass
class TokenClaims:
    """Claims embedded in a session JWT.

    Attributes:
        identity_id: The authenticated identity's ID (``sub``)
        email: Optional email claim
        exp: Token expiration timestamp
        iat: Token issued-at timestamp
        type: Token type, always "access" for sessions
    """

    identity_id: str
    email: str | None = None
    exp: int = 0
    iat: int = 0
    type: str = "access"

    def to_session(self) -> Session:
        return Session(
            identity=Identity(id=self.identity_id, email=self.email),
            issued_at=datetime.fromtimestamp(self.iat, tz=timezone.utc) if self.iat else None,
            expires_at=datetime.fromtimestamp(self.exp, tz=timezone.utc) if self.exp else None,
        )


@dataclass
class AccessSummary:
    """The caller's resolved role and the operations it unlocks."""

    identity_id: str | None
    role: Role | None
    operations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "identityId": self.identity_id,
            "role": self.role.value if self.role else None,
            "operations": self.operations,
        }
