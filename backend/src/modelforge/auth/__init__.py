"""Authentication and role-based access control for ModelForge."""

from modelforge.auth.types import (
    AccessDecision,
    AccessSummary,
    DenialReason,
    GuardState,
    Identity,
    RequestContext,
    Role,
    Session,
    TokenClaims,
)
from modelforge.auth.jwt_service import JWTService
from modelforge.auth.providers import (
    EnvOverrideSource,
    IdentityProvider,
    OverrideSource,
    StaticIdentityProvider,
    StaticOverrideSource,
    build_context,
)
from modelforge.auth.roles import RoleResolver
from modelforge.auth.permissions import (
    ALLOW_MATRIX,
    AccessControlEngine,
    GuardedView,
    Operation,
    RoleGuard,
    SessionGuard,
    is_allowed,
)

__all__ = [
    "AccessDecision",
    "AccessSummary",
    "DenialReason",
    "GuardState",
    "Identity",
    "RequestContext",
    "Role",
    "Session",
    "TokenClaims",
    "JWTService",
    "EnvOverrideSource",
    "IdentityProvider",
    "OverrideSource",
    "StaticIdentityProvider",
    "StaticOverrideSource",
    "build_context",
    "RoleResolver",
    "ALLOW_MATRIX",
    "AccessControlEngine",
    "GuardedView",
    "Operation",
    "RoleGuard",
    "SessionGuard",
    "is_allowed",
]
