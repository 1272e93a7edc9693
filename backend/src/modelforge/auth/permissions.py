"""Operation-level access control.

Every protected operation passes two guards, in order:

- SessionGuard: the caller must have a session
- RoleGuard: the caller's resolved role must be in the operation's allow-set

A denial names its reason and a fallback destination; callers redirect
rather than fail.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from modelforge.auth.providers import IdentityProvider, OverrideSource, build_context
from modelforge.auth.roles import RoleResolver
from modelforge.auth.types import (
    AccessDecision,
    AccessSummary,
    DenialReason,
    GuardState,
    RequestContext,
    Role,
)

logger = logging.getLogger(__name__)

# Unauthenticated callers go to sign-in; authenticated but unprivileged
# callers go back to their landing area
SIGN_IN_PATH = "/auth"
LANDING_PATH = "/dashboard"


class Operation(Enum):
    LIST_MODELS = "list_models"
    VIEW_MODEL = "view_model"
    VIEW_RECORDS = "view_records"
    CREATE_MODEL = "create_model"
    EDIT_MODEL = "edit_model"
    DELETE_MODEL = "delete_model"
    MANAGE_RBAC = "manage_rbac"
    CREATE_RECORD = "create_record"
    EDIT_RECORD = "edit_record"
    DELETE_RECORD = "delete_record"

    @classmethod
    def parse(cls, value: str) -> "Operation | None":
        try:
            return cls(value)
        except ValueError:
            return None


_ALL = frozenset(Role)
_WRITERS = frozenset({Role.ADMIN, Role.EDITOR})
_ADMIN = frozenset({Role.ADMIN})

# Allow-set per operation. Writes are not monotonic in privilege: editors
# create and edit, only admins delete or manage role assignments.
ALLOW_MATRIX: dict[Operation, frozenset[Role]] = {
    Operation.LIST_MODELS: _ALL,
    Operation.VIEW_MODEL: _ALL,
    Operation.VIEW_RECORDS: _ALL,
    Operation.CREATE_MODEL: _WRITERS,
    Operation.EDIT_MODEL: _WRITERS,
    Operation.DELETE_MODEL: _ADMIN,
    Operation.MANAGE_RBAC: _ADMIN,
    Operation.CREATE_RECORD: _WRITERS,
    Operation.EDIT_RECORD: _WRITERS,
    Operation.DELETE_RECORD: _ADMIN,
}


def is_allowed(role: Role | None, operation: Operation) -> bool:
    """Check whether a role belongs to the operation's allow-set."""
    if role is None:
        return False
    return role in ALLOW_MATRIX[operation]


class SessionGuard:
    """Passes when the caller has a session."""

    def check(self, ctx: RequestContext, operation: Operation) -> AccessDecision | None:
        """Return a denial, or None to continue."""
        if ctx.session is None:
            return AccessDecision(
                allowed=False,
                operation=operation.value,
                reason=DenialReason.NO_SESSION,
                redirect_to=SIGN_IN_PATH,
            )
        return None


class RoleGuard:
    """Passes when the resolved role is in the operation's allow-set."""

    def __init__(self, resolver: RoleResolver):
        self._resolver = resolver

    def check(self, ctx: RequestContext, operation: Operation) -> AccessDecision:
        role = self._resolver.resolve(ctx)
        if not is_allowed(role, operation):
            return AccessDecision(
                allowed=False,
                operation=operation.value,
                role=role,
                reason=DenialReason.ROLE_NOT_ALLOWED,
                redirect_to=LANDING_PATH,
            )
        return AccessDecision(allowed=True, operation=operation.value, role=role)


class AccessControlEngine:
    """Evaluates the session and role guards for an operation."""

    def __init__(self, resolver: RoleResolver):
        self.resolver = resolver
        self._session_guard = SessionGuard()
        self._role_guard = RoleGuard(resolver)

    def resolve_access(self, ctx: RequestContext, operation: Operation) -> AccessDecision:
        """Decide whether the caller may perform an operation.

        Args:
            ctx: The caller's session and override role
            operation: The operation being attempted

        Returns:
            AccessDecision; denials carry a reason and redirect target
        """
        decision = self._session_guard.check(ctx, operation)
        if decision is None:
            decision = self._role_guard.check(ctx, operation)

        if not decision.allowed:
            logger.info(
                "Denied %s for %s: %s",
                operation.value,
                ctx.identity.id if ctx.identity else "<anonymous>",
                decision.reason.value if decision.reason else "unknown",
            )
        return decision

    def permitted_operations(self, ctx: RequestContext) -> AccessSummary:
        """Resolve the caller's role once and list every operation it unlocks."""
        identity_id = ctx.identity.id if ctx.identity else None
        if ctx.session is None:
            return AccessSummary(identity_id=None, role=None)

        role = self.resolver.resolve(ctx)
        return AccessSummary(
            identity_id=identity_id,
            role=role,
            operations=[op.value for op in Operation if is_allowed(role, op)],
        )


class GuardedView:
    """Authorization state for one mounted view.

    ``mount()`` always starts from LOADING; no resolution is cached between
    mounts. Resolution ends in AUTHORIZED or DENIED. Failures inside role
    resolution are absorbed by the resolver, so there is no error state.
    """

    def __init__(
        self,
        engine: AccessControlEngine,
        operation: Operation,
        on_change: Callable[[GuardState], None] | None = None,
    ):
        self._engine = engine
        self.operation = operation
        self.state = GuardState.UNRESOLVED
        self.decision: AccessDecision | None = None
        self._on_change = on_change
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def redirect_to(self) -> str | None:
        if self.state is GuardState.DENIED and self.decision:
            return self.decision.redirect_to
        return None

    def mount(self, ctx: RequestContext) -> GuardState:
        self._set_state(GuardState.LOADING)
        self.decision = self._engine.resolve_access(ctx, self.operation)
        self._set_state(
            GuardState.AUTHORIZED if self.decision.allowed else GuardState.DENIED
        )
        return self.state

    def watch(
        self,
        identity_provider: IdentityProvider,
        override_source: OverrideSource | None = None,
    ) -> GuardState:
        """Mount now and re-resolve whenever the identity changes."""
        self.unmount()

        def remount(_identity) -> None:
            self.mount(build_context(identity_provider, override_source))

        self._unsubscribe = identity_provider.on_identity_change(remount)
        return self.mount(build_context(identity_provider, override_source))

    def unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _set_state(self, state: GuardState) -> None:
        self.state = state
        if self._on_change:
            self._on_change(state)
