"""Effective role resolution for a request."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from modelforge.auth.types import RequestContext, Role
from modelforge.errors import StorageError

if TYPE_CHECKING:
    from modelforge.persistence.adapter import RoleAssignmentStore

logger = logging.getLogger(__name__)

# Identities with no persisted assignment get least privilege
DEFAULT_ROLE = Role.VIEWER


class RoleResolver:
    """Determine the effective role of the caller.

    Priority:
    1. ``ctx.override_role``, used verbatim. Any caller able to set it can
       act as admin; deployments control that via configuration.
    2. No session: no role.
    3. The persisted assignment for the identity, or ``viewer`` if none.
    4. Assignment lookup failure: ``viewer`` (fail-open, default) or no role
       when ``fail_closed`` is set. Either way the failure is logged.
    """

    def __init__(self, assignments: RoleAssignmentStore, fail_closed: bool = False):
        self._assignments = assignments
        self._fail_closed = fail_closed

    @property
    def fail_closed(self) -> bool:
        return self._fail_closed

    def resolve(self, ctx: RequestContext) -> Role | None:
        """Return the caller's effective role, or None if it cannot act."""
        if ctx.override_role is not None:
            logger.debug(
                "Role override %s in effect for %s",
                ctx.override_role.value,
                ctx.identity.id if ctx.identity else "<anonymous>",
            )
            return ctx.override_role

        identity = ctx.identity
        if identity is None:
            return None

        try:
            role = self._assignments.get_role(identity.id)
        except StorageError:
            if self._fail_closed:
                logger.warning(
                    "Role lookup failed for %s; denying (fail-closed)",
                    identity.id,
                    exc_info=True,
                )
                return None
            logger.warning(
                "Role lookup failed for %s; defaulting to %s",
                identity.id,
                DEFAULT_ROLE.value,
                exc_info=True,
            )
            return DEFAULT_ROLE

        return role or DEFAULT_ROLE
