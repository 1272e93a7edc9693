"""Identity and override-role collaborators.

The engine only consumes the protocols defined here. The bundled
implementations cover local use (CLI, tests, single-operator deployments);
an HTTP deployment derives the session from the request instead (see
auth.middleware).
"""

import logging
import os
from typing import Callable, Protocol, runtime_checkable

from modelforge.auth.types import Identity, RequestContext, Role, Session

logger = logging.getLogger(__name__)

IdentityCallback = Callable[[Identity | None], None]


@runtime_checkable
class IdentityProvider(Protocol):
    def get_current_identity(self) -> Identity | None: ...

    def on_identity_change(self, callback: IdentityCallback) -> Callable[[], None]: ...

    def sign_out(self) -> None: ...


@runtime_checkable
class OverrideSource(Protocol):
    def get_override_role(self) -> Role | None: ...


class StaticIdentityProvider:
    """In-process identity holder with change notifications."""

    def __init__(self, identity: Identity | None = None):
        self._identity = identity
        self._callbacks: list[IdentityCallback] = []

    def get_current_identity(self) -> Identity | None:
        return self._identity

    def set_identity(self, identity: Identity | None) -> None:
        self._identity = identity
        self._notify()

    def sign_out(self) -> None:
        self.set_identity(None)

    def on_identity_change(self, callback: IdentityCallback) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        for callback in list(self._callbacks):
            callback(self._identity)


class StaticOverrideSource:
    """Override role fixed at construction (e.g. an operator's saved choice)."""

    def __init__(self, role: Role | None = None):
        self._role = role

    def get_override_role(self) -> Role | None:
        return self._role


class EnvOverrideSource:
    """Override role read from MODELFORGE_ROLE_OVERRIDE on every call."""

    ENV_VAR = "MODELFORGE_ROLE_OVERRIDE"

    def get_override_role(self) -> Role | None:
        raw = os.environ.get(self.ENV_VAR)
        if not raw:
            return None
        role = Role.parse(raw)
        if role is None:
            logger.warning("Ignoring unknown role %r in %s", raw, self.ENV_VAR)
        return role


def build_context(
    identity_provider: IdentityProvider,
    override_source: OverrideSource | None = None,
) -> RequestContext:
    """Compose the current identity and override role into a RequestContext."""
    identity = identity_provider.get_current_identity()
    override = override_source.get_override_role() if override_source else None
    return RequestContext(
        session=Session(identity=identity) if identity else None,
        override_role=override,
    )
