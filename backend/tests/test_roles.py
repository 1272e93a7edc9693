"""Tests for effective role resolution."""

from unittest.mock import Mock

import pytest

from modelforge.auth.providers import EnvOverrideSource, StaticIdentityProvider, StaticOverrideSource, build_context
from modelforge.auth.roles import DEFAULT_ROLE, RoleResolver
from modelforge.auth.types import Identity, RequestContext, Role
from modelforge.errors import StorageError
from modelforge.persistence.memory import InMemoryStore


# ── Helpers ──────────────────────────────────────────────────────────────────


def failing_store() -> Mock:
    store = Mock()
    store.get_role.side_effect = StorageError("connection refused")
    return store


class TestRoleResolver:
    def test_persisted_role(self):
        store = InMemoryStore()
        store.set_role("u1", Role.EDITOR)
        assert RoleResolver(store).resolve(RequestContext.for_identity("u1")) is Role.EDITOR

    def test_unassigned_defaults_to_viewer(self):
        assert RoleResolver(InMemoryStore()).resolve(RequestContext.for_identity("u1")) is Role.VIEWER
        assert DEFAULT_ROLE is Role.VIEWER

    def test_no_session_has_no_role(self):
        assert RoleResolver(InMemoryStore()).resolve(RequestContext()) is None

    def test_override_wins_over_assignment(self):
        store = InMemoryStore()
        store.set_role("u1", Role.VIEWER)
        ctx = RequestContext.for_identity("u1", override_role=Role.ADMIN)
        assert RoleResolver(store).resolve(ctx) is Role.ADMIN

    def test_override_skips_lookup(self):
        store = failing_store()
        ctx = RequestContext.for_identity("u1", override_role=Role.EDITOR)
        assert RoleResolver(store).resolve(ctx) is Role.EDITOR
        store.get_role.assert_not_called()

    def test_lookup_failure_fails_open_to_viewer(self, caplog):
        resolver = RoleResolver(failing_store())
        assert resolver.resolve(RequestContext.for_identity("u1")) is Role.VIEWER
        assert "Role lookup failed for u1" in caplog.text

    def test_lookup_failure_fail_closed(self):
        resolver = RoleResolver(failing_store(), fail_closed=True)
        assert resolver.fail_closed
        assert resolver.resolve(RequestContext.for_identity("u1")) is None

    def test_resolution_is_not_cached(self):
        store = InMemoryStore()
        resolver = RoleResolver(store)
        ctx = RequestContext.for_identity("u1")
        assert resolver.resolve(ctx) is Role.VIEWER
        store.set_role("u1", Role.ADMIN)
        assert resolver.resolve(ctx) is Role.ADMIN


class TestRoleParse:
    @pytest.mark.parametrize("raw,expected", [("admin", Role.ADMIN), (" Editor ", Role.EDITOR), (Role.VIEWER, Role.VIEWER)])
    def test_known(self, raw, expected):
        assert Role.parse(raw) is expected

    @pytest.mark.parametrize("raw", [None, "", "owner", 3])
    def test_unknown(self, raw):
        assert Role.parse(raw) is None


class TestProviders:
    def test_build_context_without_identity(self):
        ctx = build_context(StaticIdentityProvider())
        assert ctx.session is None
        assert ctx.override_role is None

    def test_build_context_with_override(self):
        ctx = build_context(
            StaticIdentityProvider(Identity(id="u1", email="u1@example.com")),
            StaticOverrideSource(Role.ADMIN),
        )
        assert ctx.identity.id == "u1"
        assert ctx.override_role is Role.ADMIN

    def test_identity_change_notifies_until_unsubscribed(self):
        provider = StaticIdentityProvider(Identity(id="u1"))
        seen = []
        unsubscribe = provider.on_identity_change(seen.append)
        provider.sign_out()
        unsubscribe()
        provider.set_identity(Identity(id="u2"))
        assert seen == [None]

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("MODELFORGE_ROLE_OVERRIDE", "editor")
        assert EnvOverrideSource().get_override_role() is Role.EDITOR

    def test_env_override_unknown_role_ignored(self, monkeypatch, caplog):
        monkeypatch.setenv("MODELFORGE_ROLE_OVERRIDE", "superuser")
        assert EnvOverrideSource().get_override_role() is None
        assert "Ignoring unknown role" in caplog.text

    def test_env_override_unset(self, monkeypatch):
        monkeypatch.delenv("MODELFORGE_ROLE_OVERRIDE", raising=False)
        assert EnvOverrideSource().get_override_role() is None
