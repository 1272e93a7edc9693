"""Shared helpers for CLI commands."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click

from modelforge.auth.providers import EnvOverrideSource
from modelforge.auth.types import RequestContext, Role
from modelforge.config import AppConfig
from modelforge.persistence import create_store
from modelforge.services.crud import CrudOrchestrator
from modelforge.services.types import CrudResult

OPERATOR_ID = "cli-operator"


def operator_context() -> RequestContext:
    """Context for the local operator.

    Runs as admin unless MODELFORGE_ROLE_OVERRIDE names another role. The
    override is explicit here rather than implied by the absence of a session.
    """
    role = EnvOverrideSource().get_override_role() or Role.ADMIN
    return RequestContext.for_identity(OPERATOR_ID, override_role=role)


def resolve_base_path() -> Path:
    """Resolve the project root from cwd."""
    cwd = Path.cwd()
    if cwd.name == "backend":
        return cwd.parent
    return cwd


def load_config() -> AppConfig:
    config = AppConfig.from_env(resolve_base_path())
    logging.basicConfig(level=config.log_level.upper())
    return config


@contextmanager
def open_orchestrator() -> Iterator[CrudOrchestrator]:
    """Connect to the configured store for the duration of a command."""
    config = load_config()
    store = create_store(config.database)
    store.connect()
    try:
        yield CrudOrchestrator.from_store(store, fail_closed=config.role_fail_closed)
    finally:
        store.close()


def exit_on_failure(result: CrudResult) -> None:
    """Print a failed result and exit non-zero."""
    if result.ok:
        return
    click.echo(click.style(f"Error ({result.status.value}): {result.message}", fg="red"), err=True)
    for violation in result.violations:
        click.echo(f"  - {violation.field}: {violation.message}", err=True)
    raise SystemExit(1)
