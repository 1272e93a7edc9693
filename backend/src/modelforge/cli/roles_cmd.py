"""Role assignment CLI commands."""

import click

from modelforge.auth.types import Role
from modelforge.cli.context import exit_on_failure, open_orchestrator, operator_context


@click.group()
def roles():
    """Role assignment commands."""
    pass


@roles.command()
@click.argument("identity_id")
@click.argument("role", type=click.Choice([r.value for r in Role]))
def assign(identity_id: str, role: str):
    """Assign ROLE to IDENTITY_ID."""
    with open_orchestrator() as orchestrator:
        result = orchestrator.assign_role(operator_context(), identity_id, role)
    exit_on_failure(result)
    click.echo(f"{identity_id} is now {role}")


@roles.command("list")
def list_roles():
    """List persisted role assignments."""
    with open_orchestrator() as orchestrator:
        result = orchestrator.list_role_assignments(operator_context())
    exit_on_failure(result)

    if not result.data:
        click.echo("No role assignments. Unassigned identities resolve to viewer.")
        return
    for item in result.data:
        click.echo(f"{item['identityId']}  {item['role']}")
