"""ModelForge CLI entry point."""

import click

from modelforge.auth.jwt_service import JWTService
from modelforge.cli.context import load_config


@click.group()
def cli():
    """Runtime-defined models with role-gated CRUD."""
    pass


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", type=int, default=None, help="Defaults to MODELFORGE_PORT or 8000.")
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes.")
def serve(host: str, port: int | None, reload: bool):
    """Run the HTTP API."""
    import uvicorn

    config = load_config()
    uvicorn.run(
        "modelforge.api.app:app",
        host=host,
        port=port or config.port,
        reload=reload,
        log_level=config.log_level,
    )


@cli.command()
@click.argument("identity_id")
@click.option("--email", default=None)
@click.option("--ttl", type=int, default=None, help="Lifetime in seconds.")
def token(identity_id: str, email: str | None, ttl: int | None):
    """Issue a development session token for IDENTITY_ID."""
    config = load_config()
    click.echo(JWTService(config.secret_key).generate_session_token(identity_id, email, ttl))


# Register subcommand groups
from modelforge.cli.models_cmd import models, validate_file  # noqa: E402
from modelforge.cli.roles_cmd import roles  # noqa: E402

cli.add_command(models)
cli.add_command(roles)
cli.add_command(validate_file)
