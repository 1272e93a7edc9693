"""Model CLI commands — list, show, import, delete, validate-file."""

from pathlib import Path

import click

from modelforge.cli.context import exit_on_failure, open_orchestrator, operator_context
from modelforge.errors import InvalidField, InvalidModel
from modelforge.schema.loader import load_model_file, validate_model_file


@click.group()
def models():
    """Model definition commands."""
    pass


@models.command("list")
def list_models():
    """List models, newest first."""
    with open_orchestrator() as orchestrator:
        result = orchestrator.list_models(operator_context())
    exit_on_failure(result)

    if not result.data:
        click.echo("No models defined.")
        return
    for summary in result.data:
        click.echo(f"{summary['id']}  {summary['name']}  ({summary['fieldCount']} fields)")


@models.command()
@click.argument("model_id")
def show(model_id: str):
    """Show a model and its fields."""
    with open_orchestrator() as orchestrator:
        result = orchestrator.get_model(operator_context(), model_id)
    exit_on_failure(result)

    model = result.data
    click.echo(f"{model['name']} ({model['id']})")
    if model["description"]:
        click.echo(f"  {model['description']}")
    for f in model["fields"]:
        flags = " required" if f["required"] else ""
        default = f" default={f['defaultValue']!r}" if f["defaultValue"] is not None else ""
        click.echo(f"  {f['orderIndex']:>3}  {f['name']}: {f['type']}{flags}{default}")


@models.command("import")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
def import_models(paths: tuple[Path, ...]):
    """Create models from YAML model files."""
    files: list[Path] = []
    for path in paths:
        files.extend(sorted(path.glob("*.yaml")) if path.is_dir() else [path])

    with open_orchestrator() as orchestrator:
        for file in files:
            try:
                definition = load_model_file(file)
            except (InvalidField, InvalidModel) as e:
                click.echo(click.style(f"✗ {file}: {e}", fg="red"), err=True)
                raise SystemExit(1)

            result = orchestrator.create_model(
                operator_context(),
                {
                    "name": definition.name,
                    "description": definition.description,
                    "fields": [f.to_dict() for f in definition.fields],
                },
            )
            exit_on_failure(result)
            click.echo(click.style(f"✓ {definition.name} → {result.data['id']}", fg="green"))


@models.command()
@click.argument("model_id")
@click.confirmation_option(prompt="Delete this model, its fields and all of its records?")
def delete(model_id: str):
    """Delete a model with its fields and records."""
    with open_orchestrator() as orchestrator:
        result = orchestrator.delete_model(operator_context(), model_id)
    exit_on_failure(result)
    click.echo(f"Deleted {model_id}")


@click.command("validate-file")
@click.argument("path", type=click.Path(exists=True, path_type=Path))
def validate_file(path: Path):
    """Check a model YAML file without importing it."""
    issues = validate_model_file(path)
    for issue in issues:
        click.echo(click.style(str(issue), fg="red"))
    if issues:
        raise SystemExit(1)
    click.echo(click.style(f"✓ {path} is valid", fg="green"))
