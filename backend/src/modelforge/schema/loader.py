"""
schema/loader.py — load model definitions from YAML files.

Each file holds one model::

    model: Customer
    description: People we sell to
    fields:
      - name: email
        type: email
        required: true
      - name: active
        type: boolean
        default: true

Files are checked against ``schemas/model.schema.json`` before being turned
into :class:`ModelDefinition` objects, so structural problems are reported
as :class:`ValidationIssue` entries instead of construction exceptions.

PyYAML quirk: unquoted ISO dates (``default: 2024-01-01``) load as
``datetime.date`` objects. We convert them back to strings before schema
validation.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from modelforge.errors import InvalidField, InvalidModel
from modelforge.schema.definitions import ModelDefinition

logger = logging.getLogger(__name__)

_SCHEMA_PATH = Path(__file__).parent / "schemas" / "model.schema.json"


@dataclass
class ValidationIssue:
    """A single validation finding for a model YAML file."""

    file: Path
    message: str
    path: str = ""          # location within the document, e.g. "fields[0]/type"
    severity: str = "error"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_schema() -> dict[str, Any]:
    with _SCHEMA_PATH.open() as fh:
        return json.load(fh)


def _stringify_dates(obj: Any) -> Any:
    """Recursively convert ``date`` values produced by PyYAML to ISO strings."""
    if isinstance(obj, dict):
        return {k: _stringify_dates(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_stringify_dates(item) for item in obj]
    if isinstance(obj, date):
        return obj.isoformat()
    return obj


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _read_yaml(yaml_path: Path) -> tuple[Any, list[ValidationIssue]]:
    try:
        with yaml_path.open() as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as e:
        return None, [ValidationIssue(file=yaml_path, message=f"Invalid YAML: {e}")]
    return _stringify_dates(data), []


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_model_file(yaml_path: Path) -> list[ValidationIssue]:
    """
    Validate a model YAML file against the model schema and field rules.

    Returns:
        A list of :class:`ValidationIssue` objects (empty on success).
    """
    data, issues = _read_yaml(yaml_path)
    if issues:
        return issues

    validator = Draft202012Validator(_load_schema())
    for error in sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path)):
        issues.append(
            ValidationIssue(file=yaml_path, message=error.message, path=_json_path(error))
        )
    if issues:
        return issues

    # Schema-valid documents can still break model invariants (duplicates, bad defaults)
    try:
        _to_definition(data)
    except (InvalidField, InvalidModel) as e:
        issues.append(ValidationIssue(file=yaml_path, message=str(e)))
    return issues


def load_model_file(yaml_path: Path) -> ModelDefinition:
    """Load and validate a single model file.

    Raises:
        InvalidModel: If the file fails schema validation
        InvalidField: If a field definition is malformed
    """
    issues = validate_model_file(yaml_path)
    if issues:
        for issue in issues:
            logger.error("Model file error: %s", issue)
        raise InvalidModel("; ".join(str(i) for i in issues))

    data, _ = _read_yaml(yaml_path)
    return _to_definition(data)


def load_model_dir(models_path: Path) -> list[ModelDefinition]:
    """Load every ``*.yaml`` model file in a directory, sorted by filename."""
    if not models_path.exists():
        logger.warning("Model directory %s does not exist", models_path)
        return []

    definitions = []
    for yaml_file in sorted(models_path.glob("*.yaml")):
        definitions.append(load_model_file(yaml_file))
    return definitions


def _to_definition(data: dict[str, Any]) -> ModelDefinition:
    return ModelDefinition.from_dict(
        {
            "name": data["model"],
            "description": data.get("description"),
            "fields": data.get("fields") or [],
        }
    )
