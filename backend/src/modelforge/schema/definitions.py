"""Model and field definitions for runtime-defined models."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from modelforge.core.coercion import CoercionError, coerce, is_empty
from modelforge.core.types import FIELD_TYPES, is_field_type
from modelforge.errors import InvalidField, InvalidModel


FIELD_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
MAX_FIELD_NAME_LENGTH = 63


@dataclass
class FieldDefinition:
    """One typed attribute of a model.

    Attributes:
        name: Identifier, unique within the owning model
        type: One of the closed field types (string, text, number, ...)
        required: Absent or blank values are violations when True
        default_value: Canonical default applied when a record omits the field
        order_index: Display and validation order within the model
    """

    name: str
    type: str
    required: bool = False
    default_value: Any = None
    order_index: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidField("Field name must not be empty")
        self.name = self.name.strip()
        if len(self.name) > MAX_FIELD_NAME_LENGTH or not FIELD_NAME_PATTERN.match(self.name):
            raise InvalidField(
                f"Field name '{self.name}' must start with a letter or underscore "
                f"and contain only letters, digits and underscores",
                field=self.name,
            )
        if not is_field_type(self.type):
            raise InvalidField(
                f"Field '{self.name}' has unknown type {self.type!r}. "
                f"Expected one of: {', '.join(FIELD_TYPES)}",
                field=self.name,
            )
        if not isinstance(self.required, bool):
            try:
                self.required = coerce("boolean", self.required)
            except CoercionError:
                raise InvalidField(
                    f"Field '{self.name}' has invalid required flag {self.required!r}",
                    field=self.name,
                )
        if isinstance(self.order_index, bool) or not isinstance(self.order_index, int):
            raise InvalidField(
                f"Field '{self.name}' has invalid order index {self.order_index!r}",
                field=self.name,
            )

        # Malformed defaults fail here, not when the first record is validated
        if is_empty(self.default_value):
            self.default_value = None
        else:
            try:
                self.default_value = coerce(self.type, self.default_value)
            except CoercionError as e:
                raise InvalidField(
                    f"Default value for '{self.name}' is not a valid {self.type}: {e}",
                    field=self.name,
                )

    @property
    def has_default(self) -> bool:
        return self.default_value is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any], position: int = 0) -> "FieldDefinition":
        """Create a FieldDefinition from a wire or YAML dict.

        Accepts camelCase (defaultValue, orderIndex) and snake_case keys.
        Falls back to the list position when no order index is given.
        """
        if "defaultValue" in data:
            default = data["defaultValue"]
        elif "default_value" in data:
            default = data["default_value"]
        else:
            default = data.get("default")

        order_index = data.get("orderIndex", data.get("order_index"))
        if order_index is None:
            order_index = position
        elif isinstance(order_index, str):
            try:
                order_index = int(order_index.strip())
            except ValueError:
                raise InvalidField(
                    f"Field '{data.get('name')}' has invalid order index {order_index!r}",
                    field=data.get("name"),
                )

        return cls(
            name=data.get("name", ""),
            type=data.get("type", data.get("field_type", "string")),
            required=data.get("required") or False,
            default_value=default,
            order_index=order_index,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "required": self.required,
            "defaultValue": self.default_value,
            "orderIndex": self.order_index,
        }


@dataclass
class ModelDefinition:
    """A runtime-defined model: metadata plus an ordered field set.

    ``id`` and ``created_at`` are assigned by the SchemaStore on creation.
    """

    name: str
    fields: list[FieldDefinition] = field(default_factory=list)
    description: str | None = None
    created_by: str | None = None
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidModel("Model name must not be empty")
        self.name = self.name.strip()
        if self.description is not None and not isinstance(self.description, str):
            raise InvalidModel("Model description must be a string")
        if self.description is not None and not self.description.strip():
            self.description = None
        self.fields = check_fields(self.fields)

    def get_field(self, name: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModelDefinition":
        """Create a ModelDefinition from a wire or YAML dict."""
        return cls(
            name=data.get("name", data.get("model", "")) or "",
            description=data.get("description"),
            fields=fields_from_dicts(data.get("fields") or []),
            created_by=data.get("createdBy", data.get("created_by")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "fields": [f.to_dict() for f in self.fields],
        }

    def summary(self) -> "ModelSummary":
        return ModelSummary(
            id=self.id or "",
            name=self.name,
            description=self.description,
            created_by=self.created_by,
            created_at=self.created_at,
            field_count=len(self.fields),
        )


@dataclass
class ModelSummary:
    """List-view projection of a model; fields are omitted."""

    id: str
    name: str
    description: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    field_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "fieldCount": self.field_count,
        }


def fields_from_dicts(items: list[dict[str, Any]]) -> list[FieldDefinition]:
    """Build field definitions from dicts, using list position as default order."""
    if not isinstance(items, list):
        raise InvalidModel("fields must be a list")
    result = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            raise InvalidField(f"Field at position {position} must be an object")
        result.append(FieldDefinition.from_dict(item, position=position))
    return result


def check_fields(fields: list[FieldDefinition]) -> list[FieldDefinition]:
    """Enforce per-model field invariants and return fields in order.

    Raises:
        InvalidField: On duplicate names or duplicate order indexes
    """
    seen_names: set[str] = set()
    seen_orders: dict[int, str] = {}

    for f in fields:
        if f.name in seen_names:
            raise InvalidField(f"Duplicate field name '{f.name}'", field=f.name)
        seen_names.add(f.name)

        if f.order_index in seen_orders:
            raise InvalidField(
                f"Fields '{seen_orders[f.order_index]}' and '{f.name}' "
                f"share order index {f.order_index}",
                field=f.name,
            )
        seen_orders[f.order_index] = f.name

    return sorted(fields, key=lambda f: f.order_index)
