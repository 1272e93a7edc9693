"""Record validation against a ModelDefinition.

For each field, in order:
- absent value with a default: the default is substituted
- absent value on a required field: MISSING_REQUIRED_FIELD
- present value: coerced to the field type, TYPE_MISMATCH on failure

Payload keys the model does not declare are UNKNOWN_FIELD violations
(closed schema). Violations are collected, never short-circuited.
"""

from dataclasses import dataclass
from typing import Any

from modelforge.core.coercion import CoercionError, coerce, is_empty
from modelforge.schema.definitions import FieldDefinition, ModelDefinition
from modelforge.validation.types import ValidationResult, Violation, ViolationCode


@dataclass
class RecordValidator:
    """Validates candidate records for a single model."""

    model: ModelDefinition

    def validate(self, payload: dict[str, Any]) -> ValidationResult:
        """Validate and coerce a candidate record.

        Args:
            payload: Mapping from field name to raw value

        Returns:
            ValidationResult with the coerced record, or every violation found
        """
        violations: list[Violation] = []
        record: dict[str, Any] = {}

        for field_def in self.model.fields:
            value, violation = self._check_field(field_def, payload)
            if violation:
                violations.append(violation)
            else:
                record[field_def.name] = value

        known = set(self.model.field_names)
        for key in payload:
            if key not in known:
                violations.append(Violation(
                    code=ViolationCode.UNKNOWN_FIELD,
                    field=key,
                    message=f"'{key}' is not a field of {self.model.name}",
                ))

        if violations:
            return ValidationResult.rejected(violations)
        return ValidationResult.validated(record)

    def _check_field(
        self, field_def: FieldDefinition, payload: dict[str, Any]
    ) -> tuple[Any, Violation | None]:
        value = payload.get(field_def.name)

        if is_empty(value):
            if field_def.has_default:
                return field_def.default_value, None
            if field_def.required:
                return None, Violation(
                    code=ViolationCode.MISSING_REQUIRED_FIELD,
                    field=field_def.name,
                    message=f"{field_def.name} is required",
                )
            return None, None

        try:
            return coerce(field_def.type, value), None
        except CoercionError as e:
            return None, Violation(
                code=ViolationCode.TYPE_MISMATCH,
                field=field_def.name,
                message=f"{field_def.name}: {e}",
                expected_type=field_def.type,
            )
