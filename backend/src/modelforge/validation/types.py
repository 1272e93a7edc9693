"""Core types for record validation.

A record is validated against its ModelDefinition in one pass. Every
problem becomes a Violation; the validator never stops at the first one, so
a client can show all problems at once.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ViolationCode(Enum):
    """Machine-readable reason for a violation."""

    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    UNKNOWN_FIELD = "UNKNOWN_FIELD"


@dataclass(frozen=True)
class Violation:
    """A single validation failure naming a field and reason.

    Attributes:
        code: Why the field failed
        field: Field name (or the unknown payload key)
        message: Human-readable message
        expected_type: For TYPE_MISMATCH, the field's declared type
    """

    code: ViolationCode
    field: str
    message: str
    expected_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "code": self.code.value,
            "field": self.field,
            "message": self.message,
        }
        if self.expected_type:
            result["expectedType"] = self.expected_type
        return result


@dataclass
class ValidationResult:
    """Outcome of validating a record.

    Either ``valid`` with a fully coerced ``record`` (Validated), or not
    valid with the ordered list of ``violations`` (Rejected).
    """

    valid: bool
    record: dict[str, Any] | None = None
    violations: list[Violation] = field(default_factory=list)

    @classmethod
    def validated(cls, record: dict[str, Any]) -> "ValidationResult":
        return cls(valid=True, record=record)

    @classmethod
    def rejected(cls, violations: list[Violation]) -> "ValidationResult":
        return cls(valid=False, violations=list(violations))

    def to_dict(self) -> dict[str, Any]:
        if self.valid:
            return {"valid": True, "record": self.record}
        return {
            "valid": False,
            "violations": [v.to_dict() for v in self.violations],
        }
