"""Record validation against runtime model definitions.

Usage:
    from modelforge.validation import RecordValidator

    result = RecordValidator(model).validate(payload)
    if not result.valid:
        for violation in result.violations:
            ...
"""

from modelforge.validation.record_validator import RecordValidator
from modelforge.validation.types import (
    ValidationResult,
    Violation,
    ViolationCode,
)

__all__ = [
    "RecordValidator",
    "ValidationResult",
    "Violation",
    "ViolationCode",
]
