"""Result type returned by every CrudOrchestrator operation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from modelforge.auth.types import AccessDecision, DenialReason
from modelforge.validation.types import Violation


class ResultStatus(Enum):
    OK = "ok"
    DENIED = "denied"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PARTIAL = "partial"
    FAILED = "failed"


# Shown to callers in place of storage transport details
GENERIC_FAILURE_MESSAGE = "The operation could not be completed. Please try again."


@dataclass
class CrudResult:
    """Outcome of an orchestrated operation.

    Attributes:
        status: What happened
        data: Payload for OK results (model, summaries, record, ...)
        violations: Record violations for INVALID results
        decision: The denial for DENIED results
        message: Human-readable explanation for non-OK results
    """

    status: ResultStatus
    data: Any = None
    violations: list[Violation] = field(default_factory=list)
    decision: AccessDecision | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is ResultStatus.OK

    @classmethod
    def success(cls, data: Any = None) -> "CrudResult":
        return cls(status=ResultStatus.OK, data=data)

    @classmethod
    def denied(cls, decision: AccessDecision) -> "CrudResult":
        return cls(
            status=ResultStatus.DENIED,
            decision=decision,
            message=(
                "Authentication required"
                if decision.reason is DenialReason.NO_SESSION
                else "Insufficient permissions"
            ),
        )

    @classmethod
    def invalid(cls, message: str, violations: list[Violation] | None = None) -> "CrudResult":
        return cls(status=ResultStatus.INVALID, message=message, violations=violations or [])

    @classmethod
    def not_found(cls, message: str) -> "CrudResult":
        return cls(status=ResultStatus.NOT_FOUND, message=message)

    @classmethod
    def conflict(cls, message: str) -> "CrudResult":
        return cls(status=ResultStatus.CONFLICT, message=message)

    @classmethod
    def partial(cls, message: str) -> "CrudResult":
        return cls(status=ResultStatus.PARTIAL, message=message)

    @classmethod
    def failed(cls, message: str = GENERIC_FAILURE_MESSAGE) -> "CrudResult":
        return cls(status=ResultStatus.FAILED, message=message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": self.status.value}
        if self.data is not None:
            result["data"] = self.data
        if self.message:
            result["message"] = self.message
        if self.violations:
            result["violations"] = [v.to_dict() for v in self.violations]
        if self.decision is not None:
            result["reason"] = self.decision.reason.value if self.decision.reason else None
            result["redirectTo"] = self.decision.redirect_to
        return result
