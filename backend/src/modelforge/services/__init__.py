"""Guarded CRUD services."""

from modelforge.services.crud import CrudOrchestrator
from modelforge.services.types import CrudResult, ResultStatus

__all__ = ["CrudOrchestrator", "CrudResult", "ResultStatus"]
