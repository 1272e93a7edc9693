"""CRUD orchestration for models, records and role assignments.

Every operation follows the same sequence:

1. Session guard, then role guard for the operation. A denial returns
   before the store is touched.
2. Input checks: model input becomes a ModelDefinition, record payloads go
   through the RecordValidator. Failures return INVALID and nothing is
   written.
3. One or more sequential store calls. Store exceptions are translated into
   result statuses here; storage transport failures are logged and reported
   as a generic FAILED result.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from modelforge.auth.permissions import AccessControlEngine, Operation
from modelforge.auth.roles import RoleResolver
from modelforge.auth.types import AccessDecision, AccessSummary, RequestContext, Role
from modelforge.errors import (
    ConflictError,
    InvalidField,
    InvalidModel,
    NotFound,
    PartialUpdate,
    StorageError,
)
from modelforge.persistence.adapter import Store
from modelforge.schema.definitions import FieldDefinition, ModelDefinition
from modelforge.services.types import CrudResult
from modelforge.validation.record_validator import RecordValidator

logger = logging.getLogger(__name__)


class CrudOrchestrator:
    """Guarded entry point for every model, record and RBAC operation."""

    def __init__(self, store: Store, engine: AccessControlEngine):
        self.store = store
        self.engine = engine

    @classmethod
    def from_store(cls, store: Store, fail_closed: bool = False) -> CrudOrchestrator:
        """Build an orchestrator whose roles are resolved from the same store."""
        resolver = RoleResolver(store, fail_closed=fail_closed)
        return cls(store, AccessControlEngine(resolver))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _guard(self, ctx: RequestContext, operation: Operation) -> CrudResult | None:
        decision = self.engine.resolve_access(ctx, operation)
        if not decision.allowed:
            return CrudResult.denied(decision)
        return None

    def _call(self, action: str, fn: Callable[[], CrudResult]) -> CrudResult:
        """Run store work, translating store exceptions into results."""
        try:
            return fn()
        except NotFound as e:
            logger.info("%s: %s", action, e)
            return CrudResult.not_found(str(e))
        except PartialUpdate as e:
            logger.error("%s: %s", action, e, exc_info=e.cause)
            return CrudResult.partial(str(e))
        except ConflictError as e:
            logger.warning("%s: %s", action, e)
            return CrudResult.conflict(str(e))
        except StorageError:
            logger.exception("%s failed", action)
            return CrudResult.failed()

    @staticmethod
    def _definition_from_input(
        input: dict[str, Any], created_by: str | None = None
    ) -> ModelDefinition:
        if not isinstance(input, dict):
            raise InvalidModel("Model input must be an object")
        data = dict(input)
        data["createdBy"] = created_by
        return ModelDefinition.from_dict(data)

    def _check_type_lock(self, model_id: str, fields: list[FieldDefinition]) -> None:
        """Reject field type changes once the model has records.

        Raises:
            ConflictError: If a resent field changes type while records exist
        """
        if self.store.count_records(model_id) == 0:
            return
        existing = self.store.get_model(model_id)
        for f in fields:
            current = existing.get_field(f.name)
            if current is not None and current.type != f.type:
                raise ConflictError(
                    f"Field '{f.name}' cannot change type from {current.type} "
                    f"to {f.type} while records exist"
                )

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def resolve_access(self, ctx: RequestContext, operation: Operation) -> AccessDecision:
        return self.engine.resolve_access(ctx, operation)

    def describe_access(self, ctx: RequestContext) -> AccessSummary:
        return self.engine.permitted_operations(ctx)

    # ------------------------------------------------------------------
    # Models
    # ------------------------------------------------------------------

    def list_models(self, ctx: RequestContext) -> CrudResult:
        denied = self._guard(ctx, Operation.LIST_MODELS)
        if denied:
            return denied

        def run() -> CrudResult:
            return CrudResult.success([s.to_dict() for s in self.store.list_models()])

        return self._call("List models", run)

    def get_model(self, ctx: RequestContext, id: str) -> CrudResult:
        denied = self._guard(ctx, Operation.VIEW_MODEL)
        if denied:
            return denied
        return self._call(
            "Get model", lambda: CrudResult.success(self.store.get_model(id).to_dict())
        )

    def create_model(self, ctx: RequestContext, input: dict[str, Any]) -> CrudResult:
        denied = self._guard(ctx, Operation.CREATE_MODEL)
        if denied:
            return denied

        try:
            definition = self._definition_from_input(
                input, created_by=ctx.identity.id if ctx.identity else None
            )
        except (InvalidField, InvalidModel) as e:
            return CrudResult.invalid(str(e))

        def run() -> CrudResult:
            model_id = self.store.create_model(definition)
            logger.info("Created model %s (%s)", definition.name, model_id)
            return CrudResult.success(self.store.get_model(model_id).to_dict())

        return self._call("Create model", run)

    def update_model(self, ctx: RequestContext, id: str, input: dict[str, Any]) -> CrudResult:
        """Replace a model's name, description and full field set.

        Fields missing from ``input`` are removed; callers resend every field.
        """
        denied = self._guard(ctx, Operation.EDIT_MODEL)
        if denied:
            return denied

        try:
            definition = self._definition_from_input(input)
        except (InvalidField, InvalidModel) as e:
            return CrudResult.invalid(str(e))

        def run() -> CrudResult:
            self._check_type_lock(id, definition.fields)
            updated = self.store.update_model(
                id, definition.name, definition.description, definition.fields
            )
            logger.info("Updated model %s (%d fields)", id, len(updated.fields))
            return CrudResult.success(updated.to_dict())

        return self._call("Update model", run)

    def delete_model(self, ctx: RequestContext, id: str) -> CrudResult:
        """Delete a model with its fields and records.

        A missing model is reported as NOT_FOUND without side effects, so a
        repeated delete is harmless.
        """
        denied = self._guard(ctx, Operation.DELETE_MODEL)
        if denied:
            return denied

        def run() -> CrudResult:
            self.store.delete_model(id)
            logger.info("Deleted model %s", id)
            return CrudResult.success({"id": id, "deleted": True})

        return self._call("Delete model", run)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def validate_record(
        self, ctx: RequestContext, model_id: str, payload: dict[str, Any]
    ) -> CrudResult:
        """Validate a payload without writing it.

        OK carries the coerced record; INVALID carries every violation.
        """
        denied = self._guard(ctx, Operation.VIEW_RECORDS)
        if denied:
            return denied
        if not isinstance(payload, dict):
            return CrudResult.invalid("Record payload must be an object")

        def run() -> CrudResult:
            result = RecordValidator(self.store.get_model(model_id)).validate(payload)
            if not result.valid:
                return CrudResult.invalid("Record is invalid", result.violations)
            return CrudResult.success(result.record)

        return self._call("Validate record", run)

    def list_records(self, ctx: RequestContext, model_id: str) -> CrudResult:
        denied = self._guard(ctx, Operation.VIEW_RECORDS)
        if denied:
            return denied
        return self._call(
            "List records", lambda: CrudResult.success(self.store.list_records(model_id))
        )

    def get_record(self, ctx: RequestContext, model_id: str, record_id: str) -> CrudResult:
        denied = self._guard(ctx, Operation.VIEW_RECORDS)
        if denied:
            return denied
        return self._call(
            "Get record",
            lambda: CrudResult.success(self.store.get_record(model_id, record_id)),
        )

    def create_record(
        self, ctx: RequestContext, model_id: str, payload: dict[str, Any]
    ) -> CrudResult:
        denied = self._guard(ctx, Operation.CREATE_RECORD)
        if denied:
            return denied
        if not isinstance(payload, dict):
            return CrudResult.invalid("Record payload must be an object")

        def run() -> CrudResult:
            result = RecordValidator(self.store.get_model(model_id)).validate(payload)
            if not result.valid:
                return CrudResult.invalid("Record is invalid", result.violations)
            record = self.store.create_record(
                model_id,
                result.record,
                created_by=ctx.identity.id if ctx.identity else None,
            )
            return CrudResult.success(record)

        return self._call("Create record", run)

    def update_record(
        self,
        ctx: RequestContext,
        model_id: str,
        record_id: str,
        payload: dict[str, Any],
    ) -> CrudResult:
        """Replace a record's data with a fully validated payload."""
        denied = self._guard(ctx, Operation.EDIT_RECORD)
        if denied:
            return denied
        if not isinstance(payload, dict):
            return CrudResult.invalid("Record payload must be an object")

        def run() -> CrudResult:
            result = RecordValidator(self.store.get_model(model_id)).validate(payload)
            if not result.valid:
                return CrudResult.invalid("Record is invalid", result.violations)
            return CrudResult.success(
                self.store.update_record(model_id, record_id, result.record)
            )

        return self._call("Update record", run)

    def delete_record(self, ctx: RequestContext, model_id: str, record_id: str) -> CrudResult:
        denied = self._guard(ctx, Operation.DELETE_RECORD)
        if denied:
            return denied

        def run() -> CrudResult:
            self.store.delete_record(model_id, record_id)
            return CrudResult.success({"id": record_id, "deleted": True})

        return self._call("Delete record", run)

    # ------------------------------------------------------------------
    # Role assignments
    # ------------------------------------------------------------------

    def list_role_assignments(self, ctx: RequestContext) -> CrudResult:
        denied = self._guard(ctx, Operation.MANAGE_RBAC)
        if denied:
            return denied

        def run() -> CrudResult:
            roles = self.store.list_roles()
            return CrudResult.success(
                [{"identityId": k, "role": v.value} for k, v in roles.items()]
            )

        return self._call("List role assignments", run)

    def assign_role(self, ctx: RequestContext, identity_id: str, role: str | Role) -> CrudResult:
        denied = self._guard(ctx, Operation.MANAGE_RBAC)
        if denied:
            return denied

        parsed = Role.parse(role)
        if parsed is None:
            return CrudResult.invalid(
                f"Unknown role '{role}'. Expected one of: {', '.join(r.value for r in Role)}"
            )
        if not identity_id or not identity_id.strip():
            return CrudResult.invalid("Identity id must not be empty")

        def run() -> CrudResult:
            self.store.set_role(identity_id.strip(), parsed)
            logger.info("Assigned role %s to %s", parsed.value, identity_id)
            return CrudResult.success({"identityId": identity_id.strip(), "role": parsed.value})

        return self._call("Assign role", run)
