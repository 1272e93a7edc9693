"""Model, record, access and role API endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from modelforge.auth.dependencies import get_current_context, get_orchestrator
from modelforge.auth.permissions import Operation
from modelforge.auth.types import DenialReason, RequestContext
from modelforge.core.types import describe_field_types
from modelforge.services.crud import CrudOrchestrator
from modelforge.services.types import CrudResult, ResultStatus


_STATUS_CODES = {
    ResultStatus.OK: 200,
    ResultStatus.INVALID: 422,
    ResultStatus.NOT_FOUND: 404,
    ResultStatus.CONFLICT: 409,
    ResultStatus.PARTIAL: 409,
    ResultStatus.FAILED: 500,
}


class FieldInput(BaseModel):
    """One field in a model create/update request."""
    name: str = ""
    type: str = "string"
    required: bool = False
    defaultValue: Any = None
    orderIndex: int | None = None


class ModelInput(BaseModel):
    """Request body for model create and update.

    Updates replace the whole field set, so every field must be sent.
    """
    name: str = ""
    description: str | None = None
    fields: list[FieldInput] = Field(default_factory=list)


class RecordInput(BaseModel):
    """Request body for record create, update and validate."""
    data: dict[str, Any]


class RoleInput(BaseModel):
    role: str


def _respond(result: CrudResult, created: bool = False) -> JSONResponse:
    """Map an orchestrator result onto an HTTP response.

    Denials keep the deny-then-redirect contract: the body names where the
    client should navigate instead of rendering an error page.
    """
    if result.status is ResultStatus.DENIED:
        no_session = result.decision and result.decision.reason is DenialReason.NO_SESSION
        status_code = 401 if no_session else 403
    elif result.ok and created:
        status_code = 201
    else:
        status_code = _STATUS_CODES[result.status]
    return JSONResponse(status_code=status_code, content=result.to_dict())


def create_router() -> APIRouter:
    """Create the API router for all guarded operations."""
    router = APIRouter(prefix="/api")

    # --- Metadata ---

    @router.get("/field-types")
    def list_field_types() -> dict[str, Any]:
        """List the closed set of field types for the model builder."""
        return {"fieldTypes": describe_field_types()}

    # --- Access ---

    @router.get("/me")
    def whoami(
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ) -> dict[str, Any]:
        """Resolved role and permitted operations for the caller."""
        return orchestrator.describe_access(ctx).to_dict()

    @router.get("/access/{operation}")
    def check_access(
        operation: str,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ) -> dict[str, Any]:
        op = Operation.parse(operation)
        if op is None:
            raise HTTPException(404, f"Unknown operation '{operation}'")
        return orchestrator.resolve_access(ctx, op).to_dict()

    # --- Models ---

    @router.get("/models")
    def list_models(
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.list_models(ctx))

    @router.post("/models")
    def create_model(
        body: ModelInput,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.create_model(ctx, body.model_dump()), created=True)

    @router.get("/models/{model_id}")
    def get_model(
        model_id: str,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.get_model(ctx, model_id))

    @router.put("/models/{model_id}")
    def update_model(
        model_id: str,
        body: ModelInput,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.update_model(ctx, model_id, body.model_dump()))

    @router.delete("/models/{model_id}")
    def delete_model(
        model_id: str,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.delete_model(ctx, model_id))

    @router.post("/models/{model_id}/validate")
    def validate_record(
        model_id: str,
        body: RecordInput,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.validate_record(ctx, model_id, body.data))

    # --- Records ---

    @router.get("/models/{model_id}/records")
    def list_records(
        model_id: str,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.list_records(ctx, model_id))

    @router.post("/models/{model_id}/records")
    def create_record(
        model_id: str,
        body: RecordInput,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.create_record(ctx, model_id, body.data), created=True)

    @router.get("/models/{model_id}/records/{record_id}")
    def get_record(
        model_id: str,
        record_id: str,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.get_record(ctx, model_id, record_id))

    @router.put("/models/{model_id}/records/{record_id}")
    def update_record(
        model_id: str,
        record_id: str,
        body: RecordInput,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.update_record(ctx, model_id, record_id, body.data))

    @router.delete("/models/{model_id}/records/{record_id}")
    def delete_record(
        model_id: str,
        record_id: str,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.delete_record(ctx, model_id, record_id))

    # --- Role assignments ---

    @router.get("/roles")
    def list_roles(
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.list_role_assignments(ctx))

    @router.put("/roles/{identity_id}")
    def assign_role(
        identity_id: str,
        body: RoleInput,
        ctx: RequestContext = Depends(get_current_context),
        orchestrator: CrudOrchestrator = Depends(get_orchestrator),
    ):
        return _respond(orchestrator.assign_role(ctx, identity_id, body.role))

    return router
