"""FastAPI dependencies for request context and services."""

from fastapi import HTTPException, Request

from modelforge.auth.middleware import get_request_context
from modelforge.auth.types import RequestContext
from modelforge.services.crud import CrudOrchestrator


def get_current_context(request: Request) -> RequestContext:
    """Dependency to get the caller's RequestContext.

    This is a soft dependency - anonymous callers get a context without a
    session. Guards in the orchestrator decide what they may do.
    """
    return get_request_context(request)


def get_orchestrator(request: Request) -> CrudOrchestrator:
    """Dependency to get the application's CrudOrchestrator.

    Raises:
        HTTPException 500 if the application has not finished starting
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(500, "Not initialized")
    return orchestrator
