"""Authentication middleware for FastAPI."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from modelforge.auth.jwt_service import JWTError, JWTService
from modelforge.auth.types import RequestContext, Role

OVERRIDE_HEADER = "X-Role-Override"


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that builds a RequestContext for each request.

    The middleware:
    1. Extracts a Bearer token from the Authorization header
    2. Decodes and validates the JWT into a Session
    3. Reads the X-Role-Override header when overrides are enabled
    4. Sets request.state.request_context

    Invalid or missing tokens yield a context without a session. The
    middleware does NOT reject requests; the access control engine does.
    """

    def __init__(self, app, jwt_service: JWTService, allow_role_override: bool = False):
        """Initialize middleware.

        Args:
            app: The ASGI application
            jwt_service: JWT service for token validation
            allow_role_override: Honour the X-Role-Override header
        """
        super().__init__(app)
        self._jwt_service = jwt_service
        self._allow_role_override = allow_role_override

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process the request and attach the caller's context."""
        session = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header[7:]  # Remove "Bearer " prefix
            try:
                claims = self._jwt_service.decode_token(token)
                if claims.type == "access":
                    session = claims.to_session()
            except JWTError:
                # Invalid token - leave session as None
                pass

        override = None
        if self._allow_role_override:
            override = Role.parse(request.headers.get(OVERRIDE_HEADER))

        request.state.request_context = RequestContext(
            session=session, override_role=override
        )
        return await call_next(request)


def get_request_context(request: Request) -> RequestContext:
    """Get the request context from the request state.

    Returns an anonymous context when the middleware did not run.
    """
    return getattr(request.state, "request_context", None) or RequestContext()
