"""FastAPI application."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from modelforge.api.endpoints import create_router
from modelforge.auth.jwt_service import JWTService
from modelforge.auth.middleware import AuthMiddleware
from modelforge.config import DEV_SECRET_KEY, AppConfig
from modelforge.persistence import create_store
from modelforge.services.crud import CrudOrchestrator

logger = logging.getLogger(__name__)


def _base_path() -> Path:
    """Project root, whether started from the repo root or backend/."""
    cwd = Path.cwd()
    if cwd.name == "backend":
        return cwd.parent
    return cwd


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the API application.

    Args:
        config: Settings to use; read from the environment when omitted

    Returns:
        A FastAPI app whose store connects on startup and closes on shutdown
    """
    if config is None:
        config = AppConfig.from_env(_base_path())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Connect the store on startup, close it on shutdown."""
        store = create_store(config.database)
        store.connect()
        app.state.orchestrator = CrudOrchestrator.from_store(
            store, fail_closed=config.role_fail_closed
        )

        if config.secret_key == DEV_SECRET_KEY:
            logger.warning("MODELFORGE_SECRET_KEY is not set; using the development key")
        if config.allow_role_override:
            logger.warning(
                "Role overrides are enabled: any caller can choose its role "
                "with the X-Role-Override header"
            )

        yield

        app.state.orchestrator = None
        store.close()

    app = FastAPI(title="ModelForge API", lifespan=lifespan)
    app.state.config = config
    app.state.jwt_service = JWTService(config.secret_key)

    app.add_middleware(
        AuthMiddleware,
        jwt_service=app.state.jwt_service,
        allow_role_override=config.allow_role_override,
    )
    # CORS for frontend dev server
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_router())
    return app


app = create_app()
