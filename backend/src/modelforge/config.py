"""Application configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from modelforge.persistence.config import DatabaseConfig

DEV_SECRET_KEY = "dev-secret-key-change-in-production"


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AppConfig:
    """Runtime settings for the API, CLI and engine.

    Attributes:
        database: Where models, records and role assignments live
        secret_key: Signing key for session JWTs
        allow_role_override: Honour the X-Role-Override request header
        role_fail_closed: Deny instead of defaulting to viewer when the
            role lookup fails
        log_level: Level name for the standard logging module
        port: Port for ``modelforge serve``
        cors_origins: Allowed browser origins
    """

    database: DatabaseConfig
    secret_key: str = DEV_SECRET_KEY
    allow_role_override: bool = False
    role_fail_closed: bool = False
    log_level: str = "info"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:5173"])

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> AppConfig:
        origins = os.environ.get("MODELFORGE_CORS_ORIGINS")
        return cls(
            database=DatabaseConfig.from_env(base_path),
            secret_key=os.environ.get("MODELFORGE_SECRET_KEY", DEV_SECRET_KEY),
            allow_role_override=_env_flag("MODELFORGE_ALLOW_ROLE_OVERRIDE"),
            role_fail_closed=_env_flag("MODELFORGE_ROLE_FAIL_CLOSED"),
            log_level=os.environ.get("MODELFORGE_LOG_LEVEL", "info").lower(),
            port=int(os.environ.get("MODELFORGE_PORT", "8000")),
            cors_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins
                else ["http://localhost:5173"]
            ),
        )
