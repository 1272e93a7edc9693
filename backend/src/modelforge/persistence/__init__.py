"""Persistence layer - schema, record and role stores."""

from modelforge.persistence.adapter import (
    RecordStore,
    RoleAssignmentStore,
    SchemaStore,
    Store,
)
from modelforge.persistence.config import DatabaseConfig, create_store

__all__ = [
    "RecordStore",
    "RoleAssignmentStore",
    "SchemaStore",
    "Store",
    "DatabaseConfig",
    "create_store",
]
