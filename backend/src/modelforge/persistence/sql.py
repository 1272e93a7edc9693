"""Shared SQL implementation for the SQLite and PostgreSQL stores.

Statements are written with ``?`` placeholders; dialect subclasses rewrite
them where needed (see PostgreSQLStore._sql). Subclasses supply the
connection and the driver exception classes.

Tables:
  models      one row per model definition
  fields      one row per field, FK to models with ON DELETE CASCADE
  records     one row per record, data stored as JSON, FK with cascade
  user_roles  identity → role assignments
"""

from __future__ import annotations

import json
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator

from modelforge.auth.types import Role
from modelforge.errors import ConflictError, NotFound, StorageError
from modelforge.schema.definitions import FieldDefinition, ModelDefinition, ModelSummary


SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS models (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        created_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS fields (
        model_id TEXT NOT NULL REFERENCES models(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        field_type TEXT NOT NULL,
        required INTEGER NOT NULL DEFAULT 0,
        default_value TEXT,
        order_index INTEGER NOT NULL,
        PRIMARY KEY (model_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS records (
        id TEXT PRIMARY KEY,
        model_id TEXT NOT NULL REFERENCES models(id) ON DELETE CASCADE,
        data TEXT NOT NULL,
        created_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_roles (
        identity_id TEXT PRIMARY KEY,
        role TEXT NOT NULL
    )
    """,
]


class SQLStore:
    """Schema, record and role store over a DB-API style connection."""

    # Driver exception classes, set by subclasses
    driver_error: type[Exception] = Exception
    integrity_error: type[Exception] = Exception

    def __init__(self) -> None:
        self.conn: Any = None
        self._last_timestamp: datetime | None = None
        # One connection is shared by all request threads; transactions must not interleave
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def initialize(self) -> None:
        """Create tables if they don't exist."""
        with self._transaction() as conn:
            for statement in SCHEMA_STATEMENTS:
                conn.execute(statement)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _sql(self, sql: str) -> str:
        """Adapt a ``?``-placeholder statement to the driver's paramstyle."""
        return sql

    def _execute(self, sql: str, params: list | tuple = ()) -> Any:
        return self.conn.execute(self._sql(sql), params)

    @contextmanager
    def _transaction(self) -> Iterator[Any]:
        """Run a block in one transaction, translating driver errors.

        Holds the store lock for the whole block, so another thread cannot
        commit this transaction's uncommitted statements.
        """
        if not self.conn:
            raise RuntimeError("Database not connected")
        with self._lock:
            try:
                yield self.conn
                self.conn.commit()
            except self.integrity_error as e:
                self.conn.rollback()
                raise ConflictError(f"Integrity error: {e}") from e
            except self.driver_error as e:
                self.conn.rollback()
                raise StorageError(f"Database error: {e}") from e
            except Exception:
                self.conn.rollback()
                raise

    def _now(self) -> datetime:
        """UTC timestamp, strictly increasing within this store."""
        with self._lock:
            now = datetime.now(timezone.utc)
            if self._last_timestamp and now <= self._last_timestamp:
                now = self._last_timestamp + timedelta(microseconds=1)
            self._last_timestamp = now
            return now

    def _insert_fields(self, model_id: str, fields: list[FieldDefinition]) -> None:
        for f in fields:
            self._execute(
                "INSERT INTO fields (model_id, name, field_type, required, default_value, order_index) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [
                    model_id,
                    f.name,
                    f.type,
                    1 if f.required else 0,
                    json.dumps(f.default_value) if f.has_default else None,
                    f.order_index,
                ],
            )

    @staticmethod
    def _row_to_field(row: Any) -> FieldDefinition:
        default = row["default_value"]
        return FieldDefinition(
            name=row["name"],
            type=row["field_type"],
            required=bool(row["required"]),
            default_value=json.loads(default) if default is not None else None,
            order_index=row["order_index"],
        )

    @staticmethod
    def _row_to_record(row: Any) -> dict[str, Any]:
        return {
            "id": row["id"],
            "modelId": row["model_id"],
            "data": json.loads(row["data"]),
            "createdBy": row["created_by"],
            "createdAt": row["created_at"],
            "updatedAt": row["updated_at"],
        }

    def _model_exists(self, id: str) -> bool:
        row = self._execute("SELECT 1 FROM models WHERE id = ?", [id]).fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # SchemaStore
    # ------------------------------------------------------------------

    def create_model(self, definition: ModelDefinition) -> str:
        model_id = uuid.uuid4().hex
        now = self._now().isoformat()

        with self._transaction():
            self._execute(
                "INSERT INTO models (id, name, description, created_by, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [model_id, definition.name, definition.description,
                 definition.created_by, now, now],
            )
            self._insert_fields(model_id, definition.fields)

        return model_id

    def get_model(self, id: str) -> ModelDefinition:
        with self._transaction():
            row = self._execute("SELECT * FROM models WHERE id = ?", [id]).fetchone()
            if row is None:
                raise NotFound("Model", id)
            field_rows = self._execute(
                "SELECT * FROM fields WHERE model_id = ? ORDER BY order_index", [id]
            ).fetchall()

        return ModelDefinition(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            created_by=row["created_by"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            fields=[self._row_to_field(r) for r in field_rows],
        )

    def list_models(self) -> list[ModelSummary]:
        with self._transaction():
            rows = self._execute(
                "SELECT m.id, m.name, m.description, m.created_by, m.created_at, "
                "(SELECT COUNT(*) FROM fields f WHERE f.model_id = m.id) AS field_count "
                "FROM models m ORDER BY m.created_at DESC, m.id DESC"
            ).fetchall()

        return [
            ModelSummary(
                id=row["id"],
                name=row["name"],
                description=row["description"],
                created_by=row["created_by"],
                created_at=datetime.fromisoformat(row["created_at"]),
                field_count=int(row["field_count"]),
            )
            for row in rows
        ]

    def update_model(
        self,
        id: str,
        name: str,
        description: str | None,
        fields: list[FieldDefinition],
    ) -> ModelDefinition:
        # Rename and field replacement share one transaction
        with self._transaction():
            cursor = self._execute(
                "UPDATE models SET name = ?, description = ?, updated_at = ? WHERE id = ?",
                [name, description, self._now().isoformat(), id],
            )
            if cursor.rowcount == 0:
                raise NotFound("Model", id)
            self._execute("DELETE FROM fields WHERE model_id = ?", [id])
            self._insert_fields(id, fields)

        return self.get_model(id)

    def delete_model(self, id: str) -> None:
        with self._transaction():
            cursor = self._execute("DELETE FROM models WHERE id = ?", [id])
            if cursor.rowcount == 0:
                raise NotFound("Model", id)

    def count_records(self, model_id: str) -> int:
        with self._transaction():
            row = self._execute(
                "SELECT COUNT(*) AS n FROM records WHERE model_id = ?", [model_id]
            ).fetchone()
        return int(row["n"]) if row else 0

    # ------------------------------------------------------------------
    # RoleAssignmentStore
    # ------------------------------------------------------------------

    def get_role(self, identity_id: str) -> Role | None:
        with self._transaction():
            row = self._execute(
                "SELECT role FROM user_roles WHERE identity_id = ?", [identity_id]
            ).fetchone()
        return Role.parse(row["role"]) if row else None

    def set_role(self, identity_id: str, role: Role) -> None:
        with self._transaction():
            self._execute(
                "INSERT INTO user_roles (identity_id, role) VALUES (?, ?) "
                "ON CONFLICT (identity_id) DO UPDATE SET role = excluded.role",
                [identity_id, role.value],
            )

    def list_roles(self) -> dict[str, Role]:
        with self._transaction():
            rows = self._execute(
                "SELECT identity_id, role FROM user_roles ORDER BY identity_id"
            ).fetchall()
        result = {}
        for row in rows:
            role = Role.parse(row["role"])
            if role:
                result[row["identity_id"]] = role
        return result

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    def create_record(
        self, model_id: str, data: dict[str, Any], created_by: str | None = None
    ) -> dict[str, Any]:
        record_id = uuid.uuid4().hex
        now = self._now().isoformat()

        with self._transaction():
            if not self._model_exists(model_id):
                raise NotFound("Model", model_id)
            self._execute(
                "INSERT INTO records (id, model_id, data, created_by, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                [record_id, model_id, json.dumps(data), created_by, now, now],
            )

        return self.get_record(model_id, record_id)

    def get_record(self, model_id: str, record_id: str) -> dict[str, Any]:
        with self._transaction():
            row = self._execute(
                "SELECT * FROM records WHERE id = ? AND model_id = ?",
                [record_id, model_id],
            ).fetchone()
        if row is None:
            raise NotFound("Record", record_id)
        return self._row_to_record(row)

    def list_records(self, model_id: str) -> list[dict[str, Any]]:
        with self._transaction():
            if not self._model_exists(model_id):
                raise NotFound("Model", model_id)
            rows = self._execute(
                "SELECT * FROM records WHERE model_id = ? ORDER BY created_at DESC, id DESC",
                [model_id],
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def update_record(
        self, model_id: str, record_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        with self._transaction():
            cursor = self._execute(
                "UPDATE records SET data = ?, updated_at = ? WHERE id = ? AND model_id = ?",
                [json.dumps(data), self._now().isoformat(), record_id, model_id],
            )
            if cursor.rowcount == 0:
                raise NotFound("Record", record_id)

        return self.get_record(model_id, record_id)

    def delete_record(self, model_id: str, record_id: str) -> None:
        with self._transaction():
            cursor = self._execute(
                "DELETE FROM records WHERE id = ? AND model_id = ?", [record_id, model_id]
            )
            if cursor.rowcount == 0:
                raise NotFound("Record", record_id)
