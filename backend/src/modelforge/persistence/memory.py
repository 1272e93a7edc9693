"""In-memory store for tests, demos and the ``memory://`` database URL.

The store keeps plain dicts and has no transactions: a model update renames
first and then replaces the fields as a separate step. If the second step
fails, the rename is kept and PartialUpdate is raised.
"""

import copy
import itertools
import uuid
from datetime import datetime, timezone
from typing import Any

from modelforge.auth.types import Role
from modelforge.errors import ConflictError, NotFound, PartialUpdate
from modelforge.schema.definitions import FieldDefinition, ModelDefinition, ModelSummary


class InMemoryStore:
    """Dict-backed schema, record and role store."""

    def __init__(self) -> None:
        self._models: dict[str, dict[str, Any]] = {}
        self._fields: dict[str, list[FieldDefinition]] = {}
        self._records: dict[str, dict[str, dict[str, Any]]] = {}
        self._roles: dict[str, Role] = {}
        # Creation sequence breaks timestamp ties in newest-first listings
        self._sequence = itertools.count()

    def connect(self) -> None:
        pass

    def close(self) -> None:
        pass

    def _new_id(self) -> str:
        return uuid.uuid4().hex

    # ------------------------------------------------------------------
    # SchemaStore
    # ------------------------------------------------------------------

    def create_model(self, definition: ModelDefinition) -> str:
        model_id = self._new_id()
        if model_id in self._models:
            raise ConflictError(f"Model id '{model_id}' already exists")

        now = datetime.now(timezone.utc)
        self._models[model_id] = {
            "name": definition.name,
            "description": definition.description,
            "created_by": definition.created_by,
            "created_at": now,
            "updated_at": now,
            "seq": next(self._sequence),
        }
        self._fields[model_id] = copy.deepcopy(definition.fields)
        self._records[model_id] = {}
        return model_id

    def get_model(self, id: str) -> ModelDefinition:
        row = self._models.get(id)
        if row is None:
            raise NotFound("Model", id)
        return ModelDefinition(
            id=id,
            name=row["name"],
            description=row["description"],
            created_by=row["created_by"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            fields=copy.deepcopy(self._fields[id]),
        )

    def list_models(self) -> list[ModelSummary]:
        ordered = sorted(
            self._models.items(),
            key=lambda item: (item[1]["created_at"], item[1]["seq"]),
            reverse=True,
        )
        return [
            ModelSummary(
                id=model_id,
                name=row["name"],
                description=row["description"],
                created_by=row["created_by"],
                created_at=row["created_at"],
                field_count=len(self._fields[model_id]),
            )
            for model_id, row in ordered
        ]

    def update_model(
        self,
        id: str,
        name: str,
        description: str | None,
        fields: list[FieldDefinition],
    ) -> ModelDefinition:
        row = self._models.get(id)
        if row is None:
            raise NotFound("Model", id)

        row["name"] = name
        row["description"] = description
        row["updated_at"] = datetime.now(timezone.utc)

        try:
            self._replace_fields(id, fields)
        except Exception as e:
            raise PartialUpdate(id, cause=e) from e

        return self.get_model(id)

    def _replace_fields(self, id: str, fields: list[FieldDefinition]) -> None:
        """Store a copy of the new field set in place of the old one."""
        self._fields[id] = copy.deepcopy(fields)

    def delete_model(self, id: str) -> None:
        if id not in self._models:
            raise NotFound("Model", id)
        del self._models[id]
        del self._fields[id]
        del self._records[id]

    def count_records(self, model_id: str) -> int:
        return len(self._records.get(model_id, {}))

    # ------------------------------------------------------------------
    # RoleAssignmentStore
    # ------------------------------------------------------------------

    def get_role(self, identity_id: str) -> Role | None:
        return self._roles.get(identity_id)

    def set_role(self, identity_id: str, role: Role) -> None:
        self._roles[identity_id] = role

    def list_roles(self) -> dict[str, Role]:
        return dict(sorted(self._roles.items()))

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    def _model_records(self, model_id: str) -> dict[str, dict[str, Any]]:
        if model_id not in self._models:
            raise NotFound("Model", model_id)
        return self._records[model_id]

    def create_record(
        self, model_id: str, data: dict[str, Any], created_by: str | None = None
    ) -> dict[str, Any]:
        records = self._model_records(model_id)
        record_id = self._new_id()
        now = datetime.now(timezone.utc).isoformat()
        records[record_id] = {
            "id": record_id,
            "modelId": model_id,
            "data": copy.deepcopy(data),
            "createdBy": created_by,
            "createdAt": now,
            "updatedAt": now,
            "seq": next(self._sequence),
        }
        return self.get_record(model_id, record_id)

    def get_record(self, model_id: str, record_id: str) -> dict[str, Any]:
        record = self._records.get(model_id, {}).get(record_id)
        if record is None:
            raise NotFound("Record", record_id)
        result = copy.deepcopy(record)
        result.pop("seq")
        return result

    def list_records(self, model_id: str) -> list[dict[str, Any]]:
        records = self._model_records(model_id)
        ordered = sorted(records.values(), key=lambda r: r["seq"], reverse=True)
        return [self.get_record(model_id, r["id"]) for r in ordered]

    def update_record(
        self, model_id: str, record_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        record = self._records.get(model_id, {}).get(record_id)
        if record is None:
            raise NotFound("Record", record_id)
        record["data"] = copy.deepcopy(data)
        record["updatedAt"] = datetime.now(timezone.utc).isoformat()
        return self.get_record(model_id, record_id)

    def delete_record(self, model_id: str, record_id: str) -> None:
        records = self._records.get(model_id, {})
        if record_id not in records:
            raise NotFound("Record", record_id)
        del records[record_id]
