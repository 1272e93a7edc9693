"""Store protocols shared by all persistence backends."""

from typing import Any, Protocol, runtime_checkable

from modelforge.auth.types import Role
from modelforge.schema.definitions import FieldDefinition, ModelDefinition, ModelSummary


@runtime_checkable
class SchemaStore(Protocol):
    """Repository of model definitions.

    Every operation is a durable read or write against the backing store;
    there is no cache. Driver errors surface as StorageError.
    """

    def connect(self) -> None: ...

    def close(self) -> None: ...

    def create_model(self, definition: ModelDefinition) -> str:
        """Persist a model and its fields, returning the assigned id.

        Raises ConflictError only if the generated id collides.
        """
        ...

    def get_model(self, id: str) -> ModelDefinition:
        """Fetch a model with its fields. Raises NotFound."""
        ...

    def list_models(self) -> list[ModelSummary]:
        """List model summaries, newest first."""
        ...

    def update_model(
        self,
        id: str,
        name: str,
        description: str | None,
        fields: list[FieldDefinition],
    ) -> ModelDefinition:
        """Replace name/description and the whole field set.

        Fields not resent are dropped (replace, not merge). Raises NotFound,
        or PartialUpdate when the two steps cannot be applied together.
        """
        ...

    def delete_model(self, id: str) -> None:
        """Delete a model, its fields and its records. Raises NotFound."""
        ...

    def count_records(self, model_id: str) -> int: ...


@runtime_checkable
class RoleAssignmentStore(Protocol):
    """Persisted identity → role assignments."""

    def get_role(self, identity_id: str) -> Role | None: ...

    def set_role(self, identity_id: str, role: Role) -> None: ...

    def list_roles(self) -> dict[str, Role]: ...


@runtime_checkable
class RecordStore(Protocol):
    """Records of runtime-defined models, keyed by model id.

    Records arrive already validated; the store does not re-check them.
    """

    def create_record(
        self, model_id: str, data: dict[str, Any], created_by: str | None = None
    ) -> dict[str, Any]: ...

    def get_record(self, model_id: str, record_id: str) -> dict[str, Any]: ...

    def list_records(self, model_id: str) -> list[dict[str, Any]]: ...

    def update_record(
        self, model_id: str, record_id: str, data: dict[str, Any]
    ) -> dict[str, Any]: ...

    def delete_record(self, model_id: str, record_id: str) -> None: ...


@runtime_checkable
class Store(SchemaStore, RoleAssignmentStore, RecordStore, Protocol):
    """A backend that provides all three capabilities."""

    pass
