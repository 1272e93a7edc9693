"""Exception taxonomy for ModelForge.

Construction-time errors (InvalidField, InvalidModel) are raised by the
schema definitions. Storage errors are raised by SchemaStore implementations
and caught at the CrudOrchestrator boundary. Validation violations and
authorization denials are not exceptions; see validation.types and
auth.types.
"""


class ModelForgeError(Exception):
    """Base class for all ModelForge errors."""

    pass


class InvalidField(ModelForgeError):
    """A field definition is malformed (name, type, order or default)."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class InvalidModel(ModelForgeError):
    """A model definition is malformed."""

    pass


class NotFound(ModelForgeError):
    """A model or record does not exist."""

    def __init__(self, kind: str, id: str):
        super().__init__(f"{kind} '{id}' not found")
        self.kind = kind
        self.id = id


class ConflictError(ModelForgeError):
    """A write collides with existing state (id collision, locked field type)."""

    pass


class StorageError(ModelForgeError):
    """The backing store failed to complete an operation."""

    pass


class PartialUpdate(StorageError):
    """A model update applied name/description but not the field replacement."""

    def __init__(self, model_id: str, cause: Exception | None = None):
        super().__init__(
            f"Model '{model_id}' was renamed but its fields were not replaced"
        )
        self.model_id = model_id
        self.cause = cause
