"""ModelForge: runtime-defined data models with role-gated CRUD."""

__version__ = "0.1.0"
