"""SQLite persistence store."""

import sqlite3
from pathlib import Path

from modelforge.persistence.sql import SQLStore


class SQLiteStore(SQLStore):
    """SQLite-backed schema, record and role store.

    Foreign keys are enabled per connection so that deleting a model
    cascades to its fields and records.
    """

    driver_error = sqlite3.Error
    integrity_error = sqlite3.IntegrityError

    def __init__(self, db_path: Path | str = ":memory:"):
        super().__init__()
        self.db_path = str(db_path)

    def connect(self) -> None:
        """Establish database connection and create tables."""
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self.initialize()
