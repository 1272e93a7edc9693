"""PostgreSQL persistence store.

Uses psycopg v3 (psycopg[binary]>=3.1.0) for database access. Shares all
SQL with SQLiteStore; the only dialect difference is the ``%s``
placeholder style, and the dict_row cursor factory gives the same
mapping-style row access as sqlite3.Row.
"""

from __future__ import annotations

import psycopg
from psycopg.rows import dict_row

from modelforge.persistence.sql import SQLStore


class PostgreSQLStore(SQLStore):
    """PostgreSQL-backed schema, record and role store."""

    driver_error = psycopg.Error
    integrity_error = psycopg.IntegrityError

    def __init__(self, url: str):
        super().__init__()
        # psycopg.connect() wants a plain libpq DSN or postgres:// URL,
        # so strip the +psycopg driver suffix when present.
        self.url = url.replace("postgresql+psycopg://", "postgresql://")

    def connect(self) -> None:
        """Establish database connection and create tables."""
        self.conn = psycopg.connect(self.url, row_factory=dict_row)
        self.conn.autocommit = False
        self.initialize()

    def _sql(self, sql: str) -> str:
        return sql.replace("?", "%s")
