import logging
from typing import Any, Optional

import psycopg
from psycopg.rows import dict_row

logger = logging.getLogger(__name__)


class PostgresClient:
    """Thin wrapper around a psycopg connection for catalog reads.

    The session is read-only; nothing issued through this client may change
    the target database.
    """

    def __init__(self, conninfo: str) -> None:
        self._conninfo = conninfo
        self._conn: psycopg.Connection | None = None

    def connect(self) -> None:
        """Open the connection. Must be called before fetchall."""
        if self._conn is not None:
            raise RuntimeError("Already connected. Call close() before reconnecting.")

        logger.debug("Connecting to PostgreSQL...")
        self._conn = psycopg.connect(self._conninfo, row_factory=dict_row)
        self._conn.read_only = True

    def fetchall(
        self, sql_statement: str, params: Optional[tuple] = None
    ) -> list[dict[str, Any]]:
        if self._conn is None:
            raise RuntimeError("Not connected. Call connect() first.")
        with self._conn.cursor() as cursor:
            cursor.execute(sql_statement, params)
            return cursor.fetchall()

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            finally:
                self._conn = None

    def __enter__(self) -> "PostgresClient":
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
