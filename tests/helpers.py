"""Shared test helpers for schemadump tests."""

from unittest.mock import MagicMock

from schemadump.config import Config
from schemadump.schema.models import (
    Column,
    EnumType,
    ForeignKey,
    SchemaComponents,
    Table,
    TableConstraint,
)
from schemadump.types import ConstraintType


class FakeRow:
    """Mock row from PostgresClient.fetchall().

    Supports dict-like access via __getitem__ and .get().
    """

    def __init__(self, data: dict):
        self._data = data

    def __getitem__(self, key):
        return self._data[key]

    def get(self, key, default=None):
        return self._data.get(key, default)


def make_test_config(dsn: str = "postgresql://localhost/test") -> Config:
    """Create a Config for tests with sensible defaults."""
    return Config(dsn=dsn)


def make_mock_client(responses: dict[str, list[dict]] | None = None) -> MagicMock:
    """Create a mock PostgresClient that answers by SQL fragment.

    Args:
        responses: Dict mapping a distinctive SQL fragment (lowercase) to the
            rows returned for any query containing it. First match wins.
    """
    client = MagicMock()
    responses = responses or {}

    def fetchall_side_effect(sql: str, params=None):
        sql_lower = sql.lower()
        for fragment, rows in responses.items():
            if fragment in sql_lower:
                return [FakeRow(r) for r in rows]
        return []

    client.fetchall.side_effect = fetchall_side_effect
    return client


def make_orders_components() -> SchemaComponents:
    """One enum and one table referencing it."""
    columns = [
        Column(name="id", data_type="integer", udt_name="int4", nullable=False),
        Column(
            name="status", data_type="USER-DEFINED", udt_name="status", nullable=False
        ),
    ]
    return SchemaComponents(
        enums=[EnumType(schema="public", name="status", values=["open", "closed"])],
        tables=[
            Table(
                schema="public",
                name="orders",
                columns=columns,
                constraints=[
                    TableConstraint(
                        name="orders_pkey",
                        type=ConstraintType.PRIMARY_KEY,
                        columns=["id"],
                    )
                ],
            )
        ],
    )


def make_table(
    name: str = "users",
    schema: str = "public",
    columns: list[Column] | None = None,
    constraints: list[TableConstraint] | None = None,
) -> Table:
    """Create a Table with a non-null integer id column by default."""
    if columns is None:
        columns = [Column(name="id", data_type="integer", nullable=False)]
    return Table(
        schema=schema, name=name, columns=columns, constraints=constraints or []
    )


def make_foreign_key(
    name: str = "fk_order_user",
    table_name: str = "orders",
    columns: list[str] | None = None,
    referenced_table: str = "users",
    referenced_columns: list[str] | None = None,
    **kwargs,
) -> ForeignKey:
    return ForeignKey(
        schema="public",
        table_name=table_name,
        name=name,
        columns=columns or ["user_id"],
        referenced_schema="public",
        referenced_table=referenced_table,
        referenced_columns=referenced_columns or ["id"],
        **kwargs,
    )


def strip_timestamp_line(sql: str) -> list[str]:
    """Strip the '-- Generated:' timestamp line for comparison.

    Returns list of lines with trailing whitespace stripped.
    """
    return [
        line.rstrip()
        for line in sql.splitlines()
        if not line.startswith("-- Generated:")
    ]


def collapse_whitespace(sql: str) -> str:
    """Join all lines and collapse runs of whitespace to single spaces."""
    return " ".join(sql.split())
