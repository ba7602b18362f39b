"""Schema dump service: metadata provider in, SQL script out."""

import json
import logging
from datetime import datetime
from typing import Any, Optional, Protocol

from schemadump.exceptions import TableNotFoundError
from schemadump.schema.codegen import DDLGenerator
from schemadump.schema.models import ForeignKey, Index, SchemaComponents, Table
from schemadump.types import DumpOptions

logger = logging.getLogger(__name__)


class MetadataProvider(Protocol):
    """Source of schema components (live catalog or a snapshot)."""

    def introspect(self) -> SchemaComponents: ...

    def introspect_table(self, schema: str, table_name: str) -> Optional[Table]: ...

    def table_indexes(self, schema: str, table_name: str) -> list[Index]: ...

    def table_foreign_keys(self, schema: str, table_name: str) -> list[ForeignKey]: ...


class ComponentsProvider:
    """MetadataProvider over an already-built SchemaComponents."""

    def __init__(self, components: SchemaComponents) -> None:
        self._components = components

    def introspect(self) -> SchemaComponents:
        return self._components

    def introspect_table(self, schema: str, table_name: str) -> Optional[Table]:
        return self._components.get_table(schema, table_name)

    def table_indexes(self, schema: str, table_name: str) -> list[Index]:
        return self._components.indexes_for(schema, table_name)

    def table_foreign_keys(self, schema: str, table_name: str) -> list[ForeignKey]:
        return self._components.foreign_keys_for(schema, table_name)


def dump_schema(
    provider: MetadataProvider,
    options: Optional[DumpOptions] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    """Generate a complete schema dump.

    Provider errors propagate unchanged; a retried read could observe a
    different schema halfway through the dump.
    """
    options = options or DumpOptions()
    logger.info("Generating schema dump")

    components = provider.introspect()
    sql = DDLGenerator().generate(components, options, generated_at=generated_at)

    logger.info(
        "Schema dump generated: %d tables, %d functions, %d views",
        len(components.tables),
        len(components.routines),
        len(components.views),
    )
    return sql


def dump_table(
    provider: MetadataProvider,
    schema: str,
    table_name: str,
    include_drops: bool = False,
) -> str:
    """Generate DDL for a single table.

    Raises:
        TableNotFoundError: If the table does not exist.
    """
    logger.info("Generating DDL for table %s.%s", schema, table_name)

    table = provider.introspect_table(schema, table_name)
    if table is None:
        raise TableNotFoundError(schema, table_name)

    indexes = provider.table_indexes(schema, table_name)
    foreign_keys = provider.table_foreign_keys(schema, table_name)

    return DDLGenerator().generate_table(
        table, indexes, foreign_keys, include_drops=include_drops
    )


def wrap_json(sql: str, **meta: Any) -> str:
    """JSON envelope for transports that cannot return raw SQL text."""
    payload: dict[str, Any] = dict(meta)
    payload["sql"] = sql
    return json.dumps(payload, indent=2)
