"""Utility functions for PostgreSQL-backed dumps.

Extracts common DB logic from CLI for reuse and testability.
"""

from typing import Optional

from schemadump.config import Config
from schemadump.dump import dump_schema, dump_table
from schemadump.schema.models import SchemaComponents
from schemadump.types import DumpOptions


def build_config_and_validate(
    *,
    dsn: Optional[str] = None,
    service: Optional[str] = None,
) -> Config:
    """Load config from ~/.pg_service.conf/env and validate for DB operations.

    Args:
        dsn: Connection string (overrides env/service file)
        service: libpq service name

    Returns:
        Config: Validated configuration.

    Raises:
        ConfigError: If required configuration is missing.
    """
    config = Config.from_env(dsn=dsn, service=service)
    config.validate_for_db_ops()
    return config


def get_online_components(config: Config) -> SchemaComponents:
    """Introspect the database described by config.

    Raises:
        ConfigError: If DB config is invalid.
        IntrospectionError: If a catalog query fails.
    """
    from schemadump.postgres.client import PostgresClient
    from schemadump.schema.introspect import SchemaIntrospector

    config.validate_for_db_ops()

    with PostgresClient(config.conninfo()) as client:
        return SchemaIntrospector(client).introspect()


def dump_online_schema(config: Config, options: Optional[DumpOptions] = None) -> str:
    """Full-database dump straight from a live connection."""
    from schemadump.postgres.client import PostgresClient
    from schemadump.schema.introspect import SchemaIntrospector

    config.validate_for_db_ops()

    with PostgresClient(config.conninfo()) as client:
        return dump_schema(SchemaIntrospector(client), options)


def dump_online_table(
    config: Config, schema: str, table_name: str, include_drops: bool = False
) -> str:
    """Single-table dump straight from a live connection.

    Raises:
        TableNotFoundError: If the table does not exist.
    """
    from schemadump.postgres.client import PostgresClient
    from schemadump.schema.introspect import SchemaIntrospector

    config.validate_for_db_ops()

    with PostgresClient(config.conninfo()) as client:
        return dump_table(
            SchemaIntrospector(client), schema, table_name, include_drops=include_drops
        )
