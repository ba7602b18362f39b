"""Exception classes for schemadump."""

__all__ = [
    "SchemaDumpError",
    "ConfigError",
    "IntrospectionError",
    "TableNotFoundError",
    "SnapshotLoadError",
    "ModelContractError",
]


class SchemaDumpError(Exception):
    """Base exception for schemadump."""


class ConfigError(SchemaDumpError):
    """Error in configuration."""


class IntrospectionError(SchemaDumpError):
    """Error reading catalog metadata from the database."""


class TableNotFoundError(SchemaDumpError):
    """Requested table does not exist in the database."""

    def __init__(self, schema: str, table: str):
        self.schema = schema
        self.table = table
        super().__init__(f"Table {schema}.{table} not found")


class SnapshotLoadError(SchemaDumpError):
    """Error loading a schema snapshot file."""


class ModelContractError(SchemaDumpError):
    """Metadata violates a structural contract (provider bug)."""
