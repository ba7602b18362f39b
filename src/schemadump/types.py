"""Core type definitions for schemadump."""

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias

SchemaName: TypeAlias = str
TableName: TypeAlias = str
ColumnName: TypeAlias = str

__all__ = [
    "SchemaName",
    "TableName",
    "ColumnName",
    "ConstraintType",
    "ObjectType",
    "Privilege",
    "RoutineKind",
    "DumpPhase",
    "DumpOptions",
]


class ConstraintType(Enum):
    """Table constraint kinds as reported by information_schema."""

    PRIMARY_KEY = "PRIMARY KEY"
    UNIQUE = "UNIQUE"
    CHECK = "CHECK"
    FOREIGN_KEY = "FOREIGN KEY"


class ObjectType(Enum):
    """Catalog object kinds that can carry comments or grants."""

    TABLE = "TABLE"
    VIEW = "VIEW"
    SEQUENCE = "SEQUENCE"
    FUNCTION = "FUNCTION"
    SCHEMA = "SCHEMA"
    TYPE = "TYPE"


class Privilege(Enum):
    """Grantable privileges. Declaration order is the emission order."""

    SELECT = "SELECT"
    UPDATE = "UPDATE"
    INSERT = "INSERT"
    DELETE = "DELETE"
    EXECUTE = "EXECUTE"
    USAGE = "USAGE"
    CREATE = "CREATE"


class RoutineKind(Enum):
    """Kinds of stored routine."""

    FUNCTION = "FUNCTION"
    PROCEDURE = "PROCEDURE"


class DumpPhase(Enum):
    """Emission phases of a full schema dump, in dependency order."""

    EXTENSIONS = "EXTENSIONS"
    SCHEMAS = "SCHEMAS"
    ENUMS = "ENUM TYPES"
    SEQUENCES = "SEQUENCES"
    ROUTINES = "FUNCTIONS"
    TABLES = "TABLES"
    INDEXES = "INDEXES"
    FOREIGN_KEYS = "FOREIGN KEYS"
    VIEWS = "VIEWS"
    TRIGGERS = "TRIGGERS"
    COMMENTS = "COMMENTS"
    GRANTS = "GRANTS"


@dataclass(frozen=True)
class DumpOptions:
    """Switches for the full-database dump."""

    include_drops: bool = True
    include_grants: bool = True
    include_comments: bool = True
