"""Schema component model.

One frozen record type per catalog object class. A complete graph is built
fresh for every dump from provider rows and consumed once by the emitter.
"""

from dataclasses import dataclass, field
from typing import Optional

from schemadump.exceptions import ModelContractError
from schemadump.types import ConstraintType, ObjectType, Privilege, RoutineKind

NO_ACTION = "NO ACTION"


@dataclass(frozen=True)
class Extension:
    """Installed extension."""

    name: str
    version: str
    schema: str


@dataclass(frozen=True)
class SchemaObject:
    """A namespace (CREATE SCHEMA target)."""

    name: str
    owner: Optional[str] = None


@dataclass(frozen=True)
class EnumType:
    """Enumerated type with its labels in sort order."""

    schema: str
    name: str
    values: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Sequence:
    """Sequence definition. A bound of None means NO MINVALUE / NO MAXVALUE."""

    schema: str
    name: str
    data_type: str = "bigint"
    start_value: int = 1
    increment: int = 1
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    cache_size: int = 1
    cycle: bool = False
    owner: Optional[str] = None


@dataclass(frozen=True)
class Routine:
    """Function or procedure.

    ``definition`` is the complete CREATE statement as reported by the
    server. Overloads share a name, so identity is name plus ``parameters``.
    """

    schema: str
    name: str
    definition: str
    language: str = "sql"
    return_type: Optional[str] = None
    parameters: str = ""
    owner: Optional[str] = None
    kind: RoutineKind = RoutineKind.FUNCTION

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.schema, self.name, self.parameters)


@dataclass(frozen=True)
class Column:
    """Column definition as reported by information_schema.columns."""

    name: str
    data_type: str
    udt_name: Optional[str] = None
    nullable: bool = True
    default: Optional[str] = None
    character_maximum_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None


@dataclass(frozen=True)
class TableConstraint:
    """PRIMARY KEY, UNIQUE or CHECK constraint on a table.

    ``definition`` holds the raw check clause for CHECK constraints.
    """

    name: str
    type: ConstraintType
    columns: list[str] = field(default_factory=list)
    definition: Optional[str] = None


@dataclass(frozen=True)
class Table:
    """Base table with ordered columns and normalized constraints."""

    schema: str
    name: str
    columns: list[Column] = field(default_factory=list)
    constraints: list[TableConstraint] = field(default_factory=list)
    owner: Optional[str] = None

    def get_column(self, name: str) -> Optional[Column]:
        """Get a column by name."""
        for col in self.columns:
            if col.name == name:
                return col
        return None


@dataclass(frozen=True)
class Index:
    """Secondary index. Constraint-backing indexes are never modelled."""

    schema: str
    table_name: str
    name: str
    definition: str
    is_unique: bool = False
    method: str = "btree"


@dataclass(frozen=True)
class ForeignKey:
    """Foreign key constraint with column lists in ordinal order."""

    schema: str
    table_name: str
    name: str
    columns: list[str]
    referenced_schema: str
    referenced_table: str
    referenced_columns: list[str]
    on_update: str = NO_ACTION
    on_delete: str = NO_ACTION

    def __post_init__(self) -> None:
        if len(self.columns) != len(self.referenced_columns):
            raise ModelContractError(
                f"Foreign key '{self.name}' on {self.schema}.{self.table_name} has "
                f"{len(self.columns)} local column(s) but "
                f"{len(self.referenced_columns)} referenced column(s)"
            )


@dataclass(frozen=True)
class View:
    """View with its defining SELECT text."""

    schema: str
    name: str
    definition: str
    owner: Optional[str] = None


@dataclass(frozen=True)
class Trigger:
    """Trigger bound to a table and a trigger function."""

    schema: str
    table_name: str
    name: str
    timing: str
    events: list[str]
    function_schema: str
    function_name: str
    condition: Optional[str] = None
    orientation: str = "ROW"


@dataclass(frozen=True)
class Comment:
    """Object-level comment, or column-level when column_name is set."""

    schema: str
    object_type: ObjectType
    object_name: str
    comment: str
    column_name: Optional[str] = None


@dataclass(frozen=True)
class Grant:
    """A single privilege held by a single grantee."""

    schema: str
    object_type: ObjectType
    object_name: str
    grantee: str
    privilege: Privilege
    signature: Optional[str] = None


@dataclass(frozen=True)
class SchemaComponents:
    """Everything needed to rebuild a database's structure."""

    extensions: list[Extension] = field(default_factory=list)
    schemas: list[SchemaObject] = field(default_factory=list)
    enums: list[EnumType] = field(default_factory=list)
    sequences: list[Sequence] = field(default_factory=list)
    routines: list[Routine] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)
    indexes: list[Index] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)
    views: list[View] = field(default_factory=list)
    triggers: list[Trigger] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    grants: list[Grant] = field(default_factory=list)

    def get_table(self, schema: str, name: str) -> Optional[Table]:
        """Get a table by schema and name."""
        for table in self.tables:
            if table.schema == schema and table.name == name:
                return table
        return None

    def indexes_for(self, schema: str, table_name: str) -> list[Index]:
        return [
            i for i in self.indexes if i.schema == schema and i.table_name == table_name
        ]

    def foreign_keys_for(self, schema: str, table_name: str) -> list[ForeignKey]:
        return [
            fk
            for fk in self.foreign_keys
            if fk.schema == schema and fk.table_name == table_name
        ]
