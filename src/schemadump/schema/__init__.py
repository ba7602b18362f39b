"""Schema component model, normalization and DDL generation modules."""

from schemadump.schema.acl import parse_acl
from schemadump.schema.codegen import DDLGenerator
from schemadump.schema.constraints import normalize_constraints
from schemadump.schema.formatting import format_data_type
from schemadump.schema.models import (
    Column,
    ForeignKey,
    Index,
    SchemaComponents,
    Table,
    TableConstraint,
)

__all__ = [
    "Column",
    "DDLGenerator",
    "ForeignKey",
    "Index",
    "SchemaComponents",
    "Table",
    "TableConstraint",
    "format_data_type",
    "normalize_constraints",
    "parse_acl",
]
