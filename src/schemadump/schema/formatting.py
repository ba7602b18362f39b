"""Column type rendering and SQL text helpers."""

from typing import Optional

from schemadump.schema.models import Column

INTEGER_TYPES = frozenset({"INTEGER", "INT", "BIGINT", "SMALLINT"})

ARRAY_TYPE = "ARRAY"
USER_DEFINED_TYPE = "USER-DEFINED"


def quote_ident(name: str) -> str:
    """Double-quote an identifier, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def qualified_name(schema: str, name: str) -> str:
    """Render ``"schema"."name"``."""
    return f"{quote_ident(schema)}.{quote_ident(name)}"


def quote_literal(value: str) -> str:
    """Render a single-quoted string literal."""
    return "'" + value.replace("'", "''") + "'"


def terminate(fragment: str) -> str:
    """Append a statement terminator to a verbatim SQL fragment if missing."""
    text = fragment.rstrip()
    if text.endswith(";"):
        return text
    return text + ";"


def _array_base(udt_name: Optional[str]) -> Optional[str]:
    if not udt_name:
        return None
    base = udt_name[1:] if udt_name.startswith("_") else udt_name
    return base or None


def format_data_type(column: Column) -> str:
    """Render a column's type with its length, precision or array suffix.

    Branches are exclusive and checked in order: arrays, user-defined types,
    integer family, character length, precision with scale, bare precision.
    """
    data_type = column.data_type.strip().upper()

    if data_type == ARRAY_TYPE:
        base = _array_base(column.udt_name)
        if base is not None:
            return f"{base}[]"
        return data_type

    if data_type == USER_DEFINED_TYPE and column.udt_name:
        return column.udt_name

    # Integer precision from the catalog is not expressible in DDL.
    if data_type in INTEGER_TYPES:
        return data_type

    if column.character_maximum_length is not None:
        return f"{data_type}({column.character_maximum_length})"

    precision = column.numeric_precision
    scale = column.numeric_scale
    if precision is not None and scale is not None and scale != 0:
        return f"{data_type}({precision},{scale})"
    if precision is not None and scale == 0:
        return f"{data_type}({precision})"

    return data_type
