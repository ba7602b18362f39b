"""Group raw constraint rows and drop CHECKs that duplicate NOT NULL."""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from schemadump.schema.models import NO_ACTION, Column, ForeignKey, TableConstraint
from schemadump.types import ConstraintType

NOT_NULL_CHECK_PATTERN = re.compile(
    r'^"?([a-zA-Z_][a-zA-Z0-9_]*)"?\s+IS\s+NOT\s+NULL$', re.IGNORECASE
)

_KIND_ORDER = {
    ConstraintType.PRIMARY_KEY: 0,
    ConstraintType.UNIQUE: 1,
    ConstraintType.CHECK: 2,
}


@dataclass(frozen=True)
class ConstraintRow:
    """One provider row: key columns arrive one per row."""

    name: str
    type: ConstraintType
    column_name: Optional[str] = None
    check_clause: Optional[str] = None


@dataclass(frozen=True)
class ForeignKeyRow:
    """One provider row of a (possibly multi-column) foreign key."""

    schema: str
    table_name: str
    name: str
    column_name: str
    referenced_schema: str
    referenced_table: str
    referenced_column: str
    on_update: str = NO_ACTION
    on_delete: str = NO_ACTION


def not_null_check_column(clause: Optional[str]) -> Optional[str]:
    """Return the column of a bare ``col IS NOT NULL`` check clause.

    One layer of surrounding parentheses is ignored. Anything more elaborate
    (compound conditions, nested parentheses) is not recognised.
    """
    if not clause:
        return None
    text = clause.strip()
    if text.startswith("(") and text.endswith(")"):
        text = text[1:-1].strip()
    match = NOT_NULL_CHECK_PATTERN.match(text)
    if match is None:
        return None
    return match.group(1)


def build_constraints(rows: Iterable[ConstraintRow]) -> list[TableConstraint]:
    """Collapse per-column rows into one TableConstraint per name."""
    grouped: dict[str, dict] = {}
    for row in rows:
        entry = grouped.get(row.name)
        if entry is None:
            entry = {
                "type": row.type,
                "columns": [],
                "definition": row.check_clause or None,
            }
            if row.type is ConstraintType.CHECK:
                implied = not_null_check_column(row.check_clause)
                if implied is not None:
                    entry["columns"].append(implied)
            grouped[row.name] = entry
        if row.column_name and row.column_name not in entry["columns"]:
            entry["columns"].append(row.column_name)

    return [
        TableConstraint(
            name=name,
            type=entry["type"],
            columns=entry["columns"],
            definition=entry["definition"],
        )
        for name, entry in grouped.items()
    ]


def is_redundant_check(
    constraint: TableConstraint, columns: Iterable[Column]
) -> bool:
    """True if a CHECK only restates an existing NOT NULL column attribute."""
    if constraint.type is not ConstraintType.CHECK:
        return False
    column_name = not_null_check_column(constraint.definition)
    if column_name is None:
        return False
    for col in columns:
        if col.name == column_name:
            return not col.nullable
    return False


def normalize_constraints(
    columns: list[Column], constraints: Iterable[TableConstraint]
) -> list[TableConstraint]:
    """Drop redundant CHECKs and order PRIMARY KEY, UNIQUE, then CHECK."""
    kept = [
        c
        for c in constraints
        if c.type in _KIND_ORDER and not is_redundant_check(c, columns)
    ]
    return sorted(kept, key=lambda c: _KIND_ORDER[c.type])


def group_foreign_keys(rows: Iterable[ForeignKeyRow]) -> list[ForeignKey]:
    """Collapse per-column foreign key rows into ForeignKey records.

    Rows are keyed by (schema, table, constraint name) so identically named
    constraints on different tables never merge. Column pairs keep row order
    and repeated pairs are dropped.
    """
    grouped: dict[tuple[str, str, str], dict] = {}
    for row in rows:
        key = (row.schema, row.table_name, row.name)
        entry = grouped.get(key)
        if entry is None:
            entry = {"row": row, "pairs": []}
            grouped[key] = entry
        pair = (row.column_name, row.referenced_column)
        if pair not in entry["pairs"]:
            entry["pairs"].append(pair)

    foreign_keys = []
    for entry in grouped.values():
        first: ForeignKeyRow = entry["row"]
        foreign_keys.append(
            ForeignKey(
                schema=first.schema,
                table_name=first.table_name,
                name=first.name,
                columns=[local for local, _ in entry["pairs"]],
                referenced_schema=first.referenced_schema,
                referenced_table=first.referenced_table,
                referenced_columns=[ref for _, ref in entry["pairs"]],
                on_update=first.on_update or NO_ACTION,
                on_delete=first.on_delete or NO_ACTION,
            )
        )
    return foreign_keys
