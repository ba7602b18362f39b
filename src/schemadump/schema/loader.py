"""Load schema component snapshots from YAML files."""

from pathlib import Path
from typing import Any, Callable

import yaml

from schemadump.exceptions import ModelContractError, SnapshotLoadError
from schemadump.schema.acl import parse_acl
from schemadump.schema.constraints import normalize_constraints
from schemadump.schema.models import (
    Column,
    Comment,
    EnumType,
    Extension,
    ForeignKey,
    Grant,
    Index,
    Routine,
    SchemaComponents,
    SchemaObject,
    Sequence,
    Table,
    TableConstraint,
    Trigger,
    View,
)
from schemadump.types import ConstraintType, ObjectType, Privilege, RoutineKind

VALID_SNAPSHOT_FIELDS = {
    "extensions",
    "schemas",
    "enums",
    "sequences",
    "routines",
    "tables",
    "indexes",
    "foreign_keys",
    "views",
    "triggers",
    "comments",
    "grants",
}

VALID_TABLE_FIELDS = {"schema", "name", "owner", "columns", "constraints"}

VALID_COLUMN_FIELDS = {
    "name",
    "data_type",
    "udt_name",
    "nullable",
    "default",
    "character_maximum_length",
    "numeric_precision",
    "numeric_scale",
}


def load_snapshot(snapshot_path: Path) -> SchemaComponents:
    """Load schema components from a YAML snapshot file."""
    if not snapshot_path.is_file():
        raise SnapshotLoadError(f"Snapshot file does not exist: {snapshot_path}")

    with open(snapshot_path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SnapshotLoadError(f"Invalid YAML in {snapshot_path}: {e}") from e

    if data is None:
        raise SnapshotLoadError(f"Empty YAML file: {snapshot_path}")
    if not isinstance(data, dict):
        raise SnapshotLoadError(f"Snapshot root must be a mapping: {snapshot_path}")

    return parse_snapshot_dict(data)


def parse_snapshot_dict(data: dict) -> SchemaComponents:
    """Build SchemaComponents from a snapshot dictionary."""
    unknown_fields = set(data.keys()) - VALID_SNAPSHOT_FIELDS
    if unknown_fields:
        raise SnapshotLoadError(
            f"Unknown field(s) in snapshot: {', '.join(sorted(unknown_fields))}"
        )

    grants: list[Grant] = []
    for item in data.get("grants") or []:
        grants.extend(_parse_grants(item))

    try:
        return SchemaComponents(
            extensions=_parse_list(data, "extensions", _parse_extension),
            schemas=_parse_list(data, "schemas", _parse_schema),
            enums=_parse_list(data, "enums", _parse_enum),
            sequences=_parse_list(data, "sequences", _parse_sequence),
            routines=_parse_list(data, "routines", _parse_routine),
            tables=_parse_list(data, "tables", _parse_table),
            indexes=_parse_list(data, "indexes", _parse_index),
            foreign_keys=_parse_list(data, "foreign_keys", _parse_foreign_key),
            views=_parse_list(data, "views", _parse_view),
            triggers=_parse_list(data, "triggers", _parse_trigger),
            comments=_parse_list(data, "comments", _parse_comment),
            grants=grants,
        )
    except ModelContractError as e:
        raise SnapshotLoadError(str(e)) from e


def _parse_list(data: dict, key: str, parse: Callable[[dict], Any]) -> list:
    items = data.get(key) or []
    if not isinstance(items, list):
        raise SnapshotLoadError(f"'{key}' must be a list")
    return [parse(item) for item in items]


def _require(item: dict, kind: str, *fields: str) -> None:
    if not isinstance(item, dict):
        raise SnapshotLoadError(f"{kind} entry must be a mapping, got {item!r}")
    missing = [f for f in fields if item.get(f) in (None, "")]
    if missing:
        raise SnapshotLoadError(
            f"{kind} definition missing field(s): {', '.join(missing)}"
        )


def _enum_value(enum_cls, value: Any, kind: str):
    try:
        return enum_cls(str(value).upper())
    except ValueError as e:
        raise SnapshotLoadError(f"Invalid {kind} '{value}'") from e


def _parse_extension(item: dict) -> Extension:
    _require(item, "Extension", "name", "schema")
    return Extension(
        name=item["name"], version=str(item.get("version", "")), schema=item["schema"]
    )


def _parse_schema(item: dict) -> SchemaObject:
    _require(item, "Schema", "name")
    return SchemaObject(name=item["name"], owner=item.get("owner"))


def _parse_enum(item: dict) -> EnumType:
    _require(item, "Enum", "schema", "name")
    return EnumType(
        schema=item["schema"],
        name=item["name"],
        values=[str(v) for v in item.get("values", [])],
    )


def _parse_sequence(item: dict) -> Sequence:
    _require(item, "Sequence", "schema", "name")
    return Sequence(
        schema=item["schema"],
        name=item["name"],
        data_type=item.get("data_type", "bigint"),
        start_value=item.get("start_value", 1),
        increment=item.get("increment", 1),
        min_value=item.get("min_value"),
        max_value=item.get("max_value"),
        cache_size=item.get("cache_size", 1),
        cycle=bool(item.get("cycle", False)),
        owner=item.get("owner"),
    )


def _parse_routine(item: dict) -> Routine:
    _require(item, "Routine", "schema", "name", "definition")
    return Routine(
        schema=item["schema"],
        name=item["name"],
        definition=item["definition"],
        language=item.get("language", "sql"),
        return_type=item.get("return_type"),
        parameters=item.get("parameters", ""),
        owner=item.get("owner"),
        kind=_enum_value(RoutineKind, item.get("kind", "function"), "routine kind"),
    )


def _parse_table(item: dict) -> Table:
    _require(item, "Table", "schema", "name")
    unknown_fields = set(item.keys()) - VALID_TABLE_FIELDS
    if unknown_fields:
        raise SnapshotLoadError(
            f"Unknown field(s) in table definition: {', '.join(sorted(unknown_fields))}"
        )

    columns = [_parse_column(col) for col in item.get("columns", [])]
    seen = set()
    for col in columns:
        if col.name in seen:
            raise SnapshotLoadError(
                f"Duplicate column name '{col.name}' in table '{item['name']}'"
            )
        seen.add(col.name)

    constraints = []
    for cdata in item.get("constraints", []):
        _require(cdata, "Constraint", "name", "type")
        constraints.append(
            TableConstraint(
                name=cdata["name"],
                type=_enum_value(ConstraintType, cdata["type"], "constraint type"),
                columns=list(cdata.get("columns", [])),
                definition=cdata.get("definition"),
            )
        )

    return Table(
        schema=item["schema"],
        name=item["name"],
        columns=columns,
        constraints=normalize_constraints(columns, constraints),
        owner=item.get("owner"),
    )


def _parse_column(data: dict) -> Column:
    _require(data, "Column", "name", "data_type")
    unknown_fields = set(data.keys()) - VALID_COLUMN_FIELDS
    if unknown_fields:
        raise SnapshotLoadError(
            f"Unknown field(s) in column definition: {', '.join(sorted(unknown_fields))}"
        )
    return Column(
        name=data["name"],
        data_type=data["data_type"],
        udt_name=data.get("udt_name"),
        nullable=data.get("nullable", True),
        default=data.get("default"),
        character_maximum_length=data.get("character_maximum_length"),
        numeric_precision=data.get("numeric_precision"),
        numeric_scale=data.get("numeric_scale"),
    )


def _parse_index(item: dict) -> Index:
    _require(item, "Index", "schema", "table_name", "name", "definition")
    return Index(
        schema=item["schema"],
        table_name=item["table_name"],
        name=item["name"],
        definition=item["definition"],
        is_unique=bool(item.get("is_unique", False)),
        method=item.get("method", "btree"),
    )


def _parse_foreign_key(item: dict) -> ForeignKey:
    _require(
        item,
        "Foreign key",
        "schema",
        "table_name",
        "name",
        "columns",
        "referenced_schema",
        "referenced_table",
        "referenced_columns",
    )
    return ForeignKey(
        schema=item["schema"],
        table_name=item["table_name"],
        name=item["name"],
        columns=list(item["columns"]),
        referenced_schema=item["referenced_schema"],
        referenced_table=item["referenced_table"],
        referenced_columns=list(item["referenced_columns"]),
        on_update=item.get("on_update", "NO ACTION"),
        on_delete=item.get("on_delete", "NO ACTION"),
    )


def _parse_view(item: dict) -> View:
    _require(item, "View", "schema", "name", "definition")
    return View(
        schema=item["schema"],
        name=item["name"],
        definition=item["definition"],
        owner=item.get("owner"),
    )


def _parse_trigger(item: dict) -> Trigger:
    _require(
        item,
        "Trigger",
        "schema",
        "table_name",
        "name",
        "timing",
        "events",
        "function_name",
    )
    return Trigger(
        schema=item["schema"],
        table_name=item["table_name"],
        name=item["name"],
        timing=item["timing"],
        events=list(item["events"]),
        function_schema=item.get("function_schema", "public"),
        function_name=item["function_name"],
        condition=item.get("condition"),
        orientation=item.get("orientation", "ROW"),
    )


def _parse_comment(item: dict) -> Comment:
    _require(item, "Comment", "schema", "object_type", "object_name", "comment")
    return Comment(
        schema=item["schema"],
        object_type=_enum_value(ObjectType, item["object_type"], "object type"),
        object_name=item["object_name"],
        comment=item["comment"],
        column_name=item.get("column_name"),
    )


def _parse_grants(item: dict) -> list[Grant]:
    """A grant entry is either one explicit privilege or a raw ACL string."""
    _require(item, "Grant", "schema", "object_type", "object_name")
    object_type = _enum_value(ObjectType, item["object_type"], "object type")
    if "acl" in item:
        return parse_acl(
            item["acl"],
            item["schema"],
            object_type,
            item["object_name"],
            signature=item.get("signature"),
        )
    _require(item, "Grant", "grantee", "privilege")
    return [
        Grant(
            schema=item["schema"],
            object_type=object_type,
            object_name=item["object_name"],
            grantee=item["grantee"],
            privilege=_enum_value(Privilege, item["privilege"], "privilege"),
            signature=item.get("signature"),
        )
    ]
