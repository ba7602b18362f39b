"""Export schema components to YAML snapshots."""

from dataclasses import fields
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from schemadump.schema.models import SchemaComponents, Table


def _record_to_dict(record: Any) -> dict[str, Any]:
    """Convert a model record to a dict, omitting unset optional fields."""
    data: dict[str, Any] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, list):
            value = list(value)
        data[f.name] = value
    return data


def table_to_dict(table: Table) -> dict[str, Any]:
    """Convert a Table model to a dictionary suitable for YAML export."""
    data: dict[str, Any] = {"schema": table.schema, "name": table.name}

    if table.owner:
        data["owner"] = table.owner

    data["columns"] = [_record_to_dict(col) for col in table.columns]

    if table.constraints:
        data["constraints"] = [_record_to_dict(c) for c in table.constraints]

    return data


def components_to_dict(components: SchemaComponents) -> dict[str, Any]:
    """Convert SchemaComponents to the snapshot dictionary layout."""
    data: dict[str, Any] = {}
    for f in fields(components):
        records = getattr(components, f.name)
        if not records:
            continue
        if f.name == "tables":
            data[f.name] = [table_to_dict(t) for t in records]
        else:
            data[f.name] = [_record_to_dict(r) for r in records]
    return data


def export_snapshot_yaml(components: SchemaComponents) -> str:
    """Export schema components to a YAML string."""
    return yaml.dump(
        components_to_dict(components),
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


def export_snapshot(components: SchemaComponents, output_path: Path) -> Path:
    """Write a YAML snapshot file, creating parent directories."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(export_snapshot_yaml(components), encoding="utf-8")
    return output_path
