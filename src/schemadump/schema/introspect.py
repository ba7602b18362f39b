"""Schema introspection from the PostgreSQL system catalogs."""

import logging
import re
from typing import Any, Optional, Protocol

from schemadump.exceptions import IntrospectionError
from schemadump.schema.acl import parse_acl
from schemadump.schema.constraints import (
    ConstraintRow,
    ForeignKeyRow,
    build_constraints,
    group_foreign_keys,
    normalize_constraints,
)
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
    Trigger,
    View,
)
from schemadump.types import ConstraintType, ObjectType, RoutineKind

logger = logging.getLogger(__name__)

TRIGGER_FUNCTION_PATTERN = re.compile(
    r"EXECUTE\s+(?:FUNCTION|PROCEDURE)\s+([^(]+)\(", re.IGNORECASE
)

_FK_ACTION = """
    CASE {col}
        WHEN 'a' THEN 'NO ACTION'
        WHEN 'r' THEN 'RESTRICT'
        WHEN 'c' THEN 'CASCADE'
        WHEN 'n' THEN 'SET NULL'
        WHEN 'd' THEN 'SET DEFAULT'
    END"""


def _user_schemas(column: str) -> str:
    """SQL predicate excluding system and temporary namespaces."""
    return (
        f"{column} NOT IN ('pg_catalog', 'information_schema') "
        f"AND {column} !~ '^pg_(toast|temp)'"
    )


class SQLClient(Protocol):
    """Protocol for SQL client used by introspector."""

    def fetchall(self, sql: str, params: Optional[tuple] = None) -> list: ...


class SchemaIntrospector:
    """Read every catalog object class needed to rebuild a database."""

    def __init__(self, client: SQLClient) -> None:
        self._client = client

    def _row_get(self, row: Any, key: str, default: Any = None) -> Any:
        """Safely get a value from a row, supporting dict-like and tuple rows."""
        if hasattr(row, "get"):
            return row.get(key, default)
        try:
            return row[key]
        except (KeyError, IndexError, TypeError):
            return default

    def _fetch(self, sql: str, params: Optional[tuple] = None) -> list:
        try:
            return self._client.fetchall(sql, params)
        except Exception as e:
            raise IntrospectionError(f"Catalog query failed: {e}") from e

    def introspect(self) -> SchemaComponents:
        """Introspect all user objects in the database."""
        components = SchemaComponents(
            extensions=self.fetch_extensions(),
            schemas=self.fetch_schemas(),
            enums=self.fetch_enums(),
            sequences=self.fetch_sequences(),
            routines=self.fetch_routines(),
            tables=self.fetch_tables(),
            indexes=self.fetch_indexes(),
            foreign_keys=self.fetch_foreign_keys(),
            views=self.fetch_views(),
            triggers=self.fetch_triggers(),
            comments=self.fetch_comments(),
            grants=self.fetch_grants(),
        )
        logger.debug(
            "Introspected %d tables, %d routines, %d views",
            len(components.tables),
            len(components.routines),
            len(components.views),
        )
        return components

    def introspect_table(self, schema: str, table_name: str) -> Table | None:
        """Introspect a single base table. Returns None if it does not exist."""
        tables = self.fetch_tables(schema=schema, table_name=table_name)
        if not tables:
            return None
        return tables[0]

    def table_indexes(self, schema: str, table_name: str) -> list[Index]:
        return self.fetch_indexes(schema=schema, table_name=table_name)

    def table_foreign_keys(self, schema: str, table_name: str) -> list[ForeignKey]:
        return self.fetch_foreign_keys(schema=schema, table_name=table_name)

    def fetch_extensions(self) -> list[Extension]:
        sql = """
            SELECT e.extname AS name, e.extversion AS version, n.nspname AS schema
            FROM pg_extension e
            JOIN pg_namespace n ON n.oid = e.extnamespace
            WHERE e.extname <> 'plpgsql'
            ORDER BY e.extname
        """
        return [
            Extension(
                name=row["name"],
                version=row["version"],
                schema=row["schema"],
            )
            for row in self._fetch(sql)
        ]

    def fetch_schemas(self) -> list[SchemaObject]:
        sql = f"""
            SELECT nspname AS name, pg_get_userbyid(nspowner) AS owner
            FROM pg_namespace
            WHERE {_user_schemas("nspname")}
            ORDER BY nspname
        """
        return [
            SchemaObject(name=row["name"], owner=self._row_get(row, "owner"))
            for row in self._fetch(sql)
        ]

    def fetch_enums(self) -> list[EnumType]:
        sql = f"""
            SELECT n.nspname AS schema, t.typname AS name,
                   array_agg(e.enumlabel ORDER BY e.enumsortorder)::text[] AS labels
            FROM pg_type t
            JOIN pg_enum e ON e.enumtypid = t.oid
            JOIN pg_namespace n ON n.oid = t.typnamespace
            WHERE t.typtype = 'e' AND {_user_schemas("n.nspname")}
            GROUP BY n.nspname, t.typname
            ORDER BY n.nspname, t.typname
        """
        return [
            EnumType(
                schema=row["schema"],
                name=row["name"],
                values=self._parse_text_array(row["labels"]),
            )
            for row in self._fetch(sql)
        ]

    def _parse_text_array(self, value: Any) -> list[str]:
        """Accept a driver-decoded list or a raw ``{a,b}`` array literal."""
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        if isinstance(value, str) and value.startswith("{") and value.endswith("}"):
            inner = value[1:-1]
            if not inner:
                return []
            return [v.strip().strip('"') for v in inner.split(",")]
        return []

    def fetch_sequences(self) -> list[Sequence]:
        sql = f"""
            SELECT n.nspname AS schema, c.relname AS name, t.typname AS data_type,
                   s.seqstart AS start_value, s.seqincrement AS increment,
                   s.seqmin AS min_value, s.seqmax AS max_value,
                   s.seqcache AS cache_size, s.seqcycle AS cycle,
                   pg_get_userbyid(c.relowner) AS owner
            FROM pg_sequence s
            JOIN pg_class c ON c.oid = s.seqrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            JOIN pg_type t ON t.oid = s.seqtypid
            WHERE {_user_schemas("n.nspname")}
            ORDER BY n.nspname, c.relname
        """
        sequences = []
        for row in self._fetch(sql):
            min_value = self._row_get(row, "min_value")
            max_value = self._row_get(row, "max_value")
            sequences.append(
                Sequence(
                    schema=row["schema"],
                    name=row["name"],
                    data_type=row["data_type"],
                    start_value=int(row["start_value"]),
                    increment=int(row["increment"]),
                    min_value=int(min_value) if min_value is not None else None,
                    max_value=int(max_value) if max_value is not None else None,
                    cache_size=int(row["cache_size"]),
                    cycle=bool(row["cycle"]),
                    owner=self._row_get(row, "owner"),
                )
            )
        return sequences

    def fetch_routines(self) -> list[Routine]:
        sql = f"""
            SELECT n.nspname AS schema, p.proname AS name,
                   pg_get_functiondef(p.oid) AS definition,
                   l.lanname AS language,
                   pg_get_function_result(p.oid) AS return_type,
                   pg_get_function_identity_arguments(p.oid) AS parameters,
                   pg_get_userbyid(p.proowner) AS owner,
                   p.prokind AS kind
            FROM pg_proc p
            JOIN pg_namespace n ON n.oid = p.pronamespace
            JOIN pg_language l ON l.oid = p.prolang
            WHERE p.prokind IN ('f', 'p')
              AND {_user_schemas("n.nspname")}
              AND NOT EXISTS (
                  SELECT 1 FROM pg_depend d
                  WHERE d.objid = p.oid AND d.deptype = 'e'
              )
            ORDER BY n.nspname, p.proname, parameters
        """
        return [
            Routine(
                schema=row["schema"],
                name=row["name"],
                definition=row["definition"],
                language=row["language"],
                return_type=self._row_get(row, "return_type"),
                parameters=self._row_get(row, "parameters") or "",
                owner=self._row_get(row, "owner"),
                kind=(
                    RoutineKind.PROCEDURE
                    if self._row_get(row, "kind") == "p"
                    else RoutineKind.FUNCTION
                ),
            )
            for row in self._fetch(sql)
        ]

    def fetch_tables(
        self, schema: Optional[str] = None, table_name: Optional[str] = None
    ) -> list[Table]:
        """Fetch base tables with their columns and normalized constraints.

        Partitions are skipped. A partitioned parent is emitted as a plain
        table without its ``PARTITION BY`` clause, so partitioning is not
        reproduced.
        """
        filter_sql, params = self._table_filter("n.nspname", "c.relname", schema, table_name)
        sql = f"""
            SELECT n.nspname AS schema, c.relname AS name,
                   pg_get_userbyid(c.relowner) AS owner
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind IN ('r', 'p')
              AND NOT c.relispartition
              AND {_user_schemas("n.nspname")}{filter_sql}
            ORDER BY n.nspname, c.relname
        """
        table_rows = self._fetch(sql, params)
        if not table_rows:
            return []

        columns = self._fetch_columns(schema, table_name)
        constraint_rows = self._fetch_constraint_rows(schema, table_name)

        tables = []
        for row in table_rows:
            key = (row["schema"], row["name"])
            table_columns = columns.get(key, [])
            constraints = build_constraints(constraint_rows.get(key, []))
            tables.append(
                Table(
                    schema=row["schema"],
                    name=row["name"],
                    columns=table_columns,
                    constraints=normalize_constraints(table_columns, constraints),
                    owner=self._row_get(row, "owner"),
                )
            )
        return tables

    def _table_filter(
        self,
        schema_col: str,
        table_col: str,
        schema: Optional[str],
        table_name: Optional[str],
    ) -> tuple[str, Optional[tuple]]:
        if schema is None or table_name is None:
            return "", None
        return f"\n              AND {schema_col} = %s AND {table_col} = %s", (
            schema,
            table_name,
        )

    def _fetch_columns(
        self, schema: Optional[str], table_name: Optional[str]
    ) -> dict[tuple[str, str], list[Column]]:
        filter_sql, params = self._table_filter("table_schema", "table_name", schema, table_name)
        sql = f"""
            SELECT table_schema, table_name, column_name, data_type, udt_name,
                   is_nullable, column_default, character_maximum_length,
                   numeric_precision, numeric_scale
            FROM information_schema.columns
            WHERE {_user_schemas("table_schema")}{filter_sql}
            ORDER BY table_schema, table_name, ordinal_position
        """
        columns: dict[tuple[str, str], list[Column]] = {}
        for row in self._fetch(sql, params):
            key = (row["table_schema"], row["table_name"])
            columns.setdefault(key, []).append(
                Column(
                    name=row["column_name"],
                    data_type=row["data_type"],
                    udt_name=self._row_get(row, "udt_name"),
                    nullable=row["is_nullable"] == "YES",
                    default=self._row_get(row, "column_default"),
                    character_maximum_length=self._row_get(row, "character_maximum_length"),
                    numeric_precision=self._row_get(row, "numeric_precision"),
                    numeric_scale=self._row_get(row, "numeric_scale"),
                )
            )
        return columns

    def _fetch_constraint_rows(
        self, schema: Optional[str], table_name: Optional[str]
    ) -> dict[tuple[str, str], list[ConstraintRow]]:
        filter_sql, params = self._table_filter(
            "tc.table_schema", "tc.table_name", schema, table_name
        )
        sql = f"""
            SELECT tc.table_schema, tc.table_name, tc.constraint_name,
                   tc.constraint_type, kcu.column_name, cc.check_clause
            FROM information_schema.table_constraints tc
            LEFT JOIN information_schema.key_column_usage kcu
              ON kcu.constraint_name = tc.constraint_name
             AND kcu.table_schema = tc.table_schema
             AND kcu.table_name = tc.table_name
            LEFT JOIN information_schema.check_constraints cc
              ON cc.constraint_name = tc.constraint_name
             AND cc.constraint_schema = tc.constraint_schema
            WHERE tc.constraint_type IN ('PRIMARY KEY', 'UNIQUE', 'CHECK')
              AND {_user_schemas("tc.table_schema")}{filter_sql}
            ORDER BY tc.table_schema, tc.table_name, tc.constraint_type,
                     tc.constraint_name, kcu.ordinal_position
        """
        rows: dict[tuple[str, str], list[ConstraintRow]] = {}
        for row in self._fetch(sql, params):
            key = (row["table_schema"], row["table_name"])
            rows.setdefault(key, []).append(
                ConstraintRow(
                    name=row["constraint_name"],
                    type=ConstraintType(row["constraint_type"]),
                    column_name=self._row_get(row, "column_name"),
                    check_clause=self._row_get(row, "check_clause"),
                )
            )
        return rows

    def fetch_indexes(
        self, schema: Optional[str] = None, table_name: Optional[str] = None
    ) -> list[Index]:
        """Fetch indexes not backing a PRIMARY KEY or UNIQUE constraint."""
        filter_sql, params = self._table_filter("n.nspname", "t.relname", schema, table_name)
        sql = f"""
            SELECT n.nspname AS schema, t.relname AS table_name, i.relname AS name,
                   pg_get_indexdef(i.oid) AS definition,
                   ix.indisunique AS is_unique, am.amname AS method
            FROM pg_index ix
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN pg_am am ON am.oid = i.relam
            WHERE {_user_schemas("n.nspname")}
              AND NOT t.relispartition
              AND NOT EXISTS (
                  SELECT 1 FROM pg_constraint con
                  WHERE con.conindid = ix.indexrelid AND con.contype IN ('p', 'u')
              ){filter_sql}
            ORDER BY n.nspname, t.relname, i.relname
        """
        return [
            Index(
                schema=row["schema"],
                table_name=row["table_name"],
                name=row["name"],
                definition=row["definition"],
                is_unique=bool(self._row_get(row, "is_unique", False)),
                method=self._row_get(row, "method") or "btree",
            )
            for row in self._fetch(sql, params)
        ]

    def fetch_foreign_keys(
        self, schema: Optional[str] = None, table_name: Optional[str] = None
    ) -> list[ForeignKey]:
        """Fetch foreign keys, one row per column pair, grouped by name."""
        filter_sql, params = self._table_filter("n.nspname", "cl.relname", schema, table_name)
        sql = f"""
            SELECT n.nspname AS schema, cl.relname AS table_name,
                   con.conname AS constraint_name, a.attname AS column_name,
                   rn.nspname AS referenced_schema, rcl.relname AS referenced_table,
                   ra.attname AS referenced_column,
                   {_FK_ACTION.format(col="con.confupdtype")} AS on_update,
                   {_FK_ACTION.format(col="con.confdeltype")} AS on_delete
            FROM pg_constraint con
            JOIN pg_class cl ON cl.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = cl.relnamespace
            JOIN pg_class rcl ON rcl.oid = con.confrelid
            JOIN pg_namespace rn ON rn.oid = rcl.relnamespace
            CROSS JOIN LATERAL unnest(con.conkey, con.confkey)
                WITH ORDINALITY AS k(local_attnum, ref_attnum, ordinal)
            JOIN pg_attribute a
              ON a.attrelid = con.conrelid AND a.attnum = k.local_attnum
            JOIN pg_attribute ra
              ON ra.attrelid = con.confrelid AND ra.attnum = k.ref_attnum
            WHERE con.contype = 'f'
              AND NOT cl.relispartition
              AND {_user_schemas("n.nspname")}{filter_sql}
            ORDER BY n.nspname, cl.relname, con.conname, k.ordinal
        """
        return group_foreign_keys(
            ForeignKeyRow(
                schema=row["schema"],
                table_name=row["table_name"],
                name=row["constraint_name"],
                column_name=row["column_name"],
                referenced_schema=row["referenced_schema"],
                referenced_table=row["referenced_table"],
                referenced_column=row["referenced_column"],
                on_update=self._row_get(row, "on_update"),
                on_delete=self._row_get(row, "on_delete"),
            )
            for row in self._fetch(sql, params)
        )

    def fetch_views(self) -> list[View]:
        sql = f"""
            SELECT n.nspname AS schema, c.relname AS name,
                   pg_get_viewdef(c.oid, true) AS definition,
                   pg_get_userbyid(c.relowner) AS owner
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind = 'v' AND {_user_schemas("n.nspname")}
            ORDER BY n.nspname, c.relname
        """
        return [
            View(
                schema=row["schema"],
                name=row["name"],
                definition=row["definition"],
                owner=self._row_get(row, "owner"),
            )
            for row in self._fetch(sql)
        ]

    def fetch_triggers(self) -> list[Trigger]:
        """Fetch triggers, merging the one-row-per-event catalog shape."""
        sql = f"""
            SELECT trigger_schema AS schema, event_object_table AS table_name,
                   trigger_name AS name, action_timing AS timing,
                   event_manipulation AS event, action_statement,
                   action_condition AS condition, action_orientation AS orientation
            FROM information_schema.triggers
            WHERE {_user_schemas("trigger_schema")}
            ORDER BY trigger_schema, event_object_table, trigger_name, action_order
        """
        grouped: dict[tuple[str, str, str], dict] = {}
        for row in self._fetch(sql):
            key = (row["schema"], row["table_name"], row["name"])
            entry = grouped.get(key)
            if entry is None:
                function_schema, function_name = self._parse_trigger_function(
                    self._row_get(row, "action_statement") or ""
                )
                entry = {
                    "row": row,
                    "events": [],
                    "function_schema": function_schema,
                    "function_name": function_name,
                }
                grouped[key] = entry
            if row["event"] not in entry["events"]:
                entry["events"].append(row["event"])

        return [
            Trigger(
                schema=entry["row"]["schema"],
                table_name=entry["row"]["table_name"],
                name=entry["row"]["name"],
                timing=entry["row"]["timing"],
                events=entry["events"],
                function_schema=entry["function_schema"],
                function_name=entry["function_name"],
                condition=self._row_get(entry["row"], "condition"),
                orientation=self._row_get(entry["row"], "orientation") or "ROW",
            )
            for entry in grouped.values()
        ]

    def _parse_trigger_function(self, statement: str) -> tuple[str, str]:
        """Split ``EXECUTE FUNCTION schema.fn()`` into (schema, fn)."""
        match = TRIGGER_FUNCTION_PATTERN.search(statement)
        if match is None:
            return "public", ""
        full_name = match.group(1).strip().replace('"', "")
        if "." in full_name:
            function_schema, function_name = full_name.split(".", 1)
            return function_schema, function_name
        return "public", full_name

    def fetch_comments(self) -> list[Comment]:
        sql = f"""
            SELECT n.nspname AS schema,
                   CASE c.relkind
                       WHEN 'v' THEN 'VIEW'
                       WHEN 'S' THEN 'SEQUENCE'
                       ELSE 'TABLE'
                   END AS object_type,
                   c.relname AS object_name,
                   a.attname AS column_name,
                   d.description AS comment
            FROM pg_description d
            JOIN pg_class c ON c.oid = d.objoid
             AND d.classoid = 'pg_class'::regclass
            JOIN pg_namespace n ON n.oid = c.relnamespace
            LEFT JOIN pg_attribute a
              ON a.attrelid = d.objoid AND a.attnum = d.objsubid AND d.objsubid > 0
            WHERE c.relkind IN ('r', 'p', 'v', 'S')
              AND NOT c.relispartition
              AND d.description IS NOT NULL
              AND {_user_schemas("n.nspname")}
            ORDER BY n.nspname, c.relname, a.attname NULLS FIRST
        """
        return [
            Comment(
                schema=row["schema"],
                object_type=ObjectType(row["object_type"]),
                object_name=row["object_name"],
                comment=row["comment"],
                column_name=self._row_get(row, "column_name"),
            )
            for row in self._fetch(sql)
        ]

    def fetch_grants(self) -> list[Grant]:
        """Expand relation, routine and schema ACLs into Grant records."""
        relations_sql = f"""
            SELECT n.nspname AS schema,
                   CASE c.relkind WHEN 'S' THEN 'SEQUENCE' ELSE 'TABLE' END AS object_type,
                   c.relname AS object_name, c.relacl::text AS acl
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE c.relkind IN ('r', 'p', 'v', 'S')
              AND NOT c.relispartition
              AND c.relacl IS NOT NULL
              AND {_user_schemas("n.nspname")}
            ORDER BY n.nspname, c.relname
        """
        routines_sql = f"""
            SELECT n.nspname AS schema, p.proname AS object_name,
                   pg_get_function_identity_arguments(p.oid) AS signature,
                   p.proacl::text AS acl
            FROM pg_proc p
            JOIN pg_namespace n ON n.oid = p.pronamespace
            WHERE p.prokind IN ('f', 'p')
              AND p.proacl IS NOT NULL
              AND {_user_schemas("n.nspname")}
            ORDER BY n.nspname, p.proname
        """
        schemas_sql = f"""
            SELECT nspname AS schema, nspacl::text AS acl
            FROM pg_namespace
            WHERE nspacl IS NOT NULL AND {_user_schemas("nspname")}
            ORDER BY nspname
        """

        grants: list[Grant] = []
        for row in self._fetch(relations_sql):
            grants.extend(
                parse_acl(
                    row["acl"],
                    row["schema"],
                    ObjectType(row["object_type"]),
                    row["object_name"],
                )
            )
        for row in self._fetch(routines_sql):
            grants.extend(
                parse_acl(
                    row["acl"],
                    row["schema"],
                    ObjectType.FUNCTION,
                    row["object_name"],
                    signature=self._row_get(row, "signature") or "",
                )
            )
        for row in self._fetch(schemas_sql):
            grants.extend(
                parse_acl(row["acl"], row["schema"], ObjectType.SCHEMA, row["schema"])
            )
        return grants
