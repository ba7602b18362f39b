"""Generate a dependency-ordered DDL script from schema components."""

from datetime import datetime
from typing import Callable, Optional

from schemadump.schema.constraints import normalize_constraints
from schemadump.schema.formatting import (
    format_data_type,
    qualified_name,
    quote_ident,
    quote_literal,
    terminate,
)
from schemadump.schema.models import (
    NO_ACTION,
    Comment,
    ForeignKey,
    Grant,
    Index,
    SchemaComponents,
    Table,
)
from schemadump.types import (
    ConstraintType,
    DumpOptions,
    DumpPhase,
    ObjectType,
    Privilege,
    RoutineKind,
)

BANNER = "-- ============================================"

PhaseEmitter = Callable[[SchemaComponents, DumpOptions], list[str]]


def _column_list(columns: list[str]) -> str:
    return ", ".join(quote_ident(c) for c in columns)


def _grantee(name: str) -> str:
    if name.upper() == "PUBLIC":
        return "PUBLIC"
    return quote_ident(name)


class DDLGenerator:
    """Render schema components as a PostgreSQL DDL script."""

    def generate(
        self,
        components: SchemaComponents,
        options: Optional[DumpOptions] = None,
        generated_at: Optional[datetime] = None,
    ) -> str:
        """Generate the full-database script wrapped in BEGIN/COMMIT."""
        options = options or DumpOptions()
        generated_at = generated_at or datetime.now()

        lines = [
            BANNER,
            "-- Database Schema Dump",
            f"-- Generated: {generated_at.isoformat()}",
            BANNER,
            "",
            "BEGIN;",
            "",
        ]

        for phase, emit in self._phases():
            body = emit(components, options)
            if not body:
                continue
            lines.extend([BANNER, f"-- {phase.value}", BANNER])
            lines.extend(body)

        lines.append("COMMIT;")
        return "\n".join(lines)

    def generate_table(
        self,
        table: Table,
        indexes: list[Index],
        foreign_keys: list[ForeignKey],
        include_drops: bool = False,
    ) -> str:
        """Generate DDL for one table plus its foreign keys and indexes."""
        lines: list[str] = []
        if include_drops:
            lines.append(f"DROP TABLE IF EXISTS {qualified_name(table.schema, table.name)} CASCADE;")
            lines.append("")

        lines.extend(self._create_table(table))
        lines.append("")

        for fk in foreign_keys:
            lines.extend(self._foreign_key(fk))
            lines.append("")

        for index in indexes:
            lines.append(terminate(index.definition))
            lines.append("")

        return "\n".join(lines)

    def _phases(self) -> list[tuple[DumpPhase, PhaseEmitter]]:
        """Fixed emission order; later phases may depend on earlier ones."""
        return [
            (DumpPhase.EXTENSIONS, self._gen_extensions),
            (DumpPhase.SCHEMAS, self._gen_schemas),
            (DumpPhase.ENUMS, self._gen_enums),
            (DumpPhase.SEQUENCES, self._gen_sequences),
            (DumpPhase.ROUTINES, self._gen_routines),
            (DumpPhase.TABLES, self._gen_tables),
            (DumpPhase.INDEXES, self._gen_indexes),
            (DumpPhase.FOREIGN_KEYS, self._gen_foreign_keys),
            (DumpPhase.VIEWS, self._gen_views),
            (DumpPhase.TRIGGERS, self._gen_triggers),
            (DumpPhase.COMMENTS, self._gen_comments),
            (DumpPhase.GRANTS, self._gen_grants),
        ]

    def _gen_extensions(
        self, components: SchemaComponents, options: DumpOptions
    ) -> list[str]:
        if not components.extensions:
            return []
        lines = [
            f"CREATE EXTENSION IF NOT EXISTS {quote_ident(ext.name)} "
            f"WITH SCHEMA {quote_ident(ext.schema)};"
            for ext in components.extensions
        ]
        lines.append("")
        return lines

    def _gen_schemas(
        self, components: SchemaComponents, options: DumpOptions
    ) -> list[str]:
        if not components.schemas:
            return []
        lines = [
            f"CREATE SCHEMA IF NOT EXISTS {quote_ident(schema.name)};"
            for schema in components.schemas
        ]
        lines.append("")
        return lines

    def _gen_enums(self, components: SchemaComponents, options: DumpOptions) -> list[str]:
        if not components.enums:
            return []
        lines = []
        if options.include_drops:
            for enum in components.enums:
                lines.append(
                    f"DROP TYPE IF EXISTS {qualified_name(enum.schema, enum.name)} CASCADE;"
                )
            lines.append("")
        for enum in components.enums:
            labels = ", ".join(quote_literal(v) for v in enum.values)
            lines.append(
                f"CREATE TYPE {qualified_name(enum.schema, enum.name)} AS ENUM ({labels});"
            )
        lines.append("")
        return lines

    def _gen_sequences(
        self, components: SchemaComponents, options: DumpOptions
    ) -> list[str]:
        if not components.sequences:
            return []
        lines = []
        if options.include_drops:
            for seq in components.sequences:
                lines.append(
                    f"DROP SEQUENCE IF EXISTS {qualified_name(seq.schema, seq.name)} CASCADE;"
                )
            lines.append("")
        for seq in components.sequences:
            lines.append(f"CREATE SEQUENCE IF NOT EXISTS {qualified_name(seq.schema, seq.name)}")
            lines.append(f"    AS {seq.data_type}")
            lines.append(f"    START WITH {seq.start_value}")
            lines.append(f"    INCREMENT BY {seq.increment}")
            if seq.min_value is not None:
                lines.append(f"    MINVALUE {seq.min_value}")
            else:
                lines.append("    NO MINVALUE")
            if seq.max_value is not None:
                lines.append(f"    MAXVALUE {seq.max_value}")
            else:
                lines.append("    NO MAXVALUE")
            lines.append(f"    CACHE {seq.cache_size}")
            lines.append("    CYCLE;" if seq.cycle else "    NO CYCLE;")
            lines.append("")
        return lines

    def _gen_routines(
        self, components: SchemaComponents, options: DumpOptions
    ) -> list[str]:
        if not components.routines:
            return []
        lines = []
        if options.include_drops:
            for routine in components.routines:
                keyword = (
                    "PROCEDURE" if routine.kind is RoutineKind.PROCEDURE else "FUNCTION"
                )
                lines.append(
                    f"DROP {keyword} IF EXISTS "
                    f"{qualified_name(routine.schema, routine.name)}({routine.parameters}) CASCADE;"
                )
            lines.append("")
        for routine in components.routines:
            lines.append(terminate(routine.definition))
            lines.append("")
        return lines

    def _gen_tables(self, components: SchemaComponents, options: DumpOptions) -> list[str]:
        if not components.tables:
            return []
        lines = []
        if options.include_drops:
            for table in reversed(components.tables):
                lines.append(
                    f"DROP TABLE IF EXISTS {qualified_name(table.schema, table.name)} CASCADE;"
                )
            lines.append("")
        for table in components.tables:
            lines.extend(self._create_table(table))
            lines.append("")
        return lines

    def _gen_indexes(
        self, components: SchemaComponents, options: DumpOptions
    ) -> list[str]:
        if not components.indexes:
            return []
        lines = []
        if options.include_drops:
            for index in components.indexes:
                lines.append(
                    f"DROP INDEX IF EXISTS {qualified_name(index.schema, index.name)};"
                )
            lines.append("")
        for index in components.indexes:
            lines.append(terminate(index.definition))
            lines.append("")
        return lines

    def _gen_foreign_keys(
        self, components: SchemaComponents, options: DumpOptions
    ) -> list[str]:
        by_table: dict[tuple[str, str], list[ForeignKey]] = {}
        for fk in components.foreign_keys:
            by_table.setdefault((fk.schema, fk.table_name), []).append(fk)

        lines = []
        for fks in by_table.values():
            for fk in fks:
                lines.extend(self._foreign_key(fk))
                lines.append("")
        return lines

    def _gen_views(self, components: SchemaComponents, options: DumpOptions) -> list[str]:
        if not components.views:
            return []
        lines = []
        if options.include_drops:
            for view in components.views:
                lines.append(
                    f"DROP VIEW IF EXISTS {qualified_name(view.schema, view.name)} CASCADE;"
                )
            lines.append("")
        for view in components.views:
            lines.append(f"CREATE OR REPLACE VIEW {qualified_name(view.schema, view.name)} AS")
            lines.append(terminate(view.definition.strip()))
            lines.append("")
        return lines

    def _gen_triggers(
        self, components: SchemaComponents, options: DumpOptions
    ) -> list[str]:
        if not components.triggers:
            return []
        lines = []
        if options.include_drops:
            for trigger in components.triggers:
                lines.append(
                    f"DROP TRIGGER IF EXISTS {quote_ident(trigger.name)} "
                    f"ON {qualified_name(trigger.schema, trigger.table_name)};"
                )
            lines.append("")
        for trigger in components.triggers:
            lines.append(f"CREATE TRIGGER {quote_ident(trigger.name)}")
            lines.append(f"    {trigger.timing} {' OR '.join(trigger.events)}")
            lines.append(f"    ON {qualified_name(trigger.schema, trigger.table_name)}")
            for_each = f"    FOR EACH {trigger.orientation}"
            if trigger.condition:
                for_each += f" WHEN ({trigger.condition})"
            lines.append(for_each)
            lines.append(
                "    EXECUTE FUNCTION "
                f"{qualified_name(trigger.function_schema, trigger.function_name)}();"
            )
            lines.append("")
        return lines

    def _gen_comments(
        self, components: SchemaComponents, options: DumpOptions
    ) -> list[str]:
        if not options.include_comments or not components.comments:
            return []
        lines = [self._comment(comment) for comment in components.comments]
        lines.append("")
        return lines

    def _gen_grants(self, components: SchemaComponents, options: DumpOptions) -> list[str]:
        if not options.include_grants or not components.grants:
            return []
        lines = [self._grant(grant) for grant in components.grants]
        lines.append("")
        return lines

    def _create_table(self, table: Table) -> list[str]:
        """CREATE TABLE shared by the full and single-table paths."""
        column_names = {col.name for col in table.columns}
        inline_pk: set[str] = set()
        inline_unique: set[str] = set()
        clauses: list[str] = []

        for constraint in normalize_constraints(table.columns, table.constraints):
            name = quote_ident(constraint.name)
            if constraint.type in (ConstraintType.PRIMARY_KEY, ConstraintType.UNIQUE):
                if not constraint.columns:
                    continue
                if (
                    len(constraint.columns) == 1
                    and constraint.columns[0] in column_names
                ):
                    target = (
                        inline_pk
                        if constraint.type is ConstraintType.PRIMARY_KEY
                        else inline_unique
                    )
                    target.add(constraint.columns[0])
                    continue
                clauses.append(
                    f"    CONSTRAINT {name} {constraint.type.value} "
                    f"({_column_list(constraint.columns)})"
                )
            elif constraint.type is ConstraintType.CHECK and constraint.definition:
                clauses.append(f"    CONSTRAINT {name} CHECK ({constraint.definition})")

        items = []
        for col in table.columns:
            col_def = f"    {quote_ident(col.name)} {format_data_type(col)}"
            if not col.nullable or col.name in inline_pk:
                col_def += " NOT NULL"
            if col.name in inline_pk:
                col_def += " PRIMARY KEY"
            if col.default:
                col_def += f" DEFAULT {col.default}"
            if col.name in inline_unique:
                col_def += " UNIQUE"
            items.append(col_def)
        items.extend(clauses)

        lines = [f"CREATE TABLE {qualified_name(table.schema, table.name)} ("]
        lines.extend(item + "," for item in items[:-1])
        if items:
            lines.append(items[-1])
        lines.append(");")
        return lines

    def _foreign_key(self, fk: ForeignKey) -> list[str]:
        lines = [
            f"ALTER TABLE {qualified_name(fk.schema, fk.table_name)}",
            f"    ADD CONSTRAINT {quote_ident(fk.name)} FOREIGN KEY ({_column_list(fk.columns)})",
            f"    REFERENCES {qualified_name(fk.referenced_schema, fk.referenced_table)} "
            f"({_column_list(fk.referenced_columns)})",
        ]
        if fk.on_delete and fk.on_delete.upper() != NO_ACTION:
            lines.append(f"    ON DELETE {fk.on_delete}")
        if fk.on_update and fk.on_update.upper() != NO_ACTION:
            lines.append(f"    ON UPDATE {fk.on_update}")
        lines[-1] += ";"
        return lines

    def _comment(self, comment: Comment) -> str:
        text = quote_literal(comment.comment)
        if comment.column_name:
            target = (
                f"{qualified_name(comment.schema, comment.object_name)}"
                f".{quote_ident(comment.column_name)}"
            )
            return f"COMMENT ON COLUMN {target} IS {text};"
        if comment.object_type is ObjectType.SCHEMA:
            return f"COMMENT ON SCHEMA {quote_ident(comment.object_name)} IS {text};"
        target = qualified_name(comment.schema, comment.object_name)
        return f"COMMENT ON {comment.object_type.value} {target} IS {text};"

    def _grant(self, grant: Grant) -> str:
        grantee = _grantee(grant.grantee)
        if grant.object_type is ObjectType.SCHEMA:
            privilege = (
                Privilege.CREATE
                if grant.privilege is Privilege.CREATE
                else Privilege.USAGE
            )
            return (
                f"GRANT {privilege.value} ON SCHEMA {quote_ident(grant.schema)} "
                f"TO {grantee};"
            )
        target = qualified_name(grant.schema, grant.object_name)
        if grant.object_type is ObjectType.FUNCTION and grant.signature is not None:
            target += f"({grant.signature})"
        return (
            f"GRANT {grant.privilege.value} ON {grant.object_type.value} {target} "
            f"TO {grantee};"
        )
