"""Command-line interface for schemadump."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from schemadump.dump import ComponentsProvider, dump_schema, dump_table, wrap_json
from schemadump.exceptions import ConfigError, TableNotFoundError
from schemadump.postgres.utils import (
    build_config_and_validate,
    dump_online_schema,
    dump_online_table,
    get_online_components,
)
from schemadump.schema.exporter import export_snapshot
from schemadump.schema.loader import load_snapshot
from schemadump.types import DumpOptions


def _add_connection_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--dsn", help="libpq connection string (or SCHEMADUMP_DSN)")
    parser.add_argument("--service", help="Service name in ~/.pg_service.conf")


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        choices=["sql", "json"],
        default="sql",
        help="Output raw SQL or a JSON envelope",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Output file path (default: stdout)",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="schemadump",
        description="Rebuild PostgreSQL schema DDL from the catalog",
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    dump_parser = subparsers.add_parser("dump", help="Dump the whole database schema")
    _add_connection_args(dump_parser)
    _add_output_args(dump_parser)
    dump_parser.add_argument(
        "--snapshot",
        type=Path,
        help="Read components from a YAML snapshot instead of a live database",
    )
    dump_parser.add_argument("--no-drops", action="store_true", help="Omit DROP statements")
    dump_parser.add_argument("--no-grants", action="store_true", help="Omit GRANT statements")
    dump_parser.add_argument(
        "--no-comments", action="store_true", help="Omit COMMENT statements"
    )

    table_parser = subparsers.add_parser("table", help="Dump DDL for one table")
    table_parser.add_argument("schema", help="Schema containing the table")
    table_parser.add_argument("table", help="Table name")
    _add_connection_args(table_parser)
    _add_output_args(table_parser)
    table_parser.add_argument(
        "--snapshot",
        type=Path,
        help="Read components from a YAML snapshot instead of a live database",
    )
    table_parser.add_argument(
        "--drops", action="store_true", help="Prefix with DROP TABLE IF EXISTS"
    )

    snapshot_parser = subparsers.add_parser(
        "snapshot", help="Write the database's components to a YAML snapshot"
    )
    _add_connection_args(snapshot_parser)
    snapshot_parser.add_argument("--output", type=Path, required=True)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    if args.command == "dump":
        return cmd_dump(args)
    elif args.command == "table":
        return cmd_table(args)
    elif args.command == "snapshot":
        return cmd_snapshot(args)
    else:
        print(f"Command '{args.command}' not yet implemented", file=sys.stderr)
        return 1


def _emit(args: argparse.Namespace, sql: str, **meta) -> None:
    text = wrap_json(sql, **meta) if args.format == "json" else sql
    if args.output:
        args.output.write_text(text + "\n", encoding="utf-8")
        print(f"Wrote {args.output}", file=sys.stderr)
    else:
        print(text)


def cmd_dump(args: argparse.Namespace) -> int:
    """Dump the whole schema."""
    options = DumpOptions(
        include_drops=not args.no_drops,
        include_grants=not args.no_grants,
        include_comments=not args.no_comments,
    )
    try:
        if args.snapshot:
            provider = ComponentsProvider(load_snapshot(args.snapshot))
            sql = dump_schema(provider, options)
        else:
            config = build_config_and_validate(dsn=args.dsn, service=args.service)
            sql = dump_online_schema(config, options)

        _emit(args, sql, kind="schema")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Dump error: {e}", file=sys.stderr)
        return 1


def cmd_table(args: argparse.Namespace) -> int:
    """Dump DDL for a single table."""
    try:
        if args.snapshot:
            provider = ComponentsProvider(load_snapshot(args.snapshot))
            sql = dump_table(provider, args.schema, args.table, include_drops=args.drops)
        else:
            config = build_config_and_validate(dsn=args.dsn, service=args.service)
            sql = dump_online_table(
                config, args.schema, args.table, include_drops=args.drops
            )

        _emit(args, sql, kind="table", schema=args.schema, table=args.table)
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except TableNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 3
    except Exception as e:
        print(f"Dump error: {e}", file=sys.stderr)
        return 1


def cmd_snapshot(args: argparse.Namespace) -> int:
    """Write a YAML snapshot of the live database."""
    try:
        config = build_config_and_validate(dsn=args.dsn, service=args.service)
        components = get_online_components(config)
        path = export_snapshot(components, args.output)
        print(
            f"Wrote snapshot of {len(components.tables)} tables to {path}",
            file=sys.stderr,
        )
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Snapshot error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
