"""Tests for SchemaIntrospector over a mocked catalog client."""

from unittest.mock import MagicMock

import pytest

from schemadump.exceptions import IntrospectionError
from schemadump.schema.introspect import SchemaIntrospector
from schemadump.types import ConstraintType, ObjectType, Privilege, RoutineKind
from tests.helpers import make_mock_client

TABLES_SQL = "c.relkind in ('r', 'p')\n"


def _orders_catalog() -> dict[str, list[dict]]:
    return {
        TABLES_SQL: [{"schema": "public", "name": "orders", "owner": "app"}],
        "information_schema.columns": [
            {
                "table_schema": "public",
                "table_name": "orders",
                "column_name": "id",
                "data_type": "integer",
                "udt_name": "int4",
                "is_nullable": "NO",
                "column_default": None,
                "character_maximum_length": None,
                "numeric_precision": 32,
                "numeric_scale": 0,
            },
            {
                "table_schema": "public",
                "table_name": "orders",
                "column_name": "status",
                "data_type": "USER-DEFINED",
                "udt_name": "status",
                "is_nullable": "NO",
                "column_default": "'open'::status",
                "character_maximum_length": None,
                "numeric_precision": None,
                "numeric_scale": None,
            },
        ],
        "information_schema.table_constraints": [
            {
                "table_schema": "public",
                "table_name": "orders",
                "constraint_name": "orders_pkey",
                "constraint_type": "PRIMARY KEY",
                "column_name": "id",
                "check_clause": None,
            },
            {
                "table_schema": "public",
                "table_name": "orders",
                "constraint_name": "2200_16390_1_not_null",
                "constraint_type": "CHECK",
                "column_name": None,
                "check_clause": "id IS NOT NULL",
            },
            {
                "table_schema": "public",
                "table_name": "orders",
                "constraint_name": "orders_id_check",
                "constraint_type": "CHECK",
                "column_name": None,
                "check_clause": "(id > 0)",
            },
        ],
    }


class TestFetchTables:
    """Tables combine columns and normalized constraints."""

    def test_columns_and_constraints(self):
        client = make_mock_client(_orders_catalog())
        [table] = SchemaIntrospector(client).fetch_tables()

        assert table.schema == "public"
        assert table.name == "orders"
        assert table.owner == "app"
        assert [c.name for c in table.columns] == ["id", "status"]
        assert table.columns[0].nullable is False
        assert table.columns[1].udt_name == "status"
        assert table.columns[1].default == "'open'::status"

        assert [(c.name, c.type) for c in table.constraints] == [
            ("orders_pkey", ConstraintType.PRIMARY_KEY),
            ("orders_id_check", ConstraintType.CHECK),
        ]
        assert table.constraints[0].columns == ["id"]

    def test_partitions_excluded(self):
        client = make_mock_client(_orders_catalog())
        SchemaIntrospector(client).fetch_tables()

        tables_sql = client.fetchall.call_args_list[0].args[0]
        assert "NOT c.relispartition" in tables_sql

    def test_no_tables_skips_column_queries(self):
        client = make_mock_client({})
        assert SchemaIntrospector(client).fetch_tables() == []
        assert client.fetchall.call_count == 1

    def test_introspect_table_passes_filter_params(self):
        client = make_mock_client(_orders_catalog())
        table = SchemaIntrospector(client).introspect_table("public", "orders")

        assert table is not None
        assert table.name == "orders"
        for call in client.fetchall.call_args_list:
            assert call.args[1] == ("public", "orders")

    def test_introspect_table_missing_returns_none(self):
        client = make_mock_client({})
        assert SchemaIntrospector(client).introspect_table("public", "nope") is None


class TestFetchForeignKeys:
    def test_rows_grouped_per_constraint(self):
        row = {
            "schema": "public",
            "table_name": "orders",
            "constraint_name": "fk_order_user",
            "column_name": "user_id",
            "referenced_schema": "public",
            "referenced_table": "users",
            "referenced_column": "id",
            "on_update": "NO ACTION",
            "on_delete": "CASCADE",
        }
        client = make_mock_client({"con.contype = 'f'": [row, dict(row)]})
        [fk] = SchemaIntrospector(client).fetch_foreign_keys()

        assert fk.name == "fk_order_user"
        assert fk.columns == ["user_id"]
        assert fk.referenced_columns == ["id"]
        assert fk.on_delete == "CASCADE"


class TestFetchOtherObjects:
    """Extensions, enums, sequences, routines, indexes, views, triggers."""

    def test_extensions_and_schemas(self):
        client = make_mock_client(
            {
                "from pg_extension": [
                    {"name": "pgcrypto", "version": "1.3", "schema": "public"}
                ],
                "nspowner": [{"name": "public", "owner": "postgres"}],
            }
        )
        introspector = SchemaIntrospector(client)
        assert introspector.fetch_extensions()[0].name == "pgcrypto"
        assert introspector.fetch_schemas()[0].owner == "postgres"

    @pytest.mark.parametrize(
        "labels",
        [["open", "closed"], "{open,closed}"],
    )
    def test_enum_labels_from_list_or_literal(self, labels):
        client = make_mock_client(
            {"pg_enum": [{"schema": "public", "name": "status", "labels": labels}]}
        )
        [enum] = SchemaIntrospector(client).fetch_enums()
        assert enum.values == ["open", "closed"]

    def test_sequences(self):
        client = make_mock_client(
            {
                "from pg_sequence": [
                    {
                        "schema": "public",
                        "name": "order_seq",
                        "data_type": "int8",
                        "start_value": 1,
                        "increment": 1,
                        "min_value": 1,
                        "max_value": 9223372036854775807,
                        "cache_size": 1,
                        "cycle": False,
                        "owner": "app",
                    }
                ]
            }
        )
        [seq] = SchemaIntrospector(client).fetch_sequences()
        assert seq.name == "order_seq"
        assert seq.max_value == 9223372036854775807
        assert seq.cycle is False

    def test_routines(self):
        client = make_mock_client(
            {
                "pg_get_functiondef": [
                    {
                        "schema": "public",
                        "name": "archive",
                        "definition": "CREATE OR REPLACE PROCEDURE public.archive() ...",
                        "language": "plpgsql",
                        "return_type": None,
                        "parameters": "",
                        "owner": "app",
                        "kind": "p",
                    }
                ]
            }
        )
        [routine] = SchemaIntrospector(client).fetch_routines()
        assert routine.kind is RoutineKind.PROCEDURE
        assert routine.parameters == ""

    def test_indexes_and_views(self):
        client = make_mock_client(
            {
                "pg_get_indexdef": [
                    {
                        "schema": "public",
                        "table_name": "orders",
                        "name": "idx_orders_status",
                        "definition": "CREATE INDEX idx_orders_status ON public.orders USING btree (status)",
                        "is_unique": False,
                        "method": "btree",
                    }
                ],
                "pg_get_viewdef": [
                    {
                        "schema": "public",
                        "name": "open_orders",
                        "definition": " SELECT 1;",
                        "owner": "app",
                    }
                ],
            }
        )
        introspector = SchemaIntrospector(client)
        assert introspector.fetch_indexes()[0].name == "idx_orders_status"
        assert introspector.fetch_views()[0].definition == " SELECT 1;"

    def test_triggers_merge_events_and_parse_function(self):
        base = {
            "schema": "public",
            "table_name": "orders",
            "name": "orders_audit",
            "timing": "AFTER",
            "action_statement": "EXECUTE FUNCTION audit.log_change()",
            "condition": None,
            "orientation": "ROW",
        }
        client = make_mock_client(
            {
                "information_schema.triggers": [
                    dict(base, event="INSERT"),
                    dict(base, event="UPDATE"),
                ]
            }
        )
        [trigger] = SchemaIntrospector(client).fetch_triggers()
        assert trigger.events == ["INSERT", "UPDATE"]
        assert trigger.function_schema == "audit"
        assert trigger.function_name == "log_change"

    def test_trigger_function_without_schema(self):
        introspector = SchemaIntrospector(MagicMock())
        assert introspector._parse_trigger_function(
            "EXECUTE PROCEDURE touch()"
        ) == ("public", "touch")


class TestFetchCommentsAndGrants:
    def test_comments(self):
        client = make_mock_client(
            {
                "pg_description": [
                    {
                        "schema": "public",
                        "object_type": "TABLE",
                        "object_name": "orders",
                        "column_name": "status",
                        "comment": "Order state",
                    }
                ]
            }
        )
        [comment] = SchemaIntrospector(client).fetch_comments()
        assert comment.object_type is ObjectType.TABLE
        assert comment.column_name == "status"

    def test_grants_expanded_from_acls(self):
        client = make_mock_client(
            {
                "c.relacl": [
                    {
                        "schema": "public",
                        "object_type": "TABLE",
                        "object_name": "orders",
                        "acl": "{app=arwd/app,reporting=r/app}",
                    }
                ],
                "p.proacl": [
                    {
                        "schema": "public",
                        "object_name": "touch",
                        "signature": "",
                        "acl": "{=X/app}",
                    }
                ],
                "nspacl": [{"schema": "sales", "acl": "{app=UC/postgres}"}],
            }
        )
        grants = SchemaIntrospector(client).fetch_grants()

        table_grants = [g for g in grants if g.object_type is ObjectType.TABLE]
        assert len(table_grants) == 5
        assert ("reporting", Privilege.SELECT) in {
            (g.grantee, g.privilege) for g in table_grants
        }
        function_grants = [g for g in grants if g.object_type is ObjectType.FUNCTION]
        assert [(g.grantee, g.privilege) for g in function_grants] == [
            ("PUBLIC", Privilege.EXECUTE)
        ]
        assert function_grants[0].signature == ""
        assert function_grants[0].object_name == "touch"
        schema_grants = [g for g in grants if g.object_type is ObjectType.SCHEMA]
        assert [g.privilege for g in schema_grants] == [
            Privilege.USAGE,
            Privilege.CREATE,
        ]


class TestIntrospectErrors:
    def test_query_failure_wrapped(self):
        client = MagicMock()
        client.fetchall.side_effect = RuntimeError("connection reset")

        with pytest.raises(IntrospectionError, match="connection reset"):
            SchemaIntrospector(client).fetch_extensions()

    def test_introspect_builds_all_classes(self):
        client = make_mock_client(_orders_catalog())
        components = SchemaIntrospector(client).introspect()
        assert [t.name for t in components.tables] == ["orders"]
        assert components.extensions == []
        assert components.grants == []
