"""Tests for the dump service."""

import json
from datetime import datetime
from unittest.mock import Mock

import pytest

from schemadump.dump import ComponentsProvider, dump_schema, dump_table, wrap_json
from schemadump.exceptions import IntrospectionError, TableNotFoundError
from schemadump.schema.models import Index
from schemadump.types import DumpOptions
from tests.helpers import make_foreign_key, make_orders_components


class TestDumpSchema:
    def test_dump_from_components(self):
        provider = ComponentsProvider(make_orders_components())
        sql = dump_schema(provider, generated_at=datetime(2024, 1, 15))

        assert "-- Generated: 2024-01-15T00:00:00" in sql
        assert 'DROP TABLE IF EXISTS "public"."orders" CASCADE;' in sql

    def test_options_forwarded(self):
        provider = ComponentsProvider(make_orders_components())
        sql = dump_schema(provider, DumpOptions(include_drops=False))
        assert "DROP " not in sql

    def test_provider_errors_propagate(self):
        provider = Mock()
        provider.introspect.side_effect = IntrospectionError("catalog query failed")

        with pytest.raises(IntrospectionError):
            dump_schema(provider)
        provider.introspect.assert_called_once()


class TestDumpTable:
    def test_table_with_indexes_and_foreign_keys(self):
        components = make_orders_components()
        components.indexes.append(
            Index(
                schema="public",
                table_name="orders",
                name="idx_orders_status",
                definition="CREATE INDEX idx_orders_status ON public.orders (status)",
            )
        )
        components.foreign_keys.append(make_foreign_key())

        sql = dump_table(ComponentsProvider(components), "public", "orders")

        assert sql.startswith('CREATE TABLE "public"."orders" (')
        assert 'ADD CONSTRAINT "fk_order_user"' in sql
        assert "CREATE INDEX idx_orders_status ON public.orders (status);" in sql
        assert "CREATE TYPE" not in sql

    def test_include_drops(self):
        sql = dump_table(
            ComponentsProvider(make_orders_components()),
            "public",
            "orders",
            include_drops=True,
        )
        assert sql.startswith('DROP TABLE IF EXISTS "public"."orders" CASCADE;')

    def test_missing_table_raises(self):
        provider = ComponentsProvider(make_orders_components())
        with pytest.raises(TableNotFoundError) as exc_info:
            dump_table(provider, "public", "missing")
        assert exc_info.value.table == "missing"


class TestWrapJson:
    def test_envelope(self):
        payload = json.loads(wrap_json("SELECT 1;", kind="table", table="orders"))
        assert payload == {"kind": "table", "table": "orders", "sql": "SELECT 1;"}
