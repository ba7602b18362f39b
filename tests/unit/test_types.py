"""Tests for schemadump.types module."""

from dataclasses import FrozenInstanceError

import pytest

from schemadump.types import DumpOptions, DumpPhase, Privilege


class TestDumpPhase:
    """Tests for DumpPhase ordering and labels."""

    def test_phase_declaration_order_is_dependency_order(self):
        assert [p.name for p in DumpPhase] == [
            "EXTENSIONS",
            "SCHEMAS",
            "ENUMS",
            "SEQUENCES",
            "ROUTINES",
            "TABLES",
            "INDEXES",
            "FOREIGN_KEYS",
            "VIEWS",
            "TRIGGERS",
            "COMMENTS",
            "GRANTS",
        ]

    def test_phase_labels_used_in_section_banners(self):
        assert DumpPhase.ENUMS.value == "ENUM TYPES"
        assert DumpPhase.ROUTINES.value == "FUNCTIONS"
        assert DumpPhase.FOREIGN_KEYS.value == "FOREIGN KEYS"


class TestPrivilege:
    def test_canonical_order(self):
        assert list(Privilege)[:4] == [
            Privilege.SELECT,
            Privilege.UPDATE,
            Privilege.INSERT,
            Privilege.DELETE,
        ]


class TestDumpOptions:
    """Tests for DumpOptions defaults."""

    def test_defaults_include_everything(self):
        options = DumpOptions()
        assert options.include_drops is True
        assert options.include_grants is True
        assert options.include_comments is True

    def test_options_are_immutable(self):
        options = DumpOptions()
        with pytest.raises(FrozenInstanceError):
            options.include_drops = False  # type: ignore[misc]
