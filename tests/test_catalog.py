"""Tests for permission nodes and the permission catalog."""

from __future__ import annotations

import pytest

from sentinelcore import (
    CatalogEntry,
    CatalogError,
    FlagNode,
    MappingNode,
    PermissionCatalog,
    SequenceNode,
    node_from_data,
)
from sentinelcore.permissions import structurally_equal


class TestNodeParsing:
    """Tests for node_from_data."""

    def test_bool_is_flag(self) -> None:
        """Booleans parse to flag nodes."""
        assert node_from_data(True) == FlagNode(True)

    def test_list_is_sequence(self) -> None:
        """Lists parse to sequence nodes with items kept as-is."""
        assert node_from_data(["a", {"view": "full"}]) == SequenceNode(("a", {"view": "full"}))

    def test_nested_mapping(self) -> None:
        """Nested dicts parse to nested mapping nodes."""
        node = node_from_data({"patients": {"canView": True, "codes": [1, 2]}})
        assert isinstance(node, MappingNode)
        patients = node.get("patients")
        assert isinstance(patients, MappingNode)
        assert patients.get("canView") == FlagNode(True)

    def test_sequence_items_copied(self) -> None:
        """Mutating the source data does not change the parsed tree."""
        source = [{"view": "summary"}]
        node = node_from_data(source)
        source[0]["view"] = "full"
        assert node.to_data() == [{"view": "summary"}]

    def test_unsupported_scalar(self) -> None:
        """Numbers and strings are not valid leaves."""
        with pytest.raises(CatalogError, match="Unsupported permission value"):
            node_from_data({"limit": 5})

    def test_components_must_be_mapping(self) -> None:
        """A components key must map component names to trees."""
        with pytest.raises(CatalogError, match="components"):
            node_from_data({"components": True})

    def test_non_string_key(self) -> None:
        """Permission keys must be strings."""
        with pytest.raises(CatalogError, match="keys must be strings"):
            node_from_data({1: True})

    def test_round_trip_to_data(self) -> None:
        """to_data() reproduces the parsed input."""
        data = {"a": True, "b": ["x"], "c": {"d": False}}
        assert node_from_data(data).to_data() == data

    def test_mapping_is_read_only(self) -> None:
        """Mapping node children cannot be mutated."""
        node = node_from_data({"a": True})
        with pytest.raises(TypeError):
            node.children["a"] = FlagNode(False)  # type: ignore[index]


class TestStructuralEquality:
    """Tests for sequence dedup equality."""

    def test_dicts_equal_regardless_of_identity(self) -> None:
        """Equal dict payloads compare equal."""
        assert structurally_equal({"v": [1, 2]}, {"v": [1, 2]})

    def test_bool_not_int(self) -> None:
        """True and 1 are distinct sequence items."""
        assert not structurally_equal(True, 1)

    def test_nested_difference(self) -> None:
        """A nested difference makes payloads unequal."""
        assert not structurally_equal({"v": [1, 2]}, {"v": [1, 3]})


class TestCatalogEntry:
    """Tests for CatalogEntry."""

    def test_from_data(self) -> None:
        """Per-role trees are looked up by role id."""
        entry = CatalogEntry.from_data("patients", {"canView": False}, {"provider": {"canView": True}})
        assert entry.contribution("provider") == MappingNode({"canView": FlagNode(True)})
        assert entry.contribution("patient") is None

    def test_default_must_be_mapping(self) -> None:
        """A page default must be a mapping tree."""
        with pytest.raises(CatalogError, match="must be a mapping"):
            CatalogEntry(page="patients", default=FlagNode(True))  # type: ignore[arg-type]

    def test_role_tree_must_be_mapping(self) -> None:
        """A per-role tree must be a mapping tree."""
        with pytest.raises(CatalogError, match="must be a mapping"):
            CatalogEntry.from_data("patients", {}, {"provider": ["x"]})  # type: ignore[dict-item]


class TestPermissionCatalog:
    """Tests for the versioned catalog store."""

    def test_get_missing(self) -> None:
        """Unknown pages return None."""
        assert PermissionCatalog().get("nowhere") is None

    def test_put_replaces_entry_and_bumps_version(self) -> None:
        """put() swaps one page and returns the new version."""
        catalog = PermissionCatalog([CatalogEntry.from_data("patients", {"canView": False})])
        assert catalog.version == 1
        new_version = catalog.put("patients", CatalogEntry.from_data("patients", {"canView": True}))
        assert new_version == 2
        assert catalog.get("patients").default == MappingNode({"canView": FlagNode(True)})

    def test_put_page_mismatch(self) -> None:
        """put() rejects an entry for a different page."""
        with pytest.raises(CatalogError):
            PermissionCatalog().put("patients", CatalogEntry.from_data("billing"))

    def test_replace_whole_catalog(self) -> None:
        """replace() swaps every page at once."""
        catalog = PermissionCatalog([CatalogEntry.from_data("patients")])
        catalog.replace([CatalogEntry.from_data("billing"), CatalogEntry.from_data("reports")])
        assert catalog.pages() == ("billing", "reports")
        assert "patients" not in catalog

    def test_duplicate_pages_rejected(self) -> None:
        """A page may appear only once."""
        with pytest.raises(CatalogError, match="Duplicate catalog page"):
            PermissionCatalog([CatalogEntry.from_data("patients"), CatalogEntry.from_data("patients")])

    def test_snapshot_isolated_from_later_writes(self) -> None:
        """A held snapshot does not observe later replacements."""
        catalog = PermissionCatalog([CatalogEntry.from_data("patients", {"canView": False})])
        held = catalog.snapshot()
        catalog.put("patients", CatalogEntry.from_data("patients", {"canView": True}))
        assert held.version == 1
        assert held.get("patients").default == MappingNode({"canView": FlagNode(False)})
