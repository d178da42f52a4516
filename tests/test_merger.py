"""Tests for PermissionMerger fold semantics."""

from __future__ import annotations

import logging

import pytest

from sentinelcore import (
    CatalogEntry,
    EffectiveAccess,
    FlagNode,
    MappingNode,
    PermissionCatalog,
    PermissionMerger,
    PermissionShapeError,
    default_registry,
    resolve_component_view,
)
from sentinelcore.permissions import DEFAULT_PROVENANCE, union_sequence

PATIENTS_DEFAULT = {
    "canView": False,
    "canEdit": False,
    "views": ["summary"],
    "filters": {"showArchived": False},
    "components": {"Chart": {"mode": ["readonly"]}},
}

PATIENTS_PER_ROLE = {
    "provider": {
        "canView": True,
        "canEdit": True,
        "views": ["summary", "chart", {"tab": "notes"}],
        "filters": {"showArchived": True, "codes": ["icd10"]},
        "components": {"Chart": {"mode": ["edit"]}, "Orders": {"enabled": True}},
    },
    "clinic_staff": {
        "canView": True,
        "views": [{"tab": "notes"}, "schedule"],
        "filters": {"codes": ["cpt"]},
        "components": {"Chart": {"mode": ["readonly"], "redact": True}},
    },
    "patient": {
        "canView": True,
    },
}


@pytest.fixture
def catalog() -> PermissionCatalog:
    return PermissionCatalog([CatalogEntry.from_data("patients", PATIENTS_DEFAULT, PATIENTS_PER_ROLE)])


@pytest.fixture
def merger(catalog: PermissionCatalog) -> PermissionMerger:
    return PermissionMerger(catalog)


def flags_and_sets(access: EffectiveAccess) -> dict:
    """Project a result onto flags and order-free sequences (components excluded)."""

    def project(data: object) -> object:
        if isinstance(data, dict):
            return {k: project(v) for k, v in data.items() if k != "components"}
        if isinstance(data, list):
            return sorted(repr(item) for item in data)
        return data

    return project(access.to_dict())  # type: ignore[return-value]


class TestUnionSequence:
    """Tests for stable set-union."""

    def test_first_seen_order(self) -> None:
        """Items keep first-seen order."""
        assert union_sequence(["a", "b"], ["c", "a"]) == ("a", "b", "c")

    def test_structural_dedup(self) -> None:
        """Equal dict items are kept once."""
        assert union_sequence([{"tab": "x"}], [{"tab": "x"}, {"tab": "y"}]) == ({"tab": "x"}, {"tab": "y"})

    def test_existing_duplicates_collapse(self) -> None:
        """Duplicates already present collapse."""
        assert union_sequence(["a", "a"], []) == ("a",)


class TestMerge:
    """Tests for PermissionMerger.merge."""

    def test_default_only(self, merger: PermissionMerger) -> None:
        """No roles yields the default tree (components bucketed)."""
        access = merger.merge("patients", [])
        assert access.is_granted("canView") is False
        assert access.values("views") == ["summary"]
        assert access.component_views("Chart") == {DEFAULT_PROVENANCE: {"mode": ["readonly"]}}

    def test_flags_or(self, merger: PermissionMerger) -> None:
        """Flags are OR'ed over the default."""
        access = merger.merge("patients", ["clinic_staff"])
        assert access.is_granted("canView")
        assert not access.is_granted("canEdit")

    def test_sequence_union(self, merger: PermissionMerger) -> None:
        """Sequences union in first-seen order."""
        access = merger.merge("patients", ["provider", "clinic_staff"])
        assert access.values("views") == ["summary", "chart", {"tab": "notes"}, "schedule"]

    def test_nested_mapping(self, merger: PermissionMerger) -> None:
        """Nested mappings merge recursively."""
        access = merger.merge("patients", ["provider", "clinic_staff"])
        assert access.is_granted("filters.showArchived")
        assert access.values("filters.codes") == ["icd10", "cpt"]

    def test_default_not_mutated(self, catalog: PermissionCatalog, merger: PermissionMerger) -> None:
        """Merging never changes the catalog's default tree."""
        before = catalog.get("patients").default.to_data()
        merger.merge("patients", ["provider", "clinic_staff", "patient"])
        assert catalog.get("patients").default.to_data() == before

    def test_missing_contribution_is_noop(self, merger: PermissionMerger) -> None:
        """Roles without a contribution leave the default untouched."""
        assert merger.merge("patients", ["billing"]).to_dict() == merger.merge("patients", []).to_dict()

    def test_missing_page_is_empty(self, merger: PermissionMerger) -> None:
        """Unknown pages yield an empty tree; nothing is granted."""
        access = merger.merge("nowhere", ["provider"])
        assert access.tree == MappingNode()
        assert not access.is_granted("canView")

    def test_idempotent(self, merger: PermissionMerger) -> None:
        """merge([r, r]) == merge([r])."""
        assert merger.merge("patients", ["provider", "provider"]).tree == merger.merge("patients", ["provider"]).tree

    def test_commutative_on_flags_and_sequences(self, merger: PermissionMerger) -> None:
        """Role order does not change flags or sequence membership."""
        forward = merger.merge("patients", ["provider", "clinic_staff"])
        backward = merger.merge("patients", ["clinic_staff", "provider"])
        assert flags_and_sets(forward) == flags_and_sets(backward)

    def test_monotonic(self, merger: PermissionMerger) -> None:
        """Adding a role never revokes a flag or drops a sequence element."""
        smaller = merger.merge("patients", ["clinic_staff"])
        larger = merger.merge("patients", ["clinic_staff", "patient", "provider"])
        for path in ("canView", "canEdit", "filters.showArchived"):
            if smaller.is_granted(path):
                assert larger.is_granted(path)
        for path in ("views", "filters.codes"):
            for item in smaller.values(path):
                assert item in larger.values(path)

    def test_components_provenance(self, merger: PermissionMerger) -> None:
        """Each role's component view is kept verbatim under its role id."""
        access = merger.merge("patients", ["provider", "clinic_staff"])
        chart = access.component_views("Chart")
        assert chart["provider"] == PATIENTS_PER_ROLE["provider"]["components"]["Chart"]
        assert chart["clinic_staff"] == PATIENTS_PER_ROLE["clinic_staff"]["components"]["Chart"]
        assert chart[DEFAULT_PROVENANCE] == {"mode": ["readonly"]}
        assert access.component_views("Orders") == {"provider": {"enabled": True}}

    def test_role_ids_deduplicated(self, merger: PermissionMerger) -> None:
        """Duplicate role ids collapse in the result."""
        access = merger.merge("patients", ["provider", "patient", "provider"])
        assert access.role_ids == ("provider", "patient")


class TestShapeMismatch:
    """Tests for kind mismatch detection and fail-secure merging."""

    @pytest.fixture
    def conflicting(self) -> PermissionMerger:
        entry = CatalogEntry.from_data(
            "reports",
            {"export": {"csv": False}},
            {
                "provider": {"audit": True, "export": {"csv": True}},
                "clinic_staff": {"audit": {"read": True}, "canPrint": True},
                "billing": {"export": True},
                "patient": {"audit": True},
            },
        )
        return PermissionMerger(PermissionCatalog([entry]))

    def test_flag_vs_mapping_raises(self, conflicting: PermissionMerger) -> None:
        """A flag and a mapping at one key raise with full context."""
        with pytest.raises(PermissionShapeError) as exc_info:
            conflicting.merge("reports", ["provider", "clinic_staff"])
        error = exc_info.value
        assert error.page == "reports"
        assert error.path == ("audit",)
        assert error.role_id == "clinic_staff"
        assert error.code == "PERMISSION_SHAPE_ERROR"

    def test_mismatch_against_default(self, conflicting: PermissionMerger) -> None:
        """A flag contribution where the default holds a mapping is rejected."""
        with pytest.raises(PermissionShapeError, match="export"):
            conflicting.merge("reports", ["billing"])

    def test_fail_secure_drops_subtree(self, conflicting: PermissionMerger) -> None:
        """Non-strict merge quarantines the conflicting path and keeps the rest."""
        access = conflicting.merge("reports", ["provider", "clinic_staff"], strict=False)
        assert access.node_at("audit") is None
        assert access.is_granted("canPrint")
        assert access.is_granted("export.csv")
        assert access.faults == (("audit",),)

    def test_fail_secure_restores_default(self, conflicting: PermissionMerger) -> None:
        """A quarantined path falls back to the default tree's node."""
        access = conflicting.merge("reports", ["provider", "billing"], strict=False)
        assert access.node_at("export") == MappingNode({"csv": FlagNode(False)})
        assert access.is_granted("audit")

    @pytest.mark.parametrize(
        "order",
        [
            ["provider", "clinic_staff", "patient"],
            ["patient", "clinic_staff", "provider"],
            ["clinic_staff", "provider", "patient"],
            ["clinic_staff", "patient", "provider"],
        ],
    )
    def test_quarantine_ignores_later_contributions(
        self, conflicting: PermissionMerger, order: list[str]
    ) -> None:
        """Once a path is quarantined, later grants at that path are ignored in any role order."""
        access = conflicting.merge("reports", order, strict=False)
        reference = conflicting.merge("reports", ["provider", "clinic_staff", "patient"], strict=False)
        assert access.node_at("audit") is None
        assert not access.is_granted("audit")
        assert access.faults == (("audit",),)
        assert access.tree == reference.tree

    def test_quarantine_logged_with_context(
        self, conflicting: PermissionMerger, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Quarantine warnings carry the page and the offending role."""
        with caplog.at_level(logging.WARNING, logger="sentinelcore.permissions.merger"):
            conflicting.merge("reports", ["provider", "clinic_staff"], strict=False)
        record = caplog.records[-1]
        assert record.page == "reports"
        assert record.actor_roles == ["clinic_staff"]
        assert "audit" in record.getMessage()


class TestCache:
    """Tests for the versioned merge cache."""

    def test_cached_until_catalog_changes(self, catalog: PermissionCatalog) -> None:
        """Cached results are reused until the catalog version moves."""
        merger = PermissionMerger(catalog, cache_size=8)
        first = merger.merge("patients", ["provider"])
        assert merger.merge("patients", ["provider"]) is first

        catalog.put("patients", CatalogEntry.from_data("patients", {"canView": True}))
        refreshed = merger.merge("patients", ["provider"])
        assert refreshed is not first
        assert refreshed.catalog_version == catalog.version
        assert refreshed.is_granted("canView")

    def test_cache_disabled(self, catalog: PermissionCatalog) -> None:
        """A zero cache size disables caching."""
        merger = PermissionMerger(catalog, cache_size=0)
        assert merger.merge("patients", ["provider"]) is not merger.merge("patients", ["provider"])

    def test_cache_bounded(self, catalog: PermissionCatalog) -> None:
        """The cache evicts oldest entries past its size."""
        merger = PermissionMerger(catalog, cache_size=1)
        first = merger.merge("patients", ["provider"])
        merger.merge("patients", ["patient"])
        assert merger.merge("patients", ["provider"]) is not first


class TestComponentResolution:
    """Tests for resolve_component_view."""

    def test_most_privileged_role_wins(self, merger: PermissionMerger) -> None:
        """The lowest-ranked contributing role's view wins."""
        access = merger.merge("patients", ["clinic_staff", "provider"])
        view = resolve_component_view(access, "Chart", default_registry())
        assert view == {"mode": ["edit"]}

    def test_falls_back_to_default(self, merger: PermissionMerger) -> None:
        """Without a role view the default view is used."""
        access = merger.merge("patients", ["patient"])
        assert resolve_component_view(access, "Chart", default_registry()) == {"mode": ["readonly"]}

    def test_unknown_component(self, merger: PermissionMerger) -> None:
        """Unknown components resolve to None."""
        access = merger.merge("patients", ["provider"])
        assert resolve_component_view(access, "Missing", default_registry()) is None
