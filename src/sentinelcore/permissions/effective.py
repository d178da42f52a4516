"""Effective access: the merged permission tree for a (page, role set).

UI layers read leaf flags and sequences from here; nothing in this module
grants anything the merged tree does not contain.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Sequence

from .nodes import (
    COMPONENTS_KEY,
    DEFAULT_PROVENANCE,
    ComponentBucketNode,
    FlagNode,
    MappingNode,
    PermissionNode,
    SequenceNode,
)

if TYPE_CHECKING:
    from ..roles.registry import RoleRegistry


def _split(path: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(path, str):
        return tuple(part for part in path.split(".") if part)
    return tuple(path)


@dataclass(frozen=True)
class EffectiveAccess:
    """Merged permission tree.

    Attributes:
        page: Page the tree was merged for.
        role_ids: Roles merged, in merge order, without duplicates.
        catalog_version: Catalog snapshot version the merge read from.
        tree: Merged tree.
        faults: Paths quarantined by a fail-secure merge.
    """

    page: str
    role_ids: tuple[str, ...]
    catalog_version: int
    tree: MappingNode
    faults: tuple[tuple[str, ...], ...] = ()

    def node_at(self, path: str | Sequence[str]) -> PermissionNode | None:
        """Walk a dotted path (``"patients.canEdit"``) or key sequence."""
        node: PermissionNode | None = self.tree
        for key in _split(path):
            if not isinstance(node, MappingNode):
                return None
            node = node.get(key)
        return node

    def is_granted(self, path: str | Sequence[str]) -> bool:
        """True only if the path holds a flag set to True."""
        node = self.node_at(path)
        return isinstance(node, FlagNode) and node.value

    def values(self, path: str | Sequence[str]) -> list[Any]:
        """Sequence values at ``path``; empty if absent or not a sequence."""
        node = self.node_at(path)
        if isinstance(node, SequenceNode):
            return node.to_data()
        return []

    def component_views(self, component: str, path: str | Sequence[str] = ()) -> dict[str, Any]:
        """Per-provenance views of one component.

        Args:
            component: Component name.
            path: Mapping that holds the ``components`` key (root by default).

        Returns:
            Provenance (role id or ``"__default__"``) → view data.
        """
        bucket = self.node_at(_split(path) + (COMPONENTS_KEY,))
        if not isinstance(bucket, ComponentBucketNode):
            return {}
        return {provenance: node.to_data() for provenance, node in bucket.views(component).items()}

    def to_dict(self) -> dict[str, Any]:
        return self.tree.to_data()


def resolve_component_view(
    access: EffectiveAccess,
    component: str,
    registry: "RoleRegistry",
    path: str | Sequence[str] = (),
) -> Any | None:
    """Pick one view for a component: the most privileged role present wins.

    Roles are compared by rank, ties broken by role id. Provenance keys
    unknown to ``registry`` are ignored. Falls back to the default tree's
    view, then ``None``.
    """
    views = access.component_views(component, path)
    candidates = [role_id for role_id in views if role_id != DEFAULT_PROVENANCE and role_id in registry]
    if candidates:
        winner = min(candidates, key=lambda role_id: (registry.rank_of(role_id), role_id))
        return views[winner]
    return views.get(DEFAULT_PROVENANCE)


__all__ = [
    "EffectiveAccess",
    "resolve_component_view",
]
