"""Permission merger: default tree + per-role contributions → EffectiveAccess.

Fold rules, applied key by key in the order roles are supplied:

- flag: ``acc or contribution`` — once granted, always granted.
- sequence: stable set-union; structural dedup, first-seen order
  (accumulator elements, then the contribution's).
- ``components``: each contributor's component sub-tree is stored verbatim
  under ``components[name][role_id]``; the default tree's entries live
  under ``"__default__"``.
- mapping: recurse.
- anything else: :class:`PermissionShapeError`.

Nodes are immutable; folding builds new nodes and never touches the
catalog's trees.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable

from ..exceptions import PermissionShapeError
from ..logging import get_access_logger
from .catalog import CatalogSnapshot, PermissionCatalog
from .effective import EffectiveAccess
from .nodes import (
    COMPONENTS_KEY,
    DEFAULT_PROVENANCE,
    ComponentBucketNode,
    FlagNode,
    MappingNode,
    PermissionNode,
    SequenceNode,
    structurally_equal,
)

logger = get_access_logger(__name__)

DEFAULT_CACHE_SIZE = 256


@dataclass
class _MergeContext:
    page: str
    strict: bool
    seed: MappingNode
    quarantined: list[tuple[str, ...]] = field(default_factory=list)

    def is_quarantined(self, path: tuple[str, ...]) -> bool:
        return any(path[: len(q)] == q for q in self.quarantined)

    def default_at(self, path: tuple[str, ...]) -> PermissionNode | None:
        node: PermissionNode | None = self.seed
        for key in path:
            if not isinstance(node, MappingNode):
                return None
            node = node.get(key)
        return node


def _kind_name(node: PermissionNode) -> str:
    return node.kind.value


def union_sequence(existing: Iterable, incoming: Iterable) -> tuple:
    """Stable set-union of two value sequences using structural equality."""
    merged: list = []
    for item in (*existing, *incoming):
        if not any(structurally_equal(item, seen) for seen in merged):
            merged.append(item)
    return tuple(merged)


class PermissionMerger:
    """Merges per-role permission trees for a page.

    Args:
        catalog: Catalog to read from. Each merge reads one snapshot.
        cache_size: Maximum cached results; 0 disables the cache.

    Example::

        merger = PermissionMerger(catalog)
        access = merger.merge("patients", ["provider", "clinic_staff"])
        access.is_granted("canEdit")
    """

    def __init__(self, catalog: PermissionCatalog, *, cache_size: int = DEFAULT_CACHE_SIZE) -> None:
        self._catalog = catalog
        self._cache_size = max(cache_size, 0)
        self._cache: dict[tuple, EffectiveAccess] = {}
        self._cache_lock = threading.Lock()

    @property
    def catalog(self) -> PermissionCatalog:
        return self._catalog

    def merge(self, page: str, role_ids: Iterable[str], *, strict: bool = True) -> EffectiveAccess:
        """Merge the default tree for ``page`` with each role's contribution.

        Args:
            page: Catalog page.
            role_ids: Roles to merge, in order. Duplicates are ignored.
            strict: If True, a kind mismatch raises. If False, the offending
                sub-tree falls back to the default (or is dropped) and the
                path is recorded in ``EffectiveAccess.faults``.

        Returns:
            EffectiveAccess for the page. A page missing from the catalog
            yields an empty tree.

        Raises:
            PermissionShapeError: on a kind mismatch when ``strict`` is True.
        """
        roles = tuple(dict.fromkeys(role_ids))
        snapshot = self._catalog.snapshot()
        key = (page, roles, snapshot.version, strict)

        if self._cache_size:
            with self._cache_lock:
                cached = self._cache.get(key)
            if cached is not None:
                return cached

        access = self._merge_snapshot(snapshot, page, roles, strict)

        if self._cache_size:
            with self._cache_lock:
                while len(self._cache) >= self._cache_size:
                    self._cache.pop(next(iter(self._cache)))
                self._cache[key] = access
        return access

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    # ── Folding ─────────────────────────────────────────

    def _merge_snapshot(
        self,
        snapshot: CatalogSnapshot,
        page: str,
        roles: tuple[str, ...],
        strict: bool,
    ) -> EffectiveAccess:
        entry = snapshot.get(page)
        if entry is None:
            logger.debug("No catalog entry; returning empty access", page=page, actor_roles=roles)
            return EffectiveAccess(page, roles, snapshot.version, MappingNode())

        seed = self._seed(entry.default)
        ctx = _MergeContext(page=page, strict=strict, seed=seed)
        acc = seed
        for role_id in roles:
            contribution = entry.contribution(role_id)
            if contribution is None:
                continue
            acc = self._fold_mapping(acc, contribution, (), role_id, ctx)

        logger.debug(
            "Merged catalog v%d (%d fault(s))",
            snapshot.version,
            len(ctx.quarantined),
            page=page,
            actor_roles=roles,
        )
        return EffectiveAccess(page, roles, snapshot.version, acc, tuple(ctx.quarantined))

    def _seed(self, node: PermissionNode) -> PermissionNode:
        """Copy the default tree, turning ``components`` into provenance buckets."""
        if not isinstance(node, MappingNode):
            return node
        children: dict[str, PermissionNode] = {}
        for key, child in node.children.items():
            if key == COMPONENTS_KEY and isinstance(child, MappingNode):
                children[key] = ComponentBucketNode(
                    {name: {DEFAULT_PROVENANCE: view} for name, view in child.children.items()}
                )
            else:
                children[key] = self._seed(child)
        return MappingNode(children)

    def _fold(
        self,
        acc: PermissionNode | None,
        contribution: PermissionNode,
        path: tuple[str, ...],
        role_id: str,
        ctx: _MergeContext,
    ) -> PermissionNode:
        if acc is not None and acc.kind is not contribution.kind:
            raise PermissionShapeError(
                page=ctx.page,
                path=path,
                role_id=role_id,
                expected=_kind_name(acc),
                found=_kind_name(contribution),
            )

        if isinstance(contribution, FlagNode):
            granted = contribution.value or (acc is not None and acc.value)  # type: ignore[union-attr]
            return FlagNode(bool(granted))
        if isinstance(contribution, SequenceNode):
            existing = acc.items if acc is not None else ()  # type: ignore[union-attr]
            return SequenceNode(union_sequence(existing, contribution.items))
        if isinstance(contribution, MappingNode):
            base = acc if acc is not None else MappingNode()
            return self._fold_mapping(base, contribution, path, role_id, ctx)  # type: ignore[arg-type]
        raise TypeError(f"Unsupported contribution node: {type(contribution).__name__}")

    def _fold_mapping(
        self,
        acc: MappingNode,
        contribution: MappingNode,
        path: tuple[str, ...],
        role_id: str,
        ctx: _MergeContext,
    ) -> MappingNode:
        children = dict(acc.children)
        for key, node in contribution.children.items():
            child_path = path + (key,)
            if ctx.is_quarantined(child_path):
                continue
            try:
                if key == COMPONENTS_KEY:
                    children[key] = self._fold_components(children.get(key), node, child_path, role_id, ctx)
                else:
                    children[key] = self._fold(children.get(key), node, child_path, role_id, ctx)
            except PermissionShapeError as e:
                if ctx.strict or e.path != child_path:
                    raise
                logger.warning(
                    "Quarantined %s on page %r: %s",
                    ".".join(child_path),
                    ctx.page,
                    e.message,
                    page=ctx.page,
                    actor_roles=(role_id,),
                )
                ctx.quarantined.append(child_path)
                fallback = ctx.default_at(child_path)
                if fallback is None:
                    children.pop(key, None)
                else:
                    children[key] = fallback
        return MappingNode(children)

    def _fold_components(
        self,
        acc: PermissionNode | None,
        contribution: PermissionNode,
        path: tuple[str, ...],
        role_id: str,
        ctx: _MergeContext,
    ) -> ComponentBucketNode:
        if acc is not None and not isinstance(acc, ComponentBucketNode):
            raise PermissionShapeError(
                page=ctx.page,
                path=path,
                role_id=role_id,
                expected=_kind_name(acc),
                found="components",
            )
        if not isinstance(contribution, MappingNode):
            raise PermissionShapeError(
                page=ctx.page,
                path=path,
                role_id=role_id,
                expected="components",
                found=_kind_name(contribution),
            )
        buckets = {name: dict(views) for name, views in (acc.buckets.items() if acc is not None else ())}
        for name, view in contribution.children.items():
            buckets.setdefault(name, {})[role_id] = view
        return ComponentBucketNode(buckets)


__all__ = [
    "PermissionMerger",
    "union_sequence",
]
