"""Permission catalog: per-page default trees and per-role overrides.

The catalog is a store plus lookup. Every write swaps in a whole new
``CatalogSnapshot``; readers take one snapshot reference and never see a
half-applied update.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ..exceptions import CatalogError
from .nodes import MappingNode, node_from_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    """Permission trees for one page.

    Attributes:
        page: Page / domain key.
        default: Tree every actor starts from.
        per_role: Role id → that role's contribution tree.
    """

    page: str
    default: MappingNode = field(default_factory=MappingNode)
    per_role: Mapping[str, MappingNode] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.default, MappingNode):
            raise CatalogError(f"Default tree for page {self.page!r} must be a mapping", page=self.page)
        for role_id, tree in self.per_role.items():
            if not isinstance(tree, MappingNode):
                raise CatalogError(
                    f"Tree for role {role_id!r} on page {self.page!r} must be a mapping",
                    page=self.page,
                    role_id=role_id,
                )
        object.__setattr__(self, "per_role", MappingProxyType(dict(self.per_role)))

    def contribution(self, role_id: str) -> MappingNode | None:
        return self.per_role.get(role_id)

    @classmethod
    def from_data(
        cls,
        page: str,
        default: Mapping[str, Any] | None = None,
        per_role: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> "CatalogEntry":
        """Build an entry from JSON-like trees.

        Example::

            CatalogEntry.from_data(
                "patients",
                default={"canView": False},
                per_role={"provider": {"canView": True, "views": ["chart"]}},
            )
        """
        try:
            return cls(
                page=page,
                default=node_from_data(default or {}, (page,)),
                per_role={
                    role_id: node_from_data(tree, (page, role_id)) for role_id, tree in (per_role or {}).items()
                },
            )
        except CatalogError as e:
            e.details.setdefault("page", page)
            raise


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable versioned view of every catalog entry."""

    version: int
    entries: Mapping[str, CatalogEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def get(self, page: str) -> CatalogEntry | None:
        return self.entries.get(page)


class PermissionCatalog:
    """Versioned, atomically replaced page → CatalogEntry store.

    Args:
        entries: Initial entries.
        version: Version of the initial snapshot.

    Raises:
        CatalogError: on duplicate pages in ``entries``.
    """

    def __init__(self, entries: Iterable[CatalogEntry] = (), *, version: int = 1) -> None:
        self._lock = threading.Lock()
        self._snapshot = CatalogSnapshot(version, self._index(entries))

    @staticmethod
    def _index(entries: Iterable[CatalogEntry]) -> dict[str, CatalogEntry]:
        indexed: dict[str, CatalogEntry] = {}
        for entry in entries:
            if entry.page in indexed:
                raise CatalogError(f"Duplicate catalog page: {entry.page!r}", page=entry.page)
            indexed[entry.page] = entry
        return indexed

    @property
    def version(self) -> int:
        return self._snapshot.version

    def snapshot(self) -> CatalogSnapshot:
        """Current snapshot; stays consistent for as long as the caller holds it."""
        return self._snapshot

    def get(self, page: str) -> CatalogEntry | None:
        return self._snapshot.get(page)

    def pages(self) -> tuple[str, ...]:
        return tuple(sorted(self._snapshot.entries))

    def put(self, page: str, entry: CatalogEntry) -> int:
        """Replace one page's entry as a whole. Returns the new version."""
        if entry.page != page:
            raise CatalogError(f"Entry for page {entry.page!r} cannot be stored under {page!r}", page=page)
        with self._lock:
            current = self._snapshot
            entries = dict(current.entries)
            entries[page] = entry
            self._snapshot = CatalogSnapshot(current.version + 1, entries)
            version = self._snapshot.version
        logger.info("Catalog page %r replaced (version %d)", page, version)
        return version

    def replace(self, entries: Iterable[CatalogEntry]) -> int:
        """Replace the whole catalog. Returns the new version."""
        indexed = self._index(entries)
        with self._lock:
            self._snapshot = CatalogSnapshot(self._snapshot.version + 1, indexed)
            version = self._snapshot.version
        logger.info("Catalog replaced with %d pages (version %d)", len(indexed), version)
        return version

    def __contains__(self, page: object) -> bool:
        return page in self._snapshot.entries

    def __repr__(self) -> str:
        return f"PermissionCatalog(version={self.version}, pages={list(self.pages())!r})"


__all__ = [
    "CatalogEntry",
    "CatalogSnapshot",
    "PermissionCatalog",
]
