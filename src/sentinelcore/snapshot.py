"""Snapshot ingestion: raw role/permission data → registry and catalog.

A snapshot is consumed wholesale, never patched::

    {
        "version": "2024-06-01",
        "roles": [
            {"id": "admin", "title": "Administrator", "rank": 0},
            {"id": "provider", "title": "Provider", "rank": 5, "parents": ["admin"]}
        ],
        "delegation": {"provider": 1},
        "pages": [
            {
                "page": "patients",
                "default": {"canView": false},
                "per_role": {"provider": {"canView": true}}
            }
        ]
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import CatalogError
from .permissions.catalog import CatalogEntry
from .roles.constants import DEFAULT_DELEGATION
from .roles.registry import Role, RoleRegistry

logger = logging.getLogger(__name__)


class RoleSpec(BaseModel):
    """One role table row as supplied by the catalog source."""

    model_config = {"extra": "forbid"}

    id: str = Field(min_length=1)
    title: str = ""
    rank: int = Field(ge=0)
    parents: list[str] = Field(default_factory=list)
    specialized: bool = False

    def to_role(self) -> Role:
        return Role(
            id=self.id,
            title=self.title or self.id,
            rank=self.rank,
            parents=tuple(self.parents),
            specialized=self.specialized,
        )


class PageSpec(BaseModel):
    """Permission trees for one page."""

    model_config = {"extra": "forbid"}

    page: str = Field(min_length=1)
    default: dict[str, Any] = Field(default_factory=dict)
    per_role: dict[str, dict[str, Any]] = Field(default_factory=dict)


class SnapshotSpec(BaseModel):
    """Complete role + permission snapshot."""

    model_config = {"extra": "forbid"}

    version: Optional[str] = None
    roles: list[RoleSpec]
    delegation: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_DELEGATION))
    pages: list[PageSpec] = Field(default_factory=list)

    @field_validator("delegation")
    @classmethod
    def validate_delegation(cls, v: dict[str, int]) -> dict[str, int]:
        for role_id, depth in v.items():
            if depth < 0:
                raise ValueError(f"Delegation depth for {role_id!r} must be >= 0")
        return v


def parse_snapshot(data: Mapping[str, Any] | SnapshotSpec) -> SnapshotSpec:
    """Validate raw snapshot data.

    Raises:
        CatalogError: if the data does not match the snapshot schema.
    """
    if isinstance(data, SnapshotSpec):
        return data
    try:
        return SnapshotSpec.model_validate(data)
    except ValidationError as e:
        raise CatalogError(f"Invalid snapshot: {e.error_count()} validation error(s)", errors=e.errors()) from e


def build_registry(spec: SnapshotSpec) -> RoleRegistry:
    """Build a RoleRegistry from a snapshot.

    Raises:
        HierarchyError: if the role table is malformed.
    """
    return RoleRegistry(role.to_role() for role in spec.roles)


def build_catalog_entries(spec: SnapshotSpec, registry: RoleRegistry) -> list[CatalogEntry]:
    """Build catalog entries, rejecting overrides for roles the registry lacks.

    Raises:
        CatalogError: on unknown override roles, duplicate pages or
            unsupported tree values.
    """
    entries: list[CatalogEntry] = []
    seen: set[str] = set()
    for page in spec.pages:
        if page.page in seen:
            raise CatalogError(f"Duplicate catalog page: {page.page!r}", page=page.page)
        seen.add(page.page)
        for role_id in page.per_role:
            if role_id not in registry:
                raise CatalogError(
                    f"Page {page.page!r} overrides unknown role {role_id!r}",
                    page=page.page,
                    role_id=role_id,
                )
        entries.append(CatalogEntry.from_data(page.page, page.default, page.per_role))
    return entries


def load_snapshot_file(path: str | Path) -> SnapshotSpec:
    """Read and validate a JSON snapshot file.

    Raises:
        CatalogError: if the file cannot be read or parsed.
    """
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Cannot load snapshot {str(path)!r}: {e}", path=str(path)) from e
    logger.info("Loaded snapshot from %s", path)
    return parse_snapshot(raw)


__all__ = [
    "PageSpec",
    "RoleSpec",
    "SnapshotSpec",
    "build_catalog_entries",
    "build_registry",
    "load_snapshot_file",
    "parse_snapshot",
]
