"""AccessEngine — one entrypoint over the current registry + catalog snapshot.

The engine holds a single immutable state object (registry, catalog,
merger, decision, assignability). ``refresh()`` builds a complete new state
and swaps the reference; if building fails the previous state keeps
serving. Callers never see a registry from one snapshot paired with a
catalog from another.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from .config import EngineConfig
from .exceptions import CatalogError, ConfigurationError, HierarchyError
from .permissions.access import AccessDecision, Decision
from .permissions.catalog import PermissionCatalog
from .permissions.effective import EffectiveAccess, resolve_component_view
from .permissions.merger import PermissionMerger
from .permissions.routes import ANY_METHOD, GuardResult, RouteTable
from .roles.assignability import RoleAssignability
from .roles.registry import Role, RoleRegistry
from .snapshot import (
    SnapshotSpec,
    build_catalog_entries,
    build_registry,
    load_snapshot_file,
    parse_snapshot,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineState:
    """Everything derived from one snapshot."""

    registry: RoleRegistry
    catalog: PermissionCatalog
    merger: PermissionMerger
    decision: AccessDecision
    assignability: RoleAssignability
    label: Optional[str] = None


class AccessEngine:
    """Facade over RoleRegistry, PermissionCatalog and their consumers.

    Args:
        registry: Initial role registry.
        catalog: Initial permission catalog.
        config: Engine configuration (cache size, merge mode).
        delegation: Assignability delegation depths.
        routes: Route rules for :meth:`check_route`.
        label: Snapshot label (e.g. its version string) for logging.

    Example::

        engine = AccessEngine.from_snapshot(snapshot_dict)
        engine.decide({"provider"}, ["clinic_staff"])
        engine.merge("patients", ["provider"]).is_granted("canView")
    """

    def __init__(
        self,
        registry: RoleRegistry,
        catalog: PermissionCatalog | None = None,
        *,
        config: EngineConfig | None = None,
        delegation: Mapping[str, int] | None = None,
        routes: RouteTable | None = None,
        label: Optional[str] = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._routes = routes or RouteTable()
        self._lock = threading.Lock()
        self._state = self._make_state(registry, catalog or PermissionCatalog(), delegation, label)

    @classmethod
    def from_snapshot(
        cls,
        data: Mapping[str, Any] | SnapshotSpec,
        *,
        config: EngineConfig | None = None,
        routes: RouteTable | None = None,
    ) -> "AccessEngine":
        """Build an engine from raw snapshot data.

        Raises:
            CatalogError: malformed snapshot data.
            HierarchyError: malformed role table.
        """
        spec = parse_snapshot(data)
        registry = build_registry(spec)
        catalog = PermissionCatalog(build_catalog_entries(spec, registry))
        return cls(
            registry,
            catalog,
            config=config,
            delegation=spec.delegation,
            routes=routes,
            label=spec.version,
        )

    @classmethod
    def from_config(cls, config: EngineConfig, *, routes: RouteTable | None = None) -> "AccessEngine":
        """Build an engine from ``config.snapshot_path``.

        Raises:
            ConfigurationError: if no snapshot path is configured.
        """
        if not config.snapshot_path:
            raise ConfigurationError("snapshot_path is required to build an engine from config")
        return cls.from_snapshot(load_snapshot_file(config.snapshot_path), config=config, routes=routes)

    def _make_state(
        self,
        registry: RoleRegistry,
        catalog: PermissionCatalog,
        delegation: Mapping[str, int] | None,
        label: Optional[str],
    ) -> EngineState:
        return EngineState(
            registry=registry,
            catalog=catalog,
            merger=PermissionMerger(catalog, cache_size=self._config.merge_cache_size),
            decision=AccessDecision(registry),
            assignability=RoleAssignability(registry, delegation),
            label=label,
        )

    # ── Snapshot management ─────────────────────────────

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def registry(self) -> RoleRegistry:
        return self._state.registry

    @property
    def catalog(self) -> PermissionCatalog:
        return self._state.catalog

    @property
    def routes(self) -> RouteTable:
        return self._routes

    def refresh(self, data: Mapping[str, Any] | SnapshotSpec) -> EngineState:
        """Swap in a new snapshot.

        The new catalog's version continues from the current one so cached
        results keyed by version never collide.

        Raises:
            CatalogError / HierarchyError: the new snapshot is rejected and
                the previous one keeps serving.
        """
        try:
            spec = parse_snapshot(data)
            registry = build_registry(spec)
            entries = build_catalog_entries(spec, registry)
        except (CatalogError, HierarchyError) as e:
            logger.error("Snapshot rejected, keeping %r: %s", self._state.label, e.message)
            raise

        with self._lock:
            catalog = PermissionCatalog(entries, version=self._state.catalog.version + 1)
            self._state = self._make_state(registry, catalog, spec.delegation, spec.version)
            state = self._state
        logger.info(
            "Snapshot %r activated: %d roles, %d pages",
            spec.version,
            len(registry),
            len(catalog.pages()),
        )
        return state

    def set_routes(self, routes: RouteTable) -> None:
        self._routes = routes

    # ── Operations ──────────────────────────────────────

    def merge(self, page: str, role_ids: Iterable[str], *, strict: bool | None = None) -> EffectiveAccess:
        """Merge permission trees; ``strict`` defaults to ``not config.fail_secure_merge``."""
        if strict is None:
            strict = not self._config.fail_secure_merge
        return self._state.merger.merge(page, role_ids, strict=strict)

    def decide(self, actor_roles: Iterable[str], required_roles: Sequence[str]) -> Decision:
        return self._state.decision.decide(actor_roles, required_roles)

    def assignable_roles(self, actor_role_id: str) -> tuple[Role, ...]:
        return self._state.assignability.assignable_roles(actor_role_id)

    def check_route(self, actor_roles: Iterable[str], path: str, method: str = ANY_METHOD) -> GuardResult:
        return self._routes.check(self._state.decision, actor_roles, path, method)

    def component_view(self, page: str, role_ids: Iterable[str], component: str) -> Any | None:
        """Most privileged role's view of ``component`` on ``page``."""
        state = self._state
        access = state.merger.merge(page, role_ids, strict=not self._config.fail_secure_merge)
        return resolve_component_view(access, component, state.registry)


__all__ = [
    "AccessEngine",
    "EngineState",
]
