"""Permission trees, merging and access decisions for sentinelcore.

Defines:
- PermissionNode variants: FlagNode / SequenceNode / MappingNode / ComponentBucketNode
- CatalogEntry / PermissionCatalog: per-page default and per-role trees
- PermissionMerger: default + role contributions → EffectiveAccess
- AccessDecision: Allow/Deny from required-role closures
- RouteRule / RouteTable: route declarations checked before dispatch
"""

from .access import AccessDecision, AccessRequest, Decision
from .catalog import CatalogEntry, CatalogSnapshot, PermissionCatalog
from .effective import EffectiveAccess, resolve_component_view
from .merger import PermissionMerger, union_sequence
from .nodes import (
    COMPONENTS_KEY,
    DEFAULT_PROVENANCE,
    ComponentBucketNode,
    FlagNode,
    MappingNode,
    NodeKind,
    PermissionNode,
    SequenceNode,
    node_from_data,
    structurally_equal,
)
from .routes import ANY_METHOD, GuardResult, RouteRule, RouteTable

__all__ = [
    "ANY_METHOD",
    "COMPONENTS_KEY",
    "DEFAULT_PROVENANCE",
    "AccessDecision",
    "AccessRequest",
    "CatalogEntry",
    "CatalogSnapshot",
    "ComponentBucketNode",
    "Decision",
    "EffectiveAccess",
    "FlagNode",
    "GuardResult",
    "MappingNode",
    "NodeKind",
    "PermissionCatalog",
    "PermissionMerger",
    "PermissionNode",
    "RouteRule",
    "RouteTable",
    "SequenceNode",
    "node_from_data",
    "resolve_component_view",
    "structurally_equal",
    "union_sequence",
]
