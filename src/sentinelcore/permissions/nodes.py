"""Permission tree nodes.

A permission tree is built from four immutable node kinds:

- ``FlagNode`` — boolean grant.
- ``SequenceNode`` — ordered opaque values (view descriptors, codes, ...).
- ``MappingNode`` — key → nested node.
- ``ComponentBucketNode`` — only in merged trees: component name →
  provenance (role id) → the contributor's sub-tree, verbatim.

Catalog trees are plain JSON-like data parsed with :func:`node_from_data`.
In catalog trees the ``components`` key holds a mapping of component name
to sub-tree; the merger turns it into a bucket.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union

from ..exceptions import CatalogError

COMPONENTS_KEY = "components"
DEFAULT_PROVENANCE = "__default__"


class NodeKind(str, Enum):
    FLAG = "flag"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    COMPONENTS = "components"


@dataclass(frozen=True)
class FlagNode:
    value: bool

    @property
    def kind(self) -> NodeKind:
        return NodeKind.FLAG

    def to_data(self) -> bool:
        return self.value


@dataclass(frozen=True)
class SequenceNode:
    items: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))

    @property
    def kind(self) -> NodeKind:
        return NodeKind.SEQUENCE

    def to_data(self) -> list[Any]:
        return [copy.deepcopy(item) for item in self.items]


@dataclass(frozen=True)
class MappingNode:
    children: Mapping[str, "PermissionNode"] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", MappingProxyType(dict(self.children)))

    @property
    def kind(self) -> NodeKind:
        return NodeKind.MAPPING

    def get(self, key: str) -> "PermissionNode | None":
        return self.children.get(key)

    def to_data(self) -> dict[str, Any]:
        return {key: node.to_data() for key, node in self.children.items()}


@dataclass(frozen=True)
class ComponentBucketNode:
    buckets: Mapping[str, Mapping[str, "PermissionNode"]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {name: MappingProxyType(dict(views)) for name, views in self.buckets.items()}
        object.__setattr__(self, "buckets", MappingProxyType(frozen))

    @property
    def kind(self) -> NodeKind:
        return NodeKind.COMPONENTS

    def views(self, component: str) -> Mapping[str, "PermissionNode"]:
        return self.buckets.get(component, MappingProxyType({}))

    def to_data(self) -> dict[str, dict[str, Any]]:
        return {
            name: {provenance: node.to_data() for provenance, node in views.items()}
            for name, views in self.buckets.items()
        }


PermissionNode = Union[FlagNode, SequenceNode, MappingNode, ComponentBucketNode]


# ── Parsing ─────────────────────────────────────────────


def node_from_data(data: Any, path: tuple[str, ...] = ()) -> PermissionNode:
    """Parse a JSON-like catalog value into a permission node.

    ``bool`` → FlagNode, ``list``/``tuple`` → SequenceNode, ``dict`` →
    MappingNode. Sequence items are deep-copied so the caller's data can
    never alias a catalog tree.

    Raises:
        CatalogError: on unsupported value types, non-string keys, or a
            ``components`` key that does not hold a mapping.
    """
    if isinstance(data, bool):
        return FlagNode(data)
    if isinstance(data, (list, tuple)):
        return SequenceNode(tuple(copy.deepcopy(item) for item in data))
    if isinstance(data, Mapping):
        children: dict[str, PermissionNode] = {}
        for key, value in data.items():
            if not isinstance(key, str):
                raise CatalogError(f"Permission keys must be strings, got {key!r} at {_dotted(path)}")
            child_path = path + (key,)
            if key == COMPONENTS_KEY and not isinstance(value, Mapping):
                raise CatalogError(
                    f"'{COMPONENTS_KEY}' must map component names to trees at {_dotted(child_path)}",
                    path=child_path,
                )
            children[key] = node_from_data(value, child_path)
        return MappingNode(children)
    raise CatalogError(
        f"Unsupported permission value {type(data).__name__} at {_dotted(path)}",
        path=path,
    )


def _dotted(path: tuple[str, ...]) -> str:
    return ".".join(path) or "<root>"


# ── Structural equality ─────────────────────────────────


def structurally_equal(left: Any, right: Any) -> bool:
    """Deep equality that does not conflate ``True`` with ``1``.

    Used for sequence dedup; opaque values are compared by type and value,
    containers recursively.
    """
    if type(left) is not type(right):
        return False
    if isinstance(left, Mapping):
        if left.keys() != right.keys():
            return False
        return all(structurally_equal(left[key], right[key]) for key in left)
    if isinstance(left, (list, tuple)):
        if len(left) != len(right):
            return False
        return all(structurally_equal(a, b) for a, b in zip(left, right))
    return left == right


__all__ = [
    "COMPONENTS_KEY",
    "DEFAULT_PROVENANCE",
    "ComponentBucketNode",
    "FlagNode",
    "MappingNode",
    "NodeKind",
    "PermissionNode",
    "SequenceNode",
    "node_from_data",
    "structurally_equal",
]
