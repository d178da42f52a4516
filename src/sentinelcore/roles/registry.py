"""Role registry: ranks, hierarchy validation and closure sets.

A ``RoleRegistry`` is an immutable snapshot of the role table. Closures
are computed once at construction; a changed table means a new registry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

from ..exceptions import HierarchyError, UnknownRoleError

logger = logging.getLogger(__name__)

# DFS colouring for cycle detection
_VISITING = 1
_DONE = 2


@dataclass(frozen=True)
class Role:
    """One row of the role table.

    Attributes:
        id: Unique role identifier.
        title: Display title.
        rank: Privilege rank; 0 is the highest privilege.
        parents: Roles that directly qualify for this role's checks.
        specialized: Specialized roles are qualified only by their declared
            parents, never by the parents' own upward chain.
    """

    id: str
    title: str
    rank: int
    parents: tuple[str, ...] = ()
    specialized: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "parents", tuple(self.parents))


class RoleRegistry:
    """Immutable role table with precomputed closures.

    Raises:
        HierarchyError: on duplicate ids, unknown parents, cycles, two core
            roles sharing a rank, or a parent that does not outrank its child.

    Example::

        registry = RoleRegistry(DEFAULT_ROLE_TABLE)
        registry.closure_of("provider")
        # frozenset({'admin', 'sentinel_admin', 'sentinel_staff', 'provider'})
    """

    __slots__ = ("_roles", "_ordered", "_closures", "_children")

    def __init__(self, roles: Iterable[Role]) -> None:
        table: dict[str, Role] = {}
        for role in roles:
            if role.id in table:
                raise HierarchyError(f"Duplicate role id: {role.id!r}", role_id=role.id)
            table[role.id] = role

        self._validate_parents(table)
        self._check_cycles(table)
        self._validate_ranks(table)

        children: dict[str, list[str]] = {role_id: [] for role_id in table}
        for role in table.values():
            for parent in role.parents:
                children[parent].append(role.id)

        self._roles: Mapping[str, Role] = MappingProxyType(table)
        self._ordered: tuple[Role, ...] = tuple(
            sorted(table.values(), key=lambda r: (r.rank, r.specialized, r.id))
        )
        self._children: Mapping[str, tuple[str, ...]] = MappingProxyType(
            {role_id: tuple(sorted(ids)) for role_id, ids in children.items()}
        )
        self._closures: Mapping[str, frozenset[str]] = MappingProxyType(self._compute_closures(table))
        logger.debug("Role registry built with %d roles", len(table))

    # ── Validation ──────────────────────────────────────

    @staticmethod
    def _validate_parents(table: Mapping[str, Role]) -> None:
        for role in table.values():
            for parent in role.parents:
                if parent not in table:
                    raise HierarchyError(
                        f"Role {role.id!r} declares unknown parent {parent!r}",
                        role_id=role.id,
                        parent=parent,
                    )

    @staticmethod
    def _check_cycles(table: Mapping[str, Role]) -> None:
        state: dict[str, int] = {}

        for start in table:
            if state.get(start) == _DONE:
                continue
            # Iterative DFS: (role id, iterator over parents)
            stack = [(start, iter(table[start].parents))]
            state[start] = _VISITING
            while stack:
                role_id, parents = stack[-1]
                parent = next(parents, None)
                if parent is None:
                    state[role_id] = _DONE
                    stack.pop()
                    continue
                mark = state.get(parent)
                if mark == _VISITING:
                    cycle = [entry[0] for entry in stack]
                    cycle = cycle[cycle.index(parent) :] + [parent]
                    raise HierarchyError(
                        f"Role hierarchy contains a cycle: {' -> '.join(cycle)}",
                        cycle=tuple(cycle),
                    )
                if mark is None:
                    state[parent] = _VISITING
                    stack.append((parent, iter(table[parent].parents)))

    @staticmethod
    def _validate_ranks(table: Mapping[str, Role]) -> None:
        core_ranks: dict[int, str] = {}
        for role in table.values():
            if role.rank < 0:
                raise HierarchyError(f"Role {role.id!r} has negative rank {role.rank}", role_id=role.id)
            if not role.specialized:
                holder = core_ranks.setdefault(role.rank, role.id)
                if holder != role.id:
                    raise HierarchyError(
                        f"Core roles {holder!r} and {role.id!r} share rank {role.rank}",
                        rank=role.rank,
                    )
            for parent in role.parents:
                if table[parent].rank >= role.rank:
                    raise HierarchyError(
                        f"Parent {parent!r} (rank {table[parent].rank}) does not outrank "
                        f"{role.id!r} (rank {role.rank})",
                        role_id=role.id,
                        parent=parent,
                    )

    @staticmethod
    def _compute_closures(table: Mapping[str, Role]) -> dict[str, frozenset[str]]:
        closures: dict[str, frozenset[str]] = {}

        # Parents always outrank children, so ascending rank order resolves
        # every parent before the roles that depend on it.
        for role in sorted(table.values(), key=lambda r: (r.rank, r.specialized, r.id)):
            members = {role.id}
            if role.specialized:
                members.update(role.parents)
            else:
                for parent in role.parents:
                    members |= closures[parent]
            closures[role.id] = frozenset(members)

        return closures

    # ── Lookups ─────────────────────────────────────────

    def __contains__(self, role_id: object) -> bool:
        return role_id in self._roles

    def __len__(self) -> int:
        return len(self._roles)

    def get(self, role_id: str) -> Role:
        """Return the Role for ``role_id`` or raise :class:`UnknownRoleError`."""
        try:
            return self._roles[role_id]
        except KeyError:
            raise UnknownRoleError(role_id) from None

    def rank_of(self, role_id: str) -> int:
        return self.get(role_id).rank

    def closure_of(self, role_id: str) -> frozenset[str]:
        """Role ids that satisfy a check framed in terms of ``role_id``."""
        try:
            return self._closures[role_id]
        except KeyError:
            raise UnknownRoleError(role_id) from None

    def children_of(self, role_id: str) -> tuple[str, ...]:
        """Roles that declare ``role_id`` as a direct parent."""
        self.get(role_id)
        return self._children[role_id]

    def all_roles_by_rank(self) -> tuple[Role, ...]:
        """All roles, highest privilege first.

        Ties on rank put core roles before specialized ones, then sort by id.
        """
        return self._ordered

    @property
    def top_rank(self) -> int:
        """Rank of the most privileged role (normally 0)."""
        if not self._ordered:
            raise UnknownRoleError("", message="Role registry is empty")
        return self._ordered[0].rank

    def closures(self) -> Mapping[str, frozenset[str]]:
        return self._closures

    def __repr__(self) -> str:
        return f"RoleRegistry(roles={[r.id for r in self._ordered]!r})"


__all__ = [
    "Role",
    "RoleRegistry",
]
