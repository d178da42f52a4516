"""Which roles an actor may grant to other users.

Policy, expressed over rank steps (the distinct ranks present in the
registry, highest privilege first):

- the top-ranked role may assign every role;
- a delegating role with depth ``d`` may assign every role at most ``d``
  rank steps above its own, clamped to the top of the hierarchy;
- every other role may assign its own rank and anything below it.
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from typing import Mapping

from .constants import DEFAULT_DELEGATION
from .registry import Role, RoleRegistry

logger = logging.getLogger(__name__)


class RoleAssignability:
    """Computes assignable roles for an actor's primary role.

    Args:
        registry: Role registry snapshot.
        delegation: Role id → number of rank steps above its own rank the
            role may assign. Defaults to :data:`DEFAULT_DELEGATION`.

    Example::

        RoleAssignability(registry).assignable_roles("clinic_staff")
        # (Role('clinic_staff', ...), Role('patient', ...), ...)
    """

    def __init__(self, registry: RoleRegistry, delegation: Mapping[str, int] | None = None) -> None:
        self._registry = registry
        self._delegation = dict(DEFAULT_DELEGATION if delegation is None else delegation)
        for role_id, depth in self._delegation.items():
            if depth < 0:
                raise ValueError(f"Delegation depth for {role_id!r} must be >= 0, got {depth}")

    @property
    def registry(self) -> RoleRegistry:
        return self._registry

    def delegation_depth(self, role_id: str) -> int:
        return self._delegation.get(role_id, 0)

    def lowest_assignable_rank(self, actor_role_id: str) -> int:
        """Most privileged rank the actor may assign.

        Raises:
            UnknownRoleError: if ``actor_role_id`` is not in the registry.
        """
        role = self._registry.get(actor_role_id)
        if role.rank == self._registry.top_rank:
            return role.rank

        ranks = sorted({r.rank for r in self._registry.all_roles_by_rank()})
        step = bisect_left(ranks, role.rank)
        return ranks[max(step - self.delegation_depth(role.id), 0)]

    def assignable_roles(self, actor_role_id: str) -> tuple[Role, ...]:
        """Roles the actor may assign, highest privilege first.

        Raises:
            UnknownRoleError: if ``actor_role_id`` is not in the registry.
        """
        floor = self.lowest_assignable_rank(actor_role_id)
        roles = tuple(r for r in self._registry.all_roles_by_rank() if r.rank >= floor)
        logger.debug("Role %s may assign %d roles (rank >= %d)", actor_role_id, len(roles), floor)
        return roles

    def can_assign(self, actor_role_id: str, target_role_id: str) -> bool:
        """Check whether the actor may grant ``target_role_id``."""
        target = self._registry.get(target_role_id)
        return target.rank >= self.lowest_assignable_rank(actor_role_id)


__all__ = ["RoleAssignability"]
