"""Access decision for routes and API operations.

A route declares ``required_roles``: the minimum qualifying role(s). The
allowed set is derived from the registry at decision time as the union of
each required role's closure, so route declarations never duplicate the
hierarchy by hand.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from ..exceptions import UnknownRoleError
from ..logging import get_access_logger
from ..roles.registry import RoleRegistry

logger = get_access_logger(__name__)


def role_set(roles: str | Iterable[str]) -> frozenset[str]:
    """Normalize role input; a bare string is a single role id."""
    if isinstance(roles, str):
        return frozenset((roles,))
    return frozenset(roles)


def role_list(roles: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(roles, str):
        return (roles,)
    return tuple(roles)


class Decision(str, Enum):
    """Outcome of an access check."""

    ALLOW = "allow"
    DENY = "deny"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


@dataclass(frozen=True)
class AccessRequest:
    """Input to :meth:`AccessDecision.evaluate`."""

    required_roles: tuple[str, ...]
    actor_roles: frozenset[str]

    @classmethod
    def of(cls, actor_roles: Iterable[str], required_roles: Sequence[str]) -> "AccessRequest":
        return cls(required_roles=role_list(required_roles), actor_roles=role_set(actor_roles))


class AccessDecision:
    """Allow/Deny decisions over a role registry snapshot.

    Example::

        decision = AccessDecision(registry)
        decision.decide({"sentinel_staff"}, ["provider"])  # Decision.ALLOW
        decision.decide({"patient"}, ["provider"])         # Decision.DENY

    Note:
        The top role is admitted only where it sits in a required role's
        declared closure; there is no implicit administrator override.
    """

    def __init__(self, registry: RoleRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> RoleRegistry:
        return self._registry

    def allowed_roles(self, required_roles: str | Sequence[str]) -> frozenset[str]:
        """Union of the closures of ``required_roles``.

        Raises:
            UnknownRoleError: if a required role is not in the registry.
        """
        allowed: set[str] = set()
        for role_id in role_list(required_roles):
            allowed |= self._registry.closure_of(role_id)
        return frozenset(allowed)

    def decide(self, actor_roles: str | Iterable[str], required_roles: str | Sequence[str]) -> Decision:
        """Allow iff any actor role is in the allowed set.

        An empty ``required_roles`` denies. A bare string on either side is
        taken as one role id.

        Raises:
            UnknownRoleError: if an actor or required role is not in the registry.
        """
        actor = role_set(actor_roles)
        required = role_list(required_roles)
        for role_id in actor:
            if role_id not in self._registry:
                raise UnknownRoleError(role_id)

        allowed = self.allowed_roles(required)
        decision = Decision.ALLOW if actor & allowed else Decision.DENY
        logger.debug(
            "Access %s (required %s)",
            decision.value,
            list(required),
            actor_roles=actor,
        )
        return decision

    def evaluate(self, request: AccessRequest) -> Decision:
        return self.decide(request.actor_roles, request.required_roles)

    def is_allowed(self, actor_roles: str | Iterable[str], required_roles: str | Sequence[str]) -> bool:
        return self.decide(actor_roles, required_roles).allowed


__all__ = [
    "AccessDecision",
    "AccessRequest",
    "Decision",
    "role_list",
    "role_set",
]
