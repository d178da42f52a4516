"""Role hierarchy for sentinelcore.

Defines:
- Role / RoleRegistry: role table, ranks and closure sets
- RoleIds / DEFAULT_ROLE_TABLE: the default clinical hierarchy
- RoleAssignability: which roles an actor may grant
"""

from .registry import Role, RoleRegistry
from .constants import DEFAULT_DELEGATION, DEFAULT_ROLE_TABLE, RoleIds
from .assignability import RoleAssignability


def default_registry() -> RoleRegistry:
    """Build a registry from :data:`DEFAULT_ROLE_TABLE`."""
    return RoleRegistry(DEFAULT_ROLE_TABLE)


__all__ = [
    "DEFAULT_DELEGATION",
    "DEFAULT_ROLE_TABLE",
    "Role",
    "RoleAssignability",
    "RoleIds",
    "RoleRegistry",
    "default_registry",
]
