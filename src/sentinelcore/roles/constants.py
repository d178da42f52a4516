"""Role identifiers and the default clinical role table.

Provides:
- ``RoleIds`` — canonical role id string constants.
- ``DEFAULT_ROLE_TABLE`` — the documented hierarchy with ranks and
  qualifying parents.
- ``DEFAULT_DELEGATION`` — roles allowed to assign above their own rank.
"""

from __future__ import annotations

from .registry import Role


class RoleIds:
    """Canonical role identifiers.

    Core chain (rank 0 = highest privilege)::

        admin > sentinel_admin > sentinel_staff > clinic_admin_plus
              > clinic_admin > provider > clinic_staff > patient

    Specialized roles attach at a declared rank and are qualified only
    by the tiers listed as their parents.
    """

    # ── Core chain ──────────────────────────────────────
    ADMIN = "admin"
    SENTINEL_ADMIN = "sentinel_admin"
    SENTINEL_STAFF = "sentinel_staff"
    CLINIC_ADMIN_PLUS = "clinic_admin_plus"
    CLINIC_ADMIN = "clinic_admin"
    PROVIDER = "provider"
    CLINIC_STAFF = "clinic_staff"
    PATIENT = "patient"

    # ── Specialized ─────────────────────────────────────
    BILLING = "billing"
    MEDICATION_REQUEST = "medication_request"
    CARE_TEAM = "care_team"

    CORE = (
        ADMIN,
        SENTINEL_ADMIN,
        SENTINEL_STAFF,
        CLINIC_ADMIN_PLUS,
        CLINIC_ADMIN,
        PROVIDER,
        CLINIC_STAFF,
        PATIENT,
    )
    SPECIALIZED = frozenset({BILLING, MEDICATION_REQUEST, CARE_TEAM})


# ── Default Role Table ──────────────────────────────────
# parents = roles that directly qualify for the row's role.
# Clinic administrators are not clinicians, so provider checks do not
# admit them; provider is reached only through the Sentinel tiers.

DEFAULT_ROLE_TABLE: tuple[Role, ...] = (
    Role(RoleIds.ADMIN, "Administrator", 0),
    Role(RoleIds.SENTINEL_ADMIN, "Sentinel Admin", 1, parents=(RoleIds.ADMIN,)),
    Role(RoleIds.SENTINEL_STAFF, "Sentinel Staff", 2, parents=(RoleIds.SENTINEL_ADMIN,)),
    Role(RoleIds.CLINIC_ADMIN_PLUS, "Clinic Admin Plus", 3, parents=(RoleIds.SENTINEL_STAFF,)),
    Role(RoleIds.CLINIC_ADMIN, "Clinic Admin", 4, parents=(RoleIds.CLINIC_ADMIN_PLUS,)),
    Role(RoleIds.PROVIDER, "Provider", 5, parents=(RoleIds.SENTINEL_STAFF,)),
    Role(
        RoleIds.CLINIC_STAFF,
        "Clinic Staff",
        6,
        parents=(RoleIds.CLINIC_ADMIN, RoleIds.PROVIDER),
    ),
    Role(RoleIds.PATIENT, "Patient", 7, parents=(RoleIds.CLINIC_STAFF,)),
    Role(
        RoleIds.BILLING,
        "Billing",
        5,
        parents=(RoleIds.ADMIN, RoleIds.SENTINEL_ADMIN, RoleIds.CLINIC_ADMIN_PLUS),
        specialized=True,
    ),
    Role(
        RoleIds.MEDICATION_REQUEST,
        "Medication Request",
        6,
        parents=(RoleIds.ADMIN, RoleIds.PROVIDER),
        specialized=True,
    ),
    Role(
        RoleIds.CARE_TEAM,
        "Care Team",
        6,
        parents=(RoleIds.ADMIN, RoleIds.SENTINEL_ADMIN, RoleIds.PROVIDER),
        specialized=True,
    ),
)

# Providers may promote staff to acting-provider duties: one rank step up.
DEFAULT_DELEGATION: dict[str, int] = {
    RoleIds.PROVIDER: 1,
}


__all__ = [
    "DEFAULT_DELEGATION",
    "DEFAULT_ROLE_TABLE",
    "RoleIds",
]
