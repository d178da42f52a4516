"""Route guard — route declarations, guard result, and the check entrypoint.

Provides:
- ``RouteRule`` — a route pattern, its HTTP methods and required roles.
- ``GuardResult`` — result from a route check (allowed/blocked).
- ``RouteTable`` — first-match route lookup plus :class:`AccessDecision`.

The gateway layer calls :meth:`RouteTable.check` before dispatching; this
module never dispatches anything itself.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .access import AccessDecision, Decision

logger = logging.getLogger(__name__)

ANY_METHOD = "*"


# ── Route Declarations ───────────────────────────────────────────


@dataclass(frozen=True)
class RouteRule:
    """Protected route declaration.

    Attributes:
        pattern: Exact path or ``fnmatch`` glob (``/patients/*``).
        required_roles: Minimum qualifying role(s); expanded via closures.
        methods: HTTP methods covered; ``("*",)`` covers all.
    """

    pattern: str
    required_roles: tuple[str, ...]
    methods: tuple[str, ...] = (ANY_METHOD,)

    def __post_init__(self) -> None:
        object.__setattr__(self, "required_roles", tuple(self.required_roles))
        object.__setattr__(self, "methods", tuple(m.upper() for m in self.methods))

    def matches(self, path: str, method: str = ANY_METHOD) -> bool:
        """Match ``path``; a request method of ``"*"`` matches any rule method."""
        if method != ANY_METHOD and ANY_METHOD not in self.methods and method.upper() not in self.methods:
            return False
        if self.pattern == path:
            return True
        return any(ch in self.pattern for ch in "*?[") and fnmatch.fnmatchcase(path, self.pattern)


# ── Guard Result ─────────────────────────────────────────────────


@dataclass
class GuardResult:
    """Result from a route check."""

    allowed: bool = False
    reason: str = ""
    rule: Optional[RouteRule] = field(default=None, repr=False)

    @property
    def blocked(self) -> bool:
        return not self.allowed


# ── Route Table ──────────────────────────────────────────────────


class RouteTable:
    """Ordered route rules; the first matching rule decides.

    Unmatched routes are denied.

    Example::

        table = RouteTable([
            RouteRule("/admin/*", ("admin",)),
            RouteRule("/patients/*", ("provider",), methods=("GET",)),
        ])
        table.check(decision, {"sentinel_staff"}, "/patients/42", "GET").allowed  # True
    """

    def __init__(self, rules: Iterable[RouteRule] = ()) -> None:
        self._rules: tuple[RouteRule, ...] = tuple(rules)

    @property
    def rules(self) -> tuple[RouteRule, ...]:
        return self._rules

    def match(self, path: str, method: str = ANY_METHOD) -> RouteRule | None:
        for rule in self._rules:
            if rule.matches(path, method):
                return rule
        return None

    def check(
        self,
        decision: AccessDecision,
        actor_roles: Iterable[str],
        path: str,
        method: str = ANY_METHOD,
    ) -> GuardResult:
        """Check whether the actor may call ``method path``.

        Raises:
            UnknownRoleError: propagated from :meth:`AccessDecision.decide`.
        """
        rule = self.match(path, method)
        if rule is None:
            logger.info("No route rule for %s %s; denying", method, path)
            return GuardResult(allowed=False, reason=f"No route rule for {method} {path}")

        outcome = decision.decide(actor_roles, rule.required_roles)
        if outcome is Decision.ALLOW:
            return GuardResult(allowed=True, reason="", rule=rule)
        return GuardResult(
            allowed=False,
            reason=f"Requires one of {sorted(decision.allowed_roles(rule.required_roles))}",
            rule=rule,
        )


__all__ = [
    "ANY_METHOD",
    "GuardResult",
    "RouteRule",
    "RouteTable",
]
