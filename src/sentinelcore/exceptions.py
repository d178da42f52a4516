"""Unified exception hierarchy for sentinelcore.

All engine errors inherit from SentinelError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for protocol mapping
- HTTP status mapping for the routing/gateway layer

Usage:
    from sentinelcore.exceptions import (
        SentinelError,
        HierarchyError,
        PermissionShapeError,
        UnknownRoleError,
    )

Integrations may define thin subclasses for their own errors:
    @register_error("GATEWAY_ERROR")
    class GatewayError(SentinelError):
        code = "GATEWAY_ERROR"
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "SentinelError",
    "ConfigurationError",
    "HierarchyError",
    "CatalogError",
    "PermissionShapeError",
    "UnknownRoleError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # Protocol helpers
    "get_http_status",
]


# ---- Exception Hierarchy ----------------------------------------------------


class SentinelError(Exception):
    """Base exception for the access engine.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "HIERARCHY_ERROR").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(SentinelError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class HierarchyError(SentinelError):
    """Malformed role table (duplicate id, unknown parent, cycle, rank violation)."""

    code: str = "HIERARCHY_ERROR"
    message: str = "Invalid role hierarchy"


class CatalogError(SentinelError):
    """Malformed permission catalog snapshot."""

    code: str = "CATALOG_ERROR"
    message: str = "Invalid permission catalog"


class PermissionShapeError(SentinelError):
    """Two contributions disagree on node kind at the same tree path.

    Attributes:
        page: Catalog page being merged.
        path: Key path (tuple of keys) where the mismatch was found.
        role_id: Role whose contribution conflicted with the accumulator.
    """

    code: str = "PERMISSION_SHAPE_ERROR"

    def __init__(
        self,
        *,
        page: str,
        path: tuple[str, ...],
        role_id: str | None,
        expected: str = "",
        found: str = "",
    ) -> None:
        self.page = page
        self.path = tuple(path)
        self.role_id = role_id
        dotted = ".".join(self.path) or "<root>"
        message = f"Permission shape mismatch on page {page!r} at {dotted!r}"
        if role_id is not None:
            message += f" (role {role_id!r})"
        if expected and found:
            message += f": expected {expected}, got {found}"
        super().__init__(message, page=page, path=self.path, role_id=role_id)


class UnknownRoleError(SentinelError):
    """Role id is not present in the registry."""

    code: str = "UNKNOWN_ROLE"

    def __init__(self, role_id: str, message: str | None = None) -> None:
        self.role_id = role_id
        super().__init__(message or f"Unknown role: {role_id!r}", role_id=role_id)


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[SentinelError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[SentinelError]] = {}

    def register(self, code: str, error_cls: type[SentinelError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[SentinelError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[SentinelError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("MY_CUSTOM_ERROR")
        class MyCustomError(SentinelError):
            code = "MY_CUSTOM_ERROR"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


# Register base errors
error_registry.register("INTERNAL_ERROR", SentinelError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)
error_registry.register("HIERARCHY_ERROR", HierarchyError)
error_registry.register("CATALOG_ERROR", CatalogError)
error_registry.register("PERMISSION_SHAPE_ERROR", PermissionShapeError)
error_registry.register("UNKNOWN_ROLE", UnknownRoleError)


# ---- Protocol Mapping -------------------------------------------------------


def get_http_status(error: SentinelError) -> int:
    """Map a SentinelError to an HTTP status code for the gateway layer.

    An unknown role on an authenticated request is a denial (403); data
    faults in the role table or catalog are server-side errors (500).
    """
    error_to_status = {
        "UNKNOWN_ROLE": 403,
        "PERMISSION_SHAPE_ERROR": 500,
        "HIERARCHY_ERROR": 500,
        "CATALOG_ERROR": 500,
        "CONFIGURATION_ERROR": 500,
    }
    return error_to_status.get(error.code, 500)
