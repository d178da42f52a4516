"""Tests for the exception hierarchy and protocol mapping."""

from __future__ import annotations

import pytest

from sentinelcore import (
    CatalogError,
    HierarchyError,
    PermissionShapeError,
    SentinelError,
    UnknownRoleError,
    get_http_status,
)
from sentinelcore.exceptions import error_registry, register_error


class TestExceptionHierarchy:
    """Tests for error classes."""

    @pytest.mark.parametrize(
        "error_cls",
        [HierarchyError, CatalogError],
    )
    def test_subclasses_base(self, error_cls: type[SentinelError]) -> None:
        """Errors share the SentinelError base and keep details."""
        error = error_cls("boom", detail="x")
        assert isinstance(error, SentinelError)
        assert error.message == "boom"
        assert error.details == {"detail": "x"}

    def test_default_message(self) -> None:
        """Errors fall back to a default message."""
        assert HierarchyError().message == "Invalid role hierarchy"

    def test_shape_error_fields(self) -> None:
        """PermissionShapeError reports page, path, role and kinds."""
        error = PermissionShapeError(
            page="patients",
            path=("filters", "archived"),
            role_id="provider",
            expected="flag",
            found="mapping",
        )
        assert error.path == ("filters", "archived")
        assert "filters.archived" in str(error)
        assert "provider" in str(error)
        assert "expected flag, got mapping" in str(error)
        assert error.details["page"] == "patients"

    def test_shape_error_root_path(self) -> None:
        """An empty path renders as <root>."""
        error = PermissionShapeError(page="patients", path=(), role_id=None)
        assert "<root>" in str(error)

    def test_unknown_role_error(self) -> None:
        """UnknownRoleError carries the role id and its code."""
        error = UnknownRoleError("janitor")
        assert error.role_id == "janitor"
        assert error.code == "UNKNOWN_ROLE"
        assert "janitor" in error.message


class TestErrorRegistry:
    """Tests for the error code registry."""

    def test_base_errors_registered(self) -> None:
        """Built-in errors are registered by code."""
        assert error_registry.get("HIERARCHY_ERROR") is HierarchyError
        assert error_registry.get("UNKNOWN_ROLE") is UnknownRoleError
        assert error_registry.get("NOPE") is None

    def test_register_custom_error(self) -> None:
        """register_error adds new codes to the registry."""
        @register_error("GATEWAY_ERROR")
        class GatewayError(SentinelError):
            code = "GATEWAY_ERROR"

        assert error_registry.get("GATEWAY_ERROR") is GatewayError
        assert "GATEWAY_ERROR" in error_registry.all()


class TestHttpStatus:
    """Tests for get_http_status."""

    def test_unknown_role_is_forbidden(self) -> None:
        """Unknown roles map to HTTP 403."""
        assert get_http_status(UnknownRoleError("janitor")) == 403

    def test_data_faults_are_server_errors(self) -> None:
        """Data faults map to HTTP 500."""
        shape = PermissionShapeError(page="p", path=("a",), role_id="r")
        assert get_http_status(shape) == 500
        assert get_http_status(HierarchyError()) == 500

    def test_unmapped_code(self) -> None:
        """Unmapped codes map to HTTP 500."""
        assert get_http_status(SentinelError("x", code="SOMETHING_ELSE")) == 500
