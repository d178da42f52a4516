"""Engine configuration contract for sentinelcore.

This module provides Pydantic-validated configuration for the access
engine: logging switches, the merge cache bound, the default merge mode
and the optional snapshot file location.

Direct os.environ/os.getenv usage is FORBIDDEN outside
load_engine_config_from_env(); everything else receives an EngineConfig.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EngineConfig(BaseModel):
    """Configuration for an AccessEngine and its logging.

    Environment variables:
        LOG_LEVEL                   — logging level
        LOG_JSON                    — JSON log format (true/false)
        SERVICE_NAME                — logger name to tune alongside root
        SENTINEL_MERGE_CACHE_SIZE   — max cached EffectiveAccess entries (0 = off)
        SENTINEL_FAIL_SECURE_MERGE  — quarantine shape faults instead of raising
        SENTINEL_SNAPSHOT_PATH      — JSON snapshot loaded at engine startup
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level for the engine",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )
    service_name: Optional[str] = Field(
        default=None,
        description="Service name for logger identification (e.g. 'patient-portal')",
    )

    # Merge behaviour
    merge_cache_size: int = Field(
        default=256,
        ge=0,
        description="Maximum number of cached EffectiveAccess trees (0 disables caching)",
    )
    fail_secure_merge: bool = Field(
        default=False,
        description="Quarantine mismatched sub-trees instead of raising PermissionShapeError",
    )

    # Catalog source
    snapshot_path: Optional[str] = Field(
        default=None,
        description="Path to a JSON role/permission snapshot",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("snapshot_path")
    @classmethod
    def validate_snapshot_path(cls, v: Optional[str]) -> Optional[str]:
        """Reject snapshot files that are not JSON."""
        if v is None or v == "":
            return None
        if not v.endswith(".json"):
            raise ValueError("Snapshot path must point to a .json file")
        return v

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",  # Prevent accidental extra fields
    }


def load_engine_config_from_env() -> EngineConfig:
    """Load engine configuration from environment variables.

    This is the ONLY place where os.getenv is allowed for engine settings.

    Returns:
        EngineConfig instance with values from environment or defaults.
    """
    import os

    truthy = ("true", "1", "yes", "on")

    return EngineConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in truthy,
        service_name=os.getenv("SERVICE_NAME"),
        merge_cache_size=int(os.getenv("SENTINEL_MERGE_CACHE_SIZE", "256")),
        fail_secure_merge=os.getenv("SENTINEL_FAIL_SECURE_MERGE", "false").lower() in truthy,
        snapshot_path=os.getenv("SENTINEL_SNAPSHOT_PATH"),
    )


__all__ = [
    "EngineConfig",
    "LogLevel",
    "load_engine_config_from_env",
]
