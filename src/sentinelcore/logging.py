"""Centralized logging utilities for sentinelcore.

This module provides:
- Logging configuration from EngineConfig
- Safe, length-bounded previews of permission trees
- Structured logging with page / actor-role context
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Optional

from .config import EngineConfig, LogLevel

# Record attributes that are part of the stdlib LogRecord and never copied as extras
_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "page", "actor_roles",
    }
)


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a safe, length-bounded preview of a value for logging.

    Permission trees can be large; this keeps log lines single-line and
    bounded.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated single-line string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False, sort_keys=True)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    # Normalize whitespace
    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


def safe_log_value(value: Any, limit: int = 240) -> str:
    """Preview helper for extra log fields (role sets are rendered sorted)."""
    if isinstance(value, (set, frozenset)):
        value = sorted(value, key=str)
    return safe_preview(value, limit=limit)


class SentinelFormatter(logging.Formatter):
    """Formatter that includes page / actor-role context.

    This formatter:
    - Extracts ``page`` and ``actor_roles`` from log records (if available)
    - Formats logs as JSON or plain text
    - Includes safe previews of extra fields
    """

    def __init__(
        self,
        json_format: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        page = getattr(record, "page", None)
        actor_roles = getattr(record, "actor_roles", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if page:
            log_data["page"] = page
        if actor_roles:
            log_data["actor_roles"] = safe_log_value(actor_roles)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_log_value(value)

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if page:
            parts.append(f"page={page}")
        if actor_roles:
            parts.append(f"roles={log_data['actor_roles']}")
        parts.append(f": {log_data['message']}")
        return " ".join(parts)


class AccessLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds page and actor roles to log records.

    Usage:
        logger = get_access_logger(__name__, page="patients")
        logger.info("Merged permissions", actor_roles={"provider"})
    """

    def __init__(
        self,
        logger: logging.Logger,
        page: Optional[str] = None,
        actor_roles: Optional[Iterable[str]] = None,
    ):
        super().__init__(logger, {})
        self.page = page
        self.actor_roles = frozenset(actor_roles) if actor_roles is not None else None

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        page = kwargs.pop("page", self.page)
        actor_roles = kwargs.pop("actor_roles", self.actor_roles)

        extra = kwargs.get("extra", {})
        if page:
            extra["page"] = page
        if actor_roles:
            extra["actor_roles"] = sorted(actor_roles)
        kwargs["extra"] = extra

        return msg, kwargs


def setup_logging(
    config: Optional[EngineConfig] = None,
    json_format: Optional[bool] = None,
) -> None:
    """Configure logging for a process embedding the engine.

    This function:
    - Sets up logging level from EngineConfig
    - Installs a single console handler with SentinelFormatter
    - Tunes the service logger if ``config.service_name`` is set

    Args:
        config: EngineConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
    """
    if config is None:
        from .config import load_engine_config_from_env

        config = load_engine_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(LogLevel(config.log_level), logging.INFO)
    use_json = config.log_json if json_format is None else json_format

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(SentinelFormatter(json_format=use_json))
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_access_logger(
    name: str,
    page: Optional[str] = None,
    actor_roles: Optional[Iterable[str]] = None,
) -> AccessLoggerAdapter:
    """Get a logger adapter bound to a page and/or actor role set.

    Args:
        name: Logger name (typically __name__)
        page: Optional catalog page to include in all logs
        actor_roles: Optional actor role ids to include in all logs

    Returns:
        AccessLoggerAdapter instance
    """
    logger = logging.getLogger(name)
    return AccessLoggerAdapter(logger, page=page, actor_roles=actor_roles)


__all__ = [
    "safe_preview",
    "safe_log_value",
    "SentinelFormatter",
    "AccessLoggerAdapter",
    "setup_logging",
    "get_access_logger",
]
