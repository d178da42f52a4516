from .config import EngineConfig, LogLevel, load_engine_config_from_env
from .exceptions import (
    CatalogError,
    ConfigurationError,
    HierarchyError,
    PermissionShapeError,
    SentinelError,
    UnknownRoleError,
    get_http_status,
)
from .logging import (
    safe_preview,
    safe_log_value,
    SentinelFormatter,
    AccessLoggerAdapter,
    setup_logging,
    get_access_logger,
)
from .roles import (
    DEFAULT_DELEGATION,
    DEFAULT_ROLE_TABLE,
    Role,
    RoleAssignability,
    RoleIds,
    RoleRegistry,
    default_registry,
)
from .permissions import (
    AccessDecision,
    AccessRequest,
    CatalogEntry,
    ComponentBucketNode,
    Decision,
    EffectiveAccess,
    FlagNode,
    GuardResult,
    MappingNode,
    PermissionCatalog,
    PermissionMerger,
    RouteRule,
    RouteTable,
    SequenceNode,
    node_from_data,
    resolve_component_view,
)
from .snapshot import SnapshotSpec, load_snapshot_file, parse_snapshot
from .engine import AccessEngine

__all__ = [
    'AccessDecision',
    'AccessEngine',
    'AccessLoggerAdapter',
    'AccessRequest',
    'CatalogEntry',
    'CatalogError',
    'ComponentBucketNode',
    'ConfigurationError',
    'DEFAULT_DELEGATION',
    'DEFAULT_ROLE_TABLE',
    'Decision',
    'EffectiveAccess',
    'EngineConfig',
    'FlagNode',
    'GuardResult',
    'HierarchyError',
    'LogLevel',
    'MappingNode',
    'PermissionCatalog',
    'PermissionMerger',
    'PermissionShapeError',
    'Role',
    'RoleAssignability',
    'RoleIds',
    'RoleRegistry',
    'RouteRule',
    'RouteTable',
    'SentinelError',
    'SentinelFormatter',
    'SequenceNode',
    'SnapshotSpec',
    'UnknownRoleError',
    'default_registry',
    'get_access_logger',
    'get_http_status',
    'load_engine_config_from_env',
    'load_snapshot_file',
    'node_from_data',
    'parse_snapshot',
    'resolve_component_view',
    'safe_log_value',
    'safe_preview',
    'setup_logging',
]
