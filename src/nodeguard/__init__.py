from .config import EnforcementMode, GuardConfig, LogLevel, load_config_from_env
from .exceptions import (
    ConfigurationError,
    DuplicateKeyError,
    IndexOutOfRangeError,
    InvalidArgumentError,
    NodeGuardError,
    NotFoundError,
    PermissionDeniedError,
    ProviderFailureError,
)
from .logging import (
    CallerLoggerAdapter,
    GuardFormatter,
    get_guard_logger,
    redact_secrets,
    safe_log_value,
    safe_preview,
    setup_logging,
)
from .nodes import (
    ActionMapNode,
    ActionMapRegistry,
    Node,
    NodeCollection,
    NodeRegistry,
    PermissionNode,
    PermissionRegistry,
    SiteMapNode,
    SiteMapPayload,
    SiteMapRegistry,
    add_node,
    add_node_after,
    add_node_before,
    add_root_node,
    find_node,
    iter_nodes,
    remove_node,
    required_permission_of,
)
from .permissions import (
    CallerContext,
    Claim,
    ClaimsIdentity,
    ClaimTypes,
    InMemoryRoleProvider,
    MemorySession,
    PermissionAccessor,
    RoleProvider,
    Session,
    clear_permissions,
    configure_principal,
    expand_roles_to_permissions,
    get_effective_permissions,
    has_permissions,
    load_permissions,
    load_permissions_to_session,
    set_permissions,
    set_principal_permissions,
    unload_permissions_from_session,
)
from .security import (
    GuardResult,
    NodeGuard,
    PermissionGuard,
    PermissionInterceptor,
    allow_anonymous,
    require_node,
    require_permissions,
)

__all__ = [
    'ActionMapNode',
    'ActionMapRegistry',
    'CallerContext',
    'CallerLoggerAdapter',
    'Claim',
    'ClaimTypes',
    'ClaimsIdentity',
    'ConfigurationError',
    'DuplicateKeyError',
    'EnforcementMode',
    'GuardConfig',
    'GuardFormatter',
    'GuardResult',
    'InMemoryRoleProvider',
    'IndexOutOfRangeError',
    'InvalidArgumentError',
    'LogLevel',
    'MemorySession',
    'Node',
    'NodeCollection',
    'NodeGuard',
    'NodeGuardError',
    'NodeRegistry',
    'NotFoundError',
    'PermissionAccessor',
    'PermissionDeniedError',
    'PermissionGuard',
    'PermissionInterceptor',
    'PermissionNode',
    'PermissionRegistry',
    'ProviderFailureError',
    'RoleProvider',
    'Session',
    'SiteMapNode',
    'SiteMapPayload',
    'SiteMapRegistry',
    'add_node',
    'add_node_after',
    'add_node_before',
    'add_root_node',
    'allow_anonymous',
    'clear_permissions',
    'configure_principal',
    'expand_roles_to_permissions',
    'find_node',
    'get_effective_permissions',
    'get_guard_logger',
    'has_permissions',
    'iter_nodes',
    'load_config_from_env',
    'load_permissions',
    'load_permissions_to_session',
    'redact_secrets',
    'remove_node',
    'require_node',
    'require_permissions',
    'required_permission_of',
    'safe_log_value',
    'safe_preview',
    'set_permissions',
    'set_principal_permissions',
    'setup_logging',
    'unload_permissions_from_session',
]
