"""Authorization resolution for nodeguard.

Defines:
- CallerContext / ClaimsIdentity / Session: what the host tells us about a caller
- PermissionAccessor: effective permission set and the all-must-match rule
- RoleProvider / InMemoryRoleProvider: role to permission source
- expand_roles_to_permissions() and the sign-in helpers built on it
"""

from .accessor import (
    SESSION_SEPARATOR,
    PermissionAccessor,
    clear_permissions,
    get_effective_permissions,
    has_permissions,
    parse_session_permissions,
    set_permissions,
    set_principal_permissions,
)
from .claims import CallerContext, Claim, ClaimsIdentity, ClaimTypes, MemorySession, Session
from .expansion import (
    configure_principal,
    expand_roles_to_permissions,
    load_permissions,
    load_permissions_to_session,
    unload_permissions_from_session,
)
from .providers import InMemoryRoleProvider, RoleProvider

__all__ = [
    "CallerContext",
    "Claim",
    "ClaimTypes",
    "ClaimsIdentity",
    "InMemoryRoleProvider",
    "MemorySession",
    "PermissionAccessor",
    "RoleProvider",
    "SESSION_SEPARATOR",
    "Session",
    "clear_permissions",
    "configure_principal",
    "expand_roles_to_permissions",
    "get_effective_permissions",
    "has_permissions",
    "load_permissions",
    "load_permissions_to_session",
    "parse_session_permissions",
    "set_permissions",
    "set_principal_permissions",
    "unload_permissions_from_session",
]
