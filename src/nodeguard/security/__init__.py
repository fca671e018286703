"""Guards for host pipelines.

This package is the integration point hosts use to protect handlers:
1. **Guards** (``PermissionGuard``, ``NodeGuard``) return allow/deny
2. **Decorators** (``require_permissions``, ``require_node``) guard plain
   sync or async handlers
3. **gRPC interceptor** (``PermissionInterceptor``) guards a ``grpc.aio`` server

Usage::

    from nodeguard.security import NodeGuard, require_permissions

    guard = NodeGuard("admin.users", site_map)
    if guard.check(caller).blocked:
        return unauthorized()

    @require_permissions("posts.write")
    async def publish(context: CallerContext, post_id: str) -> None:
        ...
"""

from __future__ import annotations

from ..config import EnforcementMode
from .guard import (
    GuardResult,
    NodeGuard,
    PermissionGuard,
    allow_anonymous,
    check_all,
    enforce,
    is_anonymous_allowed,
    require_node,
    require_permissions,
)
from .interceptors import (
    ContextResolver,
    PermissionInterceptor,
    _extract_rpc_name,
    _should_skip,
)

__all__ = [
    # Results
    "GuardResult",
    "EnforcementMode",
    # Guards
    "NodeGuard",
    "PermissionGuard",
    "check_all",
    "enforce",
    # Decorators
    "allow_anonymous",
    "is_anonymous_allowed",
    "require_node",
    "require_permissions",
    # Interceptors
    "ContextResolver",
    "PermissionInterceptor",
    "_extract_rpc_name",
    "_should_skip",
]
