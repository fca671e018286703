"""Guards: allow/deny decisions for protected handlers.

Provides:
- ``GuardResult``: result of one check (allowed/blocked + reason).
- ``PermissionGuard``: requires every listed permission (case-sensitive).
- ``NodeGuard``: requires whatever permission a registry node declares.
- ``allow_anonymous``: marker that bypasses guards for a handler or class.
- ``require_permissions`` / ``require_node``: decorators for sync or async
  handlers; they raise PermissionDeniedError on deny in enforce mode.
"""

from __future__ import annotations

import functools
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from ..config import EnforcementMode, GuardConfig
from ..exceptions import InvalidArgumentError, PermissionDeniedError
from ..nodes import Node, NodeRegistry, find_node, required_permission_of
from ..permissions.accessor import PermissionAccessor
from ..permissions.claims import CallerContext

logger = logging.getLogger(__name__)

_ANONYMOUS_MARKER = "__nodeguard_allow_anonymous__"


# ── Guard Result ─────────────────────────────────────────────────


@dataclass
class GuardResult:
    """Result of a guard check."""

    allowed: bool = True
    reason: str = ""

    @property
    def blocked(self) -> bool:
        return not self.allowed


# ── Anonymous marker ─────────────────────────────────────────────


def allow_anonymous(target):
    """Mark a handler function or class as reachable without permissions."""
    setattr(target, _ANONYMOUS_MARKER, True)
    return target


def is_anonymous_allowed(target: Any) -> bool:
    return bool(getattr(target, _ANONYMOUS_MARKER, False))


# ── Guards ───────────────────────────────────────────────────────


class PermissionGuard:
    """Allows callers that hold every one of ``permissions``.

    Args:
        *permissions: Required permissions; none means "always allowed".
        accessor: Permission accessor (defaults to one built from ``config``).
        config: Guard configuration.
    """

    def __init__(
        self,
        *permissions: str,
        accessor: Optional[PermissionAccessor] = None,
        config: Optional[GuardConfig] = None,
    ) -> None:
        if any(p is None for p in permissions):
            raise InvalidArgumentError("Permissions must not contain None", argument="permissions")
        self.permissions: tuple[str, ...] = permissions
        self._accessor = accessor or PermissionAccessor(config)

    @property
    def accessor(self) -> PermissionAccessor:
        return self._accessor

    @property
    def config(self) -> GuardConfig:
        return self._accessor.config

    def check(self, context: CallerContext) -> GuardResult:
        if context is None:
            raise InvalidArgumentError("Caller context must not be None", argument="context")
        if not self.permissions:
            return GuardResult()
        if self._accessor.has_permissions(context, self.permissions):
            return GuardResult()
        effective = self._accessor.get_effective_permissions(context)
        missing = [p for p in self.permissions if p not in effective]
        return GuardResult(allowed=False, reason=f"missing permission(s): {', '.join(missing)}")

    def authorize(self, context: CallerContext) -> bool:
        return self.check(context).allowed

    def __repr__(self) -> str:
        return f"PermissionGuard(permissions={self.permissions!r})"


class NodeGuard:
    """Allows callers that hold the permission a registry node requires.

    A node that does not exist, or that requires no permission, lets every
    caller through. The comparison follows ``config.node_match_ignore_case``.

    Args:
        key: Node key looked up on each check.
        registry: Registry holding the node.
        permission_of: Extracts the required permission from a node
            (defaults to the site-map payload's ``required_permission``).
    """

    def __init__(
        self,
        key: str,
        registry: NodeRegistry[Any],
        *,
        accessor: Optional[PermissionAccessor] = None,
        config: Optional[GuardConfig] = None,
        permission_of: Callable[[Optional[Node[Any]]], Optional[str]] = required_permission_of,
    ) -> None:
        if key is None:
            raise InvalidArgumentError("Node key must not be None", argument="key")
        if registry is None:
            raise InvalidArgumentError("Registry must not be None", argument="registry")
        self.key = key
        self.registry = registry
        self._accessor = accessor or PermissionAccessor(config)
        self._permission_of = permission_of

    @property
    def config(self) -> GuardConfig:
        return self._accessor.config

    def required_permission(self) -> Optional[str]:
        return self._permission_of(find_node(self.registry, self.key))

    def check(self, context: CallerContext) -> GuardResult:
        if context is None:
            raise InvalidArgumentError("Caller context must not be None", argument="context")
        required = self.required_permission()
        if not required:
            return GuardResult()
        ignore_case = self.config.node_match_ignore_case
        if self._accessor.has_permissions(context, [required], ignore_case=ignore_case):
            return GuardResult()
        return GuardResult(allowed=False, reason=f"node '{self.key}' requires permission: {required}")

    def authorize(self, context: CallerContext) -> bool:
        return self.check(context).allowed

    def __repr__(self) -> str:
        return f"NodeGuard(key={self.key!r}, registry={self.registry.name!r})"


# ── Enforcement ──────────────────────────────────────────────────


def enforce(
    result: GuardResult,
    *,
    mode: EnforcementMode,
    target: str,
    context: CallerContext,
) -> bool:
    """Apply an enforcement mode to a guard result; return whether to proceed."""
    if result.allowed:
        logger.debug("ALLOWED '%s' for %s", target, context.caller_id)
        return True
    if mode == EnforcementMode.WARN:
        logger.warning(
            "WARN_DENIED '%s' for %s: %s (would block in enforce mode)",
            target,
            context.caller_id,
            result.reason,
            extra={"request_id": context.request_id} if context.request_id else None,
        )
        return True
    logger.warning(
        "DENIED '%s' for %s: %s",
        target,
        context.caller_id,
        result.reason,
        extra={"request_id": context.request_id} if context.request_id else None,
    )
    return False


def _find_context(args: tuple[Any, ...], kwargs: dict[str, Any]) -> CallerContext:
    context = kwargs.get("context")
    if isinstance(context, CallerContext):
        return context
    for arg in args:
        if isinstance(arg, CallerContext):
            return arg
    raise InvalidArgumentError("Guarded handler was called without a CallerContext", argument="context")


def _guarded(
    guard: PermissionGuard | NodeGuard,
    context_getter: Optional[Callable[..., CallerContext]],
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        target = getattr(func, "__qualname__", repr(func))

        def _allowed(handler: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]) -> bool:
            if is_anonymous_allowed(handler) or (args and is_anonymous_allowed(type(args[0]))):
                return True
            mode = guard.config.enforcement
            if mode == EnforcementMode.OFF:
                return True
            context = context_getter(*args, **kwargs) if context_getter else _find_context(args, kwargs)
            return enforce(guard.check(context), mode=mode, target=target, context=context)

        def _deny() -> PermissionDeniedError:
            return PermissionDeniedError(f"Access to '{target}' denied", target=target)

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                if not _allowed(async_wrapper, args, kwargs):
                    raise _deny()
                return await func(*args, **kwargs)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not _allowed(wrapper, args, kwargs):
                raise _deny()
            return func(*args, **kwargs)

        return wrapper

    return decorator


def require_permissions(
    *permissions: str,
    accessor: Optional[PermissionAccessor] = None,
    config: Optional[GuardConfig] = None,
    context_getter: Optional[Callable[..., CallerContext]] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Protect a handler with a PermissionGuard.

    The caller context is taken from ``context_getter(*args, **kwargs)``,
    else from a ``context`` keyword, else from the first positional
    CallerContext argument.

    Usage::

        @require_permissions("posts.write")
        async def publish(context: CallerContext, post_id: str) -> None:
            ...
    """
    return _guarded(PermissionGuard(*permissions, accessor=accessor, config=config), context_getter)


def require_node(
    key: str,
    registry: NodeRegistry[Any],
    *,
    accessor: Optional[PermissionAccessor] = None,
    config: Optional[GuardConfig] = None,
    context_getter: Optional[Callable[..., CallerContext]] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Protect a handler with a NodeGuard for ``key``."""
    return _guarded(NodeGuard(key, registry, accessor=accessor, config=config), context_getter)


def check_all(guards: Iterable[PermissionGuard | NodeGuard], context: CallerContext) -> GuardResult:
    """First blocking result among ``guards``, or an allowed result."""
    for guard in guards:
        result = guard.check(context)
        if result.blocked:
            return result
    return GuardResult()


__all__ = [
    "GuardResult",
    "NodeGuard",
    "PermissionGuard",
    "allow_anonymous",
    "check_all",
    "enforce",
    "is_anonymous_allowed",
    "require_node",
    "require_permissions",
]
