"""Role expansion: turn role memberships into a concrete permission set.

Runs once per sign-in. Each role is fetched from the provider in turn; a
failure, timeout or cancellation for any role fails the whole expansion
with ProviderFailureError. There is no retry and no partial result, so a
caller is never silently left with "no permissions" after a provider
outage.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Set as AbstractSet
from typing import Iterable, Optional, Sequence

from ..config import GuardConfig
from ..exceptions import ConfigurationError, InvalidArgumentError, ProviderFailureError
from .accessor import SESSION_SEPARATOR, PermissionAccessor
from .claims import CallerContext
from .providers import RoleProvider

logger = logging.getLogger(__name__)


async def _fetch_role_permissions(
    provider: RoleProvider,
    role_name: str,
    cancellation: Optional[asyncio.Event],
    timeout: Optional[float],
) -> Sequence[str]:
    try:
        call = provider.get_role_permissions(role_name, cancellation)
        if timeout is not None:
            granted = await asyncio.wait_for(call, timeout)
        else:
            granted = await call
    except ProviderFailureError:
        logger.error("Role provider failed for role '%s'", role_name)
        raise
    except asyncio.CancelledError:
        task = asyncio.current_task()
        if task is not None and task.cancelling():
            raise
        logger.error("Role provider call for role '%s' was cancelled", role_name)
        raise ProviderFailureError(f"Role provider call for role '{role_name}' was cancelled", role=role_name) from None
    except TimeoutError as e:
        logger.error("Role provider timed out after %ss for role '%s'", timeout, role_name)
        raise ProviderFailureError(
            f"Role provider timed out after {timeout}s for role '{role_name}'",
            role=role_name,
        ) from e
    except Exception as e:
        logger.error("Role provider failed for role '%s': %s", role_name, e)
        raise ProviderFailureError(f"Role provider failed for role '{role_name}': {e}", role=role_name) from e
    if granted is None:
        return ()
    if isinstance(granted, str) or not isinstance(granted, (Sequence, AbstractSet)):
        logger.error("Role provider returned %s for role '%s'", type(granted).__name__, role_name)
        raise ProviderFailureError(
            f"Role provider returned an invalid permission list for role '{role_name}'",
            role=role_name,
        )
    return granted


async def expand_roles_to_permissions(
    role_names: Iterable[str],
    provider: RoleProvider,
    *,
    cancellation: Optional[asyncio.Event] = None,
    timeout: Optional[float] = None,
) -> frozenset[str]:
    """Union of the permissions granted by each role.

    Args:
        role_names: Roles the caller belongs to.
        provider: Role-permission provider.
        cancellation: Event checked before each provider call and handed to
            the provider; once set, expansion fails.
        timeout: Seconds allowed for each provider call.

    Raises:
        ProviderFailureError: a provider call failed, timed out or was cancelled.

    Example::

        provider = InMemoryRoleProvider({"editor": ["posts.write"], "viewer": ["posts.read"]})
        await expand_roles_to_permissions(["editor", "viewer"], provider)
        # frozenset({"posts.write", "posts.read"})
    """
    if role_names is None:
        raise InvalidArgumentError("Role names must not be None", argument="role_names")
    if isinstance(role_names, str):
        raise InvalidArgumentError(
            f"Role names must be an iterable of strings, not a single string: {role_names!r}",
            argument="role_names",
        )
    if provider is None:
        raise InvalidArgumentError("Role provider must not be None", argument="provider")

    permissions: set[str] = set()
    roles = list(role_names)
    for role_name in roles:
        if cancellation is not None and cancellation.is_set():
            raise ProviderFailureError(f"Role expansion cancelled before role '{role_name}'", role=role_name)
        permissions.update(await _fetch_role_permissions(provider, role_name, cancellation, timeout))

    logger.debug("Expanded %d role(s) into %d permission(s)", len(roles), len(permissions))
    return frozenset(permissions)


def _accessor_for(accessor: Optional[PermissionAccessor], config: Optional[GuardConfig]) -> PermissionAccessor:
    return accessor if accessor is not None else PermissionAccessor(config)


async def load_permissions(
    context: CallerContext,
    role_names: Iterable[str],
    provider: RoleProvider,
    *,
    accessor: Optional[PermissionAccessor] = None,
    config: Optional[GuardConfig] = None,
    cancellation: Optional[asyncio.Event] = None,
) -> frozenset[str]:
    """Expand ``role_names`` and make the result the caller's permission set."""
    accessor = _accessor_for(accessor, config)
    permissions = await expand_roles_to_permissions(
        role_names,
        provider,
        cancellation=cancellation,
        timeout=accessor.config.role_expansion_timeout,
    )
    accessor.set_permissions(context, sorted(permissions))
    return permissions


async def configure_principal(
    context: CallerContext,
    provider: RoleProvider,
    *,
    accessor: Optional[PermissionAccessor] = None,
    config: Optional[GuardConfig] = None,
    cancellation: Optional[asyncio.Event] = None,
) -> frozenset[str]:
    """Expand the role claims of the caller's authenticated identities.

    The result replaces the permission claims of the caller; the session
    is not touched.
    """
    if context is None:
        raise InvalidArgumentError("Caller context must not be None", argument="context")
    accessor = _accessor_for(accessor, config)
    role_claim_type = accessor.config.role_claim_type
    role_names = [
        role
        for identity in context.authenticated_identities
        for role in identity.find_all(role_claim_type)
    ]
    permissions = await expand_roles_to_permissions(
        role_names,
        provider,
        cancellation=cancellation,
        timeout=accessor.config.role_expansion_timeout,
    )
    accessor.set_principal_permissions(context, sorted(permissions))
    logger.info("Configured %d permission(s) for %s", len(permissions), context.caller_id)
    return permissions


async def load_permissions_to_session(
    context: CallerContext,
    role_names: Iterable[str],
    provider: RoleProvider,
    *,
    config: Optional[GuardConfig] = None,
    cancellation: Optional[asyncio.Event] = None,
) -> frozenset[str]:
    """Expand ``role_names`` into the caller's session.

    Raises:
        ConfigurationError: the request has no available session.
    """
    if context is None:
        raise InvalidArgumentError("Caller context must not be None", argument="context")
    if not context.session_available:
        raise ConfigurationError("The session is not supported for this application or request.")
    config = config or GuardConfig()
    permissions = await expand_roles_to_permissions(
        role_names,
        provider,
        cancellation=cancellation,
        timeout=config.role_expansion_timeout,
    )
    context.session.set(config.session_permissions_key, SESSION_SEPARATOR.join(sorted(permissions)))
    return permissions


def unload_permissions_from_session(context: CallerContext, *, config: Optional[GuardConfig] = None) -> None:
    if context is None:
        raise InvalidArgumentError("Caller context must not be None", argument="context")
    if context.session_available:
        context.session.remove((config or GuardConfig()).session_permissions_key)


__all__ = [
    "configure_principal",
    "expand_roles_to_permissions",
    "load_permissions",
    "load_permissions_to_session",
    "unload_permissions_from_session",
]
