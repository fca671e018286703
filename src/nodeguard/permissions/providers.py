"""Role-permission providers.

A provider answers "which permissions does this role grant?". Persistence
belongs to the application; ``InMemoryRoleProvider`` is the default and
the one used in tests.
"""

from __future__ import annotations

import asyncio
from typing import Iterable, Optional, Protocol, Sequence, runtime_checkable

from ..exceptions import InvalidArgumentError, ProviderFailureError


@runtime_checkable
class RoleProvider(Protocol):
    """Source of role to permission mappings."""

    async def get_role_permissions(
        self,
        role_name: str,
        cancellation: Optional[asyncio.Event] = None,
    ) -> Sequence[str]: ...

    async def authorize_role(
        self,
        role_name: str,
        permissions: Iterable[str],
        cancellation: Optional[asyncio.Event] = None,
    ) -> None: ...


class InMemoryRoleProvider:
    """Dict-backed RoleProvider.

    ``authorize_role`` replaces a role's permissions; unknown roles grant
    nothing.
    """

    def __init__(self, roles: Optional[dict[str, Iterable[str]]] = None) -> None:
        self._roles: dict[str, tuple[str, ...]] = {}
        for role_name, permissions in (roles or {}).items():
            self._store(role_name, permissions)

    def _store(self, role_name: str, permissions: Optional[Iterable[str]]) -> None:
        if role_name is None:
            raise InvalidArgumentError("Role name must not be None", argument="role_name")
        self._roles[role_name] = tuple(permissions or ())

    @staticmethod
    def _check_cancelled(role_name: str, cancellation: Optional[asyncio.Event]) -> None:
        if cancellation is not None and cancellation.is_set():
            raise ProviderFailureError(f"Request for role '{role_name}' was cancelled", role=role_name)

    async def get_role_permissions(
        self,
        role_name: str,
        cancellation: Optional[asyncio.Event] = None,
    ) -> Sequence[str]:
        self._check_cancelled(role_name, cancellation)
        return self._roles.get(role_name, ())

    async def authorize_role(
        self,
        role_name: str,
        permissions: Iterable[str],
        cancellation: Optional[asyncio.Event] = None,
    ) -> None:
        self._check_cancelled(role_name, cancellation)
        self._store(role_name, permissions)

    @property
    def roles(self) -> list[str]:
        return list(self._roles)


__all__ = ["InMemoryRoleProvider", "RoleProvider"]
