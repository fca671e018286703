"""Permission accessor: the caller's effective permissions and the decision rule.

The effective permission set of a caller is the union of

1. permission claims on every *authenticated* identity, and
2. the ``,``/``;``-separated list stored under the session key, when a
   session is available.

It is recomputed on every access. ``has_permissions`` is all-must-match:
claims are consulted first, and the session list is parsed at most once,
only when a claim lookup misses.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from ..config import GuardConfig
from ..exceptions import InvalidArgumentError
from .claims import CallerContext

logger = logging.getLogger(__name__)

_SESSION_SPLIT = re.compile(r"[,;]")
SESSION_SEPARATOR = ";"


def parse_session_permissions(raw: Optional[str]) -> frozenset[str]:
    """Split a stored permission string on ``,`` or ``;``, dropping blanks."""
    if not raw:
        return frozenset()
    return frozenset(piece.strip() for piece in _SESSION_SPLIT.split(raw) if piece.strip())


def _require_context(context: Optional[CallerContext]) -> CallerContext:
    if context is None:
        raise InvalidArgumentError("Caller context must not be None", argument="context")
    return context


def _require_many(values: Optional[Iterable[str]], argument: str) -> Iterable[str]:
    if values is None:
        raise InvalidArgumentError(f"{argument} must not be None", argument=argument)
    if isinstance(values, str):
        raise InvalidArgumentError(
            f"{argument} must be an iterable of strings, not a single string: {values!r}",
            argument=argument,
        )
    return values


def _distinct(permissions: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for permission in permissions:
        if permission is None:
            raise InvalidArgumentError("Permission must not be None", argument="permissions")
        seen.setdefault(permission, None)
    return list(seen)


class PermissionAccessor:
    """Reads and writes the permissions attached to a caller.

    Args:
        config: Claim types and session key (defaults to ``GuardConfig()``).
    """

    def __init__(self, config: Optional[GuardConfig] = None) -> None:
        self._config = config or GuardConfig()

    @property
    def config(self) -> GuardConfig:
        return self._config

    @property
    def claim_type(self) -> str:
        return self._config.permission_claim_type

    # ── Reading ──────────────────────────────────────────

    def claim_permissions(self, context: CallerContext) -> frozenset[str]:
        context = _require_context(context)
        return frozenset(
            value
            for identity in context.authenticated_identities
            for value in identity.find_all(self.claim_type)
        )

    def session_permissions(self, context: CallerContext) -> frozenset[str]:
        context = _require_context(context)
        if not context.session_available:
            return frozenset()
        return parse_session_permissions(context.session.get(self._config.session_permissions_key))

    def get_effective_permissions(self, context: CallerContext) -> frozenset[str]:
        """Claims-derived permissions union session-derived permissions."""
        return self.claim_permissions(context) | self.session_permissions(context)

    def has_permissions(
        self,
        context: CallerContext,
        required: Iterable[str],
        *,
        ignore_case: bool = False,
    ) -> bool:
        """True iff the caller holds every permission in ``required``.

        An empty ``required`` is satisfied by any caller, anonymous ones
        included.
        """
        context = _require_context(context)
        required = _require_many(required, "required")

        identities = context.authenticated_identities
        session_set: Optional[frozenset[str]] = None
        for permission in required:
            if any(identity.has_claim(self.claim_type, permission, ignore_case=ignore_case) for identity in identities):
                continue
            if session_set is None:
                session_set = self.session_permissions(context)
                if ignore_case:
                    session_set = frozenset(p.casefold() for p in session_set)
            if (permission.casefold() if ignore_case else permission) not in session_set:
                return False
        return True

    # ── Writing ──────────────────────────────────────────

    def set_permissions(self, context: CallerContext, permissions: Optional[Iterable[str]]) -> None:
        """Replace the caller's permissions.

        Permissions go to the first authenticated identity as claims; a
        caller without one gets them stored in the session instead.
        """
        context = _require_context(context)
        values = None if permissions is None else _distinct(_require_many(permissions, "permissions"))
        self.clear_permissions(context)
        if values is None:
            return

        identities = context.authenticated_identities
        if identities:
            identities[0].add_claims(self.claim_type, values)
            logger.debug("Attached %d permission claim(s) to %s", len(values), context.caller_id)
        elif context.session_available:
            context.session.set(self._config.session_permissions_key, SESSION_SEPARATOR.join(values))
            logger.debug("Stored %d permission(s) in session for %s", len(values), context.caller_id)
        else:
            logger.warning(
                "Dropping %d permission(s): caller has no authenticated identity and no session",
                len(values),
            )

    def set_principal_permissions(self, context: CallerContext, permissions: Iterable[str]) -> None:
        """Replace permission claims only; the session is left untouched."""
        context = _require_context(context)
        values = _distinct(_require_many(permissions, "permissions"))
        for identity in context.identities:
            identity.remove_claims(self.claim_type)
        identities = context.authenticated_identities
        if identities:
            identities[0].add_claims(self.claim_type, values)

    def clear_permissions(self, context: CallerContext) -> None:
        context = _require_context(context)
        for identity in context.identities:
            identity.remove_claims(self.claim_type)
        if context.session_available:
            context.session.remove(self._config.session_permissions_key)


# ── Module-level helpers ───────────────────────────────


def get_effective_permissions(context: CallerContext, *, config: Optional[GuardConfig] = None) -> frozenset[str]:
    return PermissionAccessor(config).get_effective_permissions(context)


def has_permissions(
    context: CallerContext,
    required: Iterable[str],
    *,
    config: Optional[GuardConfig] = None,
) -> bool:
    return PermissionAccessor(config).has_permissions(context, required)


def set_permissions(
    context: CallerContext,
    permissions: Optional[Iterable[str]],
    *,
    config: Optional[GuardConfig] = None,
) -> None:
    PermissionAccessor(config).set_permissions(context, permissions)


def set_principal_permissions(
    context: CallerContext,
    permissions: Iterable[str],
    *,
    config: Optional[GuardConfig] = None,
) -> None:
    PermissionAccessor(config).set_principal_permissions(context, permissions)


def clear_permissions(context: CallerContext, *, config: Optional[GuardConfig] = None) -> None:
    PermissionAccessor(config).clear_permissions(context)


__all__ = [
    "PermissionAccessor",
    "SESSION_SEPARATOR",
    "clear_permissions",
    "get_effective_permissions",
    "has_permissions",
    "parse_session_permissions",
    "set_permissions",
    "set_principal_permissions",
]
