"""Claims identities, caller sessions and the per-request caller context.

These are the minimal shapes the authorization engine needs from a host
application: the caller's identities (each with its own claims and an
authenticated flag) and an optional session that stores named strings.
Hosts either use these classes directly or adapt their own objects to the
``Session`` protocol.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, runtime_checkable

from ..config import PERMISSION_CLAIM_TYPE, ROLE_CLAIM_TYPE


class ClaimTypes:
    """Well-known claim types."""

    PERMISSION = PERMISSION_CLAIM_TYPE
    ROLE = ROLE_CLAIM_TYPE
    NAME = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/name"


@dataclass(frozen=True)
class Claim:
    """A single typed statement about an identity."""

    type: str
    value: str


class ClaimsIdentity:
    """An identity with a mutable list of claims.

    An identity is authenticated when it has an authentication type, the
    way host frameworks mark identities produced by a sign-in scheme.
    """

    def __init__(
        self,
        claims: Iterable[Claim] = (),
        *,
        authentication_type: Optional[str] = None,
    ) -> None:
        self.authentication_type = authentication_type
        self._claims: list[Claim] = list(claims)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.authentication_type)

    @property
    def claims(self) -> tuple[Claim, ...]:
        return tuple(self._claims)

    @property
    def name(self) -> Optional[str]:
        for claim in self._claims:
            if claim.type == ClaimTypes.NAME:
                return claim.value
        return None

    def add_claim(self, claim_type: str, value: str) -> None:
        self._claims.append(Claim(claim_type, value))

    def add_claims(self, claim_type: str, values: Iterable[str]) -> None:
        self._claims.extend(Claim(claim_type, value) for value in values)

    def remove_claims(self, claim_type: str) -> int:
        """Remove every claim of ``claim_type``; return how many were removed."""
        before = len(self._claims)
        self._claims = [claim for claim in self._claims if claim.type != claim_type]
        return before - len(self._claims)

    def find_all(self, claim_type: str) -> list[str]:
        return [claim.value for claim in self._claims if claim.type == claim_type]

    def has_claim(self, claim_type: str, value: str, *, ignore_case: bool = False) -> bool:
        if ignore_case:
            folded = value.casefold()
            return any(c.type == claim_type and c.value.casefold() == folded for c in self._claims)
        return any(c.type == claim_type and c.value == value for c in self._claims)

    def __repr__(self) -> str:
        return f"ClaimsIdentity(authentication_type={self.authentication_type!r}, claims={len(self._claims)})"


@runtime_checkable
class Session(Protocol):
    """Caller-scoped storage of named string values."""

    @property
    def is_available(self) -> bool: ...

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemorySession:
    """Dict-backed Session, for tests and single-process hosts."""

    def __init__(self, values: Optional[dict[str, str]] = None, *, available: bool = True) -> None:
        self._values: dict[str, str] = dict(values or {})
        self._available = available

    @property
    def is_available(self) -> bool:
        return self._available

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._values


@dataclass
class CallerContext:
    """Everything known about the caller of one request.

    Attributes:
        identities: Identities attached to the caller (external + local, ...).
        session: Caller session, or None when the request has none.
        request_id: Optional correlation id used in log records.
    """

    identities: list[ClaimsIdentity] = field(default_factory=list)
    session: Optional[Session] = None
    request_id: Optional[str] = None

    @property
    def authenticated_identities(self) -> list[ClaimsIdentity]:
        return [identity for identity in self.identities if identity.is_authenticated]

    @property
    def is_authenticated(self) -> bool:
        return any(identity.is_authenticated for identity in self.identities)

    @property
    def session_available(self) -> bool:
        return self.session is not None and self.session.is_available

    @property
    def caller_id(self) -> str:
        for identity in self.authenticated_identities:
            if identity.name:
                return identity.name
        return "anonymous"


__all__ = [
    "CallerContext",
    "Claim",
    "ClaimTypes",
    "ClaimsIdentity",
    "MemorySession",
    "Session",
]
