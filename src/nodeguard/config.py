"""Configuration contract for nodeguard.

Pydantic-validated settings shared by the permission accessor, the guards
and the logging layer. Applications build a GuardConfig once at startup
(directly or via load_config_from_env) and pass it to the components that
need it. Direct os.environ reads anywhere else in the package are not
allowed.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

PERMISSION_CLAIM_TYPE = "http://schemas.microsoft.com/ws/2008/06/identity/claims/permissions"
ROLE_CLAIM_TYPE = "http://schemas.microsoft.com/ws/2008/06/identity/claims/role"
SESSION_PERMISSIONS_KEY = "nodeguard/security/permissions"

_TRUTHY = ("true", "1", "yes", "on")


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnforcementMode(str, Enum):
    """Three-state guard enforcement toggle.

    - ``off``     no checks, only caller logging.
    - ``warn``    check, log denials as WARNING, allow through.
    - ``enforce`` check and deny on failure (production).
    """

    OFF = "off"
    WARN = "warn"
    ENFORCE = "enforce"


class GuardConfig(BaseModel):
    """Settings for permission resolution and guards.

    ``node_match_ignore_case`` controls how node guards compare a node's
    required permission with the caller's permissions. Plain permission
    guards always compare case-sensitively.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Claims and session
    permission_claim_type: str = Field(
        default=PERMISSION_CLAIM_TYPE,
        description="Claim type carrying one permission per claim",
    )
    role_claim_type: str = Field(
        default=ROLE_CLAIM_TYPE,
        description="Claim type carrying role membership",
    )
    session_permissions_key: str = Field(
        default=SESSION_PERMISSIONS_KEY,
        description="Session key holding a ';'-separated permission list",
    )

    # Decisions
    node_match_ignore_case: bool = Field(
        default=True,
        description="Compare node required permissions case-insensitively",
    )
    enforcement: EnforcementMode = Field(
        default=EnforcementMode.ENFORCE,
        description="Guard enforcement mode: off | warn | enforce",
    )

    # Role expansion
    role_expansion_timeout: Optional[float] = Field(
        default=None,
        description="Seconds allowed for each provider call (None = no timeout)",
    )

    service_name: Optional[str] = Field(
        default=None,
        description="Service name used in guard log messages",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    @field_validator("enforcement", mode="before")
    @classmethod
    def validate_enforcement(cls, v: str | EnforcementMode) -> EnforcementMode:
        if isinstance(v, EnforcementMode):
            return v
        try:
            return EnforcementMode(str(v).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid enforcement mode: {v}. Must be one of {[e.value for e in EnforcementMode]}")

    @field_validator("permission_claim_type", "role_claim_type", "session_permissions_key")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("role_expansion_timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("role_expansion_timeout must be positive")
        return v

    model_config = {
        "extra": "forbid",
    }


def load_config_from_env() -> GuardConfig:
    """Load GuardConfig from environment variables.

    This is the ONLY place where os.getenv is used.

    Environment variables:
    - LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL
    - LOG_JSON: Use JSON log format (true/false)
    - NODEGUARD_PERMISSION_CLAIM_TYPE: Permission claim type
    - NODEGUARD_ROLE_CLAIM_TYPE: Role claim type
    - NODEGUARD_SESSION_KEY: Session key for stored permissions
    - NODEGUARD_NODE_IGNORE_CASE: Case-insensitive node checks (true/false)
    - NODEGUARD_ENFORCEMENT: off | warn | enforce
    - NODEGUARD_ROLE_TIMEOUT: Provider timeout in seconds
    - SERVICE_NAME: Service name for log messages

    Returns:
        GuardConfig with values from environment or defaults.
    """
    import os

    timeout_raw = os.getenv("NODEGUARD_ROLE_TIMEOUT", "").strip()

    return GuardConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=os.getenv("LOG_JSON", "false").lower() in _TRUTHY,
        permission_claim_type=os.getenv("NODEGUARD_PERMISSION_CLAIM_TYPE", PERMISSION_CLAIM_TYPE),
        role_claim_type=os.getenv("NODEGUARD_ROLE_CLAIM_TYPE", ROLE_CLAIM_TYPE),
        session_permissions_key=os.getenv("NODEGUARD_SESSION_KEY", SESSION_PERMISSIONS_KEY),
        node_match_ignore_case=os.getenv("NODEGUARD_NODE_IGNORE_CASE", "true").lower() in _TRUTHY,
        enforcement=os.getenv("NODEGUARD_ENFORCEMENT", "enforce"),
        role_expansion_timeout=float(timeout_raw) if timeout_raw else None,
        service_name=os.getenv("SERVICE_NAME"),
    )


__all__ = [
    "EnforcementMode",
    "GuardConfig",
    "LogLevel",
    "PERMISSION_CLAIM_TYPE",
    "ROLE_CLAIM_TYPE",
    "SESSION_PERMISSIONS_KEY",
    "load_config_from_env",
]
