"""Unified exception hierarchy for nodeguard.

Everything raised by the registry and the authorization engine inherits
from NodeGuardError. This module provides:
- Base exception hierarchy with stable error codes
- ErrorRegistry for protocol mapping
- gRPC error handler decorator for async handlers

Configuration errors (InvalidArgumentError, NotFoundError, DuplicateKeyError)
are meant to abort startup wiring or an admin mutation. A denied permission
check is surfaced as PermissionDeniedError only by the guard decorators.

Usage:
    from nodeguard.exceptions import DuplicateKeyError, NodeGuardError

    try:
        registry.add_node("admin", "admin.users", "Users")
    except NodeGuardError as e:
        logger.error("site map wiring failed: [%s] %s", e.code, e.message)
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "NodeGuardError",
    "InvalidArgumentError",
    "NotFoundError",
    "DuplicateKeyError",
    "IndexOutOfRangeError",
    "ProviderFailureError",
    "PermissionDeniedError",
    "ConfigurationError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # gRPC helpers
    "get_grpc_status_code",
    "grpc_error_handler",
]

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class NodeGuardError(Exception):
    """Base exception for nodeguard.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "DUPLICATE_KEY").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class InvalidArgumentError(NodeGuardError, ValueError):
    """A required argument (key, node, context) is missing or invalid."""

    code: str = "INVALID_ARGUMENT"
    message: str = "Invalid argument"


class NotFoundError(InvalidArgumentError, LookupError):
    """A parent or sibling key referenced by an insert does not resolve."""

    code: str = "NOT_FOUND"
    message: str = "Node not found"


class DuplicateKeyError(NodeGuardError):
    """More than one node in a hierarchy shares a lookup key."""

    code: str = "DUPLICATE_KEY"
    message: str = "Duplicate node key"


class IndexOutOfRangeError(NodeGuardError, IndexError):
    """Positional collection access outside its bounds."""

    code: str = "INDEX_OUT_OF_RANGE"
    message: str = "Index out of range"


class ProviderFailureError(NodeGuardError):
    """The role-permission provider failed, timed out or was cancelled."""

    code: str = "PROVIDER_FAILURE"
    message: str = "Role permission provider failed"


class PermissionDeniedError(NodeGuardError):
    """The caller does not hold the permissions a guard requires."""

    code: str = "PERMISSION_DENIED"
    message: str = "Permission denied"


class ConfigurationError(NodeGuardError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[NodeGuardError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[NodeGuardError]] = {}

    def register(self, code: str, error_cls: type[NodeGuardError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[NodeGuardError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[NodeGuardError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("STORE_UNAVAILABLE")
        class StoreUnavailableError(ProviderFailureError):
            code = "STORE_UNAVAILABLE"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


error_registry.register("INTERNAL_ERROR", NodeGuardError)
error_registry.register("INVALID_ARGUMENT", InvalidArgumentError)
error_registry.register("NOT_FOUND", NotFoundError)
error_registry.register("DUPLICATE_KEY", DuplicateKeyError)
error_registry.register("INDEX_OUT_OF_RANGE", IndexOutOfRangeError)
error_registry.register("PROVIDER_FAILURE", ProviderFailureError)
error_registry.register("PERMISSION_DENIED", PermissionDeniedError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)


# ---- gRPC Error Handling Utilities ------------------------------------------


def get_grpc_status_code(error: NodeGuardError) -> Any:
    """Map a NodeGuardError to a grpc.StatusCode.

    grpc is imported locally so the registry can be used without a server.
    """
    import grpc

    error_to_status = {
        "INVALID_ARGUMENT": grpc.StatusCode.INVALID_ARGUMENT,
        "NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "DUPLICATE_KEY": grpc.StatusCode.FAILED_PRECONDITION,
        "INDEX_OUT_OF_RANGE": grpc.StatusCode.OUT_OF_RANGE,
        "PROVIDER_FAILURE": grpc.StatusCode.UNAVAILABLE,
        "PERMISSION_DENIED": grpc.StatusCode.PERMISSION_DENIED,
        "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
    }
    return error_to_status.get(error.code, grpc.StatusCode.INTERNAL)


def grpc_error_handler(method):
    """Decorator for async unary gRPC service methods.

    Catches NodeGuardError, logs it and aborts the call with the mapped
    status code. Anything else aborts with INTERNAL.

    Usage:
        @grpc_error_handler
        async def ListUsers(self, request, context):
            ...
    """

    @functools.wraps(method)
    async def wrapper(self, request, context):
        try:
            return await method(self, request, context)
        except NodeGuardError as e:
            status_code = get_grpc_status_code(e)
            error_message = f"[{e.code}] {e.message}"

            logger.error(
                "%s failed: %s",
                method.__name__,
                error_message,
                extra={
                    "error_code": e.code,
                    "error_details": e.details,
                },
            )

            context.set_trailing_metadata([("error-code", e.code)])
            await context.abort(status_code, error_message)
            return

        except Exception as e:
            import grpc

            logger.exception("%s unexpected error: %s", method.__name__, e)
            await context.abort(
                grpc.StatusCode.INTERNAL,
                f"Unexpected {type(e)}: {e}",
            )
            return

    return wrapper
