"""gRPC server interceptor enforcing permission and node guards.

Provides:
- ``PermissionInterceptor``: maps RPC names to guards and aborts denied calls.
- ``_extract_rpc_name``, ``_should_skip``, ``_denial_handler``: helper utilities.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Union

import grpc

from ..config import EnforcementMode, GuardConfig
from ..exceptions import ConfigurationError
from ..nodes import NodeRegistry
from ..permissions.accessor import PermissionAccessor
from ..permissions.claims import CallerContext
from .guard import GuardResult, NodeGuard, PermissionGuard, check_all, enforce

logger = logging.getLogger(__name__)

ContextResolver = Callable[[Mapping[str, str]], Union[CallerContext, Awaitable[CallerContext]]]

# Method prefixes that bypass permission checks
_SKIP_PREFIXES = (
    "grpc.health.v1",
    "grpc.reflection.v1",
)


# ── Helpers ──────────────────────────────────────────────────────


def _extract_rpc_name(full_method: str) -> str:
    """Extract RPC name from fully-qualified method string.

    ``/admin.UserService/ListUsers`` → ``ListUsers``
    """
    return full_method.rsplit("/", 1)[-1] if "/" in full_method else full_method


def _should_skip(method: str) -> bool:
    """Check if this method should skip permission checks."""
    return any(prefix in method for prefix in _SKIP_PREFIXES)


def _denial_handler(handler: Optional[grpc.RpcMethodHandler], message: str) -> grpc.RpcMethodHandler:
    """Handler of the same streaming kind as ``handler`` that aborts every call."""

    async def _denied(request_or_iterator, context):
        await context.abort(grpc.StatusCode.PERMISSION_DENIED, message)

    if handler is None:
        return grpc.unary_unary_rpc_method_handler(_denied)

    if handler.request_streaming and handler.response_streaming:
        factory = grpc.stream_stream_rpc_method_handler
    elif handler.request_streaming:
        factory = grpc.stream_unary_rpc_method_handler
    elif handler.response_streaming:
        factory = grpc.unary_stream_rpc_method_handler
    else:
        factory = grpc.unary_unary_rpc_method_handler
    return factory(
        _denied,
        request_deserializer=handler.request_deserializer,
        response_serializer=handler.response_serializer,
    )


# ── Interceptor ──────────────────────────────────────────────────


class PermissionInterceptor(grpc.aio.ServerInterceptor):
    """gRPC server interceptor running guards before each handler.

    For every call it:
    1. Builds a CallerContext from the invocation metadata via ``context_resolver``
    2. Looks up the guards registered for the RPC name
    3. Aborts with ``PERMISSION_DENIED`` when a guard blocks (enforce mode)

    Unmapped RPCs are denied unless ``allow_unmapped`` is set, and RPCs in
    ``anonymous_rpcs`` are never checked.

    Args:
        context_resolver: metadata → CallerContext (sync or async).
        rpc_permission_map: RPC name → required permission(s).
        rpc_node_map: RPC name → node key in ``registry``.
        registry: Registry for node guards.
        anonymous_rpcs: RPC names reachable without permissions.
        allow_unmapped: Let RPCs without any guard through.

    Usage::

        interceptor = PermissionInterceptor(
            context_resolver=resolve_caller,
            rpc_permission_map={"DeleteUser": "users.manage"},
            rpc_node_map={"ListUsers": "admin.users"},
            registry=site_map,
        )
        server = grpc.aio.server(interceptors=[interceptor])
    """

    def __init__(
        self,
        *,
        context_resolver: ContextResolver,
        rpc_permission_map: Optional[Mapping[str, Union[str, Iterable[str]]]] = None,
        rpc_node_map: Optional[Mapping[str, str]] = None,
        registry: Optional[NodeRegistry[Any]] = None,
        anonymous_rpcs: Iterable[str] = (),
        allow_unmapped: bool = False,
        accessor: Optional[PermissionAccessor] = None,
        config: Optional[GuardConfig] = None,
    ) -> None:
        self._accessor = accessor or PermissionAccessor(config)
        self._config = self._accessor.config
        self._resolver = context_resolver
        self._anonymous = frozenset(anonymous_rpcs)
        self._allow_unmapped = allow_unmapped
        self._service_name = self._config.service_name or "Service"
        self._mode = self._config.enforcement

        self._guards: dict[str, list[Union[PermissionGuard, NodeGuard]]] = {}
        for rpc_name, permissions in (rpc_permission_map or {}).items():
            if isinstance(permissions, str):
                permissions = (permissions,)
            self._guards.setdefault(rpc_name, []).append(PermissionGuard(*permissions, accessor=self._accessor))
        if rpc_node_map and registry is None:
            raise ConfigurationError("rpc_node_map requires a registry")
        for rpc_name, key in (rpc_node_map or {}).items():
            self._guards.setdefault(rpc_name, []).append(NodeGuard(key, registry, accessor=self._accessor))

        if self._mode != EnforcementMode.OFF:
            logger.info(
                "%s interceptor mode: %s (%d guarded RPCs)",
                self._service_name,
                self._mode.value,
                len(self._guards),
            )

    async def _resolve(self, metadata: Mapping[str, str]) -> CallerContext:
        context = self._resolver(metadata)
        if inspect.isawaitable(context):
            context = await context
        return context

    def check(self, rpc_name: str, context: CallerContext) -> GuardResult:
        """Run the guards registered for ``rpc_name``."""
        if rpc_name in self._anonymous:
            return GuardResult()
        guards = self._guards.get(rpc_name)
        if guards is None:
            if self._allow_unmapped:
                return GuardResult()
            return GuardResult(allowed=False, reason="RPC not mapped to permission")
        return check_all(guards, context)

    async def intercept_service(
        self,
        continuation: Any,
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        """Intercept incoming gRPC calls for permission validation."""
        method = handler_call_details.method or ""

        if _should_skip(method):
            return await continuation(handler_call_details)

        rpc_name = _extract_rpc_name(method)
        metadata = dict(handler_call_details.invocation_metadata or [])
        context = await self._resolve(metadata)

        logger.info(
            "%s RPC %s | caller=%s",
            self._service_name,
            rpc_name,
            context.caller_id,
        )

        if self._mode == EnforcementMode.OFF:
            return await continuation(handler_call_details)

        result = self.check(rpc_name, context)
        if enforce(result, mode=self._mode, target=f"{self._service_name}.{rpc_name}", context=context):
            return await continuation(handler_call_details)

        handler = await continuation(handler_call_details)
        return _denial_handler(handler, f"{self._service_name}: {rpc_name} denied: {result.reason}")


__all__ = [
    "ContextResolver",
    "PermissionInterceptor",
    "_extract_rpc_name",
    "_should_skip",
]
