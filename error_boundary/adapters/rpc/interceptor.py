"""gRPC server interceptors that convert failures into gRPC statuses.

Two interceptors share one conversion routine:

- ExceptionInterceptor: grpc.ServerInterceptor for thread-pool servers
- AsyncExceptionInterceptor: grpc.aio.ServerInterceptor for asyncio servers

Each wraps the four call shapes (unary-unary, stream-unary, unary-stream,
stream-stream). Failures that already are gRPC errors pass through untouched;
anything else is logged, classified, and turned into an aborted call with
``error-code``, ``correlation-id``, ``detail-*`` and ``validation-*``
trailing metadata.

Usage:
    server = grpc.aio.server(interceptors=[AsyncExceptionInterceptor(settings)])
"""

from __future__ import annotations

import asyncio
import inspect
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Final

import grpc

from error_boundary.adapters.base import BoundaryAdapter, FailureDecision
from error_boundary.core.correlation import RPC_CORRELATION_KEYS
from error_boundary.core.errors import ApplicationError, ValidationError

Metadata = tuple[tuple[str, str], ...]

# asyncio.CancelledError is a BaseException; it is mapped like any failure.
_CATCHABLE: Final = (Exception, asyncio.CancelledError)
_PROTOCOL_ERRORS: Final = (grpc.RpcError, grpc.aio.AbortError)
_INVALID_KEY_CHARS: Final[re.Pattern[str]] = re.compile(r"[^a-z0-9_.-]")
_CONTROL_CHARS: Final[re.Pattern[str]] = re.compile(r"[\x00-\x1f\x7f]")


@dataclass(frozen=True)
class RpcFailure:
    """gRPC status an unhandled failure is converted into."""

    code: grpc.StatusCode
    details: str
    trailing_metadata: Metadata


def metadata_key(prefix: str, name: str) -> str:
    """Build a legal gRPC metadata key such as ``detail-user_id``.

    Keys are lower-cased, characters outside ``[a-z0-9_.-]`` become ``-``,
    and a trailing ``-bin`` (reserved for binary values) is suffixed.
    """

    key = _INVALID_KEY_CHARS.sub("-", f"{prefix}-{name}".lower())
    if key.endswith("-bin"):
        key += "-"
    return key


def metadata_value(value: Any) -> str:
    """Stringify a value for ASCII metadata (None becomes "")."""

    text = "" if value is None else str(value)
    text = text.encode("ascii", "backslashreplace").decode("ascii")
    return _CONTROL_CHARS.sub(" ", text)


def build_trailing_metadata(exc: BaseException, decision: FailureDecision) -> Metadata:
    entries: list[tuple[str, str]] = [
        ("error-code", metadata_value(decision.error_code)),
        ("correlation-id", metadata_value(decision.correlation_id)),
    ]
    if isinstance(exc, ApplicationError):
        for key, value in exc.details.items():
            entries.append((metadata_key("detail", key), metadata_value(value)))
    if isinstance(exc, ValidationError):
        for field, messages in exc.field_errors.items():
            entries.append((metadata_key("validation", field), metadata_value(", ".join(messages))))
    return tuple(entries)


def build_rpc_error(exc: BaseException, decision: FailureDecision) -> RpcFailure:
    """Build the status, detail text, and trailing metadata for ``exc``."""

    return RpcFailure(
        code=decision.classification.rpc_status,
        details=str(exc),
        trailing_metadata=build_trailing_metadata(exc, decision),
    )


def _aborted_code(context: Any) -> grpc.StatusCode | None:
    """Status already set on a sync context (``context.abort`` raises a bare Exception)."""

    code_getter = getattr(context, "code", None)
    if not callable(code_getter):
        return None
    try:
        return code_getter()
    except NotImplementedError:
        return None


def is_protocol_error(exc: BaseException, context: Any = None) -> bool:
    """Return True when ``exc`` is already expressed as a gRPC status."""

    if isinstance(exc, _PROTOCOL_ERRORS):
        return True
    code = _aborted_code(context) if context is not None else None
    return code is not None and code is not grpc.StatusCode.OK


def _rebuild_handler(
    handler: grpc.RpcMethodHandler,
    wrap_response: Callable[[Callable], Callable],
    wrap_stream: Callable[[Callable], Callable],
) -> grpc.RpcMethodHandler:
    """Return a handler of the same shape with its behaviour wrapped."""

    serializers = {
        "request_deserializer": handler.request_deserializer,
        "response_serializer": handler.response_serializer,
    }
    if handler.unary_unary is not None:
        return grpc.unary_unary_rpc_method_handler(wrap_response(handler.unary_unary), **serializers)
    if handler.stream_unary is not None:
        return grpc.stream_unary_rpc_method_handler(wrap_response(handler.stream_unary), **serializers)
    if handler.unary_stream is not None:
        return grpc.unary_stream_rpc_method_handler(wrap_stream(handler.unary_stream), **serializers)
    if handler.stream_stream is not None:
        return grpc.stream_stream_rpc_method_handler(wrap_stream(handler.stream_stream), **serializers)
    return handler


class _RpcBoundary(BoundaryAdapter):
    log_event = "rpc.unhandled_exception"

    def convert(
        self,
        exc: BaseException,
        method: str,
        invocation_metadata: Any,
    ) -> RpcFailure:
        """Resolve, log, and build the gRPC status for a non-protocol failure."""

        decision = self.decide(
            exc,
            headers=invocation_metadata,
            header_names=RPC_CORRELATION_KEYS,
        )
        failure = build_rpc_error(exc, decision)
        self.log_failure(exc, decision, failure.code.name, method=method)
        return failure


class ExceptionInterceptor(_RpcBoundary, grpc.ServerInterceptor):
    """Interceptor for ``grpc.server`` (thread-pool based)."""

    def intercept_service(
        self,
        continuation: Callable[[grpc.HandlerCallDetails], grpc.RpcMethodHandler | None],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler | None:
        handler = continuation(handler_call_details)
        if handler is None:
            return None

        method = handler_call_details.method
        metadata = handler_call_details.invocation_metadata

        def abort(exc: BaseException, context: grpc.ServicerContext) -> None:
            failure = self.convert(exc, method, metadata)
            context.set_trailing_metadata(failure.trailing_metadata)
            context.abort(failure.code, failure.details)

        def wrap_response(behavior: Callable) -> Callable:
            def wrapper(request_or_iterator: Any, context: grpc.ServicerContext) -> Any:
                try:
                    return behavior(request_or_iterator, context)
                except _CATCHABLE as exc:
                    if is_protocol_error(exc, context):
                        raise
                    abort(exc, context)
                    raise

            return wrapper

        def wrap_stream(behavior: Callable) -> Callable:
            def wrapper(request_or_iterator: Any, context: grpc.ServicerContext) -> Any:
                try:
                    yield from behavior(request_or_iterator, context)
                except _CATCHABLE as exc:
                    if is_protocol_error(exc, context):
                        raise
                    abort(exc, context)
                    raise

            return wrapper

        return _rebuild_handler(handler, wrap_response, wrap_stream)


class AsyncExceptionInterceptor(_RpcBoundary, grpc.aio.ServerInterceptor):
    """Interceptor for ``grpc.aio.server``."""

    async def intercept_service(
        self,
        continuation: Callable[[grpc.HandlerCallDetails], Awaitable[grpc.RpcMethodHandler | None]],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler | None:
        handler = await continuation(handler_call_details)
        if handler is None:
            return None

        method = handler_call_details.method
        metadata = handler_call_details.invocation_metadata

        async def abort(exc: BaseException, context: grpc.aio.ServicerContext) -> None:
            failure = self.convert(exc, method, metadata)
            await context.abort(failure.code, failure.details, failure.trailing_metadata)

        def wrap_response(behavior: Callable) -> Callable:
            async def wrapper(request_or_iterator: Any, context: grpc.aio.ServicerContext) -> Any:
                try:
                    result = behavior(request_or_iterator, context)
                    if inspect.isawaitable(result):
                        result = await result
                    return result
                except _CATCHABLE as exc:
                    if is_protocol_error(exc):
                        raise
                    await abort(exc, context)
                    raise

            return wrapper

        def wrap_stream(behavior: Callable) -> Callable:
            if not inspect.isasyncgenfunction(behavior):
                # Coroutine handlers stream through context.write().
                return wrap_response(behavior)

            async def wrapper(request_or_iterator: Any, context: grpc.aio.ServicerContext) -> Any:
                try:
                    async for response in behavior(request_or_iterator, context):
                        yield response
                except _CATCHABLE as exc:
                    if is_protocol_error(exc):
                        raise
                    await abort(exc, context)
                    raise

            return wrapper

        return _rebuild_handler(handler, wrap_response, wrap_stream)
