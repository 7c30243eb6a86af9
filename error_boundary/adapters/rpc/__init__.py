"""gRPC adapter layer - server interceptors for sync and asyncio servers."""

from error_boundary.adapters.rpc.interceptor import (
    AsyncExceptionInterceptor,
    ExceptionInterceptor,
    RpcFailure,
    build_rpc_error,
)

__all__ = [
    "AsyncExceptionInterceptor",
    "ExceptionInterceptor",
    "RpcFailure",
    "build_rpc_error",
]
