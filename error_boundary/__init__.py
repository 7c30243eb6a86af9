"""Error taxonomy and gRPC/HTTP boundary adapters.

Application code raises the errors below; the gRPC interceptor or the HTTP
middleware converts them (and any other failure) into a status code, a stable
error code, structured details and a correlation id.
"""

from error_boundary.adapters.http.middleware import ExceptionHandlingMiddleware
from error_boundary.adapters.rpc.interceptor import AsyncExceptionInterceptor, ExceptionInterceptor
from error_boundary.core.config import ErrorHandlingSettings
from error_boundary.core.correlation import resolve_correlation_id
from error_boundary.core.errors import (
    ApplicationError,
    BusinessError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from error_boundary.core.registration import grpc_interceptors, setup_error_handling
from error_boundary.core.status_mapping import classify, classify_http, classify_rpc

__version__ = "0.1.0"

__all__ = [
    "ApplicationError",
    "AsyncExceptionInterceptor",
    "BusinessError",
    "ConflictError",
    "ErrorHandlingSettings",
    "ExceptionHandlingMiddleware",
    "ExceptionInterceptor",
    "ForbiddenError",
    "NotFoundError",
    "UnauthorizedError",
    "ValidationError",
    "classify",
    "classify_http",
    "classify_rpc",
    "grpc_interceptors",
    "resolve_correlation_id",
    "setup_error_handling",
]
