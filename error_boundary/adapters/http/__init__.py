"""HTTP adapter layer - Starlette middleware producing the JSON error envelope."""

from error_boundary.adapters.http.middleware import (
    ExceptionHandlingMiddleware,
    HttpErrorHandler,
    build_error_envelope,
)

__all__ = [
    "ExceptionHandlingMiddleware",
    "HttpErrorHandler",
    "build_error_envelope",
]
