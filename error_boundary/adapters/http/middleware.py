"""HTTP middleware that converts failures into the JSON error envelope.

The middleware wraps the whole request pipeline: any failure raised by a
route (or an inner middleware) is logged, classified, and answered with the
mapped status and an ``{"error": {...}}`` body. Starlette/FastAPI
``HTTPException`` is already an HTTP-native error and is re-raised unchanged.

Usage:
    app.add_middleware(ExceptionHandlingMiddleware, settings=settings.error_handling)
"""

from __future__ import annotations

import asyncio
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Final

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from error_boundary.adapters.base import BoundaryAdapter, FailureDecision
from error_boundary.core.config import ErrorHandlingSettings
from error_boundary.core.correlation import HTTP_CORRELATION_HEADERS
from error_boundary.core.errors import (
    ApplicationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from error_boundary.schemas.error import ErrorBody, ErrorResponse

_CATCHABLE: Final = (Exception, asyncio.CancelledError)


def safe_message(exc: BaseException, settings: ErrorHandlingSettings) -> str:
    """Return the caller-visible message for ``exc``.

    Taxonomy messages are always shown. Other failures get the configured
    generic message in production unless detailed errors are enabled.
    """

    if isinstance(exc, ApplicationError):
        return exc.message
    if settings.production and not settings.enable_detailed_errors:
        return settings.internal_error_message
    return str(exc) or type(exc).__name__


def build_error_details(
    exc: BaseException,
    *,
    include_stack_trace: bool = False,
) -> dict[str, Any] | None:
    """Merge taxonomy details and variant fields; None when there is nothing."""

    details: dict[str, Any] = {}

    if isinstance(exc, ApplicationError):
        details.update(exc.details)

    if isinstance(exc, ValidationError) and exc.field_errors:
        details["validationErrors"] = {
            field: list(messages) for field, messages in exc.field_errors.items()
        }

    if isinstance(exc, NotFoundError):
        if exc.resource_type:
            details["resourceType"] = exc.resource_type
        if exc.resource_id:
            details["resourceId"] = exc.resource_id

    if isinstance(exc, ConflictError) and exc.conflict_type:
        details["conflictType"] = exc.conflict_type

    if isinstance(exc, ForbiddenError):
        if exc.resource:
            details["resource"] = exc.resource
        if exc.required_permission:
            details["requiredPermission"] = exc.required_permission
        if exc.user_permissions:
            details["userPermissions"] = list(exc.user_permissions)

    if include_stack_trace:
        details["stackTrace"] = [
            line.rstrip("\n") for line in traceback.format_exception(exc)
        ]

    return details or None


def build_error_envelope(
    exc: BaseException,
    decision: FailureDecision,
    settings: ErrorHandlingSettings,
) -> ErrorResponse:
    """Build the JSON envelope for a classified failure."""

    return ErrorResponse(
        error=ErrorBody(
            code=decision.error_code,
            message=safe_message(exc, settings),
            details=build_error_details(exc, include_stack_trace=settings.include_stack_trace),
            trace_id=decision.correlation_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
    )


class HttpErrorHandler(BoundaryAdapter):
    """Turns one failure on one request into a JSON error response."""

    log_event = "http.unhandled_exception"

    def native_request_id(self, request: Request) -> str | None:
        """Request id for resolver step 3.

        A client-supplied id counts as an inbound correlation id, so it is
        dropped when ``use_correlation_ids`` is off.
        """

        request_id = getattr(request.state, "request_id", None)
        if not self.settings.use_correlation_ids and getattr(
            request.state, "request_id_from_client", False
        ):
            return None
        return request_id

    def handle(self, request: Request, exc: BaseException) -> JSONResponse:
        decision = self.decide(
            exc,
            headers=request.headers,
            header_names=HTTP_CORRELATION_HEADERS,
            request_id=self.native_request_id(request),
        )
        status_code = decision.classification.http_status

        self.log_failure(
            exc,
            decision,
            status_code,
            request_path=request.url.path,
            request_method=request.method,
        )

        envelope = build_error_envelope(exc, decision, self.settings)
        return JSONResponse(
            status_code=status_code,
            content=jsonable_encoder(envelope.model_dump(by_alias=True)),
        )


class ExceptionHandlingMiddleware(BaseHTTPMiddleware):
    """Global exception handling middleware.

    Args:
        app: The wrapped ASGI application.
        settings: Error handling settings; defaults to the global settings.
        logger: Logger used for failure records.
    """

    def __init__(
        self,
        app: ASGIApp,
        settings: ErrorHandlingSettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(app)
        self.handler = HttpErrorHandler(settings, logger=logger)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except _CATCHABLE as exc:
            if isinstance(exc, StarletteHTTPException):
                raise
            return self.handler.handle(request, exc)
