"""Helpers wiring the boundary adapters into a host application."""

from __future__ import annotations

import grpc
from starlette.applications import Starlette
from starlette.middleware.base import BaseHTTPMiddleware

from error_boundary.adapters.http.middleware import ExceptionHandlingMiddleware
from error_boundary.adapters.rpc.interceptor import AsyncExceptionInterceptor, ExceptionInterceptor
from error_boundary.core.config import ErrorHandlingSettings, get_settings
from error_boundary.core.middleware import request_id_middleware


def setup_error_handling(
    app: Starlette,
    settings: ErrorHandlingSettings | None = None,
    *,
    request_ids: bool = True,
) -> None:
    """Register the HTTP error middleware on a FastAPI/Starlette app.

    Must be called during app initialization. The request id middleware is
    added last so it wraps the error middleware and every error response
    carries the request id header.

    Args:
        app: FastAPI or Starlette application instance.
        settings: Error handling settings; defaults to global settings.
        request_ids: Also register ``request_id_middleware``.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_error_handling(app)
    """
    cfg = settings or get_settings().error_handling
    app.add_middleware(ExceptionHandlingMiddleware, settings=cfg)
    if request_ids:
        app.add_middleware(BaseHTTPMiddleware, dispatch=request_id_middleware)


def grpc_interceptors(
    settings: ErrorHandlingSettings | None = None,
    *,
    aio: bool = True,
) -> list[grpc.ServerInterceptor | grpc.aio.ServerInterceptor]:
    """Return the interceptors to pass to ``grpc.server``/``grpc.aio.server``.

    Empty when ``enable_grpc_interceptor`` is off.
    """
    cfg = settings or get_settings().error_handling
    if not cfg.enable_grpc_interceptor:
        return []
    if aio:
        return [AsyncExceptionInterceptor(cfg)]
    return [ExceptionInterceptor(cfg)]
