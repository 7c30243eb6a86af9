"""Mapping from failures to transport status codes and stable error codes.

One decision table, keyed by error kind, feeds both transports:

    kind               gRPC               HTTP  error code
    BUSINESS           INVALID_ARGUMENT   400   error's own
    VALIDATION         INVALID_ARGUMENT   400   error's own
    NOT_FOUND          NOT_FOUND          404   error's own
    UNAUTHORIZED       UNAUTHENTICATED    401   error's own
    FORBIDDEN          PERMISSION_DENIED  403   error's own
    CONFLICT           ALREADY_EXISTS     409   error's own
    CANCELLED          CANCELLED          499   OPERATION_CANCELLED
    NOT_IMPLEMENTED    UNIMPLEMENTED      501   NOT_IMPLEMENTED
    TIMEOUT            DEADLINE_EXCEEDED  408   TIMEOUT
    UNRECOGNIZED       INTERNAL           500   INTERNAL_ERROR
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from dataclasses import dataclass
from enum import Enum
from typing import Final

import grpc

from error_boundary.core.errors import (
    ApplicationError,
    BusinessError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)

INTERNAL_ERROR_CODE: Final[str] = "INTERNAL_ERROR"
HTTP_499_CLIENT_CLOSED_REQUEST: Final[int] = 499

_CANCELLATION_TYPES: Final = (asyncio.CancelledError, concurrent.futures.CancelledError)
_SUFFIXES: Final[tuple[str, ...]] = ("Exception", "Error")


class ErrorKind(str, Enum):
    """Failure categories understood by the adapters."""

    BUSINESS = "business"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    CANCELLED = "cancelled"
    NOT_IMPLEMENTED = "not_implemented"
    TIMEOUT = "timeout"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class StatusMapping:
    """One row of the decision table.

    Attributes:
        rpc_status: gRPC status code.
        http_status: HTTP status code.
        error_code: Fixed error code, or None to use the error's own code.
    """

    rpc_status: grpc.StatusCode
    http_status: int
    error_code: str | None = None


@dataclass(frozen=True)
class Classification:
    """Transport-neutral decision for one failure."""

    kind: ErrorKind
    rpc_status: grpc.StatusCode
    http_status: int
    error_code: str


STATUS_TABLE: Final[dict[ErrorKind, StatusMapping]] = {
    ErrorKind.BUSINESS: StatusMapping(grpc.StatusCode.INVALID_ARGUMENT, 400),
    ErrorKind.VALIDATION: StatusMapping(grpc.StatusCode.INVALID_ARGUMENT, 400),
    ErrorKind.NOT_FOUND: StatusMapping(grpc.StatusCode.NOT_FOUND, 404),
    ErrorKind.UNAUTHORIZED: StatusMapping(grpc.StatusCode.UNAUTHENTICATED, 401),
    ErrorKind.FORBIDDEN: StatusMapping(grpc.StatusCode.PERMISSION_DENIED, 403),
    ErrorKind.CONFLICT: StatusMapping(grpc.StatusCode.ALREADY_EXISTS, 409),
    ErrorKind.CANCELLED: StatusMapping(
        grpc.StatusCode.CANCELLED, HTTP_499_CLIENT_CLOSED_REQUEST, "OPERATION_CANCELLED"
    ),
    ErrorKind.NOT_IMPLEMENTED: StatusMapping(
        grpc.StatusCode.UNIMPLEMENTED, 501, "NOT_IMPLEMENTED"
    ),
    ErrorKind.TIMEOUT: StatusMapping(grpc.StatusCode.DEADLINE_EXCEEDED, 408, "TIMEOUT"),
    ErrorKind.UNRECOGNIZED: StatusMapping(grpc.StatusCode.INTERNAL, 500, INTERNAL_ERROR_CODE),
}

_TAXONOMY_KINDS: Final[tuple[tuple[type[ApplicationError], ErrorKind], ...]] = (
    (BusinessError, ErrorKind.BUSINESS),
    (ValidationError, ErrorKind.VALIDATION),
    (NotFoundError, ErrorKind.NOT_FOUND),
    (UnauthorizedError, ErrorKind.UNAUTHORIZED),
    (ForbiddenError, ErrorKind.FORBIDDEN),
    (ConflictError, ErrorKind.CONFLICT),
)


def error_kind(exc: BaseException) -> ErrorKind:
    """Return the table row a failure falls under."""

    for error_type, kind in _TAXONOMY_KINDS:
        if isinstance(exc, error_type):
            return kind
    if isinstance(exc, _CANCELLATION_TYPES):
        return ErrorKind.CANCELLED
    if isinstance(exc, NotImplementedError):
        return ErrorKind.NOT_IMPLEMENTED
    if isinstance(exc, TimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.UNRECOGNIZED


def derive_error_code(exc: BaseException) -> str:
    """Build an error code from the failure's type name.

    Examples:
        >>> derive_error_code(ValueError())
        'VALUE'
        >>> derive_error_code(KeyError())
        'KEY'
    """

    name = type(exc).__name__
    for suffix in _SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            name = name[: -len(suffix)]
            break
    return name.upper()


def classify(exc: BaseException, *, detailed: bool = False) -> Classification:
    """Classify a failure into statuses and a stable error code.

    Args:
        exc: The failure raised by the handler.
        detailed: Use a type-derived code instead of INTERNAL_ERROR for
            unrecognized failures.

    Returns:
        Classification with both transport statuses.
    """

    kind = error_kind(exc)
    mapping = STATUS_TABLE[kind]

    if isinstance(exc, ApplicationError):
        code = exc.error_code
    elif kind is ErrorKind.UNRECOGNIZED and detailed:
        code = derive_error_code(exc)
    else:
        code = mapping.error_code or INTERNAL_ERROR_CODE

    return Classification(
        kind=kind,
        rpc_status=mapping.rpc_status,
        http_status=mapping.http_status,
        error_code=code,
    )


def classify_rpc(exc: BaseException, *, detailed: bool = False) -> tuple[grpc.StatusCode, str]:
    """Return ``(grpc status, error code)`` for a failure."""

    result = classify(exc, detailed=detailed)
    return result.rpc_status, result.error_code


def classify_http(exc: BaseException, *, detailed: bool = False) -> tuple[int, str]:
    """Return ``(HTTP status, error code)`` for a failure."""

    result = classify(exc, detailed=detailed)
    return result.http_status, result.error_code
