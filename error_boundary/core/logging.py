"""Structured fields for the adapters' failure log records.

Each converted failure is logged once, at ERROR, with the event name as the
message (``rpc.unhandled_exception`` / ``http.unhandled_exception``), the
original exception as ``exc_info`` and these ``extra=`` fields:

- correlation_id, error_type, error_code, error_kind, status_code: always
- detail_keys: when the error carries details
- error_message, error_details: only with ``log_sensitive_data``; detail
  values under credential-like keys are redacted even then

Handlers and formatters belong to the host application.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Mapping

from error_boundary.core.errors import ApplicationError

if TYPE_CHECKING:
    from error_boundary.adapters.base import FailureDecision

REDACTED = "[REDACTED]"

# Detail keys whose values are never logged
SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "api_key",
        "x-api-key",
        "authorization",
        "proxy-authorization",
        "token",
        "access_token",
        "refresh_token",
        "secret",
        "password",
        "cookie",
        "set-cookie",
    }
)


def _is_sensitive_key(key: str, sensitive_keys: Iterable[str]) -> bool:
    return key.lower() in sensitive_keys


def redact(value: Any, sensitive_keys: Iterable[str] = SENSITIVE_KEYS_DEFAULT) -> Any:
    """Recursively redact sensitive values within mappings and sequences.

    Args:
        value: Detail value (or whole details mapping).
        sensitive_keys: Lower-cased keys whose values must be hidden.

    Returns:
        A copy with sensitive entries replaced by "[REDACTED]".
    """

    if isinstance(value, Mapping):
        return {
            k: REDACTED
            if isinstance(k, str) and _is_sensitive_key(k, sensitive_keys)
            else redact(v, sensitive_keys)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v, sensitive_keys) for v in value)
    return value


def failure_log_fields(
    exc: BaseException,
    decision: FailureDecision,
    status_code: Any,
    *,
    log_sensitive_data: bool = False,
    **fields: Any,
) -> dict[str, Any]:
    """Build the ``extra=`` payload for one failure record.

    Args:
        exc: The original failure, before conversion.
        decision: Correlation id and classification for ``exc``.
        status_code: Transport status (HTTP int or gRPC status name).
        log_sensitive_data: Include message text and detail values.
        **fields: Transport context such as ``method`` or ``request_path``.
    """

    details = exc.details if isinstance(exc, ApplicationError) else {}

    extra: dict[str, Any] = {
        **fields,
        "correlation_id": decision.correlation_id,
        "error_type": type(exc).__name__,
        "error_code": decision.error_code,
        "error_kind": decision.classification.kind.value,
        "status_code": status_code,
    }
    if details:
        extra["detail_keys"] = list(details)
    if log_sensitive_data:
        extra["error_message"] = str(exc)
        if details:
            extra["error_details"] = redact(dict(details))
    return extra
