"""Correlation id resolution shared by the gRPC and HTTP adapters.

The request context is passed in explicitly: resolve_correlation_id reads no
ambient state and never raises. Use current_span() to supply the span.

Precedence (first match wins):
1. Trace id of the active, recording OpenTelemetry span
2. First inbound correlation header / metadata entry (case-insensitive)
3. Transport-native request id (e.g. ``request.state.request_id``)
4. A freshly generated UUID4
"""

from __future__ import annotations

import uuid
from typing import Any, Final, Iterable, Mapping, Sequence

from opentelemetry import trace
from opentelemetry.trace import Span

HTTP_CORRELATION_HEADERS: Final[tuple[str, ...]] = (
    "X-Correlation-Id",
    "X-Request-Id",
    "Correlation-Id",
)
RPC_CORRELATION_KEYS: Final[tuple[str, ...]] = (
    "correlation-id",
    "x-correlation-id",
    "x-request-id",
)

Headers = Mapping[str, Any] | Iterable[tuple[str, Any]]


def current_span() -> Span:
    """Return the span active in the caller's context (may be non-recording)."""

    return trace.get_current_span()


def _trace_id(span: Span | None) -> str | None:
    if span is None or not span.is_recording():
        return None
    context = span.get_span_context()
    if not context.is_valid:
        return None
    return trace.format_trace_id(context.trace_id)


def _lowercase_headers(headers: Headers) -> dict[str, str]:
    """Flatten headers/metadata to a lower-cased dict, keeping first values."""

    pairs = headers.items() if isinstance(headers, Mapping) else headers
    lowered: dict[str, str] = {}
    for key, value in pairs:
        # Binary (-bin) metadata values arrive as bytes; they never carry ids.
        if not isinstance(key, str) or not isinstance(value, str):
            continue
        lowered.setdefault(key.lower(), value)
    return lowered


def _inbound_id(headers: Headers | None, header_names: Sequence[str]) -> str | None:
    if not headers:
        return None
    lowered = _lowercase_headers(headers)
    for name in header_names:
        value = lowered.get(name.lower(), "").strip()
        if value:
            return value
    return None


def resolve_correlation_id(
    *,
    span: Span | None = None,
    headers: Headers | None = None,
    header_names: Sequence[str] = RPC_CORRELATION_KEYS,
    request_id: str | None = None,
    honor_inbound: bool = True,
) -> str:
    """Resolve the correlation id for one request or call.

    Args:
        span: Span active for the request; used only while it is recording.
        headers: Inbound HTTP headers or gRPC invocation metadata.
        header_names: Header names to check, in priority order.
        request_id: Transport-native per-request identifier, if any.
        honor_inbound: When False, caller-supplied headers are ignored.

    Returns:
        A non-empty correlation id string.

    Example:
        >>> resolve_correlation_id(headers={"X-Request-Id": "abc"},
        ...                        header_names=HTTP_CORRELATION_HEADERS)
        'abc'
    """

    trace_id = _trace_id(span)
    if trace_id:
        return trace_id

    if honor_inbound:
        inbound = _inbound_id(headers, header_names)
        if inbound:
            return inbound

    if request_id:
        return request_id

    return str(uuid.uuid4())
