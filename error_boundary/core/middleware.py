"""HTTP middleware for per-request id propagation.

This module provides middleware that ensures every request/response pair
carries a request ID. The error middleware uses it as the transport-native
identifier when no trace context or correlation header is present.

The middleware:
- Accepts the incoming request id header or generates a UUID
- Stores it on ``request.state.request_id``, with
  ``request.state.request_id_from_client`` telling which of the two it was
- Injects it into response headers for client-side tracking
- Measures total request duration and includes it in response headers

Usage:
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from error_boundary.core.config import get_settings


async def request_id_middleware(request: Request, call_next) -> Response:
    """Assign a request id, expose it downstream, and echo it on the response.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request id and
            duration headers added.
    """

    header_name = get_settings().request_id.header_name
    inbound = (request.headers.get(header_name) or "").strip()
    request.state.request_id = inbound or str(uuid.uuid4())
    request.state.request_id_from_client = bool(inbound)

    start = time.perf_counter()
    response: Response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000

    response.headers[header_name] = request.state.request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
