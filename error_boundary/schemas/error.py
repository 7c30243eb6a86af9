"""Pydantic schema for the HTTP error envelope.

Every converted failure is returned as::

    {"error": {"code": "...", "message": "...", "details": {...} | null,
               "traceId": "...", "timestamp": "2026-01-01T00:00:00+00:00"}}
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorBody(BaseModel):
    """Inner error object."""

    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(..., description="Stable, machine-readable error code.")
    message: str = Field(..., description="Human-readable error message.")
    details: dict[str, Any] | None = Field(
        default=None,
        description="Structured context (details, validation errors, resource info).",
    )
    trace_id: str = Field(
        ...,
        alias="traceId",
        description="Correlation id for cross-service log correlation.",
    )
    timestamp: str = Field(..., description="ISO-8601 UTC time the error was produced.")


class ErrorResponse(BaseModel):
    """Top-level error envelope returned by all error responses."""

    error: ErrorBody
