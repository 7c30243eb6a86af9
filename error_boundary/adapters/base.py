"""Shared plumbing for the boundary adapters.

Both adapters turn a failure into the same transport-neutral decision
(correlation id + classification) and log it the same way; only the
serialization differs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from error_boundary.core.config import ErrorHandlingSettings, get_settings
from error_boundary.core.correlation import Headers, current_span, resolve_correlation_id
from error_boundary.core.errors import ApplicationError
from error_boundary.core.logging import failure_log_fields
from error_boundary.core.status_mapping import Classification, classify


@dataclass(frozen=True)
class FailureDecision:
    """Outcome of resolving and classifying one failure.

    Attributes:
        correlation_id: Id returned to the caller and written to logs.
        classification: Status codes and stable error code.
    """

    correlation_id: str
    classification: Classification

    @property
    def error_code(self) -> str:
        return self.classification.error_code


class BoundaryAdapter:
    """Base class holding the immutable settings and the failure pipeline.

    Instances keep no per-request state, so one adapter can serve any number
    of concurrent calls.
    """

    log_event: str = "unhandled_exception"

    def __init__(
        self,
        settings: ErrorHandlingSettings | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.settings = settings or get_settings().error_handling
        self.logger = logger or logging.getLogger(type(self).__module__)

    def decide(
        self,
        exc: BaseException,
        *,
        headers: Headers | None,
        header_names: Sequence[str],
        request_id: str | None = None,
    ) -> FailureDecision:
        """Resolve the correlation id and classify ``exc``.

        A correlation id already attached by application code wins; otherwise
        the resolved id is attached to taxonomy errors.
        """

        correlation_id = None
        if isinstance(exc, ApplicationError):
            correlation_id = exc.correlation_id

        if not correlation_id:
            correlation_id = resolve_correlation_id(
                span=current_span(),
                headers=headers,
                header_names=header_names,
                request_id=request_id,
                honor_inbound=self.settings.use_correlation_ids,
            )
            if isinstance(exc, ApplicationError):
                exc.attach_correlation_id(correlation_id)

        classification = classify(exc, detailed=self.settings.enable_detailed_errors)
        return FailureDecision(correlation_id=correlation_id, classification=classification)

    def log_failure(
        self,
        exc: BaseException,
        decision: FailureDecision,
        status_code: Any,
        **fields: Any,
    ) -> None:
        """Log the original failure at ERROR before it is converted."""

        extra = failure_log_fields(
            exc,
            decision,
            status_code,
            log_sensitive_data=self.settings.log_sensitive_data,
            **fields,
        )
        self.logger.error(self.log_event, exc_info=exc, extra=extra)
