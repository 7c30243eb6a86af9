"""Tests for the failure log record fields."""

from __future__ import annotations

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from error_boundary.adapters.base import FailureDecision
from error_boundary.core.config import ErrorHandlingSettings
from error_boundary.core.errors import BusinessError
from error_boundary.core.logging import REDACTED, failure_log_fields, redact
from error_boundary.core.registration import setup_error_handling
from error_boundary.core.status_mapping import classify

HTTP_LOGGER = "error_boundary.adapters.http.middleware"


def _decision(exc: BaseException) -> FailureDecision:
    return FailureDecision(correlation_id="corr-1", classification=classify(exc))


def test_redact_hides_credentials_recursively():
    value = {
        "password": "hunter2",
        "orderId": 42,
        "headers": {"Authorization": "Bearer abc.def", "user-agent": "pytest"},
        "attempts": [{"token": "t-1"}, {"count": 3}],
    }

    assert redact(value) == {
        "password": REDACTED,
        "orderId": 42,
        "headers": {"Authorization": REDACTED, "user-agent": "pytest"},
        "attempts": [{"token": REDACTED}, {"count": 3}],
    }


def test_redact_leaves_scalars_untouched():
    assert redact("plain") == "plain"
    assert redact(7) == 7


def test_fields_without_sensitive_data():
    exc = BusinessError("Card declined").add_detail("password", "hunter2")

    fields = failure_log_fields(exc, _decision(exc), 400, request_path="/pay")

    assert fields == {
        "request_path": "/pay",
        "correlation_id": "corr-1",
        "error_type": "BusinessError",
        "error_code": "BUSINESS_ERROR",
        "error_kind": "business",
        "status_code": 400,
        "detail_keys": ["password"],
    }


def test_fields_with_sensitive_data_still_redact_credentials():
    exc = BusinessError("Card declined").add_detail("password", "hunter2").add_detail("orderId", 9)

    fields = failure_log_fields(exc, _decision(exc), 400, log_sensitive_data=True)

    assert fields["error_message"] == "Card declined"
    assert fields["error_details"] == {"password": REDACTED, "orderId": 9}
    assert exc.details["password"] == "hunter2"


def test_fields_for_unrecognized_failure():
    exc = RuntimeError("boom")

    fields = failure_log_fields(exc, _decision(exc), "INTERNAL")

    assert fields["error_type"] == "RuntimeError"
    assert fields["error_code"] == "INTERNAL_ERROR"
    assert fields["error_kind"] == "unrecognized"
    assert "detail_keys" not in fields


@pytest.mark.parametrize("log_sensitive_data", [False, True])
def test_http_failure_record(caplog, log_sensitive_data):
    settings = ErrorHandlingSettings(production=False, log_sensitive_data=log_sensitive_data)
    app = FastAPI()
    setup_error_handling(app, settings)

    @app.get("/orders/{order_id}")
    async def get_order(order_id: str):
        raise BusinessError("Order is locked").add_detail("token", "t-9")

    with caplog.at_level(logging.ERROR, logger=HTTP_LOGGER):
        TestClient(app).get("/orders/5", headers={"X-Correlation-Id": "corr-5"})

    records = [r for r in caplog.records if r.name == HTTP_LOGGER]
    assert len(records) == 1
    record = records[0]
    assert record.getMessage() == "http.unhandled_exception"
    assert record.correlation_id == "corr-5"
    assert record.error_code == "BUSINESS_ERROR"
    assert record.detail_keys == ["token"]
    assert record.request_method == "GET"
    assert record.exc_info[0] is BusinessError
    if log_sensitive_data:
        assert record.error_details == {"token": REDACTED}
    else:
        assert not hasattr(record, "error_details")
