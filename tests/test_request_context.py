from __future__ import annotations

import json
import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from ledgercore.context import (
    get_log_context,
    get_tenant_id,
    reset_correlation_id,
    reset_tenant_id,
    set_correlation_id,
    set_tenant_id,
)
from ledgercore.logging import JsonLogFormatter, RequestContextFilter
from ledgercore.middleware.correlation_id import CorrelationIdMiddleware


def _context_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(CorrelationIdMiddleware)

    @app.get("/context")
    def read_context() -> dict[str, str | None]:
        return get_log_context()

    return app


def test_middleware_binds_tenant_and_correlation_id() -> None:
    with TestClient(_context_app()) as client:
        response = client.get("/context", headers={"x-tenant-id": "tenant-q", "x-correlation-id": "corr-7"})

    assert response.json() == {"correlation_id": "corr-7", "tenant_id": "tenant-q"}
    assert response.headers["x-correlation-id"] == "corr-7"
    assert get_tenant_id() is None


def test_middleware_leaves_tenant_unset_without_header() -> None:
    with TestClient(_context_app()) as client:
        response = client.get("/context")

    body = response.json()
    assert body["tenant_id"] is None
    assert body["correlation_id"] == response.headers["x-correlation-id"]


def test_log_records_carry_request_context() -> None:
    record = logging.makeLogRecord({"name": "ledgercore.test", "msg": "ledger.entry_posted", "levelname": "INFO"})
    correlation_token = set_correlation_id("corr-9")
    tenant_token = set_tenant_id("tenant-z")
    try:
        assert RequestContextFilter().filter(record) is True
    finally:
        reset_tenant_id(tenant_token)
        reset_correlation_id(correlation_token)

    payload = json.loads(JsonLogFormatter().format(record))
    assert payload["correlation_id"] == "corr-9"
    assert payload["fields"]["tenant_id"] == "tenant-z"


def test_explicit_tenant_on_record_is_kept() -> None:
    record = logging.makeLogRecord({"msg": "shifts.closed", "tenant_id": "tenant-explicit"})
    token = set_tenant_id("tenant-ambient")
    try:
        RequestContextFilter().filter(record)
    finally:
        reset_tenant_id(token)

    assert record.tenant_id == "tenant-explicit"
