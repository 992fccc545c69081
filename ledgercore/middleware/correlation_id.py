from __future__ import annotations

import uuid

from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ledgercore.context import reset_correlation_id, reset_tenant_id, set_correlation_id, set_tenant_id


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Bind the correlation id and the caller's tenant to the request.

    Both values land in the logging context and on the current span; the
    correlation id is echoed back so gateways can stitch ledger calls to
    their own traces.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        correlation_id = request.headers.get("x-correlation-id") or str(uuid.uuid4())
        tenant_id = request.headers.get("x-tenant-id") or None
        request.state.correlation_id = correlation_id

        span = trace.get_current_span()
        if span is not None and span.is_recording():
            span.set_attribute("correlation_id", correlation_id)
            if tenant_id is not None:
                span.set_attribute("ledger.tenant_id", tenant_id)

        correlation_token = set_correlation_id(correlation_id)
        tenant_token = set_tenant_id(tenant_id)
        try:
            response = await call_next(request)
        finally:
            reset_tenant_id(tenant_token)
            reset_correlation_id(correlation_token)

        response.headers["x-correlation-id"] = correlation_id
        return response
