from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

ledger_entries_posted_count = Counter(
    "ledger_entries_posted_count",
    "Total posted ledger entries",
)

ledger_lines_posted_count = Counter(
    "ledger_lines_posted_count",
    "Total posted ledger lines",
)

ledger_post_failures_count = Counter(
    "ledger_post_failures_count",
    "Total ledger post failures by reason",
    ["reason"],
)

ledger_role_accounts_created_count = Counter(
    "ledger_role_accounts_created_count",
    "Accounts auto-provisioned for a semantic role or party",
    ["role"],
)

vouchers_posted_count = Counter(
    "vouchers_posted_count",
    "Total posted vouchers by type",
    ["voucher_type"],
)

installments_paid_count = Counter(
    "installments_paid_count",
    "Total collected installments",
)

shifts_closed_count = Counter(
    "shifts_closed_count",
    "Total closed cashier shifts",
)

shift_cash_variance = Histogram(
    "shift_cash_variance",
    "Counted minus expected cash at shift close",
    buckets=(-500, -100, -50, -10, -1, 0, 1, 10, 50, 100, 500),
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None)
        if isinstance(path_format, str) and path_format:
            return _PATH_PARAM_RE.sub("{id}", path_format)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_ledger_entries_posted(count: int = 1) -> None:
    if count > 0:
        ledger_entries_posted_count.inc(count)


def observe_ledger_lines_posted(count: int = 1) -> None:
    if count > 0:
        ledger_lines_posted_count.inc(count)


def observe_ledger_post_failure(reason: str) -> None:
    ledger_post_failures_count.labels(reason=reason).inc()


def observe_role_account_created(role: str) -> None:
    ledger_role_accounts_created_count.labels(role=role).inc()


def observe_voucher_posted(voucher_type: str) -> None:
    vouchers_posted_count.labels(voucher_type=voucher_type).inc()


def observe_installment_paid() -> None:
    installments_paid_count.inc()


def observe_shift_closed(variance: float) -> None:
    shifts_closed_count.inc()
    shift_cash_variance.observe(variance)


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
