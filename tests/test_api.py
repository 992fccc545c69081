from __future__ import annotations

from collections.abc import Generator
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgercore import events, models  # noqa: F401
from ledgercore.core.config import get_settings
from ledgercore.core.database import Base, get_db
from ledgercore.invoicing.models import Invoice
from ledgercore.main import app
from ledgercore.parties.models import Customer


HEADERS = {"x-tenant-id": "tenant-a", "x-user-id": "cashier-1"}


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def configure_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("METRICS_ENABLED", "true")
    get_settings.cache_clear()
    events.published_events.clear()
    yield
    get_settings.cache_clear()
    events.published_events.clear()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _account(client: TestClient, code: str, name: str, account_type: str) -> dict:
    response = client.post("/accounts", json={"code": code, "name": name, "type": account_type}, headers=HEADERS)
    assert response.status_code == 201
    return response.json()


def test_missing_tenant_headers_are_rejected(client: TestClient) -> None:
    response = client.get("/accounts")
    assert response.status_code == 401


def test_account_endpoints(client: TestClient) -> None:
    bank = _account(client, "1100", "Bank", "asset")

    duplicate = client.post("/accounts", json={"code": "1100", "name": "Bank", "type": "asset"}, headers=HEADERS)
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"]["error"] == "conflict"

    fetched = client.get(f"/accounts/{bank['id']}", headers=HEADERS)
    assert fetched.status_code == 200
    assert fetched.json()["code"] == "1100"

    hidden = client.get(f"/accounts/{bank['id']}", headers={"x-tenant-id": "tenant-b", "x-user-id": "u2"})
    assert hidden.status_code == 404

    resolved = client.post("/accounts/roles/resolve", json={"role": "CASH"}, headers=HEADERS)
    assert resolved.status_code == 200
    roles = client.get("/accounts/roles", headers=HEADERS)
    assert [item["role"] for item in roles.json()] == ["CASH"]

    deleted = client.delete(f"/accounts/{bank['id']}", headers=HEADERS)
    assert deleted.status_code == 204


def test_journal_entry_lifecycle(client: TestClient) -> None:
    cash = _account(client, "1000", "Cash", "asset")
    revenue = _account(client, "4000", "Sales", "revenue")
    lines = [
        {"account_id": cash["id"], "debit": "125.50"},
        {"account_id": revenue["id"], "credit": "125.50"},
    ]

    unbalanced = client.post(
        "/ledger/journal-entries",
        json={
            "entry_date": "2026-09-01",
            "description": "Sale",
            "lines": [lines[0], {"account_id": revenue["id"], "credit": "100"}],
        },
        headers=HEADERS,
    )
    assert unbalanced.status_code == 422

    created = client.post(
        "/ledger/journal-entries",
        json={"entry_date": "2026-09-01", "description": "Sale", "lines": lines},
        headers={**HEADERS, "x-correlation-id": "corr-api-1"},
    )
    assert created.status_code == 201
    body = created.json()
    assert body["entry_number"] == "JE-000001"
    assert Decimal(body["lines"][0]["debit"]) == Decimal("125.50")
    posted = [item for item in events.published_events if item["event_type"] == "ledger.entry_posted"]
    assert posted[-1]["correlation_id"] == "corr-api-1"

    reversed_entry = client.post(
        f"/ledger/journal-entries/{body['id']}/reverse",
        json={"reason": "customer returned goods"},
        headers=HEADERS,
    )
    assert reversed_entry.status_code == 201
    assert reversed_entry.json()["reversal_of_id"] == body["id"]

    again = client.post(f"/ledger/journal-entries/{body['id']}/reverse", json={"reason": "twice"}, headers=HEADERS)
    assert again.status_code == 409

    listed = client.get("/ledger/journal-entries", params={"source_type": "reversal"}, headers=HEADERS)
    assert [item["id"] for item in listed.json()] == [reversed_entry.json()["id"]]

    statement = client.get(f"/statements/accounts/{cash['id']}", headers=HEADERS)
    assert statement.status_code == 200
    assert Decimal(statement.json()["closing_balance"]) == Decimal("0")


def test_income_statement_endpoint(client: TestClient) -> None:
    cash = _account(client, "1000", "Cash", "asset")
    revenue = _account(client, "4000", "Sales", "revenue")
    client.post(
        "/ledger/journal-entries",
        json={
            "entry_date": "2026-09-05",
            "description": "Sale",
            "lines": [
                {"account_id": cash["id"], "debit": "300"},
                {"account_id": revenue["id"], "credit": "300"},
            ],
        },
        headers=HEADERS,
    )

    report = client.get(
        "/statements/income",
        params={"start_date": "2026-09-01", "end_date": "2026-09-30"},
        headers=HEADERS,
    )
    assert report.status_code == 200
    assert Decimal(report.json()["net_profit"]) == Decimal("300")

    inverted = client.get(
        "/statements/income",
        params={"start_date": "2026-09-30", "end_date": "2026-09-01"},
        headers=HEADERS,
    )
    assert inverted.status_code == 422


def test_voucher_and_party_statement(client: TestClient, db_session: Session) -> None:
    customer = Customer(tenant_id="tenant-a", name="Hany")
    db_session.add(customer)
    db_session.commit()

    voucher = client.post(
        "/vouchers",
        json={
            "type": "receipt",
            "amount": "75",
            "voucher_date": "2026-09-02",
            "party_type": "customer",
            "party_id": customer.id,
        },
        headers=HEADERS,
    )
    assert voucher.status_code == 201
    assert voucher.json()["voucher_number"] == "RV-000001"

    non_positive = client.post(
        "/vouchers",
        json={"type": "receipt", "amount": "0", "voucher_date": "2026-09-02", "party_type": "customer", "party_id": customer.id},
        headers=HEADERS,
    )
    assert non_positive.status_code == 422

    statement = client.get(f"/statements/parties/customer/{customer.id}", headers=HEADERS)
    assert statement.status_code == 200
    assert Decimal(statement.json()["closing_balance"]) == Decimal("-75")

    missing = client.get("/statements/parties/customer/999", headers=HEADERS)
    assert missing.status_code == 404


def test_installment_endpoints(client: TestClient, db_session: Session) -> None:
    customer = Customer(tenant_id="tenant-a", name="Rana")
    db_session.add(customer)
    db_session.flush()
    invoice = Invoice(
        tenant_id="tenant-a",
        invoice_number="INV-55",
        customer_id=customer.id,
        issue_date=date(2026, 9, 1),
        total_amount=Decimal("900"),
        amount_paid=Decimal("0"),
        payment_status="unpaid",
        payment_method="installment",
    )
    db_session.add(invoice)
    db_session.commit()

    plan = client.post(
        "/installments/plans",
        json={"invoice_id": invoice.id, "count": 3, "start_date": "2026-10-01"},
        headers=HEADERS,
    )
    assert plan.status_code == 201
    rows = plan.json()["installments"]
    assert [Decimal(row["amount"]) for row in rows] == [Decimal("300")] * 3

    duplicate = client.post(
        "/installments/plans",
        json={"invoice_id": invoice.id, "count": 2, "start_date": "2026-10-01"},
        headers=HEADERS,
    )
    assert duplicate.status_code == 409

    paid = client.post(f"/installments/{rows[0]['id']}/pay", json={"payment_date": "2026-10-01"}, headers=HEADERS)
    assert paid.status_code == 200
    assert paid.json()["status"] == "paid"

    overdue = client.get("/installments", params={"status": "pending", "as_of": "2026-11-15"}, headers=HEADERS)
    assert [row["is_overdue"] for row in overdue.json()] == [True, False]


def test_shift_endpoints(client: TestClient) -> None:
    no_shift = client.get("/shifts/active", headers=HEADERS)
    assert no_shift.status_code == 404

    opened = client.post("/shifts", json={"start_balance": "150"}, headers=HEADERS)
    assert opened.status_code == 201
    shift_id = opened.json()["id"]

    second = client.post("/shifts", json={"start_balance": "0"}, headers=HEADERS)
    assert second.status_code == 409

    summary = client.get(f"/shifts/{shift_id}/summary", headers=HEADERS)
    assert Decimal(summary.json()["expected_cash"]) == Decimal("150")

    closed = client.post(f"/shifts/{shift_id}/close", json={"actual_cash": "140"}, headers=HEADERS)
    assert closed.status_code == 200
    assert Decimal(closed.json()["variance"]) == Decimal("-10")

    closed_again = client.post(f"/shifts/{shift_id}/close", json={"actual_cash": "140"}, headers=HEADERS)
    assert closed_again.status_code == 409


def test_health_and_metrics(client: TestClient) -> None:
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"

    cash = _account(client, "1000", "Cash", "asset")
    revenue = _account(client, "4000", "Sales", "revenue")
    client.post(
        "/ledger/journal-entries",
        json={
            "entry_date": "2026-09-03",
            "description": "Sale",
            "lines": [
                {"account_id": cash["id"], "debit": "10"},
                {"account_id": revenue["id"], "credit": "10"},
            ],
        },
        headers=HEADERS,
    )

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    body = metrics.text
    assert "http_requests_total" in body
    assert "ledger_entries_posted_count" in body
    assert 'path="/health"' in body


def test_metrics_disabled_returns_not_found(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_ENABLED", "false")
    get_settings.cache_clear()

    assert client.get("/metrics").status_code == 404


def test_correlation_id_echoed_in_response_header(client: TestClient) -> None:
    provided = client.get("/health", headers={"X-Correlation-Id": "abc-123"})
    assert provided.headers.get("x-correlation-id") == "abc-123"

    generated = client.get("/health")
    assert generated.headers.get("x-correlation-id")
