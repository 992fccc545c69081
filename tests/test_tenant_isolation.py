from __future__ import annotations

from collections.abc import Generator
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgercore import models  # noqa: F401
from ledgercore.accounts.service import ChartOfAccountsService
from ledgercore.core.context import TenantContext
from ledgercore.core.database import Base
from ledgercore.core.errors import NotFoundError
from ledgercore.installments.service import InstallmentService
from ledgercore.ledger.schemas import JournalEntryCreate, JournalEntryReverseRequest
from ledgercore.ledger.service import LedgerService
from ledgercore.parties.models import Customer
from ledgercore.vouchers.schemas import VoucherCreate
from ledgercore.vouchers.service import VoucherService


TENANT_A = TenantContext(tenant_id="tenant-a", user_id="u1")
TENANT_B = TenantContext(tenant_id="tenant-b", user_id="u2")


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


def _post_sale(session: Session, ctx: TenantContext) -> int:
    accounts = ChartOfAccountsService()
    cash = accounts.resolve_or_create_role_account(session, ctx, "CASH")
    revenue = accounts.resolve_or_create_role_account(session, ctx, "REVENUE")
    session.commit()
    entry = LedgerService().create_journal_entry(
        session,
        ctx,
        JournalEntryCreate.model_validate(
            {
                "entry_date": "2026-07-01",
                "description": "Counter sale",
                "lines": [
                    {"account_id": cash.id, "debit": "60"},
                    {"account_id": revenue.id, "credit": "60"},
                ],
            }
        ),
    )
    return entry.id


def test_each_tenant_numbers_its_own_documents(db_session: Session) -> None:
    _post_sale(db_session, TENANT_A)
    _post_sale(db_session, TENANT_A)
    first_b = _post_sale(db_session, TENANT_B)

    assert LedgerService().get_entry(db_session, TENANT_B, first_b).entry_number == "JE-000001"
    assert [item.entry_number for item in LedgerService().list_entries(db_session, TENANT_A)] == [
        "JE-000002",
        "JE-000001",
    ]


def test_entries_of_other_tenant_are_invisible(db_session: Session) -> None:
    entry_id = _post_sale(db_session, TENANT_A)
    service = LedgerService()

    with pytest.raises(NotFoundError):
        service.get_entry(db_session, TENANT_B, entry_id)
    with pytest.raises(NotFoundError):
        service.post_entry(db_session, TENANT_B, entry_id)
    with pytest.raises(NotFoundError):
        service.reverse_entry(db_session, TENANT_B, entry_id, JournalEntryReverseRequest(reason="not mine"))
    assert service.list_entries(db_session, TENANT_B) == []


def test_accounts_and_roles_are_per_tenant(db_session: Session) -> None:
    accounts = ChartOfAccountsService()
    cash_a = accounts.resolve_or_create_role_account(db_session, TENANT_A, "CASH")
    db_session.commit()

    with pytest.raises(NotFoundError):
        accounts.get_account(db_session, TENANT_B, cash_a.id)
    with pytest.raises(NotFoundError):
        accounts.assign_role_account(db_session, TENANT_B, "CASH", cash_a.id)
    with pytest.raises(NotFoundError):
        accounts.delete_account(db_session, TENANT_B, cash_a.id)
    assert accounts.list_accounts(db_session, TENANT_B) == []
    assert accounts.list_role_mappings(db_session, TENANT_B) == []


def test_vouchers_and_installments_are_per_tenant(db_session: Session) -> None:
    customer = Customer(tenant_id="tenant-a", name="Yara")
    db_session.add(customer)
    db_session.commit()
    voucher = VoucherService().post_voucher(
        db_session,
        TENANT_A,
        VoucherCreate(type="receipt", amount=Decimal("30"), voucher_date=date(2026, 7, 2), party_type="customer", party_id=customer.id),
    )

    with pytest.raises(NotFoundError):
        VoucherService().get_voucher(db_session, TENANT_B, voucher.id)
    with pytest.raises(NotFoundError):
        VoucherService().post_voucher(
            db_session,
            TENANT_B,
            VoucherCreate(type="receipt", amount=Decimal("30"), voucher_date=date(2026, 7, 2), party_type="customer", party_id=customer.id),
        )
    assert VoucherService().list_vouchers(db_session, TENANT_B) == []
    assert InstallmentService().list_installments(db_session, TENANT_B) == []
    with pytest.raises(NotFoundError):
        InstallmentService().pay_installment(db_session, TENANT_B, 1, date(2026, 7, 3))
