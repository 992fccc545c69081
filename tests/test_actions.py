from __future__ import annotations

from collections.abc import Generator
from datetime import date

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgercore import actions, models  # noqa: F401
from ledgercore.accounts.models import Account
from ledgercore.core.context import TenantContext
from ledgercore.core.database import Base
from ledgercore.core.errors import InfrastructureError


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


@pytest.fixture()
def ctx() -> TenantContext:
    return TenantContext(tenant_id="tenant-a", user_id="u1")


def test_successful_action_returns_data(db_session: Session, ctx: TenantContext) -> None:
    result = actions.create_account(db_session, ctx, {"code": "1100", "name": "Bank", "type": "asset"})

    assert result.success is True
    assert result.error is None
    assert result.data is not None
    assert result.data.code == "1100"


def test_business_failures_map_to_error_kinds(db_session: Session, ctx: TenantContext) -> None:
    actions.create_account(db_session, ctx, {"code": "1100", "name": "Bank", "type": "asset"})

    duplicate = actions.create_account(db_session, ctx, {"code": "1100", "name": "Bank 2", "type": "asset"})
    missing = actions.get_account(db_session, ctx, 404)
    malformed = actions.create_account(db_session, ctx, {"code": "1200", "name": "Bad", "type": "gold"})

    assert (duplicate.success, duplicate.error) == (False, "conflict")
    assert (missing.success, missing.error) == (False, "not_found")
    assert (malformed.success, malformed.error) == (False, "validation")
    assert malformed.message is not None and "type" in malformed.message


def test_unbalanced_entry_is_a_validation_failure(db_session: Session, ctx: TenantContext) -> None:
    cash = actions.create_account(db_session, ctx, {"code": "1000", "name": "Cash", "type": "asset"}).data
    revenue = actions.create_account(db_session, ctx, {"code": "4000", "name": "Sales", "type": "revenue"}).data
    assert cash is not None and revenue is not None

    result = actions.create_journal_entry(
        db_session,
        ctx,
        {
            "entry_date": "2026-08-01",
            "description": "Off by ten",
            "lines": [
                {"account_id": cash.id, "debit": "100"},
                {"account_id": revenue.id, "credit": "90"},
            ],
        },
    )

    assert result.success is False
    assert result.error == "validation"
    assert actions.list_entries(db_session, ctx).data == []


def test_statement_accepts_subject_as_mapping(db_session: Session, ctx: TenantContext) -> None:
    cash = actions.create_account(db_session, ctx, {"code": "1000", "name": "Cash", "type": "asset"}).data
    assert cash is not None

    result = actions.get_statement(db_session, ctx, {"kind": "account", "account_id": cash.id})
    bad_range = actions.get_statement(
        db_session,
        ctx,
        {"kind": "account", "account_id": cash.id},
        start_date=date(2026, 2, 1),
        end_date=date(2026, 1, 1),
    )
    unknown_kind = actions.get_statement(db_session, ctx, {"kind": "employee", "party_id": 1})

    assert result.success is True
    assert result.data is not None and result.data.rows == []
    assert bad_range.error == "validation"
    assert unknown_kind.error == "validation"


def test_storage_fault_raises_and_rolls_back(db_session: Session, ctx: TenantContext, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_commit() -> None:
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    with pytest.raises(InfrastructureError):
        actions.create_account(db_session, ctx, {"code": "1100", "name": "Bank", "type": "asset"})

    monkeypatch.undo()
    assert db_session.scalar(select(func.count()).select_from(Account)) == 0


def test_active_shift_is_none_when_nothing_open(db_session: Session, ctx: TenantContext) -> None:
    result = actions.get_active_shift(db_session, ctx)

    assert result.success is True
    assert result.data is None


def test_income_statement_action_reports_validation_kind(db_session: Session, ctx: TenantContext) -> None:
    empty = actions.get_income_statement(db_session, ctx, start_date=date(2026, 1, 1), end_date=date(2026, 1, 31))
    inverted = actions.get_income_statement(db_session, ctx, start_date=date(2026, 2, 1), end_date=date(2026, 1, 1))

    assert empty.success is True
    assert empty.data is not None and empty.data.net_profit == 0
    assert inverted.error == "validation"
