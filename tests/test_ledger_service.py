from __future__ import annotations

from collections.abc import Generator
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgercore import audit, events, models  # noqa: F401
from ledgercore.accounts.models import Account
from ledgercore.core.context import TenantContext
from ledgercore.core.database import Base
from ledgercore.core.errors import ConflictError, NotFoundError, ValidationError
from ledgercore.ledger.models import FiscalYear, JournalEntry, JournalLine
from ledgercore.ledger.schemas import JournalEntryCreate, JournalEntryReverseRequest
from ledgercore.ledger.service import LedgerService
from ledgercore.statements.schemas import AccountSubject
from ledgercore.statements.service import StatementService


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
def clear_stubs() -> Generator[None, None, None]:
    audit.audit_entries.clear()
    events.published_events.clear()
    yield
    audit.audit_entries.clear()
    events.published_events.clear()


@pytest.fixture()
def ctx() -> TenantContext:
    return TenantContext(tenant_id="tenant-a", user_id="u1", correlation_id="corr-1")


def _create_account(session: Session, tenant_id: str, code: str, account_type: str, *, is_active: bool = True) -> Account:
    account = Account(tenant_id=tenant_id, code=code, name=code, type=account_type, is_active=is_active)
    session.add(account)
    session.commit()
    return account


def _entry(lines: list[dict[str, object]], entry_date: str = "2026-02-25", **extra: object) -> JournalEntryCreate:
    return JournalEntryCreate.model_validate(
        {"entry_date": entry_date, "description": "Test entry", "lines": lines, **extra}
    )


def _entry_count(session: Session) -> int:
    return session.scalar(select(func.count()).select_from(JournalEntry)) or 0


def test_unbalanced_entry_is_rejected_and_nothing_persisted(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    revenue = _create_account(db_session, "tenant-a", "4000", "revenue")

    with pytest.raises(ValidationError):
        LedgerService().create_journal_entry(
            db_session,
            ctx,
            _entry([{"account_id": cash.id, "debit": "100"}, {"account_id": revenue.id, "credit": "90"}]),
        )

    assert _entry_count(db_session) == 0
    assert db_session.scalar(select(func.count()).select_from(JournalLine)) == 0
    assert not events.published_events


def test_one_cent_difference_is_rejected(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    revenue = _create_account(db_session, "tenant-a", "4000", "revenue")

    with pytest.raises(ValidationError):
        LedgerService().create_journal_entry(
            db_session,
            ctx,
            _entry([{"account_id": cash.id, "debit": "100"}, {"account_id": revenue.id, "credit": "99.99"}]),
        )

    assert _entry_count(db_session) == 0
    assert db_session.scalar(select(func.count()).select_from(JournalLine)) == 0


def test_amounts_equal_after_rounding_are_accepted(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    revenue = _create_account(db_session, "tenant-a", "4000", "revenue")

    posted = LedgerService().create_journal_entry(
        db_session,
        ctx,
        _entry([{"account_id": cash.id, "debit": "100.00"}, {"account_id": revenue.id, "credit": "99.995"}]),
    )
    assert posted.status == "posted"


def test_single_line_and_two_sided_lines_are_rejected(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    revenue = _create_account(db_session, "tenant-a", "4000", "revenue")
    service = LedgerService()

    with pytest.raises(ValidationError):
        service.create_journal_entry(db_session, ctx, _entry([{"account_id": cash.id, "debit": "10"}]))
    with pytest.raises(ValidationError):
        service.create_journal_entry(
            db_session,
            ctx,
            _entry(
                [
                    {"account_id": cash.id, "debit": "10", "credit": "10"},
                    {"account_id": revenue.id, "credit": "0"},
                ]
            ),
        )
    assert _entry_count(db_session) == 0


def test_cross_tenant_account_is_not_found(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    foreign = _create_account(db_session, "tenant-b", "4000", "revenue")

    with pytest.raises(NotFoundError):
        LedgerService().create_journal_entry(
            db_session,
            ctx,
            _entry([{"account_id": cash.id, "debit": "10"}, {"account_id": foreign.id, "credit": "10"}]),
        )
    assert _entry_count(db_session) == 0


def test_inactive_account_is_rejected(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    retired = _create_account(db_session, "tenant-a", "4999", "revenue", is_active=False)

    with pytest.raises(ValidationError):
        LedgerService().create_journal_entry(
            db_session,
            ctx,
            _entry([{"account_id": cash.id, "debit": "10"}, {"account_id": retired.id, "credit": "10"}]),
        )


def test_posted_entry_gets_number_fiscal_year_and_events(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    revenue = _create_account(db_session, "tenant-a", "4000", "revenue")
    service = LedgerService()

    first = service.create_journal_entry(
        db_session,
        ctx,
        _entry([{"account_id": cash.id, "debit": "100.005"}, {"account_id": revenue.id, "credit": "100.005"}]),
    )
    second = service.create_journal_entry(
        db_session,
        ctx,
        _entry([{"account_id": cash.id, "debit": "5"}, {"account_id": revenue.id, "credit": "5"}]),
    )

    assert first.entry_number == "JE-000001"
    assert second.entry_number == "JE-000002"
    assert first.posted_at is not None
    assert first.created_by == "u1"
    assert [line.debit for line in first.lines] == [Decimal("100.01"), Decimal("0.00")]

    fiscal_year = db_session.get(FiscalYear, first.fiscal_year_id)
    assert fiscal_year is not None
    assert fiscal_year.name == "2026"
    assert fiscal_year.start_date == date(2026, 1, 1)
    assert second.fiscal_year_id == first.fiscal_year_id

    posted_events = [item for item in events.published_events if item["event_type"] == "ledger.entry_posted"]
    assert len(posted_events) == 2
    assert posted_events[0]["correlation_id"] == "corr-1"
    assert any(entry["action"] == "ledger.posted" for entry in audit.audit_entries)


def test_closed_fiscal_year_rejects_entries(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    revenue = _create_account(db_session, "tenant-a", "4000", "revenue")
    closed = FiscalYear(
        tenant_id="tenant-a",
        name="2025",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        is_closed=True,
    )
    db_session.add(closed)
    db_session.commit()
    service = LedgerService()
    lines = [{"account_id": cash.id, "debit": "10"}, {"account_id": revenue.id, "credit": "10"}]

    with pytest.raises(ValidationError):
        service.create_journal_entry(db_session, ctx, _entry(lines, entry_date="2025-06-01"))
    with pytest.raises(ValidationError):
        service.create_journal_entry(db_session, ctx, _entry(lines, entry_date="2026-06-01", fiscal_year_id=closed.id))
    with pytest.raises(NotFoundError):
        service.create_journal_entry(db_session, ctx, _entry(lines, fiscal_year_id=9999))


def test_draft_entry_can_be_posted_once(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    revenue = _create_account(db_session, "tenant-a", "4000", "revenue")
    service = LedgerService()

    draft = service.create_journal_entry(
        db_session,
        ctx,
        _entry([{"account_id": cash.id, "debit": "20"}, {"account_id": revenue.id, "credit": "20"}], status="draft"),
    )
    assert draft.status == "draft"
    assert draft.posted_at is None

    posted = service.post_entry(db_session, ctx, draft.id)
    assert posted.status == "posted"
    assert posted.posted_at is not None

    with pytest.raises(ConflictError):
        service.post_entry(db_session, ctx, draft.id)


def test_reversal_nets_account_to_zero_and_cannot_repeat(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    revenue = _create_account(db_session, "tenant-a", "4000", "revenue")
    service = LedgerService()

    posted = service.create_journal_entry(
        db_session,
        ctx,
        _entry([{"account_id": cash.id, "debit": "75"}, {"account_id": revenue.id, "credit": "75"}]),
    )
    reversal = service.reverse_entry(
        db_session,
        ctx,
        posted.id,
        JournalEntryReverseRequest(reason="wrong customer", entry_date=date(2026, 2, 26)),
    )

    assert reversal.reversal_of_id == posted.id
    assert reversal.source_type == "reversal"
    reversal_cash = next(line for line in reversal.lines if line.account_id == cash.id)
    assert reversal_cash.credit == Decimal("75.00")
    assert reversal_cash.debit == Decimal("0.00")

    statement = StatementService().get_statement(db_session, ctx, AccountSubject(account_id=cash.id))
    assert statement.closing_balance == Decimal("0.00")

    original = service.get_entry(db_session, ctx, posted.id)
    assert original.status == "posted"
    assert [line.debit for line in original.lines] == [Decimal("75.00"), Decimal("0.00")]

    with pytest.raises(ConflictError):
        service.reverse_entry(db_session, ctx, posted.id, JournalEntryReverseRequest(reason="again"))
    with pytest.raises(ConflictError):
        service.reverse_entry(db_session, ctx, reversal.id, JournalEntryReverseRequest(reason="undo undo"))
    assert any(item["event_type"] == "ledger.entry_reversed" for item in events.published_events)


def test_draft_cannot_be_reversed(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    revenue = _create_account(db_session, "tenant-a", "4000", "revenue")
    service = LedgerService()
    draft = service.create_journal_entry(
        db_session,
        ctx,
        _entry([{"account_id": cash.id, "debit": "5"}, {"account_id": revenue.id, "credit": "5"}], status="draft"),
    )

    with pytest.raises(ConflictError):
        service.reverse_entry(db_session, ctx, draft.id, JournalEntryReverseRequest(reason="nope"))


def test_list_entries_filters_by_date_and_source(db_session: Session, ctx: TenantContext) -> None:
    cash = _create_account(db_session, "tenant-a", "1000", "asset")
    revenue = _create_account(db_session, "tenant-a", "4000", "revenue")
    service = LedgerService()
    lines = [{"account_id": cash.id, "debit": "5"}, {"account_id": revenue.id, "credit": "5"}]

    service.create_journal_entry(db_session, ctx, _entry(lines, entry_date="2026-01-10"))
    service.create_journal_entry(db_session, ctx, _entry(lines, entry_date="2026-02-10", source_type="manual"))
    service.create_journal_entry(db_session, ctx, _entry(lines, entry_date="2026-03-10"))

    february = service.list_entries(db_session, ctx, start_date=date(2026, 2, 1), end_date=date(2026, 2, 28))
    assert [item.entry_date for item in february] == [date(2026, 2, 10)]
    manual = service.list_entries(db_session, ctx, source_type="manual")
    assert len(manual) == 1
    everything = service.list_entries(db_session, ctx)
    assert [item.entry_date.month for item in everything] == [3, 2, 1]

    other_tenant = service.list_entries(db_session, TenantContext(tenant_id="tenant-b", user_id="u2"))
    assert other_tenant == []
