from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgercore.accounts.models import Account
from ledgercore.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FiscalYear(Base):
    __tablename__ = "ledger_fiscal_year"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    start_date: Mapped[date] = mapped_column(Date(), nullable=False)
    end_date: Mapped[date] = mapped_column(Date(), nullable=False)
    is_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_ledger_fiscal_year_name"),
        CheckConstraint("end_date >= start_date", name="ck_ledger_fiscal_year_range"),
    )


class JournalEntry(Base):
    __tablename__ = "ledger_journal_entry"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    fiscal_year_id: Mapped[int] = mapped_column(Integer, ForeignKey("ledger_fiscal_year.id"), nullable=False)
    entry_number: Mapped[str] = mapped_column(String(64), nullable=False)
    entry_date: Mapped[date] = mapped_column(Date(), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reference: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="posted", server_default="posted")
    source_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reversal_of_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("ledger_journal_entry.id"), nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    lines: Mapped[list[JournalLine]] = relationship(
        "JournalLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JournalLine.id",
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "entry_number", name="uq_ledger_journal_entry_number"),
        UniqueConstraint("reversal_of_id", name="uq_ledger_journal_entry_reversal"),
        Index("ix_ledger_entry_tenant_date", "tenant_id", "entry_date"),
        Index("ix_ledger_entry_source", "tenant_id", "source_type", "source_id"),
    )


class JournalLine(Base):
    __tablename__ = "ledger_journal_line"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    journal_entry_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("ledger_journal_entry.id", ondelete="CASCADE"),
        nullable=False,
    )
    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounts_account.id", ondelete="RESTRICT"),
        nullable=False,
    )
    debit: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=Decimal("0"), server_default="0")
    credit: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=Decimal("0"), server_default="0")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    entry: Mapped[JournalEntry] = relationship("JournalEntry", back_populates="lines")
    account: Mapped[Account] = relationship("Account")

    __table_args__ = (
        CheckConstraint("debit >= 0", name="ck_ledger_line_debit_nonnegative"),
        CheckConstraint("credit >= 0", name="ck_ledger_line_credit_nonnegative"),
        Index("ix_ledger_line_account", "account_id"),
        Index("ix_ledger_line_entry", "journal_entry_id"),
    )
