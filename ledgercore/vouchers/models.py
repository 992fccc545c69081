from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgercore.core.database import Base
from ledgercore.ledger.models import JournalEntry


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Voucher(Base):
    __tablename__ = "vouchers_voucher"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    voucher_number: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    voucher_date: Mapped[date] = mapped_column(Date(), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference: Mapped[str | None] = mapped_column(String(128), nullable=True)
    party_type: Mapped[str] = mapped_column(String(16), nullable=False)
    party_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    account_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("accounts_account.id"), nullable=True)
    shift_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("shifts_shift.id"), nullable=True)
    journal_entry_id: Mapped[int] = mapped_column(Integer, ForeignKey("ledger_journal_entry.id"), nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    journal_entry: Mapped[JournalEntry] = relationship("JournalEntry")

    __table_args__ = (
        UniqueConstraint("tenant_id", "voucher_number", name="uq_vouchers_voucher_number"),
        Index("ix_vouchers_voucher_party", "tenant_id", "party_type", "party_id"),
        Index("ix_vouchers_voucher_shift", "shift_id"),
    )
