from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledgercore.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Installment(Base):
    __tablename__ = "installments_installment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    customer_id: Mapped[int] = mapped_column(Integer, ForeignKey("parties_customer.id"), nullable=False)
    invoice_id: Mapped[int] = mapped_column(Integer, ForeignKey("invoicing_invoice.id"), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date] = mapped_column(Date(), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=Decimal("0"), server_default="0")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", server_default="pending")
    paid_date: Mapped[date | None] = mapped_column(Date(), nullable=True)
    journal_entry_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("ledger_journal_entry.id"), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("invoice_id", "sequence", name="uq_installments_installment_sequence"),
        CheckConstraint("amount >= 0", name="ck_installments_installment_amount_nonnegative"),
        Index("ix_installments_installment_customer", "tenant_id", "customer_id"),
        Index("ix_installments_installment_due", "tenant_id", "due_date"),
    )
