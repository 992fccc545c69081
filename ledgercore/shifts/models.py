from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from ledgercore.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Shift(Base):
    __tablename__ = "shifts_shift"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    shift_number: Mapped[str] = mapped_column(String(64), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    start_balance: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=Decimal("0"))
    end_balance: Mapped[Decimal | None] = mapped_column(Numeric(20, 2), nullable=True)
    system_cash_balance: Mapped[Decimal | None] = mapped_column(Numeric(20, 2), nullable=True)
    system_visa_balance: Mapped[Decimal | None] = mapped_column(Numeric(20, 2), nullable=True)
    system_unpaid_balance: Mapped[Decimal | None] = mapped_column(Numeric(20, 2), nullable=True)
    cash_variance: Mapped[Decimal | None] = mapped_column(Numeric(20, 2), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open", server_default="open")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "shift_number", name="uq_shifts_shift_number"),
        Index(
            "uq_shifts_shift_one_open_per_user",
            "tenant_id",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'open'"),
            postgresql_where=text("status = 'open'"),
        ),
        Index("ix_shifts_shift_tenant_user", "tenant_id", "user_id"),
    )
