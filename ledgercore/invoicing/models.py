from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgercore.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Invoice(Base):
    """Sales invoice header, written by the sales collaborator."""

    __tablename__ = "invoicing_invoice"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("parties_customer.id"), nullable=True)
    issue_date: Mapped[date] = mapped_column(Date(), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=Decimal("0"), server_default="0")
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default="paid", server_default="paid")
    payment_method: Mapped[str] = mapped_column(String(16), nullable=False, default="cash", server_default="cash")
    shift_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("shifts_shift.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_invoicing_invoice_customer", "tenant_id", "customer_id"),
        Index("ix_invoicing_invoice_shift", "shift_id"),
    )


class PurchaseInvoice(Base):
    """Supplier bill header, written by the purchasing collaborator."""

    __tablename__ = "invoicing_purchase_invoice"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    invoice_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    supplier_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("parties_supplier.id"), nullable=True)
    issue_date: Mapped[date] = mapped_column(Date(), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=Decimal("0"), server_default="0")
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default="unpaid", server_default="unpaid")
    shift_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("shifts_shift.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (Index("ix_invoicing_purchase_invoice_supplier", "tenant_id", "supplier_id"),)
