from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


InstallmentStatus = Literal["pending", "partially_paid", "paid"]


class InstallmentPlanCreate(BaseModel):
    invoice_id: int
    down_payment: Decimal = Decimal("0")
    count: int
    interest_rate: Decimal = Decimal("0")
    start_date: date
    period_months: int | None = None
    notes: str | None = None


class InstallmentPayRequest(BaseModel):
    payment_date: date


class InstallmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: str
    customer_id: int
    invoice_id: int
    sequence: int
    due_date: date
    amount: Decimal
    amount_paid: Decimal
    status: InstallmentStatus
    paid_date: date | None
    journal_entry_id: int | None
    notes: str | None
    created_at: datetime
    is_overdue: bool = False


class InstallmentPlanRead(BaseModel):
    invoice_id: int
    customer_id: int
    financed_amount: Decimal
    installments: list[InstallmentRead] = Field(default_factory=list)
