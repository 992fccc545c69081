from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


ShiftStatus = Literal["open", "closed"]


class ShiftOpen(BaseModel):
    start_balance: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    notes: str | None = None


class ShiftClose(BaseModel):
    actual_cash: Decimal = Field(ge=Decimal("0"))
    notes: str | None = None


class ShiftRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: str
    user_id: str
    shift_number: str
    start_time: datetime
    end_time: datetime | None
    start_balance: Decimal
    end_balance: Decimal | None
    system_cash_balance: Decimal | None
    system_visa_balance: Decimal | None
    system_unpaid_balance: Decimal | None
    cash_variance: Decimal | None
    status: ShiftStatus
    notes: str | None


class ShiftSummaryRead(BaseModel):
    shift_id: int
    shift_number: str
    status: ShiftStatus
    start_balance: Decimal
    cash_sales: Decimal
    visa_sales: Decimal
    unpaid_sales: Decimal
    receipts: Decimal
    payments: Decimal
    net_cash_movement: Decimal
    expected_cash: Decimal


class ShiftCloseRead(BaseModel):
    shift: ShiftRead
    summary: ShiftSummaryRead
    expected_cash: Decimal
    actual_cash: Decimal
    variance: Decimal
