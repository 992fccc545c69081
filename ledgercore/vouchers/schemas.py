from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


VoucherType = Literal["receipt", "payment"]
VoucherPartyType = Literal["customer", "supplier", "other"]


class VoucherCreate(BaseModel):
    type: VoucherType
    amount: Decimal = Field(gt=Decimal("0"))
    voucher_date: date
    party_type: VoucherPartyType
    party_id: int | None = None
    account_id: int | None = None
    description: str | None = None
    reference: str | None = None
    shift_id: int | None = None


class VoucherRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: str
    voucher_number: str
    type: VoucherType
    amount: Decimal
    voucher_date: date
    description: str | None
    reference: str | None
    party_type: VoucherPartyType
    party_id: int | None
    account_id: int | None
    shift_id: int | None
    journal_entry_id: int
    created_by: str
    created_at: datetime
