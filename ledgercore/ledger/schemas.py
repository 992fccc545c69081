from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


EntryStatus = Literal["draft", "posted"]


class JournalLineInput(BaseModel):
    account_id: int
    debit: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    credit: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))
    description: str | None = None


class JournalEntryCreate(BaseModel):
    entry_date: date
    description: str = Field(min_length=1)
    reference: str | None = None
    fiscal_year_id: int | None = None
    status: EntryStatus = "posted"
    source_type: str | None = None
    source_id: str | None = None
    lines: list[JournalLineInput]


class JournalEntryReverseRequest(BaseModel):
    reason: str = Field(min_length=1)
    entry_date: date | None = None


class JournalLineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    journal_entry_id: int
    account_id: int
    debit: Decimal
    credit: Decimal
    description: str | None


class JournalEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: str
    fiscal_year_id: int
    entry_number: str
    entry_date: date
    description: str
    reference: str | None
    status: EntryStatus
    source_type: str | None
    source_id: str | None
    reversal_of_id: int | None
    created_by: str
    created_at: datetime
    posted_at: datetime | None
    lines: list[JournalLineRead] = Field(default_factory=list)
