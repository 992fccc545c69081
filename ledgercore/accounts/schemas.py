from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


AccountType = Literal["asset", "liability", "equity", "revenue", "expense"]
AccountRole = Literal["CASH", "AR", "AP", "REVENUE", "EXPENSE"]
PartyType = Literal["customer", "supplier"]

DEBIT_NORMAL_TYPES = frozenset({"asset", "expense"})


class AccountCreate(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    type: AccountType
    parent_id: int | None = None
    opening_balance: Decimal = Decimal("0")


class AccountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: str
    code: str
    name: str
    type: AccountType
    parent_id: int | None
    party_type: str | None
    party_id: int | None
    opening_balance: Decimal
    is_active: bool
    created_at: datetime


class RoleAccountRequest(BaseModel):
    role: AccountRole
    name_hints: list[str] | None = None
    code_prefix: str | None = None
    account_type: AccountType | None = None


class RoleAssignRequest(BaseModel):
    role: AccountRole
    account_id: int


class RoleMappingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: AccountRole
    account_id: int
    version: int
    updated_at: datetime
