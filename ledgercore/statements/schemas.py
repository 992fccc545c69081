from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from ledgercore.accounts.schemas import PartyType


NormalSide = Literal["debit", "credit"]


class AccountSubject(BaseModel):
    kind: Literal["account"] = "account"
    account_id: int


class PartySubject(BaseModel):
    kind: Literal["party"] = "party"
    party_type: PartyType
    party_id: int


StatementSubject = Annotated[AccountSubject | PartySubject, Field(discriminator="kind")]


class StatementQuery(BaseModel):
    subject: StatementSubject
    start_date: date | None = None
    end_date: date | None = None


class StatementRow(BaseModel):
    entry_date: date
    source: str
    source_id: int
    reference: str | None = None
    description: str | None = None
    debit: Decimal
    credit: Decimal
    balance: Decimal


class StatementRead(BaseModel):
    subject_type: Literal["account", "customer", "supplier"]
    subject_id: int
    name: str
    normal_side: NormalSide
    start_date: date | None
    end_date: date | None
    opening_balance: Decimal
    total_debit: Decimal
    total_credit: Decimal
    net_balance: Decimal
    closing_balance: Decimal
    rows: list[StatementRow]


class IncomeStatementLine(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    amount: Decimal


class IncomeStatementRead(BaseModel):
    start_date: date
    end_date: date
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    revenue_details: list[IncomeStatementLine]
    expense_details: list[IncomeStatementLine]
