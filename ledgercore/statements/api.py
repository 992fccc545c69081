from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ledgercore import actions
from ledgercore.accounts.schemas import PartyType
from ledgercore.api.deps import get_tenant_context, unwrap
from ledgercore.core.context import TenantContext
from ledgercore.core.database import get_db
from ledgercore.statements.schemas import AccountSubject, IncomeStatementRead, PartySubject, StatementRead


router = APIRouter(prefix="/statements", tags=["statements"])


@router.get("/accounts/{account_id}", response_model=StatementRead)
def account_statement(
    account_id: int,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> StatementRead:
    return unwrap(
        actions.get_statement(db, ctx, AccountSubject(account_id=account_id), start_date=start_date, end_date=end_date)
    )


@router.get("/parties/{party_type}/{party_id}", response_model=StatementRead)
def party_statement(
    party_type: PartyType,
    party_id: int,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> StatementRead:
    subject = PartySubject(party_type=party_type, party_id=party_id)
    return unwrap(actions.get_statement(db, ctx, subject, start_date=start_date, end_date=end_date))


@router.get("/income", response_model=IncomeStatementRead)
def income_statement(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> IncomeStatementRead:
    return unwrap(actions.get_income_statement(db, ctx, start_date=start_date, end_date=end_date))
