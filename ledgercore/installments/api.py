from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ledgercore import actions
from ledgercore.api.deps import get_tenant_context, unwrap
from ledgercore.core.context import TenantContext
from ledgercore.core.database import get_db
from ledgercore.installments.schemas import (
    InstallmentPayRequest,
    InstallmentPlanCreate,
    InstallmentPlanRead,
    InstallmentRead,
    InstallmentStatus,
)


router = APIRouter(prefix="/installments", tags=["installments"])


@router.post("/plans", response_model=InstallmentPlanRead, status_code=status.HTTP_201_CREATED)
def create_plan(
    payload: InstallmentPlanCreate,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> InstallmentPlanRead:
    return unwrap(actions.create_plan(db, ctx, payload))


@router.post("/{installment_id}/pay", response_model=InstallmentRead)
def pay_installment(
    installment_id: int,
    payload: InstallmentPayRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> InstallmentRead:
    return unwrap(actions.pay_installment(db, ctx, installment_id, payload.payment_date))


@router.get("", response_model=list[InstallmentRead])
def list_installments(
    customer_id: int | None = Query(default=None),
    status_filter: InstallmentStatus | None = Query(default=None, alias="status"),
    as_of: date | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> list[InstallmentRead]:
    return unwrap(actions.list_installments(db, ctx, customer_id=customer_id, status=status_filter, as_of=as_of))
