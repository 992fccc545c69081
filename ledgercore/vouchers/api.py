from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ledgercore import actions
from ledgercore.api.deps import get_tenant_context, unwrap
from ledgercore.core.context import TenantContext
from ledgercore.core.database import get_db
from ledgercore.vouchers.schemas import VoucherCreate, VoucherPartyType, VoucherRead


router = APIRouter(prefix="/vouchers", tags=["vouchers"])


@router.post("", response_model=VoucherRead, status_code=status.HTTP_201_CREATED)
def post_voucher(
    payload: VoucherCreate,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> VoucherRead:
    return unwrap(actions.post_voucher(db, ctx, payload))


@router.get("", response_model=list[VoucherRead])
def list_vouchers(
    party_type: VoucherPartyType | None = Query(default=None),
    party_id: int | None = Query(default=None),
    shift_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> list[VoucherRead]:
    return unwrap(actions.list_vouchers(db, ctx, party_type=party_type, party_id=party_id, shift_id=shift_id))


@router.get("/{voucher_id}", response_model=VoucherRead)
def get_voucher(
    voucher_id: int,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> VoucherRead:
    return unwrap(actions.get_voucher(db, ctx, voucher_id))
