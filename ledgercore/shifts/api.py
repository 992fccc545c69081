from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ledgercore import actions
from ledgercore.api.deps import get_tenant_context, unwrap
from ledgercore.core.context import TenantContext
from ledgercore.core.database import get_db
from ledgercore.shifts.schemas import ShiftClose, ShiftCloseRead, ShiftOpen, ShiftRead, ShiftSummaryRead


router = APIRouter(prefix="/shifts", tags=["shifts"])


@router.post("", response_model=ShiftRead, status_code=status.HTTP_201_CREATED)
def open_shift(
    payload: ShiftOpen,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> ShiftRead:
    return unwrap(actions.open_shift(db, ctx, payload))


@router.get("/active", response_model=ShiftRead)
def get_active_shift(
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> ShiftRead:
    shift = unwrap(actions.get_active_shift(db, ctx))
    if shift is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="no open shift")
    return shift


@router.get("/{shift_id}/summary", response_model=ShiftSummaryRead)
def get_shift_summary(
    shift_id: int,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> ShiftSummaryRead:
    return unwrap(actions.get_shift_summary(db, ctx, shift_id))


@router.post("/{shift_id}/close", response_model=ShiftCloseRead)
def close_shift(
    shift_id: int,
    payload: ShiftClose,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> ShiftCloseRead:
    return unwrap(actions.close_shift(db, ctx, shift_id, payload))
