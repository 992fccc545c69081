from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ledgercore import actions
from ledgercore.api.deps import get_tenant_context, unwrap
from ledgercore.core.context import TenantContext
from ledgercore.core.database import get_db
from ledgercore.ledger.schemas import JournalEntryCreate, JournalEntryRead, JournalEntryReverseRequest


router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.post("/journal-entries", response_model=JournalEntryRead, status_code=status.HTTP_201_CREATED)
def create_journal_entry(
    payload: JournalEntryCreate,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> JournalEntryRead:
    return unwrap(actions.create_journal_entry(db, ctx, payload))


@router.post("/journal-entries/{entry_id}/post", response_model=JournalEntryRead)
def post_journal_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> JournalEntryRead:
    return unwrap(actions.post_entry(db, ctx, entry_id))


@router.post("/journal-entries/{entry_id}/reverse", response_model=JournalEntryRead, status_code=status.HTTP_201_CREATED)
def reverse_journal_entry(
    entry_id: int,
    payload: JournalEntryReverseRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> JournalEntryRead:
    return unwrap(actions.reverse_entry(db, ctx, entry_id, payload))


@router.get("/journal-entries/{entry_id}", response_model=JournalEntryRead)
def get_journal_entry(
    entry_id: int,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> JournalEntryRead:
    return unwrap(actions.get_entry(db, ctx, entry_id))


@router.get("/journal-entries", response_model=list[JournalEntryRead])
def list_journal_entries(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    source_type: str | None = Query(default=None),
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> list[JournalEntryRead]:
    return unwrap(actions.list_entries(db, ctx, start_date=start_date, end_date=end_date, source_type=source_type))
