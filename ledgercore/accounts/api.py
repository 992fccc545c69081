from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ledgercore import actions
from ledgercore.accounts.schemas import (
    AccountCreate,
    AccountRead,
    PartyType,
    RoleAccountRequest,
    RoleAssignRequest,
    RoleMappingRead,
)
from ledgercore.api.deps import get_tenant_context, unwrap
from ledgercore.core.context import TenantContext
from ledgercore.core.database import get_db


router = APIRouter(prefix="/accounts", tags=["accounts"])


@router.post("", response_model=AccountRead, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> AccountRead:
    return unwrap(actions.create_account(db, ctx, payload))


@router.get("", response_model=list[AccountRead])
def list_accounts(
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> list[AccountRead]:
    return unwrap(actions.list_accounts(db, ctx))


@router.post("/seed", response_model=list[AccountRead])
def seed_default_accounts(
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> list[AccountRead]:
    return unwrap(actions.seed_default_accounts(db, ctx))


@router.get("/roles", response_model=list[RoleMappingRead])
def list_role_mappings(
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> list[RoleMappingRead]:
    return unwrap(actions.list_role_mappings(db, ctx))


@router.post("/roles/resolve", response_model=AccountRead)
def resolve_role_account(
    payload: RoleAccountRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> AccountRead:
    return unwrap(
        actions.resolve_or_create_role_account(
            db,
            ctx,
            payload.role,
            name_hints=payload.name_hints,
            code_prefix=payload.code_prefix,
            account_type=payload.account_type,
        )
    )


@router.put("/roles", response_model=RoleMappingRead)
def assign_role_account(
    payload: RoleAssignRequest,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> RoleMappingRead:
    return unwrap(actions.assign_role_account(db, ctx, payload.role, payload.account_id))


@router.post("/parties/{party_type}/{party_id}", response_model=AccountRead)
def resolve_party_account(
    party_type: PartyType,
    party_id: int,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> AccountRead:
    return unwrap(actions.resolve_or_create_party_account(db, ctx, party_type, party_id))


@router.get("/{account_id}", response_model=AccountRead)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> AccountRead:
    return unwrap(actions.get_account(db, ctx, account_id))


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    ctx: TenantContext = Depends(get_tenant_context),
) -> Response:
    unwrap(actions.delete_account(db, ctx, account_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
