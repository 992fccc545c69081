"""In-process entry points for collaborators.

Every function takes a ``Session`` and a ``TenantContext`` and returns an
``ActionResult``. Business failures come back as ``success=False`` with the
error kind; storage faults raise ``InfrastructureError``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgercore.accounts.schemas import AccountCreate, AccountRead, AccountRole, RoleMappingRead
from ledgercore.accounts.service import chart_of_accounts_service
from ledgercore.core.context import TenantContext
from ledgercore.core.errors import InfrastructureError, LedgerError
from ledgercore.installments.schemas import InstallmentPlanCreate, InstallmentPlanRead, InstallmentRead
from ledgercore.installments.service import installment_service, is_overdue
from ledgercore.ledger.schemas import JournalEntryCreate, JournalEntryRead, JournalEntryReverseRequest
from ledgercore.ledger.service import ledger_service
from ledgercore.shifts.schemas import ShiftClose, ShiftCloseRead, ShiftOpen, ShiftRead, ShiftSummaryRead
from ledgercore.shifts.service import shift_service
from ledgercore.statements.schemas import (
    AccountSubject,
    IncomeStatementRead,
    PartySubject,
    StatementQuery,
    StatementRead,
)
from ledgercore.statements.service import statement_service
from ledgercore.vouchers.schemas import VoucherCreate, VoucherRead
from ledgercore.vouchers.service import voucher_service


logger = logging.getLogger("ledgercore.actions")

DataT = TypeVar("DataT")
ModelT = TypeVar("ModelT", bound=BaseModel)


class ActionResult(BaseModel, Generic[DataT]):
    success: bool
    data: DataT | None = None
    message: str | None = None
    error: str | None = None


def _parse(model: type[ModelT], payload: ModelT | dict[str, Any]) -> ModelT:
    if isinstance(payload, model):
        return payload
    return model.model_validate(payload)


def _run(operation: str, ctx: TenantContext, call: Callable[[], DataT]) -> ActionResult[DataT]:
    try:
        data = call()
    except InfrastructureError:
        raise
    except LedgerError as exc:
        logger.info(
            "action.rejected",
            extra={"operation": operation, "tenant_id": ctx.tenant_id, "reason": exc.kind, "error": exc.message},
        )
        return ActionResult(success=False, message=exc.message, error=exc.kind)
    except PydanticValidationError as exc:
        message = "; ".join(
            f"{'.'.join(str(part) for part in item['loc'])}: {item['msg']}" for item in exc.errors()
        )
        logger.info(
            "action.rejected",
            extra={"operation": operation, "tenant_id": ctx.tenant_id, "reason": "validation", "error": message},
        )
        return ActionResult(success=False, message=message, error="validation")
    except IntegrityError as exc:
        logger.warning(
            "action.conflict",
            extra={"operation": operation, "tenant_id": ctx.tenant_id, "reason": "conflict", "error": str(exc.orig)},
        )
        return ActionResult(success=False, message="concurrent write conflict", error="conflict")
    return ActionResult(success=True, data=data)


def create_account(session: Session, ctx: TenantContext, payload: AccountCreate | dict[str, Any]) -> ActionResult[AccountRead]:
    return _run(
        "create_account",
        ctx,
        lambda: chart_of_accounts_service.create_account(session, ctx, _parse(AccountCreate, payload)),
    )


def list_accounts(session: Session, ctx: TenantContext) -> ActionResult[list[AccountRead]]:
    return _run("list_accounts", ctx, lambda: chart_of_accounts_service.list_accounts(session, ctx))


def get_account(session: Session, ctx: TenantContext, account_id: int) -> ActionResult[AccountRead]:
    return _run("get_account", ctx, lambda: chart_of_accounts_service.get_account(session, ctx, account_id))


def delete_account(session: Session, ctx: TenantContext, account_id: int) -> ActionResult[None]:
    return _run("delete_account", ctx, lambda: chart_of_accounts_service.delete_account(session, ctx, account_id))


def seed_default_accounts(session: Session, ctx: TenantContext) -> ActionResult[list[AccountRead]]:
    return _run("seed_default_accounts", ctx, lambda: chart_of_accounts_service.seed_default_accounts(session, ctx))


def resolve_or_create_role_account(
    session: Session,
    ctx: TenantContext,
    role: AccountRole,
    *,
    name_hints: list[str] | None = None,
    code_prefix: str | None = None,
    account_type: str | None = None,
) -> ActionResult[AccountRead]:
    return _run(
        "resolve_or_create_role_account",
        ctx,
        lambda: AccountRead.model_validate(
            chart_of_accounts_service.resolve_or_create_role_account(
                session,
                ctx,
                role,
                name_hints=name_hints,
                code_prefix=code_prefix,
                account_type=account_type,
            )
        ),
    )


def assign_role_account(session: Session, ctx: TenantContext, role: AccountRole, account_id: int) -> ActionResult[RoleMappingRead]:
    return _run(
        "assign_role_account",
        ctx,
        lambda: chart_of_accounts_service.assign_role_account(session, ctx, role, account_id),
    )


def list_role_mappings(session: Session, ctx: TenantContext) -> ActionResult[list[RoleMappingRead]]:
    return _run("list_role_mappings", ctx, lambda: chart_of_accounts_service.list_role_mappings(session, ctx))


def resolve_or_create_party_account(
    session: Session,
    ctx: TenantContext,
    party_type: str,
    party_id: int,
) -> ActionResult[AccountRead]:
    return _run(
        "resolve_or_create_party_account",
        ctx,
        lambda: AccountRead.model_validate(
            chart_of_accounts_service.resolve_or_create_party_account(session, ctx, party_type, party_id)
        ),
    )


def create_journal_entry(
    session: Session,
    ctx: TenantContext,
    payload: JournalEntryCreate | dict[str, Any],
) -> ActionResult[JournalEntryRead]:
    return _run(
        "create_journal_entry",
        ctx,
        lambda: ledger_service.create_journal_entry(session, ctx, _parse(JournalEntryCreate, payload)),
    )


def post_entry(session: Session, ctx: TenantContext, entry_id: int) -> ActionResult[JournalEntryRead]:
    return _run("post_entry", ctx, lambda: ledger_service.post_entry(session, ctx, entry_id))


def reverse_entry(
    session: Session,
    ctx: TenantContext,
    entry_id: int,
    payload: JournalEntryReverseRequest | dict[str, Any],
) -> ActionResult[JournalEntryRead]:
    return _run(
        "reverse_entry",
        ctx,
        lambda: ledger_service.reverse_entry(session, ctx, entry_id, _parse(JournalEntryReverseRequest, payload)),
    )


def get_entry(session: Session, ctx: TenantContext, entry_id: int) -> ActionResult[JournalEntryRead]:
    return _run("get_entry", ctx, lambda: ledger_service.get_entry(session, ctx, entry_id))


def list_entries(
    session: Session,
    ctx: TenantContext,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    source_type: str | None = None,
) -> ActionResult[list[JournalEntryRead]]:
    return _run(
        "list_entries",
        ctx,
        lambda: ledger_service.list_entries(
            session,
            ctx,
            start_date=start_date,
            end_date=end_date,
            source_type=source_type,
        ),
    )


def post_voucher(session: Session, ctx: TenantContext, payload: VoucherCreate | dict[str, Any]) -> ActionResult[VoucherRead]:
    return _run("post_voucher", ctx, lambda: voucher_service.post_voucher(session, ctx, _parse(VoucherCreate, payload)))


def get_voucher(session: Session, ctx: TenantContext, voucher_id: int) -> ActionResult[VoucherRead]:
    return _run("get_voucher", ctx, lambda: voucher_service.get_voucher(session, ctx, voucher_id))


def list_vouchers(
    session: Session,
    ctx: TenantContext,
    *,
    party_type: str | None = None,
    party_id: int | None = None,
    shift_id: int | None = None,
) -> ActionResult[list[VoucherRead]]:
    return _run(
        "list_vouchers",
        ctx,
        lambda: voucher_service.list_vouchers(session, ctx, party_type=party_type, party_id=party_id, shift_id=shift_id),
    )


def get_statement(
    session: Session,
    ctx: TenantContext,
    subject: AccountSubject | PartySubject | dict[str, Any],
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> ActionResult[StatementRead]:
    def call() -> StatementRead:
        query = StatementQuery.model_validate({"subject": subject, "start_date": start_date, "end_date": end_date})
        return statement_service.get_statement(
            session,
            ctx,
            query.subject,
            start_date=query.start_date,
            end_date=query.end_date,
        )

    return _run("get_statement", ctx, call)


def get_income_statement(
    session: Session,
    ctx: TenantContext,
    *,
    start_date: date,
    end_date: date,
) -> ActionResult[IncomeStatementRead]:
    return _run(
        "get_income_statement",
        ctx,
        lambda: statement_service.get_income_statement(session, ctx, start_date=start_date, end_date=end_date),
    )


def create_plan(
    session: Session,
    ctx: TenantContext,
    payload: InstallmentPlanCreate | dict[str, Any],
) -> ActionResult[InstallmentPlanRead]:
    return _run(
        "create_plan",
        ctx,
        lambda: installment_service.create_plan(session, ctx, _parse(InstallmentPlanCreate, payload)),
    )


def pay_installment(session: Session, ctx: TenantContext, installment_id: int, payment_date: date) -> ActionResult[InstallmentRead]:
    return _run(
        "pay_installment",
        ctx,
        lambda: installment_service.pay_installment(session, ctx, installment_id, payment_date),
    )


def list_installments(
    session: Session,
    ctx: TenantContext,
    *,
    customer_id: int | None = None,
    status: str | None = None,
    as_of: date | None = None,
) -> ActionResult[list[InstallmentRead]]:
    return _run(
        "list_installments",
        ctx,
        lambda: installment_service.list_installments(session, ctx, customer_id=customer_id, status=status, as_of=as_of),
    )


def open_shift(session: Session, ctx: TenantContext, payload: ShiftOpen | dict[str, Any]) -> ActionResult[ShiftRead]:
    return _run("open_shift", ctx, lambda: shift_service.open_shift(session, ctx, _parse(ShiftOpen, payload)))


def get_active_shift(session: Session, ctx: TenantContext) -> ActionResult[ShiftRead]:
    return _run("get_active_shift", ctx, lambda: shift_service.get_active_shift(session, ctx))


def get_shift_summary(session: Session, ctx: TenantContext, shift_id: int) -> ActionResult[ShiftSummaryRead]:
    return _run("get_shift_summary", ctx, lambda: shift_service.get_shift_summary(session, ctx, shift_id))


def close_shift(
    session: Session,
    ctx: TenantContext,
    shift_id: int,
    payload: ShiftClose | dict[str, Any],
) -> ActionResult[ShiftCloseRead]:
    return _run(
        "close_shift",
        ctx,
        lambda: shift_service.close_shift(session, ctx, shift_id, _parse(ShiftClose, payload)),
    )


__all__ = [
    "ActionResult",
    "assign_role_account",
    "close_shift",
    "create_account",
    "create_journal_entry",
    "create_plan",
    "delete_account",
    "get_account",
    "get_active_shift",
    "get_entry",
    "get_income_statement",
    "get_shift_summary",
    "get_statement",
    "get_voucher",
    "is_overdue",
    "list_accounts",
    "list_entries",
    "list_installments",
    "list_role_mappings",
    "list_vouchers",
    "open_shift",
    "pay_installment",
    "post_entry",
    "post_voucher",
    "resolve_or_create_party_account",
    "resolve_or_create_role_account",
    "reverse_entry",
    "seed_default_accounts",
]
