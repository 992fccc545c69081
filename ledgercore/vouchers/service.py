from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from ledgercore import audit, events
from ledgercore.accounts.models import Account
from ledgercore.accounts.repository import AccountRepository
from ledgercore.accounts.service import chart_of_accounts_service
from ledgercore.core.context import TenantContext
from ledgercore.core.database import atomic, on_commit
from ledgercore.core.errors import ConflictError, NotFoundError, ValidationError
from ledgercore.core.money import q
from ledgercore.core.sequences import next_number
from ledgercore.ledger.schemas import JournalEntryCreate, JournalLineInput
from ledgercore.ledger.service import ledger_service
from ledgercore.metrics import observe_voucher_posted
from ledgercore.shifts.repository import ShiftRepository
from ledgercore.vouchers.models import Voucher
from ledgercore.vouchers.repository import VoucherRepository
from ledgercore.vouchers.schemas import VoucherCreate, VoucherRead


logger = logging.getLogger("ledgercore.vouchers")

_NUMBER_PREFIX = {"receipt": "RV", "payment": "PV"}
_DEFAULT_DESCRIPTION = {"receipt": "Receipt voucher", "payment": "Payment voucher"}


@dataclass(slots=True)
class VoucherService:
    voucher_repository: VoucherRepository = VoucherRepository()
    account_repository: AccountRepository = AccountRepository()
    shift_repository: ShiftRepository = ShiftRepository()

    def post_voucher(self, session: Session, ctx: TenantContext, payload: VoucherCreate) -> VoucherRead:
        """Record a cash receipt or payment together with its journal entry.

        A receipt debits cash and credits the counter-account; a payment does
        the opposite. The voucher row and the entry commit or fail together.
        """

        amount = q(payload.amount)
        if amount <= 0:
            raise ValidationError("voucher amount must be positive")

        with atomic(session):
            if payload.shift_id is not None:
                shift = self.shift_repository.find(session, ctx, payload.shift_id, for_update=True)
                if shift is None:
                    raise NotFoundError("shift")
                if shift.status != "open":
                    raise ConflictError("shift is closed")

            counter_account = self._resolve_counter_account(session, ctx, payload)
            cash_account = chart_of_accounts_service.resolve_or_create_role_account(session, ctx, "CASH")
            if cash_account.id == counter_account.id:
                raise ValidationError("counter-account cannot be the cash account")

            voucher_number = next_number(session, ctx.tenant_id, f"voucher:{payload.type}", _NUMBER_PREFIX[payload.type])
            if payload.type == "receipt":
                debit_account, credit_account = cash_account, counter_account
            else:
                debit_account, credit_account = counter_account, cash_account

            description = payload.description or f"{_DEFAULT_DESCRIPTION[payload.type]} {voucher_number}"
            entry = ledger_service.record_entry(
                session,
                ctx,
                JournalEntryCreate(
                    entry_date=payload.voucher_date,
                    description=description,
                    reference=payload.reference or voucher_number,
                    status="posted",
                    source_type="voucher",
                    source_id=voucher_number,
                    lines=[
                        JournalLineInput(account_id=debit_account.id, debit=amount, description=description),
                        JournalLineInput(account_id=credit_account.id, credit=amount, description=description),
                    ],
                ),
            )

            voucher = Voucher(
                tenant_id=ctx.tenant_id,
                voucher_number=voucher_number,
                type=payload.type,
                amount=amount,
                voucher_date=payload.voucher_date,
                description=payload.description,
                reference=payload.reference,
                party_type=payload.party_type,
                party_id=payload.party_id,
                account_id=counter_account.id,
                shift_id=payload.shift_id,
                journal_entry_id=entry.id,
                created_by=ctx.user_id,
            )
            session.add(voucher)
            session.flush()

            result = VoucherRead.model_validate(voucher)
            logger.info(
                "vouchers.posted",
                extra={
                    "tenant_id": ctx.tenant_id,
                    "voucher_id": voucher.id,
                    "entry_id": entry.id,
                    "shift_id": payload.shift_id,
                },
            )
            on_commit(session, lambda: self._published(ctx, result))
        return result

    def get_voucher(self, session: Session, ctx: TenantContext, voucher_id: int) -> VoucherRead:
        return VoucherRead.model_validate(self.voucher_repository.get(session, ctx, voucher_id))

    def list_vouchers(
        self,
        session: Session,
        ctx: TenantContext,
        *,
        party_type: str | None = None,
        party_id: int | None = None,
        shift_id: int | None = None,
    ) -> list[VoucherRead]:
        stmt = self.voucher_repository.query(ctx)
        if party_type is not None:
            stmt = stmt.where(Voucher.party_type == party_type)
        if party_id is not None:
            stmt = stmt.where(Voucher.party_id == party_id)
        if shift_id is not None:
            stmt = stmt.where(Voucher.shift_id == shift_id)
        rows = session.scalars(stmt.order_by(Voucher.voucher_date.asc(), Voucher.id.asc())).all()
        return [VoucherRead.model_validate(row) for row in rows]

    def _resolve_counter_account(self, session: Session, ctx: TenantContext, payload: VoucherCreate) -> Account:
        if payload.party_type in {"customer", "supplier"}:
            if payload.party_id is None:
                raise ValidationError(f"party_id is required for {payload.party_type} vouchers")
            return chart_of_accounts_service.resolve_or_create_party_account(
                session, ctx, payload.party_type, payload.party_id
            )

        if payload.account_id is None:
            raise ValidationError("account_id is required when party_type is other")
        account = self.account_repository.get(session, ctx, payload.account_id)
        if not account.is_active:
            raise ValidationError("account is inactive")
        return account

    def _published(self, ctx: TenantContext, voucher: VoucherRead) -> None:
        observe_voucher_posted(voucher.type)
        audit.record(
            tenant_id=ctx.tenant_id,
            actor_user_id=ctx.user_id,
            entity_type="vouchers.voucher",
            entity_id=str(voucher.id),
            action="vouchers.posted",
            before=None,
            after={
                "voucher_number": voucher.voucher_number,
                "type": voucher.type,
                "amount": str(voucher.amount),
                "journal_entry_id": voucher.journal_entry_id,
            },
            correlation_id=ctx.correlation_id,
        )
        events.publish(
            {
                "event_type": "voucher.posted",
                "tenant_id": ctx.tenant_id,
                "voucher_id": voucher.id,
                "voucher_number": voucher.voucher_number,
                "voucher_type": voucher.type,
                "amount": str(voucher.amount),
                "party_type": voucher.party_type,
                "party_id": voucher.party_id,
                "correlation_id": ctx.correlation_id,
            }
        )


voucher_service = VoucherService()
