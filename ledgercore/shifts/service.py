from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgercore import audit, events
from ledgercore.core.context import TenantContext
from ledgercore.core.database import atomic, on_commit
from ledgercore.core.errors import ConflictError
from ledgercore.core.money import q
from ledgercore.core.sequences import next_number
from ledgercore.invoicing.models import Invoice
from ledgercore.metrics import observe_shift_closed
from ledgercore.shifts.models import Shift
from ledgercore.shifts.repository import ShiftRepository
from ledgercore.shifts.schemas import ShiftClose, ShiftCloseRead, ShiftOpen, ShiftRead, ShiftSummaryRead
from ledgercore.vouchers.models import Voucher


logger = logging.getLogger("ledgercore.shifts")


@dataclass(slots=True)
class ShiftService:
    shift_repository: ShiftRepository = ShiftRepository()

    def open_shift(self, session: Session, ctx: TenantContext, payload: ShiftOpen) -> ShiftRead:
        with atomic(session):
            if self._find_open(session, ctx) is not None:
                raise ConflictError("user already has an open shift")

            shift = Shift(
                tenant_id=ctx.tenant_id,
                user_id=ctx.user_id,
                shift_number=next_number(session, ctx.tenant_id, "shift", "SH"),
                start_time=datetime.now(timezone.utc),
                start_balance=q(payload.start_balance),
                status="open",
                notes=payload.notes,
            )
            session.add(shift)
            try:
                session.flush()
            except IntegrityError as exc:
                raise ConflictError("user already has an open shift") from exc

            opened = ShiftRead.model_validate(shift)
            logger.info("shifts.opened", extra={"tenant_id": ctx.tenant_id, "user_id": ctx.user_id, "shift_id": shift.id})
            on_commit(
                session,
                lambda: events.publish(
                    {
                        "event_type": "shift.opened",
                        "tenant_id": ctx.tenant_id,
                        "shift_id": opened.id,
                        "shift_number": opened.shift_number,
                        "user_id": ctx.user_id,
                        "start_balance": str(opened.start_balance),
                        "correlation_id": ctx.correlation_id,
                    }
                ),
            )
        return opened

    def get_active_shift(self, session: Session, ctx: TenantContext) -> ShiftRead | None:
        shift = self._find_open(session, ctx)
        return None if shift is None else ShiftRead.model_validate(shift)

    def get_shift(self, session: Session, ctx: TenantContext, shift_id: int) -> ShiftRead:
        return ShiftRead.model_validate(self.shift_repository.get(session, ctx, shift_id))

    def get_shift_summary(self, session: Session, ctx: TenantContext, shift_id: int) -> ShiftSummaryRead:
        shift = self.shift_repository.get(session, ctx, shift_id)
        return self._summarize(session, ctx, shift)

    def close_shift(self, session: Session, ctx: TenantContext, shift_id: int, payload: ShiftClose) -> ShiftCloseRead:
        """Freeze the shift's system totals and record the counted cash.

        The variance is reported only; no ledger entry is generated for it.
        """

        with atomic(session):
            shift = self.shift_repository.get(session, ctx, shift_id, for_update=True)
            if shift.status != "open":
                raise ConflictError("shift is already closed")

            summary = self._summarize(session, ctx, shift)
            actual_cash = q(payload.actual_cash)
            variance = q(actual_cash - summary.expected_cash)

            result = session.execute(
                update(Shift)
                .where(Shift.id == shift.id, Shift.tenant_id == ctx.tenant_id, Shift.status == "open")
                .values(
                    status="closed",
                    end_time=datetime.now(timezone.utc),
                    end_balance=actual_cash,
                    system_cash_balance=summary.expected_cash,
                    system_visa_balance=summary.visa_sales,
                    system_unpaid_balance=summary.unpaid_sales,
                    cash_variance=variance,
                    notes=payload.notes if payload.notes is not None else shift.notes,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConflictError("shift is already closed")
            session.refresh(shift)

            closed = ShiftCloseRead(
                shift=ShiftRead.model_validate(shift),
                summary=summary.model_copy(update={"status": "closed"}),
                expected_cash=summary.expected_cash,
                actual_cash=actual_cash,
                variance=variance,
            )
            logger.info(
                "shifts.closed",
                extra={"tenant_id": ctx.tenant_id, "user_id": ctx.user_id, "shift_id": shift.id, "operation": f"variance={variance}"},
            )
            on_commit(session, lambda: self._published(ctx, closed))
        return closed

    def _find_open(self, session: Session, ctx: TenantContext) -> Shift | None:
        return session.scalar(
            self.shift_repository.query(ctx).where(Shift.user_id == ctx.user_id, Shift.status == "open")
        )

    def _summarize(self, session: Session, ctx: TenantContext, shift: Shift) -> ShiftSummaryRead:
        def invoice_total(*conditions) -> Decimal:  # type: ignore[no-untyped-def]
            value = session.scalar(
                select(func.coalesce(func.sum(Invoice.total_amount), 0)).where(
                    Invoice.tenant_id == ctx.tenant_id,
                    Invoice.shift_id == shift.id,
                    *conditions,
                )
            )
            return q(value or 0)

        def voucher_total(voucher_type: str) -> Decimal:
            value = session.scalar(
                select(func.coalesce(func.sum(Voucher.amount), 0)).where(
                    Voucher.tenant_id == ctx.tenant_id,
                    Voucher.shift_id == shift.id,
                    Voucher.type == voucher_type,
                )
            )
            return q(value or 0)

        cash_sales = invoice_total(Invoice.payment_method == "cash")
        visa_sales = invoice_total(Invoice.payment_method == "card")
        unpaid = session.scalar(
            select(func.coalesce(func.sum(Invoice.total_amount - Invoice.amount_paid), 0)).where(
                Invoice.tenant_id == ctx.tenant_id,
                Invoice.shift_id == shift.id,
                Invoice.payment_status != "paid",
            )
        )
        receipts = voucher_total("receipt")
        payments = voucher_total("payment")
        net_cash_movement = q(cash_sales + receipts - payments)
        start_balance = q(shift.start_balance)

        return ShiftSummaryRead(
            shift_id=shift.id,
            shift_number=shift.shift_number,
            status=shift.status,  # type: ignore[arg-type]
            start_balance=start_balance,
            cash_sales=cash_sales,
            visa_sales=visa_sales,
            unpaid_sales=q(unpaid or 0),
            receipts=receipts,
            payments=payments,
            net_cash_movement=net_cash_movement,
            expected_cash=q(start_balance + net_cash_movement),
        )

    def _published(self, ctx: TenantContext, closed: ShiftCloseRead) -> None:
        observe_shift_closed(float(closed.variance))
        audit.record(
            tenant_id=ctx.tenant_id,
            actor_user_id=ctx.user_id,
            entity_type="shifts.shift",
            entity_id=str(closed.shift.id),
            action="shifts.closed",
            before={"status": "open"},
            after={
                "status": "closed",
                "expected_cash": str(closed.expected_cash),
                "actual_cash": str(closed.actual_cash),
                "variance": str(closed.variance),
            },
            correlation_id=ctx.correlation_id,
        )
        events.publish(
            {
                "event_type": "shift.closed",
                "tenant_id": ctx.tenant_id,
                "shift_id": closed.shift.id,
                "shift_number": closed.shift.shift_number,
                "expected_cash": str(closed.expected_cash),
                "actual_cash": str(closed.actual_cash),
                "variance": str(closed.variance),
                "correlation_id": ctx.correlation_id,
            }
        )


shift_service = ShiftService()
