from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ledgercore import audit, events
from ledgercore.accounts.service import chart_of_accounts_service
from ledgercore.core.config import get_settings
from ledgercore.core.context import TenantContext
from ledgercore.core.database import atomic, on_commit
from ledgercore.core.errors import ConflictError, ValidationError
from ledgercore.core.money import ZERO, q, q_down
from ledgercore.installments.models import Installment
from ledgercore.installments.repository import InstallmentRepository, InvoiceRepository
from ledgercore.installments.schemas import InstallmentPlanCreate, InstallmentPlanRead, InstallmentRead
from ledgercore.invoicing.models import Invoice
from ledgercore.ledger.schemas import JournalEntryCreate, JournalLineInput
from ledgercore.ledger.service import ledger_service
from ledgercore.metrics import observe_installment_paid


logger = logging.getLogger("ledgercore.installments")


def is_overdue(due_date: date, status: str, now: date | datetime) -> bool:
    """Single overdue predicate shared by every caller."""
    today = now.date() if isinstance(now, datetime) else now
    return due_date < today and status != "paid"


def _add_months(base: date, months: int) -> date:
    month_index = base.month - 1 + months
    year = base.year + month_index // 12
    month = month_index % 12 + 1
    day = min(base.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _invoice_payment_status(invoice: Invoice) -> str:
    paid = Decimal(invoice.amount_paid)
    if paid >= Decimal(invoice.total_amount):
        return "paid"
    if paid > 0:
        return "partial"
    return "unpaid"


def split_amount(financed: Decimal, count: int) -> list[Decimal]:
    """Split ``financed`` into ``count`` rows; the last row absorbs the remainder."""
    base = q_down(financed / count)
    return [base] * (count - 1) + [q(financed - base * (count - 1))]


@dataclass(slots=True)
class InstallmentService:
    installment_repository: InstallmentRepository = InstallmentRepository()
    invoice_repository: InvoiceRepository = InvoiceRepository()

    def create_plan(self, session: Session, ctx: TenantContext, payload: InstallmentPlanCreate) -> InstallmentPlanRead:
        if payload.count < 1:
            raise ValidationError("installment count must be at least 1")
        if payload.interest_rate < 0:
            raise ValidationError("interest rate must not be negative")
        period_months = payload.period_months or get_settings().installment_period_months
        if period_months < 1:
            raise ValidationError("installment period must be at least one month")

        with atomic(session):
            invoice = self.invoice_repository.get(session, ctx, payload.invoice_id, for_update=True)
            if invoice.customer_id is None:
                raise ValidationError("invoice has no customer")

            total = q(invoice.total_amount)
            down_payment = q(payload.down_payment)
            if down_payment < 0 or down_payment >= total:
                raise ValidationError("down payment must be at least zero and below the invoice total")

            existing = session.scalar(
                select(Installment.id).where(
                    Installment.tenant_id == ctx.tenant_id,
                    Installment.invoice_id == invoice.id,
                )
            )
            if existing is not None:
                raise ConflictError("invoice already has an installment plan")

            financed = q((total - down_payment) * (1 + Decimal(payload.interest_rate) / 100))
            rows: list[Installment] = []
            for index, amount in enumerate(split_amount(financed, payload.count)):
                row = Installment(
                    tenant_id=ctx.tenant_id,
                    customer_id=invoice.customer_id,
                    invoice_id=invoice.id,
                    sequence=index + 1,
                    due_date=_add_months(payload.start_date, index * period_months),
                    amount=amount,
                    amount_paid=ZERO,
                    status="pending",
                    notes=payload.notes,
                )
                session.add(row)
                rows.append(row)
            session.flush()

            plan = InstallmentPlanRead(
                invoice_id=invoice.id,
                customer_id=invoice.customer_id,
                financed_amount=financed,
                installments=[InstallmentRead.model_validate(row) for row in rows],
            )
            logger.info(
                "installments.plan_created",
                extra={"tenant_id": ctx.tenant_id, "invoice_id": invoice.id, "operation": f"count={payload.count}"},
            )
            on_commit(
                session,
                lambda: events.publish(
                    {
                        "event_type": "installment.plan_created",
                        "tenant_id": ctx.tenant_id,
                        "invoice_id": plan.invoice_id,
                        "customer_id": plan.customer_id,
                        "financed_amount": str(plan.financed_amount),
                        "count": len(plan.installments),
                        "correlation_id": ctx.correlation_id,
                    }
                ),
            )
        return plan

    def pay_installment(self, session: Session, ctx: TenantContext, installment_id: int, payment_date: date) -> InstallmentRead:
        """Collect one installment in full.

        The status flip, the invoice's paid amount and the cash/receivable
        entry are written in one transaction. The status flip is a
        conditional update, so of two concurrent collections only one wins.
        """

        with atomic(session):
            installment = self.installment_repository.get(session, ctx, installment_id)
            if installment.status == "paid":
                raise ConflictError("installment is already paid")

            invoice = self.invoice_repository.get(session, ctx, installment.invoice_id, for_update=True)
            amount = q(installment.amount)

            result = session.execute(
                update(Installment)
                .where(
                    Installment.id == installment.id,
                    Installment.tenant_id == ctx.tenant_id,
                    Installment.status != "paid",
                )
                .values(status="paid", amount_paid=amount, paid_date=payment_date)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ConflictError("installment is already paid")
            session.refresh(installment)

            invoice.amount_paid = q(Decimal(invoice.amount_paid) + amount)
            invoice.payment_status = _invoice_payment_status(invoice)

            customer_account = chart_of_accounts_service.resolve_or_create_party_account(
                session, ctx, "customer", installment.customer_id
            )
            cash_account = chart_of_accounts_service.resolve_or_create_role_account(session, ctx, "CASH")
            description = f"Installment {installment.sequence} of invoice {invoice.invoice_number}"
            entry = ledger_service.record_entry(
                session,
                ctx,
                JournalEntryCreate(
                    entry_date=payment_date,
                    description=description,
                    reference=f"INST-{installment.id}",
                    status="posted",
                    source_type="installment",
                    source_id=str(installment.id),
                    lines=[
                        JournalLineInput(account_id=cash_account.id, debit=amount, description=description),
                        JournalLineInput(account_id=customer_account.id, credit=amount, description=description),
                    ],
                ),
            )
            installment.journal_entry_id = entry.id
            session.flush()

            paid = InstallmentRead.model_validate(installment)
            logger.info(
                "installments.paid",
                extra={
                    "tenant_id": ctx.tenant_id,
                    "installment_id": installment.id,
                    "invoice_id": invoice.id,
                    "entry_id": entry.id,
                },
            )
            on_commit(session, lambda: self._published(ctx, paid))
        return paid

    def get_installment(self, session: Session, ctx: TenantContext, installment_id: int, *, as_of: date | None = None) -> InstallmentRead:
        row = self.installment_repository.get(session, ctx, installment_id)
        return self._to_read(row, as_of or date.today())

    def list_installments(
        self,
        session: Session,
        ctx: TenantContext,
        *,
        customer_id: int | None = None,
        invoice_id: int | None = None,
        status: str | None = None,
        as_of: date | None = None,
    ) -> list[InstallmentRead]:
        stmt = self.installment_repository.query(ctx)
        if customer_id is not None:
            stmt = stmt.where(Installment.customer_id == customer_id)
        if invoice_id is not None:
            stmt = stmt.where(Installment.invoice_id == invoice_id)
        if status is not None:
            stmt = stmt.where(Installment.status == status)
        rows = session.scalars(stmt.order_by(Installment.due_date.asc(), Installment.id.asc())).all()
        today = as_of or date.today()
        return [self._to_read(row, today) for row in rows]

    def _to_read(self, row: Installment, today: date) -> InstallmentRead:
        read = InstallmentRead.model_validate(row)
        return read.model_copy(update={"is_overdue": is_overdue(row.due_date, row.status, today)})

    def _published(self, ctx: TenantContext, installment: InstallmentRead) -> None:
        observe_installment_paid()
        audit.record(
            tenant_id=ctx.tenant_id,
            actor_user_id=ctx.user_id,
            entity_type="installments.installment",
            entity_id=str(installment.id),
            action="installments.paid",
            before={"status": "pending"},
            after={
                "status": installment.status,
                "amount_paid": str(installment.amount_paid),
                "journal_entry_id": installment.journal_entry_id,
            },
            correlation_id=ctx.correlation_id,
        )
        events.publish(
            {
                "event_type": "installment.paid",
                "tenant_id": ctx.tenant_id,
                "installment_id": installment.id,
                "invoice_id": installment.invoice_id,
                "customer_id": installment.customer_id,
                "amount": str(installment.amount_paid),
                "correlation_id": ctx.correlation_id,
            }
        )


installment_service = InstallmentService()
