from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledgercore.accounts.models import Account
from ledgercore.accounts.repository import AccountRepository
from ledgercore.accounts.schemas import DEBIT_NORMAL_TYPES
from ledgercore.core.context import TenantContext
from ledgercore.core.errors import NotFoundError, ValidationError
from ledgercore.core.money import ZERO, q
from ledgercore.installments.models import Installment
from ledgercore.invoicing.models import Invoice, PurchaseInvoice
from ledgercore.ledger.models import JournalEntry, JournalLine
from ledgercore.parties.models import Customer, Supplier
from ledgercore.statements.schemas import (
    AccountSubject,
    IncomeStatementLine,
    IncomeStatementRead,
    NormalSide,
    PartySubject,
    StatementRead,
    StatementRow,
)
from ledgercore.vouchers.models import Voucher


class Movement(NamedTuple):
    entry_date: date
    rank: int
    source_id: int
    source: str
    reference: str | None
    description: str | None
    debit: Decimal
    credit: Decimal

    def sort_key(self) -> tuple[date, int, int]:
        return (self.entry_date, self.rank, self.source_id)


@dataclass(slots=True)
class StatementService:
    account_repository: AccountRepository = AccountRepository()

    def get_statement(
        self,
        session: Session,
        ctx: TenantContext,
        subject: AccountSubject | PartySubject,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> StatementRead:
        """Build a running-balance statement for an account or a party.

        The opening balance is the stored opening balance carried forward by
        every movement dated before ``start_date``. Rows are ordered by date,
        then by source kind and row id so that same-day rows keep a stable
        order.
        """

        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError("start_date must not be after end_date")

        if isinstance(subject, AccountSubject):
            account = self.account_repository.get(session, ctx, subject.account_id)
            normal_side: NormalSide = "debit" if account.type in DEBIT_NORMAL_TYPES else "credit"
            subject_type = "account"
            name = account.name
            stored_opening = Decimal(account.opening_balance)
            movements = self._account_movements(session, ctx, account.id, end_date)
        elif subject.party_type == "customer":
            customer = self._party(session, ctx, Customer, subject.party_id, "customer")
            normal_side = "debit"
            subject_type = "customer"
            name = customer.name
            stored_opening = Decimal(customer.opening_balance)
            movements = self._customer_movements(session, ctx, customer.id)
        else:
            supplier = self._party(session, ctx, Supplier, subject.party_id, "supplier")
            normal_side = "credit"
            subject_type = "supplier"
            name = supplier.name
            stored_opening = Decimal(supplier.opening_balance)
            movements = self._supplier_movements(session, ctx, supplier.id)

        movements.sort(key=Movement.sort_key)

        opening = q(stored_opening)
        rows: list[StatementRow] = []
        total_debit = ZERO
        total_credit = ZERO
        balance = opening
        for movement in movements:
            if end_date is not None and movement.entry_date > end_date:
                continue
            delta = self._delta(normal_side, movement.debit, movement.credit)
            if start_date is not None and movement.entry_date < start_date:
                opening += delta
                balance = opening
                continue
            balance += delta
            total_debit += movement.debit
            total_credit += movement.credit
            rows.append(
                StatementRow(
                    entry_date=movement.entry_date,
                    source=movement.source,
                    source_id=movement.source_id,
                    reference=movement.reference,
                    description=movement.description,
                    debit=q(movement.debit),
                    credit=q(movement.credit),
                    balance=q(balance),
                )
            )

        closing = q(balance)
        return StatementRead(
            subject_type=subject_type,
            subject_id=subject.account_id if isinstance(subject, AccountSubject) else subject.party_id,
            name=name,
            normal_side=normal_side,
            start_date=start_date,
            end_date=end_date,
            opening_balance=q(opening),
            total_debit=q(total_debit),
            total_credit=q(total_credit),
            net_balance=q(closing - opening),
            closing_balance=closing,
            rows=rows,
        )

    def get_income_statement(
        self,
        session: Session,
        ctx: TenantContext,
        *,
        start_date: date,
        end_date: date,
    ) -> IncomeStatementRead:
        """Revenue and expense totals over posted lines dated inside the range.

        Revenue is credit minus debit, expenses are debit minus credit. Only
        accounts with a non-zero amount appear in the breakdowns.
        """

        if start_date > end_date:
            raise ValidationError("start_date must not be after end_date")

        stmt = (
            select(
                Account.id,
                Account.code,
                Account.name,
                Account.type,
                func.coalesce(func.sum(JournalLine.debit), 0),
                func.coalesce(func.sum(JournalLine.credit), 0),
            )
            .join(JournalLine, JournalLine.account_id == Account.id)
            .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
            .where(
                Account.tenant_id == ctx.tenant_id,
                JournalEntry.tenant_id == ctx.tenant_id,
                JournalEntry.status == "posted",
                JournalEntry.entry_date >= start_date,
                JournalEntry.entry_date <= end_date,
                Account.type.in_(("revenue", "expense")),
            )
            .group_by(Account.id, Account.code, Account.name, Account.type)
        )
        records = session.execute(stmt.order_by(Account.code.asc())).all()

        revenue: list[IncomeStatementLine] = []
        expenses: list[IncomeStatementLine] = []
        for account_id, code, name, account_type, debit_amount, credit_amount in records:
            debit = q(debit_amount)
            credit = q(credit_amount)
            amount = credit - debit if account_type == "revenue" else debit - credit
            if amount == 0:
                continue
            line = IncomeStatementLine(account_id=account_id, account_code=code, account_name=name, amount=amount)
            (revenue if account_type == "revenue" else expenses).append(line)

        total_revenue = q(sum((line.amount for line in revenue), ZERO))
        total_expenses = q(sum((line.amount for line in expenses), ZERO))
        return IncomeStatementRead(
            start_date=start_date,
            end_date=end_date,
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            net_profit=q(total_revenue - total_expenses),
            revenue_details=revenue,
            expense_details=expenses,
        )

    def _delta(self, normal_side: NormalSide, debit: Decimal, credit: Decimal) -> Decimal:
        if normal_side == "debit":
            return debit - credit
        return credit - debit

    def _party(self, session: Session, ctx: TenantContext, model, party_id: int, resource: str):  # type: ignore[no-untyped-def]
        party = session.scalar(select(model).where(model.id == party_id, model.tenant_id == ctx.tenant_id))
        if party is None:
            raise NotFoundError(resource)
        return party

    def _account_movements(
        self,
        session: Session,
        ctx: TenantContext,
        account_id: int,
        end_date: date | None,
    ) -> list[Movement]:
        stmt = (
            select(JournalLine, JournalEntry)
            .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
            .where(
                JournalEntry.tenant_id == ctx.tenant_id,
                JournalEntry.status == "posted",
                JournalLine.account_id == account_id,
            )
        )
        if end_date is not None:
            stmt = stmt.where(JournalEntry.entry_date <= end_date)
        stmt = stmt.order_by(JournalEntry.entry_date.asc(), JournalEntry.id.asc(), JournalLine.id.asc())

        return [
            Movement(
                entry_date=entry.entry_date,
                rank=0,
                source_id=line.id,
                source=entry.source_type or "journal",
                reference=entry.entry_number,
                description=line.description or entry.description,
                debit=Decimal(line.debit),
                credit=Decimal(line.credit),
            )
            for line, entry in session.execute(stmt).all()
        ]

    def _customer_movements(self, session: Session, ctx: TenantContext, customer_id: int) -> list[Movement]:
        invoices = session.scalars(
            select(Invoice).where(Invoice.tenant_id == ctx.tenant_id, Invoice.customer_id == customer_id)
        ).all()
        installments = session.scalars(
            select(Installment).where(
                Installment.tenant_id == ctx.tenant_id,
                Installment.customer_id == customer_id,
                Installment.amount_paid > 0,
                Installment.paid_date.is_not(None),
            )
        ).all()
        collected_by_invoice: dict[int, Decimal] = dict(
            session.execute(
                select(Installment.invoice_id, func.coalesce(func.sum(Installment.amount_paid), 0))
                .where(Installment.tenant_id == ctx.tenant_id, Installment.customer_id == customer_id)
                .group_by(Installment.invoice_id)
            ).all()
        )
        invoice_numbers = {invoice.id: invoice.invoice_number for invoice in invoices}

        movements: list[Movement] = []
        for invoice in invoices:
            movements.append(
                Movement(
                    entry_date=invoice.issue_date,
                    rank=0,
                    source_id=invoice.id,
                    source="invoice",
                    reference=invoice.invoice_number,
                    description="Sales invoice",
                    debit=Decimal(invoice.total_amount),
                    credit=ZERO,
                )
            )
            settled = Decimal(invoice.amount_paid) - Decimal(collected_by_invoice.get(invoice.id, 0))
            if settled > 0:
                movements.append(
                    Movement(
                        entry_date=invoice.issue_date,
                        rank=1,
                        source_id=invoice.id,
                        source="settlement",
                        reference=invoice.invoice_number,
                        description="Paid at sale",
                        debit=ZERO,
                        credit=settled,
                    )
                )

        for installment in installments:
            invoice_number = invoice_numbers.get(installment.invoice_id)
            movements.append(
                Movement(
                    entry_date=installment.paid_date,  # type: ignore[arg-type]
                    rank=2,
                    source_id=installment.id,
                    source="installment",
                    reference=invoice_number,
                    description=f"Installment {installment.sequence}",
                    debit=ZERO,
                    credit=Decimal(installment.amount_paid),
                )
            )

        movements.extend(self._voucher_movements(session, ctx, "customer", customer_id))
        return movements

    def _supplier_movements(self, session: Session, ctx: TenantContext, supplier_id: int) -> list[Movement]:
        invoices = session.scalars(
            select(PurchaseInvoice).where(
                PurchaseInvoice.tenant_id == ctx.tenant_id,
                PurchaseInvoice.supplier_id == supplier_id,
            )
        ).all()

        movements: list[Movement] = []
        for invoice in invoices:
            movements.append(
                Movement(
                    entry_date=invoice.issue_date,
                    rank=0,
                    source_id=invoice.id,
                    source="purchase_invoice",
                    reference=invoice.invoice_number,
                    description="Purchase invoice",
                    debit=ZERO,
                    credit=Decimal(invoice.total_amount),
                )
            )
            if Decimal(invoice.amount_paid) > 0:
                movements.append(
                    Movement(
                        entry_date=invoice.issue_date,
                        rank=1,
                        source_id=invoice.id,
                        source="settlement",
                        reference=invoice.invoice_number,
                        description="Paid at purchase",
                        debit=Decimal(invoice.amount_paid),
                        credit=ZERO,
                    )
                )

        movements.extend(self._voucher_movements(session, ctx, "supplier", supplier_id))
        return movements

    def _voucher_movements(self, session: Session, ctx: TenantContext, party_type: str, party_id: int) -> list[Movement]:
        vouchers = session.scalars(
            select(Voucher).where(
                Voucher.tenant_id == ctx.tenant_id,
                Voucher.party_type == party_type,
                Voucher.party_id == party_id,
            )
        ).all()
        return [
            Movement(
                entry_date=voucher.voucher_date,
                rank=3,
                source_id=voucher.id,
                source=f"{voucher.type}_voucher",
                reference=voucher.voucher_number,
                description=voucher.description,
                debit=Decimal(voucher.amount) if voucher.type == "payment" else ZERO,
                credit=Decimal(voucher.amount) if voucher.type == "receipt" else ZERO,
            )
            for voucher in vouchers
        ]


statement_service = StatementService()
