from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ledgercore import audit, events
from ledgercore.accounts.models import Account
from ledgercore.accounts.repository import AccountRepository
from ledgercore.core.context import TenantContext
from ledgercore.core.database import atomic, on_commit
from ledgercore.core.errors import ConflictError, LedgerError, NotFoundError, ValidationError
from ledgercore.core.money import ZERO, is_balanced, q
from ledgercore.core.sequences import next_number
from ledgercore.ledger.models import FiscalYear, JournalEntry, JournalLine
from ledgercore.ledger.repository import FiscalYearRepository, JournalEntryRepository
from ledgercore.ledger.schemas import (
    JournalEntryCreate,
    JournalEntryRead,
    JournalEntryReverseRequest,
    JournalLineInput,
)
from ledgercore.metrics import (
    observe_ledger_entries_posted,
    observe_ledger_lines_posted,
    observe_ledger_post_failure,
)


logger = logging.getLogger("ledgercore.ledger")


def _failure(reason: str, exc: LedgerError) -> LedgerError:
    observe_ledger_post_failure(reason)
    logger.warning("ledger.post_rejected", extra={"reason": reason, "error": exc.message})
    return exc


@dataclass(slots=True)
class LedgerService:
    account_repository: AccountRepository = AccountRepository()
    fiscal_year_repository: FiscalYearRepository = FiscalYearRepository()
    entry_repository: JournalEntryRepository = JournalEntryRepository()

    def create_journal_entry(self, session: Session, ctx: TenantContext, payload: JournalEntryCreate) -> JournalEntryRead:
        with atomic(session):
            entry = self.record_entry(session, ctx, payload)
        return self.get_entry(session, ctx, entry.id)

    def record_entry(self, session: Session, ctx: TenantContext, payload: JournalEntryCreate) -> JournalEntry:
        """Validate and insert one journal entry with its lines.

        Joins the caller's unit of work; callers that need the entry to be
        written together with other rows wrap this in their own ``atomic``.
        """

        with atomic(session):
            line_rows = self._validate_lines(session, ctx, payload.lines)
            fiscal_year = self._resolve_fiscal_year(session, ctx, payload.entry_date, payload.fiscal_year_id)

            posted_at = datetime.now(timezone.utc) if payload.status == "posted" else None
            entry = JournalEntry(
                tenant_id=ctx.tenant_id,
                fiscal_year_id=fiscal_year.id,
                entry_number=next_number(session, ctx.tenant_id, "journal_entry", "JE"),
                entry_date=payload.entry_date,
                description=payload.description,
                reference=payload.reference,
                status=payload.status,
                source_type=payload.source_type,
                source_id=payload.source_id,
                created_by=ctx.user_id,
                posted_at=posted_at,
                lines=line_rows,
            )
            session.add(entry)
            try:
                session.flush()
            except IntegrityError as exc:
                raise _failure("db_conflict", ConflictError("failed to persist journal entry")) from exc

            logger.info(
                "ledger.entry_recorded",
                extra={
                    "tenant_id": ctx.tenant_id,
                    "entry_id": entry.id,
                    "entry_number": entry.entry_number,
                },
            )
            if entry.status == "posted":
                self._after_posting(session, ctx, entry, action="ledger.posted")
        return entry

    def post_entry(self, session: Session, ctx: TenantContext, entry_id: int) -> JournalEntryRead:
        with atomic(session):
            entry = self.entry_repository.get(session, ctx, entry_id, for_update=True)
            if entry.status == "posted":
                raise ConflictError("journal entry is already posted")
            entry.status = "posted"
            entry.posted_at = datetime.now(timezone.utc)
            session.flush()
            self._after_posting(session, ctx, entry, action="ledger.posted")
        return self.get_entry(session, ctx, entry_id)

    def reverse_entry(
        self,
        session: Session,
        ctx: TenantContext,
        entry_id: int,
        request: JournalEntryReverseRequest,
    ) -> JournalEntryRead:
        with atomic(session):
            entry = self.entry_repository.get(session, ctx, entry_id, for_update=True)
            if entry.status != "posted":
                raise ConflictError("only posted entries can be reversed")
            if entry.reversal_of_id is not None:
                raise ConflictError("a reversing entry cannot itself be reversed")
            existing = session.scalar(
                self.entry_repository.query(ctx).where(JournalEntry.reversal_of_id == entry.id)
            )
            if existing is not None:
                raise ConflictError(f"entry already reversed by {existing.entry_number}")

            reversal = self.record_entry(
                session,
                ctx,
                JournalEntryCreate(
                    entry_date=request.entry_date or date.today(),
                    description=f"Reversal of {entry.entry_number}: {request.reason}",
                    reference=entry.entry_number,
                    status="posted",
                    source_type="reversal",
                    source_id=str(entry.id),
                    lines=[
                        JournalLineInput(
                            account_id=line.account_id,
                            debit=line.credit,
                            credit=line.debit,
                            description=line.description,
                        )
                        for line in entry.lines
                    ],
                ),
            )
            reversal.reversal_of_id = entry.id
            try:
                session.flush()
            except IntegrityError as exc:
                raise ConflictError("entry already reversed") from exc

            reversed_number = entry.entry_number
            reversal_id = reversal.id
            on_commit(
                session,
                lambda: audit.record(
                    tenant_id=ctx.tenant_id,
                    actor_user_id=ctx.user_id,
                    entity_type="ledger.journal_entry",
                    entity_id=str(entry_id),
                    action="ledger.reversed",
                    before=None,
                    after={"reversal_entry_id": reversal_id, "reason": request.reason},
                    correlation_id=ctx.correlation_id,
                ),
            )
            on_commit(
                session,
                lambda: events.publish(
                    {
                        "event_type": "ledger.entry_reversed",
                        "tenant_id": ctx.tenant_id,
                        "entry_id": entry_id,
                        "entry_number": reversed_number,
                        "reversal_entry_id": reversal_id,
                        "correlation_id": ctx.correlation_id,
                    }
                ),
            )
        return self.get_entry(session, ctx, reversal_id)

    def get_entry(self, session: Session, ctx: TenantContext, entry_id: int) -> JournalEntryRead:
        entry = session.scalar(
            self.entry_repository.query(ctx)
            .where(JournalEntry.id == entry_id)
            .options(selectinload(JournalEntry.lines))
        )
        if entry is None:
            raise NotFoundError("journal entry")
        return JournalEntryRead.model_validate(entry)

    def list_entries(
        self,
        session: Session,
        ctx: TenantContext,
        *,
        start_date: date | None = None,
        end_date: date | None = None,
        source_type: str | None = None,
        source_id: str | None = None,
        status: str | None = None,
    ) -> list[JournalEntryRead]:
        stmt: Select[tuple[JournalEntry]] = self.entry_repository.query(ctx).options(selectinload(JournalEntry.lines))
        if start_date is not None:
            stmt = stmt.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(JournalEntry.entry_date <= end_date)
        if source_type is not None:
            stmt = stmt.where(JournalEntry.source_type == source_type)
        if source_id is not None:
            stmt = stmt.where(JournalEntry.source_id == source_id)
        if status is not None:
            stmt = stmt.where(JournalEntry.status == status)

        rows = session.scalars(stmt.order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc())).all()
        return [JournalEntryRead.model_validate(row) for row in rows]

    def _validate_lines(self, session: Session, ctx: TenantContext, lines: list[JournalLineInput]) -> list[JournalLine]:
        if len(lines) < 2:
            raise _failure("too_few_lines", ValidationError("journal entry requires at least two lines"))

        debit_total = ZERO
        credit_total = ZERO
        rows: list[JournalLine] = []
        for line in lines:
            debit = q(line.debit)
            credit = q(line.credit)
            if debit < 0 or credit < 0:
                raise _failure("negative_amount", ValidationError("line amounts must be non-negative"))
            if (debit > 0 and credit > 0) or (debit == 0 and credit == 0):
                raise _failure("invalid_line_side", ValidationError("line must be single-sided"))
            debit_total += debit
            credit_total += credit
            rows.append(JournalLine(account_id=line.account_id, debit=debit, credit=credit, description=line.description))

        if not is_balanced(debit_total, credit_total):
            raise _failure(
                "unbalanced_entry",
                ValidationError(f"journal entry is not balanced: debit {debit_total} != credit {credit_total}"),
            )

        account_ids = {line.account_id for line in lines}
        accounts = session.scalars(self.account_repository.query(ctx).where(Account.id.in_(account_ids))).all()
        if len(accounts) != len(account_ids):
            raise _failure("account_not_found", NotFoundError("account"))
        inactive = sorted(account.code for account in accounts if not account.is_active)
        if inactive:
            raise _failure("account_inactive", ValidationError(f"inactive accounts: {', '.join(inactive)}"))
        return rows

    def _resolve_fiscal_year(
        self,
        session: Session,
        ctx: TenantContext,
        entry_date: date,
        fiscal_year_id: int | None,
    ) -> FiscalYear:
        if fiscal_year_id is not None:
            fiscal_year = self.fiscal_year_repository.find(session, ctx, fiscal_year_id)
            if fiscal_year is None:
                raise _failure("fiscal_year_not_found", NotFoundError("fiscal year"))
            if fiscal_year.is_closed:
                raise _failure("fiscal_year_closed", ValidationError(f"fiscal year {fiscal_year.name} is closed"))
            if not fiscal_year.start_date <= entry_date <= fiscal_year.end_date:
                raise _failure("fiscal_year_range", ValidationError("entry date is outside the fiscal year"))
            return fiscal_year

        fiscal_year = session.scalar(
            self.fiscal_year_repository.query(ctx)
            .where(
                FiscalYear.is_closed.is_(False),
                FiscalYear.start_date <= entry_date,
                FiscalYear.end_date >= entry_date,
            )
            .order_by(FiscalYear.start_date.desc())
        )
        if fiscal_year is not None:
            return fiscal_year

        name = str(entry_date.year)
        existing = session.scalar(self.fiscal_year_repository.query(ctx).where(FiscalYear.name == name))
        if existing is not None:
            raise _failure("fiscal_year_closed", ValidationError(f"no open fiscal year covers {entry_date.isoformat()}"))

        fiscal_year = FiscalYear(
            tenant_id=ctx.tenant_id,
            name=name,
            start_date=date(entry_date.year, 1, 1),
            end_date=date(entry_date.year, 12, 31),
            is_closed=False,
        )
        session.add(fiscal_year)
        session.flush()
        logger.info("ledger.fiscal_year_opened", extra={"tenant_id": ctx.tenant_id, "operation": name})
        return fiscal_year

    def _after_posting(self, session: Session, ctx: TenantContext, entry: JournalEntry, *, action: str) -> None:
        entry_id = entry.id
        line_count = len(entry.lines)
        snapshot = {
            "entry_number": entry.entry_number,
            "entry_date": entry.entry_date.isoformat(),
            "source_type": entry.source_type,
            "source_id": entry.source_id,
            "line_count": line_count,
            "total": str(sum((Decimal(line.debit) for line in entry.lines), ZERO)),
        }

        def publish() -> None:
            observe_ledger_entries_posted()
            observe_ledger_lines_posted(line_count)
            audit.record(
                tenant_id=ctx.tenant_id,
                actor_user_id=ctx.user_id,
                entity_type="ledger.journal_entry",
                entity_id=str(entry_id),
                action=action,
                before=None,
                after=snapshot,
                correlation_id=ctx.correlation_id,
            )
            events.publish(
                {
                    "event_type": "ledger.entry_posted",
                    "tenant_id": ctx.tenant_id,
                    "entry_id": entry_id,
                    **snapshot,
                    "correlation_id": ctx.correlation_id,
                }
            )

        on_commit(session, publish)


ledger_service = LedgerService()
