from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import NamedTuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledgercore import audit
from ledgercore.accounts.models import Account, AccountRoleMapping
from ledgercore.accounts.repository import AccountRepository, RoleMappingRepository
from ledgercore.accounts.schemas import AccountCreate, AccountRead, AccountRole, RoleMappingRead
from ledgercore.core.context import TenantContext
from ledgercore.core.database import atomic
from ledgercore.core.errors import ConflictError, NotFoundError, ValidationError
from ledgercore.core.money import q
from ledgercore.core.sequences import next_value
from ledgercore.ledger.models import JournalEntry, JournalLine
from ledgercore.metrics import observe_role_account_created
from ledgercore.parties.models import Customer, Supplier


logger = logging.getLogger("ledgercore.accounts")


class RoleDefaults(NamedTuple):
    name: str
    name_hints: tuple[str, ...]
    code_prefix: str
    account_type: str


ROLE_DEFAULTS: dict[str, RoleDefaults] = {
    "CASH": RoleDefaults("Cash", ("Cash", "نقدية", "الخزينة"), "101", "asset"),
    "AR": RoleDefaults("Accounts Receivable", ("Accounts Receivable", "Receivable", "عملاء"), "102", "asset"),
    "AP": RoleDefaults("Accounts Payable", ("Accounts Payable", "Payable", "موردين"), "201", "liability"),
    "REVENUE": RoleDefaults("Sales Revenue", ("Revenue", "Sales", "إيرادات"), "401", "revenue"),
    "EXPENSE": RoleDefaults("General Expenses", ("Expense", "مصروفات"), "501", "expense"),
}

PARTY_ACCOUNT_ROLES = {
    "customer": ("AR", "102", "asset"),
    "supplier": ("AP", "201", "liability"),
}

DEFAULT_ROOT_ACCOUNTS = [
    ("1000", "Assets", "asset"),
    ("2000", "Liabilities", "liability"),
    ("3000", "Equity", "equity"),
    ("4000", "Revenue", "revenue"),
    ("5000", "Expenses", "expense"),
]


def _normalize(value: str) -> str:
    return value.strip().lower()


@dataclass(slots=True)
class ChartOfAccountsService:
    account_repository: AccountRepository = AccountRepository()
    role_repository: RoleMappingRepository = RoleMappingRepository()

    def create_account(self, session: Session, ctx: TenantContext, payload: AccountCreate) -> AccountRead:
        with atomic(session):
            account = self._create(
                session,
                ctx,
                code=payload.code.strip(),
                name=payload.name.strip(),
                account_type=payload.type,
                parent_id=payload.parent_id,
                opening_balance=payload.opening_balance,
            )
        audit.record(
            tenant_id=ctx.tenant_id,
            actor_user_id=ctx.user_id,
            entity_type="accounts.account",
            entity_id=str(account.id),
            action="accounts.created",
            before=None,
            after={"code": account.code, "name": account.name, "type": account.type},
            correlation_id=ctx.correlation_id,
        )
        return AccountRead.model_validate(account)

    def get_account(self, session: Session, ctx: TenantContext, account_id: int) -> AccountRead:
        return AccountRead.model_validate(self.account_repository.get(session, ctx, account_id))

    def list_accounts(self, session: Session, ctx: TenantContext) -> list[AccountRead]:
        rows = session.scalars(self.account_repository.query(ctx).order_by(Account.code.asc())).all()
        return [AccountRead.model_validate(row) for row in rows]

    def delete_account(self, session: Session, ctx: TenantContext, account_id: int) -> None:
        with atomic(session):
            account = self.account_repository.get(session, ctx, account_id, for_update=True)
            has_children = session.scalar(
                self.account_repository.query(ctx).where(Account.parent_id == account.id).limit(1)
            )
            if has_children is not None:
                raise ConflictError("account has child accounts")
            has_lines = session.scalar(
                select(JournalLine.id)
                .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
                .where(JournalEntry.tenant_id == ctx.tenant_id, JournalLine.account_id == account.id)
                .limit(1)
            )
            if has_lines is not None:
                raise ConflictError("account has journal lines")
            is_mapped = session.scalar(self.role_repository.query(ctx).where(AccountRoleMapping.account_id == account.id))
            if is_mapped is not None:
                raise ConflictError(f"account is mapped to role {is_mapped.role}")
            session.delete(account)

    def seed_default_accounts(self, session: Session, ctx: TenantContext) -> list[AccountRead]:
        created: list[Account] = []
        with atomic(session):
            existing_codes = set(
                session.scalars(self.account_repository.scope(select(Account.code), ctx)).all()
            )
            for code, name, account_type in DEFAULT_ROOT_ACCOUNTS:
                if code in existing_codes:
                    continue
                account = Account(tenant_id=ctx.tenant_id, code=code, name=name, type=account_type)
                session.add(account)
                created.append(account)
            session.flush()
        return [AccountRead.model_validate(item) for item in created]

    def resolve_or_create_role_account(
        self,
        session: Session,
        ctx: TenantContext,
        role: AccountRole,
        *,
        name_hints: list[str] | None = None,
        code_prefix: str | None = None,
        account_type: str | None = None,
    ) -> Account:
        """Return the tenant's account for a semantic role, provisioning it if absent.

        Lookup order: the explicit role mapping, then a one-time fuzzy match on
        name hints and code prefix (recorded as the mapping on a hit), then a
        freshly created account with a generated code.
        """

        defaults = ROLE_DEFAULTS.get(role)
        if defaults is None:
            raise ValidationError(f"unknown account role: {role}")
        hints = [hint for hint in (name_hints or list(defaults.name_hints)) if hint.strip()]
        prefix = code_prefix or defaults.code_prefix
        resolved_type = account_type or defaults.account_type

        with atomic(session):
            mapping = session.scalar(self.role_repository.query(ctx).where(AccountRoleMapping.role == role))
            if mapping is not None:
                account = self.account_repository.find(session, ctx, mapping.account_id)
                if account is not None and account.is_active:
                    return account

            account = self._fuzzy_match(session, ctx, hints, prefix, resolved_type)
            if account is None:
                account = self._create(
                    session,
                    ctx,
                    code=self._generate_code(session, ctx, prefix),
                    name=defaults.name if not name_hints else name_hints[0].strip(),
                    account_type=resolved_type,
                )
                observe_role_account_created(role)
                logger.info(
                    "accounts.role_account_created",
                    extra={"tenant_id": ctx.tenant_id, "role": role, "account_id": account.id},
                )
            else:
                logger.info(
                    "accounts.role_account_adopted",
                    extra={"tenant_id": ctx.tenant_id, "role": role, "account_id": account.id},
                )
            self._upsert_mapping(session, ctx, mapping, role, account.id)
        return account

    def assign_role_account(self, session: Session, ctx: TenantContext, role: AccountRole, account_id: int) -> RoleMappingRead:
        if role not in ROLE_DEFAULTS:
            raise ValidationError(f"unknown account role: {role}")
        with atomic(session):
            account = self.account_repository.get(session, ctx, account_id)
            if not account.is_active:
                raise ValidationError("account is inactive")
            mapping = session.scalar(
                self.role_repository.query(ctx).where(AccountRoleMapping.role == role).with_for_update()
            )
            before = None if mapping is None else {"account_id": mapping.account_id, "version": mapping.version}
            mapping = self._upsert_mapping(session, ctx, mapping, role, account.id)
        audit.record(
            tenant_id=ctx.tenant_id,
            actor_user_id=ctx.user_id,
            entity_type="accounts.role_mapping",
            entity_id=role,
            action="accounts.role_assigned",
            before=before,
            after={"account_id": mapping.account_id, "version": mapping.version},
            correlation_id=ctx.correlation_id,
        )
        return RoleMappingRead.model_validate(mapping)

    def list_role_mappings(self, session: Session, ctx: TenantContext) -> list[RoleMappingRead]:
        rows = session.scalars(self.role_repository.query(ctx).order_by(AccountRoleMapping.role.asc())).all()
        return [RoleMappingRead.model_validate(row) for row in rows]

    def resolve_or_create_party_account(self, session: Session, ctx: TenantContext, party_type: str, party_id: int) -> Account:
        """Return the sub-ledger account dedicated to one customer or supplier."""

        if party_type not in PARTY_ACCOUNT_ROLES:
            raise ValidationError(f"party type {party_type!r} has no sub-ledger")
        control_role, prefix, account_type = PARTY_ACCOUNT_ROLES[party_type]
        party_model = Customer if party_type == "customer" else Supplier

        with atomic(session):
            party = session.scalar(
                select(party_model).where(party_model.id == party_id, party_model.tenant_id == ctx.tenant_id)
            )
            if party is None:
                raise NotFoundError(party_type)

            linked = session.scalar(
                self.account_repository.query(ctx).where(
                    Account.party_type == party_type,
                    Account.party_id == party.id,
                )
            )
            if linked is not None:
                return linked

            legacy = session.scalar(
                self.account_repository.query(ctx)
                .where(
                    func.lower(func.trim(Account.name)) == _normalize(party.name),
                    Account.party_id.is_(None),
                    Account.type == account_type,
                )
                .order_by(Account.id.asc())
            )
            if legacy is not None:
                # linked before the control lookup so the fuzzy role match skips it
                legacy.party_type = party_type
                legacy.party_id = party.id
                session.flush()
                if legacy.parent_id is None:
                    control = self.resolve_or_create_role_account(session, ctx, control_role)  # type: ignore[arg-type]
                    legacy.parent_id = control.id
                    session.flush()
                return legacy

            control = self.resolve_or_create_role_account(session, ctx, control_role)  # type: ignore[arg-type]
            account = self._create(
                session,
                ctx,
                code=self._generate_code(session, ctx, prefix),
                name=party.name.strip(),
                account_type=account_type,
                parent_id=control.id,
            )
            account.party_type = party_type
            account.party_id = party.id
            session.flush()
            observe_role_account_created(party_type)
        return account

    def find_party_account(self, session: Session, ctx: TenantContext, party_type: str, party_id: int) -> Account | None:
        return session.scalar(
            self.account_repository.query(ctx).where(Account.party_type == party_type, Account.party_id == party_id)
        )

    def _fuzzy_match(
        self,
        session: Session,
        ctx: TenantContext,
        hints: list[str],
        prefix: str,
        account_type: str,
    ) -> Account | None:
        base = self.account_repository.query(ctx).where(
            Account.is_active.is_(True),
            Account.party_id.is_(None),
            Account.type == account_type,
        )
        for hint in hints:
            pattern = f"%{_normalize(hint)}%"
            match = session.scalar(
                base.where(func.lower(func.trim(Account.name)).like(pattern)).order_by(Account.code.asc())
            )
            if match is not None:
                return match
        conditions = [Account.code.like(f"{prefix}%")]
        return session.scalar(base.where(or_(*conditions)).order_by(Account.code.asc()))

    def _create(
        self,
        session: Session,
        ctx: TenantContext,
        *,
        code: str,
        name: str,
        account_type: str,
        parent_id: int | None = None,
        opening_balance=0,
    ) -> Account:
        if parent_id is not None:
            parent = self.account_repository.find(session, ctx, parent_id)
            if parent is None:
                raise NotFoundError("parent account")

        duplicate = session.scalar(self.account_repository.query(ctx).where(Account.code == code))
        if duplicate is not None:
            raise ConflictError(f"account code {code} already exists")

        account = Account(
            tenant_id=ctx.tenant_id,
            code=code,
            name=name,
            type=account_type,
            parent_id=parent_id,
            opening_balance=q(opening_balance),
            is_active=True,
        )
        session.add(account)
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"account code {code} already exists") from exc
        return account

    def _generate_code(self, session: Session, ctx: TenantContext, prefix: str) -> str:
        while True:
            code = f"{prefix}-{next_value(session, ctx.tenant_id, f'account:{prefix}'):04d}"
            taken = session.scalar(self.account_repository.query(ctx).where(Account.code == code))
            if taken is None:
                return code

    def _upsert_mapping(
        self,
        session: Session,
        ctx: TenantContext,
        mapping: AccountRoleMapping | None,
        role: str,
        account_id: int,
    ) -> AccountRoleMapping:
        if mapping is None:
            mapping = AccountRoleMapping(tenant_id=ctx.tenant_id, role=role, account_id=account_id, version=1)
            session.add(mapping)
        elif mapping.account_id != account_id:
            mapping.account_id = account_id
            mapping.version += 1
            mapping.updated_at = datetime.now(timezone.utc)
        session.flush()
        return mapping


chart_of_accounts_service = ChartOfAccountsService()
