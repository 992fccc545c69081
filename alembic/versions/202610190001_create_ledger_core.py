"""create ledger core tables

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610190001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _money(name: str, nullable: bool = False, default: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.Numeric(20, 2),
        nullable=nullable,
        server_default=sa.text("0") if default and not nullable else None,
    )


def upgrade() -> None:
    op.create_table(
        "core_document_sequence",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("last_value", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "key", name="uq_core_document_sequence_key"),
    )

    op.create_table(
        "accounts_account",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("party_type", sa.String(length=32), nullable=True),
        sa.Column("party_id", sa.Integer(), nullable=True),
        _money("opening_balance"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["parent_id"], ["accounts_account.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "code", name="uq_accounts_account_code"),
    )
    op.create_index("ix_accounts_account_tenant", "accounts_account", ["tenant_id"], unique=False)
    op.create_index("ix_accounts_account_party", "accounts_account", ["tenant_id", "party_type", "party_id"], unique=False)

    op.create_table(
        "accounts_role_mapping",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts_account.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "role", name="uq_accounts_role_mapping_role"),
    )

    for table_name in ("parties_customer", "parties_supplier"):
        op.create_table(
            table_name,
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("tenant_id", sa.String(length=128), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            _money("opening_balance"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table_name}_tenant", table_name, ["tenant_id"], unique=False)

    op.create_table(
        "ledger_fiscal_year",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("end_date >= start_date", name="ck_ledger_fiscal_year_range"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_ledger_fiscal_year_name"),
    )

    op.create_table(
        "ledger_journal_entry",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("fiscal_year_id", sa.Integer(), nullable=False),
        sa.Column("entry_number", sa.String(length=64), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("reference", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="posted"),
        sa.Column("source_type", sa.String(length=64), nullable=True),
        sa.Column("source_id", sa.String(length=128), nullable=True),
        sa.Column("reversal_of_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("posted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["fiscal_year_id"], ["ledger_fiscal_year.id"]),
        sa.ForeignKeyConstraint(["reversal_of_id"], ["ledger_journal_entry.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "entry_number", name="uq_ledger_journal_entry_number"),
        sa.UniqueConstraint("reversal_of_id", name="uq_ledger_journal_entry_reversal"),
    )
    op.create_index("ix_ledger_entry_tenant_date", "ledger_journal_entry", ["tenant_id", "entry_date"], unique=False)
    op.create_index("ix_ledger_entry_source", "ledger_journal_entry", ["tenant_id", "source_type", "source_id"], unique=False)

    op.create_table(
        "ledger_journal_line",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("journal_entry_id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        _money("debit"),
        _money("credit"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.CheckConstraint("debit >= 0", name="ck_ledger_line_debit_nonnegative"),
        sa.CheckConstraint("credit >= 0", name="ck_ledger_line_credit_nonnegative"),
        sa.ForeignKeyConstraint(["journal_entry_id"], ["ledger_journal_entry.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["account_id"], ["accounts_account.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ledger_line_account", "ledger_journal_line", ["account_id"], unique=False)
    op.create_index("ix_ledger_line_entry", "ledger_journal_line", ["journal_entry_id"], unique=False)

    op.create_table(
        "shifts_shift",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("shift_number", sa.String(length=64), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_balance", sa.Numeric(20, 2), nullable=False),
        _money("end_balance", nullable=True),
        _money("system_cash_balance", nullable=True),
        _money("system_visa_balance", nullable=True),
        _money("system_unpaid_balance", nullable=True),
        _money("cash_variance", nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="open"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "shift_number", name="uq_shifts_shift_number"),
    )
    op.create_index(
        "uq_shifts_shift_one_open_per_user",
        "shifts_shift",
        ["tenant_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'open'"),
        sqlite_where=sa.text("status = 'open'"),
    )
    op.create_index("ix_shifts_shift_tenant_user", "shifts_shift", ["tenant_id", "user_id"], unique=False)

    op.create_table(
        "invoicing_invoice",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(20, 2), nullable=False),
        _money("amount_paid"),
        sa.Column("payment_status", sa.String(length=16), nullable=False, server_default="paid"),
        sa.Column("payment_method", sa.String(length=16), nullable=False, server_default="cash"),
        sa.Column("shift_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["parties_customer.id"]),
        sa.ForeignKeyConstraint(["shift_id"], ["shifts_shift.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invoicing_invoice_customer", "invoicing_invoice", ["tenant_id", "customer_id"], unique=False)
    op.create_index("ix_invoicing_invoice_shift", "invoicing_invoice", ["shift_id"], unique=False)

    op.create_table(
        "invoicing_purchase_invoice",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("invoice_number", sa.String(length=64), nullable=True),
        sa.Column("supplier_id", sa.Integer(), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(20, 2), nullable=False),
        _money("amount_paid"),
        sa.Column("payment_status", sa.String(length=16), nullable=False, server_default="unpaid"),
        sa.Column("shift_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["supplier_id"], ["parties_supplier.id"]),
        sa.ForeignKeyConstraint(["shift_id"], ["shifts_shift.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_invoicing_purchase_invoice_supplier",
        "invoicing_purchase_invoice",
        ["tenant_id", "supplier_id"],
        unique=False,
    )

    op.create_table(
        "vouchers_voucher",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("voucher_number", sa.String(length=64), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("amount", sa.Numeric(20, 2), nullable=False),
        sa.Column("voucher_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("reference", sa.String(length=128), nullable=True),
        sa.Column("party_type", sa.String(length=16), nullable=False),
        sa.Column("party_id", sa.Integer(), nullable=True),
        sa.Column("account_id", sa.Integer(), nullable=True),
        sa.Column("shift_id", sa.Integer(), nullable=True),
        sa.Column("journal_entry_id", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["account_id"], ["accounts_account.id"]),
        sa.ForeignKeyConstraint(["shift_id"], ["shifts_shift.id"]),
        sa.ForeignKeyConstraint(["journal_entry_id"], ["ledger_journal_entry.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "voucher_number", name="uq_vouchers_voucher_number"),
    )
    op.create_index("ix_vouchers_voucher_party", "vouchers_voucher", ["tenant_id", "party_type", "party_id"], unique=False)
    op.create_index("ix_vouchers_voucher_shift", "vouchers_voucher", ["shift_id"], unique=False)

    op.create_table(
        "installments_installment",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("invoice_id", sa.Integer(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(20, 2), nullable=False),
        _money("amount_paid"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("paid_date", sa.Date(), nullable=True),
        sa.Column("journal_entry_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount >= 0", name="ck_installments_installment_amount_nonnegative"),
        sa.ForeignKeyConstraint(["customer_id"], ["parties_customer.id"]),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoicing_invoice.id"]),
        sa.ForeignKeyConstraint(["journal_entry_id"], ["ledger_journal_entry.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invoice_id", "sequence", name="uq_installments_installment_sequence"),
    )
    op.create_index(
        "ix_installments_installment_customer",
        "installments_installment",
        ["tenant_id", "customer_id"],
        unique=False,
    )
    op.create_index("ix_installments_installment_due", "installments_installment", ["tenant_id", "due_date"], unique=False)


def downgrade() -> None:
    op.drop_table("installments_installment")
    op.drop_table("vouchers_voucher")
    op.drop_table("invoicing_purchase_invoice")
    op.drop_table("invoicing_invoice")
    op.drop_index("uq_shifts_shift_one_open_per_user", table_name="shifts_shift")
    op.drop_table("shifts_shift")
    op.drop_table("ledger_journal_line")
    op.drop_table("ledger_journal_entry")
    op.drop_table("ledger_fiscal_year")
    op.drop_table("parties_supplier")
    op.drop_table("parties_customer")
    op.drop_table("accounts_role_mapping")
    op.drop_table("accounts_account")
    op.drop_table("core_document_sequence")
