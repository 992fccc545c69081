from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledgercore.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    __tablename__ = "accounts_account"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("accounts_account.id", ondelete="RESTRICT"),
        nullable=True,
    )
    party_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    party_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    opening_balance: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=Decimal("0"), server_default="0")
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    parent: Mapped[Account | None] = relationship("Account", remote_side="Account.id", back_populates="children")
    children: Mapped[list[Account]] = relationship("Account", back_populates="parent")

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_accounts_account_code"),
        Index("ix_accounts_account_tenant", "tenant_id"),
        Index("ix_accounts_account_party", "tenant_id", "party_type", "party_id"),
    )


class AccountRoleMapping(Base):
    __tablename__ = "accounts_role_mapping"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    account_id: Mapped[int] = mapped_column(Integer, ForeignKey("accounts_account.id", ondelete="RESTRICT"), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    account: Mapped[Account] = relationship("Account")

    __table_args__ = (UniqueConstraint("tenant_id", "role", name="uq_accounts_role_mapping_role"),)
