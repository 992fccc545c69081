from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from ledgercore.core.context import TenantContext
from ledgercore.core.errors import NotFoundError


ModelT = TypeVar("ModelT")


class TenantRepository(Generic[ModelT]):
    """Query helper that puts the tenant predicate on every statement."""

    model: type[ModelT]
    resource = ""

    def scope(self, stmt: Select[Any], ctx: TenantContext) -> Select[Any]:
        return stmt.where(self.model.tenant_id == ctx.tenant_id)  # type: ignore[attr-defined]

    def query(self, ctx: TenantContext) -> Select[tuple[ModelT]]:
        return self.scope(select(self.model), ctx)

    def find(self, session: Session, ctx: TenantContext, row_id: int, *, for_update: bool = False) -> ModelT | None:
        stmt = self.query(ctx).where(self.model.id == row_id)  # type: ignore[attr-defined]
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return session.scalar(stmt)

    def get(self, session: Session, ctx: TenantContext, row_id: int, *, for_update: bool = False) -> ModelT:
        row = self.find(session, ctx, row_id, for_update=for_update)
        if row is None:
            raise NotFoundError(self.resource)
        return row
