from __future__ import annotations

from sqlalchemy import Integer, String, UniqueConstraint, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledgercore.core.database import Base


class DocumentSequence(Base):
    __tablename__ = "core_document_sequence"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(128), nullable=False)
    key: Mapped[str] = mapped_column(String(64), nullable=False)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("tenant_id", "key", name="uq_core_document_sequence_key"),)


def next_value(session: Session, tenant_id: str, key: str) -> int:
    """Return the next number of a per-tenant counter, holding its row lock."""

    stmt = (
        select(DocumentSequence)
        .where(DocumentSequence.tenant_id == tenant_id, DocumentSequence.key == key)
        .with_for_update()
    )
    row = session.scalar(stmt)
    if row is None:
        try:
            with session.begin_nested():
                row = DocumentSequence(tenant_id=tenant_id, key=key, last_value=0)
                session.add(row)
                session.flush()
        except IntegrityError:
            # another writer created the counter first
            row = session.scalar(stmt)
            if row is None:
                raise
    row.last_value += 1
    session.flush()
    return row.last_value


def next_number(session: Session, tenant_id: str, key: str, prefix: str, width: int = 6) -> str:
    return f"{prefix}-{next_value(session, tenant_id, key):0{width}d}"
