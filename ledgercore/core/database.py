from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from ledgercore.core.config import get_settings
from ledgercore.core.errors import InfrastructureError


logger = logging.getLogger("ledgercore.database")

_ATOMIC_DEPTH_KEY = "ledgercore.atomic_depth"
_ON_COMMIT_KEY = "ledgercore.on_commit"


class Base(DeclarativeBase):
    pass


settings = get_settings()
engine = create_engine(settings.database_url, echo=settings.database_echo, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def on_commit(session: Session, callback: Callable[[], None]) -> None:
    """Defer ``callback`` until the outermost ``atomic`` block has committed."""
    if session.info.get(_ATOMIC_DEPTH_KEY, 0) == 0:
        callback()
        return
    session.info.setdefault(_ON_COMMIT_KEY, []).append(callback)


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Run a block as one unit of work.

    Blocks nest: only the outermost one commits, and any exception escaping
    an inner block rolls back everything written since the outermost block
    started. Storage faults surface as ``InfrastructureError``.
    """

    depth = session.info.get(_ATOMIC_DEPTH_KEY, 0)
    session.info[_ATOMIC_DEPTH_KEY] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except IntegrityError:
        if depth == 0:
            _discard(session)
        raise
    except DBAPIError as exc:
        if depth == 0:
            _discard(session)
            logger.error("db.transaction_failed", exc_info=True, extra={"error": str(exc)})
            raise InfrastructureError("storage unavailable, transaction rolled back") from exc
        raise
    except BaseException:
        if depth == 0:
            _discard(session)
        raise
    finally:
        session.info[_ATOMIC_DEPTH_KEY] = depth

    if depth == 0:
        callbacks = session.info.pop(_ON_COMMIT_KEY, [])
        for callback in callbacks:
            callback()


def _discard(session: Session) -> None:
    session.rollback()
    session.info.pop(_ON_COMMIT_KEY, None)
