"""
Database configuration
"""
import logging
import time
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import settings
from .errors import DatabaseUnavailable, TransactionTimeout, is_timeout_error, is_unreachable_error

logger = logging.getLogger(__name__)

db_url = settings.database_url

engine = create_engine(
    db_url,
    connect_args={"check_same_thread": False, "timeout": settings.TX_MAX_WAIT_SECONDS} if db_url.startswith("sqlite") else {},
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

_clock = time.monotonic


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _apply_budgets(db: Session, max_wait: float, timeout: float) -> None:
    if db.get_bind().dialect.name != "postgresql":
        return
    db.execute(text(f"SET LOCAL lock_timeout = {int(max_wait * 1000)}"))
    db.execute(text(f"SET LOCAL statement_timeout = {int(timeout * 1000)}"))


@contextmanager
def transaction_scope(
    db: Session,
    max_wait: Optional[float] = None,
    timeout: Optional[float] = None,
) -> Iterator[Session]:
    """Run a unit of work that either commits entirely or not at all.

    Lock acquisition is bounded by ``max_wait`` and the whole unit by
    ``timeout`` (seconds). Overrunning either rolls back and raises
    ``TransactionTimeout``; the caller decides whether to retry.
    """
    max_wait = settings.TX_MAX_WAIT_SECONDS if max_wait is None else max_wait
    timeout = settings.TX_TIMEOUT_SECONDS if timeout is None else timeout
    started = _clock()
    try:
        _apply_budgets(db, max_wait, timeout)
        yield db
        db.flush()
        elapsed = _clock() - started
        if elapsed > timeout:
            logger.warning("Transaction exceeded its %.1fs budget (%.2fs), rolling back", timeout, elapsed)
            raise TransactionTimeout()
        db.commit()
    except OperationalError as exc:
        db.rollback()
        if is_timeout_error(exc):
            raise TransactionTimeout() from exc
        if is_unreachable_error(exc):
            raise DatabaseUnavailable() from exc
        raise
    except Exception:
        db.rollback()
        raise
