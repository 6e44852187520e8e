import logging
import time
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledger.core import config
from ledger.core.exceptions import ConcurrencyConflict, LedgerError, PersistenceFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

_LOCK_ERROR_MARKERS = ("database is locked", "deadlock", "could not obtain lock", "lock timeout", "could not serialize")

def _is_lock_error(exc: OperationalError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _LOCK_ERROR_MARKERS)

@contextmanager
def write_transaction(db: Session, operation: str) -> Iterator[None]:
    """
    Commit everything done inside the block as one unit, or roll it all back.

    Ledger errors are re-raised unchanged. Lock contention and version
    mismatches become ConcurrencyConflict, any other storage error becomes
    PersistenceFailure.
    """
    try:
        yield
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"{operation}: concurrent update detected ({e})")
        raise ConcurrencyConflict(f"{operation} lost a concurrent update") from e
    except OperationalError as e:
        db.rollback()
        if _is_lock_error(e):
            logger.warning(f"{operation}: database lock contention ({e.orig})")
            raise ConcurrencyConflict(f"{operation} could not acquire a database lock") from e
        logger.error(f"{operation}: storage failure", exc_info=True)
        raise PersistenceFailure(f"{operation} failed in storage") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{operation}: storage failure", exc_info=True)
        raise PersistenceFailure(f"{operation} failed in storage") from e

@contextmanager
def read_guard(db: Session, operation: str) -> Iterator[None]:
    """Storage errors while reading become PersistenceFailure, like writes do."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{operation}: storage failure", exc_info=True)
        raise PersistenceFailure(f"{operation} failed in storage") from e

def run_with_retry(
    db: Session,
    operation: str,
    func: Callable[[], T],
    *,
    max_retries: int = None,
    backoff_seconds: float = None,
) -> T:
    """
    Run ``func`` and retry it on ConcurrencyConflict with exponential backoff.

    ``func`` must be a complete unit of work (read, decide, write, commit) so
    that re-running it from scratch is safe. No other error is retried.
    """
    if max_retries is None:
        max_retries = config.LEDGER_MAX_RETRIES
    if backoff_seconds is None:
        backoff_seconds = config.LEDGER_RETRY_BACKOFF_SECONDS

    attempt = 0
    while True:
        try:
            return func()
        except ConcurrencyConflict:
            if attempt >= max_retries:
                logger.error(f"{operation}: giving up after {attempt + 1} attempts")
                raise
            delay = backoff_seconds * (2 ** attempt)
            attempt += 1
            logger.warning(f"{operation}: concurrency conflict, retry {attempt}/{max_retries} in {delay:.3f}s")
            db.expire_all()
            time.sleep(delay)
