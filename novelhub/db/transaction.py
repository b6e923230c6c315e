"""
Unit-of-work envelope: one commit per funding/unlock flow, full rollback on failure.

Concurrent passes on the same novel are serialized by the novel row lock; when the
store still reports a serialization failure or deadlock the whole unit is replayed.
"""
import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session

from novelhub.core.config import settings
from novelhub.core.exceptions import TransactionAborted, TransactionRequired
from novelhub.utils.metrics import transaction_retries_total, transactions_aborted_total

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_retryable(exc: SQLAlchemyError) -> bool:
    if not isinstance(exc, DBAPIError) or exc.orig is None:
        return False
    code = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    return code in RETRYABLE_SQLSTATES


def require_transaction(db: Session) -> None:
    if not db.in_transaction():
        raise TransactionRequired("balance and mode changes must run inside run_in_transaction()")


def run_in_transaction(
    db: Session,
    work: Callable[[Session], T],
    max_retries: int | None = None,
) -> T:
    """
    Run work(db) inside a transaction and commit it.
    Domain errors roll back and propagate unchanged; store errors roll back and
    surface as TransactionAborted once retries are exhausted.
    """
    retries = settings.transaction_max_retries if max_retries is None else max_retries
    attempt = 0
    while True:
        attempt += 1
        if not db.in_transaction():
            db.begin()
        try:
            result = work(db)
            db.commit()
            return result
        except SQLAlchemyError as exc:
            db.rollback()
            if is_retryable(exc) and attempt <= retries:
                transaction_retries_total.inc()
                logger.warning(
                    "transaction_retry",
                    extra={"attempt": attempt, "error": str(exc.orig)},
                )
                time.sleep(settings.transaction_retry_backoff_seconds * attempt)
                continue
            transactions_aborted_total.inc()
            logger.error("transaction_aborted", extra={"attempt": attempt, "error": str(exc)})
            raise TransactionAborted(
                "Store error, all changes were rolled back",
                {"attempts": attempt},
            ) from exc
        except Exception:
            db.rollback()
            raise
