import logging
from typing import Callable, TypeVar

from fastapi import HTTPException
from sqlalchemy.orm import Session

from novelhub.core.exceptions import NovelhubError
from novelhub.db.transaction import run_in_transaction

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_flow(db: Session, work: Callable[[Session], T]) -> T:
    """Run a funding/unlock flow as one transaction, domain errors -> HTTP errors."""
    try:
        return run_in_transaction(db, work)
    except NovelhubError as exc:
        if exc.status_code >= 500:
            logger.warning("flow_failed", extra={"error": exc.message})
        raise HTTPException(exc.status_code, exc.message) from exc
