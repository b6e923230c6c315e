from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, event

from novelhub.core.exceptions import LedgerImmutableError
from novelhub.db.base import Base


class NovelTransactionType(str, Enum):
    CONTRIBUTION = "contribution"
    GIFT_RECEIVED = "gift_received"
    ADMIN = "admin"
    RENTAL = "rental"
    OTHER = "other"


class NovelTransaction(Base):
    """Deposit/withdrawal log of Novel.balance."""

    __tablename__ = "novel_transactions"
    __table_args__ = (Index("ix_novel_transactions_novel_created", "novel_id", "created_at"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    novel_id = Column(String, ForeignKey("novels.id"), nullable=False)
    amount = Column(Integer, nullable=False)
    type = Column(String, nullable=False, index=True)
    description = Column(String, nullable=False)
    balance_after = Column(Integer, nullable=False)
    source_id = Column(String, nullable=True)
    source_model = Column(String, nullable=True)  # ContributionHistory, ModuleRental, User
    performed_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


@event.listens_for(NovelTransaction, "before_update")
def _reject_transaction_update(mapper, connection, target):
    raise LedgerImmutableError("novel transactions are append-only", {"id": target.id})


@event.listens_for(NovelTransaction, "before_delete")
def _reject_transaction_delete(mapper, connection, target):
    raise LedgerImmutableError("novel transactions are append-only", {"id": target.id})
