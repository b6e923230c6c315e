from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, event

from novelhub.core.exceptions import LedgerImmutableError
from novelhub.db.base import Base


class LedgerKind(str, Enum):
    USER = "user"
    SYSTEM = "system"  # auto-unlock deduction, user_id is NULL
    ADMIN = "admin"
    GIFT = "gift"


class ContributionHistory(Base):
    """Append-only history of every budget-affecting event of a novel."""

    __tablename__ = "contribution_history"
    __table_args__ = (
        Index("ix_contribution_history_novel_created", "novel_id", "created_at"),
        Index("ix_contribution_history_novel_kind", "novel_id", "kind"),
        CheckConstraint("budget_after >= 0", name="ck_contribution_history_budget_after"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    novel_id = Column(String, ForeignKey("novels.id"), nullable=False)
    user_id = Column(String, nullable=True, index=True)
    amount = Column(Integer, nullable=False)  # signed
    note = Column(String, nullable=False, default="")
    budget_after = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=True)
    kind = Column(String, nullable=False, default=LedgerKind.USER.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))


@event.listens_for(ContributionHistory, "before_update")
def _reject_history_update(mapper, connection, target):
    raise LedgerImmutableError("contribution history is append-only", {"id": target.id})


@event.listens_for(ContributionHistory, "before_delete")
def _reject_history_delete(mapper, connection, target):
    raise LedgerImmutableError("contribution history is append-only", {"id": target.id})
