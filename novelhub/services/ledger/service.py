import logging

from sqlalchemy.orm import Session

from novelhub.core.config import settings
from novelhub.models.contribution_history import ContributionHistory, LedgerKind
from novelhub.models.novel_transaction import NovelTransaction, NovelTransactionType

logger = logging.getLogger(__name__)


def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    limit = settings.history_default_limit if limit is None else limit
    limit = max(1, min(limit, settings.history_max_limit))
    return limit, max(0, offset or 0)


class LedgerService:
    """Append-only writes and newest-first reads of the novel ledgers. Never commits."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Contribution history (budget events)
    # ------------------------------------------------------------------

    def append(
        self,
        novel_id: str,
        amount: int,
        budget_after: int,
        kind: LedgerKind,
        user_id: str | None = None,
        note: str = "",
        balance_after: int | None = None,
    ) -> ContributionHistory:
        entry = ContributionHistory(
            novel_id=novel_id,
            user_id=user_id,
            amount=amount,
            note=note,
            budget_after=budget_after,
            balance_after=balance_after,
            kind=LedgerKind(kind).value,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def history(
        self, novel_id: str, limit: int | None = None, offset: int | None = None
    ) -> list[ContributionHistory]:
        limit, offset = clamp_page(limit, offset)
        return (
            self.db.query(ContributionHistory)
            .filter(ContributionHistory.novel_id == novel_id)
            .order_by(ContributionHistory.created_at.desc(), ContributionHistory.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    # ------------------------------------------------------------------
    # Novel transactions (balance deposits/withdrawals)
    # ------------------------------------------------------------------

    def record_transaction(
        self,
        novel_id: str,
        amount: int,
        type: NovelTransactionType,
        description: str,
        balance_after: int,
        performed_by: str | None = None,
        source_id: str | None = None,
        source_model: str | None = None,
    ) -> NovelTransaction:
        tx = NovelTransaction(
            novel_id=novel_id,
            amount=amount,
            type=NovelTransactionType(type).value,
            description=description,
            balance_after=balance_after,
            performed_by=performed_by,
            source_id=source_id,
            source_model=source_model,
        )
        self.db.add(tx)
        self.db.flush()
        return tx

    def transactions(
        self, novel_id: str, limit: int | None = None, offset: int | None = None
    ) -> list[NovelTransaction]:
        limit, offset = clamp_page(limit, offset)
        return (
            self.db.query(NovelTransaction)
            .filter(NovelTransaction.novel_id == novel_id)
            .order_by(NovelTransaction.created_at.desc(), NovelTransaction.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
