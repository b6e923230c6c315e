"""
ContributionService — the funding flows that feed the novel budget.

Responsibilities:
- user contributions (budget + balance, then auto-unlock)
- gifts (balance only, no unlock)
- admin corrections of budget/balance and manual unlock

All methods run on the caller's transaction (see run_in_transaction) and never
commit. Contributions and gifts are paid from the user's wallet in that same
transaction, so a failed flow never charges the user.
"""
import logging

from pydantic import BaseModel
from sqlalchemy.orm import Session

from novelhub.core.config import settings
from novelhub.core.exceptions import InvalidAmount
from novelhub.models.contribution_history import LedgerKind
from novelhub.models.novel_transaction import NovelTransactionType
from novelhub.services.budget.service import BudgetService
from novelhub.services.ledger.service import LedgerService
from novelhub.services.unlock.engine import UnlockEngine
from novelhub.services.unlock.models import UnlockResult
from novelhub.services.wallets.service import WalletService
from novelhub.utils.metrics import budget_credits_total

logger = logging.getLogger(__name__)

DEFAULT_CONTRIBUTION_NOTE = "Contribution to the novel"
DEFAULT_GIFT_NOTE = "Gift to the novel"
ADMIN_BUDGET_NOTE = "Admin budget adjustment"
ADMIN_BALANCE_NOTE = "Admin balance adjustment"


class FundingOutcome(BaseModel):
    novel_id: str
    budget: int
    balance: int
    ledger_entry_id: str | None = None
    user_balance: int | None = None
    unlock: UnlockResult | None = None

    model_config = {"frozen": True}


class ContributionService:
    def __init__(self, db: Session):
        self.db = db
        self.budget = BudgetService(db)
        self.ledger = LedgerService(db)
        self.engine = UnlockEngine(db)
        self.wallets = WalletService(db)

    # ------------------------------------------------------------------
    # User contribution
    # ------------------------------------------------------------------

    def contribute(self, novel_id: str, user_id: str, amount: int, note: str | None = None) -> FundingOutcome:
        min_amount = settings.contribution_min_amount
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < min_amount:
            raise InvalidAmount(
                f"Minimum contribution is {min_amount}",
                {"amount": amount, "min_amount": min_amount},
            )
        note = (note or "").strip() or DEFAULT_CONTRIBUTION_NOTE

        self.budget.get_totals(novel_id)
        user_balance = self.wallets.debit(user_id, amount)
        totals = self.budget.credit(novel_id, amount)
        entry = self.ledger.append(
            novel_id=novel_id,
            user_id=user_id,
            amount=amount,
            note=note,
            budget_after=totals.budget,
            balance_after=totals.balance,
            kind=LedgerKind.USER,
        )
        self.ledger.record_transaction(
            novel_id=novel_id,
            amount=amount,
            type=NovelTransactionType.CONTRIBUTION,
            description=note,
            balance_after=totals.balance,
            performed_by=user_id,
            source_id=entry.id,
            source_model="ContributionHistory",
        )
        budget_credits_total.labels(source="contribution").inc()
        logger.info(
            "contribution_recorded",
            extra={"novel_id": novel_id, "user_id": user_id, "amount": amount, "budget": totals.budget},
        )

        result = self.engine.unlock(novel_id)
        return FundingOutcome(
            novel_id=novel_id,
            budget=result.final_budget,
            balance=totals.balance,
            ledger_entry_id=entry.id,
            user_balance=user_balance,
            unlock=result,
        )

    # ------------------------------------------------------------------
    # Gift
    # ------------------------------------------------------------------

    def gift(self, novel_id: str, user_id: str, amount: int, note: str | None = None) -> FundingOutcome:
        """Gifts grow the novel balance only; they never pay for unlocks."""
        note = (note or "").strip() or DEFAULT_GIFT_NOTE
        self.budget.get_totals(novel_id)
        user_balance = self.wallets.debit(user_id, amount)
        totals = self.budget.credit_balance(novel_id, amount)
        entry = self.ledger.append(
            novel_id=novel_id,
            user_id=user_id,
            amount=amount,
            note=note,
            budget_after=totals.budget,
            balance_after=totals.balance,
            kind=LedgerKind.GIFT,
        )
        self.ledger.record_transaction(
            novel_id=novel_id,
            amount=amount,
            type=NovelTransactionType.GIFT_RECEIVED,
            description=note,
            balance_after=totals.balance,
            performed_by=user_id,
            source_id=entry.id,
            source_model="ContributionHistory",
        )
        budget_credits_total.labels(source="gift").inc()
        logger.info(
            "gift_recorded",
            extra={"novel_id": novel_id, "user_id": user_id, "amount": amount, "balance": totals.balance},
        )
        return FundingOutcome(
            novel_id=novel_id,
            budget=totals.budget,
            balance=totals.balance,
            ledger_entry_id=entry.id,
            user_balance=user_balance,
        )

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def adjust_budget(
        self, novel_id: str, new_budget: int, admin_id: str, note: str | None = None
    ) -> FundingOutcome:
        """Set the budget to an exact value, log the signed delta, then run an unlock pass."""
        delta = self.budget.set_budget(novel_id, new_budget)
        totals = self.budget.get_totals(novel_id)
        entry_id = None
        if delta != 0:
            entry = self.ledger.append(
                novel_id=novel_id,
                user_id=admin_id,
                amount=delta,
                note=(note or "").strip() or ADMIN_BUDGET_NOTE,
                budget_after=totals.budget,
                balance_after=totals.balance,
                kind=LedgerKind.ADMIN,
            )
            entry_id = entry.id
            budget_credits_total.labels(source="admin").inc()
        logger.info(
            "admin_budget_adjusted",
            extra={"novel_id": novel_id, "admin_id": admin_id, "delta": delta, "budget": totals.budget},
        )

        result = self.engine.unlock(novel_id)
        return FundingOutcome(
            novel_id=novel_id,
            budget=result.final_budget,
            balance=totals.balance,
            ledger_entry_id=entry_id,
            unlock=result,
        )

    def adjust_balance(self, novel_id: str, new_balance: int, admin_id: str) -> FundingOutcome:
        delta = self.budget.set_balance(novel_id, new_balance)
        totals = self.budget.get_totals(novel_id)
        if delta != 0:
            self.ledger.record_transaction(
                novel_id=novel_id,
                amount=delta,
                type=NovelTransactionType.ADMIN,
                description=ADMIN_BALANCE_NOTE,
                balance_after=totals.balance,
                performed_by=admin_id,
                source_id=admin_id,
                source_model="User",
            )
        logger.info(
            "admin_balance_adjusted",
            extra={"novel_id": novel_id, "admin_id": admin_id, "delta": delta, "balance": totals.balance},
        )
        return FundingOutcome(novel_id=novel_id, budget=totals.budget, balance=totals.balance)

    def manual_unlock(self, novel_id: str) -> FundingOutcome:
        result = self.engine.unlock(novel_id)
        totals = self.budget.get_totals(novel_id)
        return FundingOutcome(
            novel_id=novel_id,
            budget=totals.budget,
            balance=totals.balance,
            unlock=result,
        )
