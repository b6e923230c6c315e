import logging

from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.orm import Session

from novelhub.core.exceptions import InvalidAmount, NotFound
from novelhub.db.transaction import require_transaction
from novelhub.models.novel import Novel

logger = logging.getLogger(__name__)


class BudgetTotals(BaseModel):
    novel_id: str
    budget: int
    balance: int

    model_config = {"frozen": True}


def _check_amount(amount: int, allow_zero: bool = False) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount("Amount must be an integer", {"amount": amount})
    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmount("Amount must be positive", {"amount": amount})


class BudgetService:
    """
    Single writer of Novel.budget / Novel.balance.
    Increments are done in the store (SET x = x + :n), never read-modify-write,
    and only inside the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_totals(self, novel_id: str) -> BudgetTotals:
        row = (
            self.db.query(Novel.budget, Novel.balance)
            .filter(Novel.id == novel_id)
            .one_or_none()
        )
        if row is None:
            raise NotFound("Novel", novel_id)
        return BudgetTotals(novel_id=novel_id, budget=row.budget, balance=row.balance)

    def credit(self, novel_id: str, amount: int) -> BudgetTotals:
        """Add amount to both budget and balance. Returns the new totals."""
        _check_amount(amount)
        require_transaction(self.db)
        self._increment(novel_id, {Novel.budget: Novel.budget + amount, Novel.balance: Novel.balance + amount})
        totals = self.get_totals(novel_id)
        logger.info(
            "budget_credited",
            extra={"novel_id": novel_id, "amount": amount, "budget": totals.budget, "balance": totals.balance},
        )
        return totals

    def credit_balance(self, novel_id: str, amount: int) -> BudgetTotals:
        """Gifts: only the balance grows, the unlock budget stays as is."""
        _check_amount(amount)
        require_transaction(self.db)
        self._increment(novel_id, {Novel.balance: Novel.balance + amount})
        totals = self.get_totals(novel_id)
        logger.info(
            "balance_credited",
            extra={"novel_id": novel_id, "amount": amount, "balance": totals.balance},
        )
        return totals

    def set_budget(self, novel_id: str, new_budget: int) -> int:
        """Replace budget (after an unlock pass or admin correction). Returns new - old."""
        _check_amount(new_budget, allow_zero=True)
        require_transaction(self.db)
        old = self._locked_totals(novel_id).budget
        self.db.execute(
            update(Novel).where(Novel.id == novel_id).values({Novel.budget: new_budget})
        )
        return new_budget - old

    def set_balance(self, novel_id: str, new_balance: int) -> int:
        """Admin correction of the balance. Returns new - old."""
        _check_amount(new_balance, allow_zero=True)
        require_transaction(self.db)
        old = self._locked_totals(novel_id).balance
        self.db.execute(
            update(Novel).where(Novel.id == novel_id).values({Novel.balance: new_balance})
        )
        return new_balance - old

    def _increment(self, novel_id: str, values: dict) -> None:
        result = self.db.execute(update(Novel).where(Novel.id == novel_id).values(values))
        if result.rowcount == 0:
            raise NotFound("Novel", novel_id)

    def _locked_totals(self, novel_id: str):
        row = (
            self.db.query(Novel.budget, Novel.balance)
            .filter(Novel.id == novel_id)
            .with_for_update()
            .one_or_none()
        )
        if row is None:
            raise NotFound("Novel", novel_id)
        return row
