import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from novelhub.core.exceptions import InsufficientBalance, InvalidAmount
from novelhub.db.transaction import require_transaction
from novelhub.models.user_wallet import UserWallet

logger = logging.getLogger(__name__)


class WalletService:
    """
    Reader wallets. Debits lock the wallet row and run in the same transaction
    as the novel credit they pay for, so a failed flow refunds automatically.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_balance(self, user_id: str) -> int:
        wallet = self.db.query(UserWallet).filter(UserWallet.user_id == user_id).one_or_none()
        return wallet.balance if wallet else 0

    def debit(self, user_id: str, amount: int) -> int:
        """Take amount from the wallet. Returns the new balance."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount("Amount must be positive", {"amount": amount})
        require_transaction(self.db)
        wallet = self._locked(user_id)
        available = wallet.balance if wallet else 0
        if available < amount:
            raise InsufficientBalance(
                f"Insufficient balance: need {amount}, have {available}",
                {"user_id": user_id, "amount": amount, "balance": available},
            )
        self.db.execute(
            update(UserWallet)
            .where(UserWallet.user_id == user_id)
            .values({UserWallet.balance: UserWallet.balance - amount})
        )
        balance = available - amount
        logger.info("wallet_debited", extra={"user_id": user_id, "amount": amount, "balance": balance})
        return balance

    def top_up(self, user_id: str, amount: int) -> int:
        """Admin top-up; creates the wallet on first use. Returns the new balance."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount("Amount must be positive", {"amount": amount})
        require_transaction(self.db)
        wallet = self._locked(user_id)
        if wallet is None:
            self.db.add(UserWallet(user_id=user_id, balance=amount))
            self.db.flush()
            balance = amount
        else:
            balance = wallet.balance + amount
            self.db.execute(
                update(UserWallet)
                .where(UserWallet.user_id == user_id)
                .values({UserWallet.balance: UserWallet.balance + amount})
            )
        logger.info("wallet_topped_up", extra={"user_id": user_id, "amount": amount, "balance": balance})
        return balance

    def _locked(self, user_id: str) -> UserWallet | None:
        return (
            self.db.query(UserWallet)
            .filter(UserWallet.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
