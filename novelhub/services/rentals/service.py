"""
RentalService — temporary access to rent-mode modules.

A rental takes module.rent_balance from the reader's wallet and pays it into the
novel (budget and balance), so every rental also moves the auto-unlock forward.
Access lasts rental_duration_hours.
"""
import logging
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.orm import Session

from novelhub.core.config import settings
from novelhub.core.exceptions import RentalUnavailable
from novelhub.models.content_mode import ContentMode
from novelhub.models.contribution_history import LedgerKind
from novelhub.models.module_rental import ModuleRental
from novelhub.models.novel_transaction import NovelTransactionType
from novelhub.services.budget.service import BudgetService
from novelhub.services.catalog.service import CatalogService
from novelhub.services.ledger.service import LedgerService
from novelhub.services.unlock.engine import UnlockEngine
from novelhub.services.unlock.models import UnlockResult
from novelhub.services.wallets.service import WalletService
from novelhub.utils.metrics import budget_credits_total

logger = logging.getLogger(__name__)


class RentalOutcome(BaseModel):
    rental_id: str
    module_id: str
    novel_id: str
    amount_paid: int
    end_time: datetime
    budget: int
    balance: int
    user_balance: int
    unlock: UnlockResult

    model_config = {"frozen": True}


class RentalService:
    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogService(db)
        self.budget = BudgetService(db)
        self.ledger = LedgerService(db)
        self.engine = UnlockEngine(db)
        self.wallets = WalletService(db)

    def active_rental(self, user_id: str, module_id: str) -> ModuleRental | None:
        now = datetime.now(timezone.utc)
        return (
            self.db.query(ModuleRental)
            .filter(
                ModuleRental.user_id == user_id,
                ModuleRental.module_id == module_id,
                ModuleRental.is_active.is_(True),
                ModuleRental.end_time > now,
            )
            .first()
        )

    def rent_module(self, module_id: str, user_id: str) -> RentalOutcome:
        module = self.catalog.get_module(module_id)
        if module.content_mode is not ContentMode.RENT:
            raise RentalUnavailable("Module is not available for rent", {"module_id": module_id})
        price = module.rent_balance or 0
        if price <= 0:
            raise RentalUnavailable("Module has no paid content to rent", {"module_id": module_id})
        if self.active_rental(user_id, module_id) is not None:
            raise RentalUnavailable("Module is already rented", {"module_id": module_id})

        note = f"Module rental: {module.title}"
        user_balance = self.wallets.debit(user_id, price)
        totals = self.budget.credit(module.novel_id, price)
        entry = self.ledger.append(
            novel_id=module.novel_id,
            user_id=user_id,
            amount=price,
            note=note,
            budget_after=totals.budget,
            balance_after=totals.balance,
            kind=LedgerKind.USER,
        )

        start = datetime.now(timezone.utc)
        rental = ModuleRental(
            user_id=user_id,
            module_id=module.id,
            novel_id=module.novel_id,
            amount_paid=price,
            start_time=start,
            end_time=start + timedelta(hours=settings.rental_duration_hours),
            is_active=True,
            contribution_history_id=entry.id,
        )
        self.db.add(rental)
        self.db.flush()

        self.ledger.record_transaction(
            novel_id=module.novel_id,
            amount=price,
            type=NovelTransactionType.RENTAL,
            description=note,
            balance_after=totals.balance,
            performed_by=user_id,
            source_id=rental.id,
            source_model="ModuleRental",
        )
        budget_credits_total.labels(source="rental").inc()
        logger.info(
            "module_rented",
            extra={
                "rental_id": rental.id,
                "module_id": module.id,
                "novel_id": module.novel_id,
                "user_id": user_id,
                "amount": price,
            },
        )

        result = self.engine.unlock(module.novel_id)
        return RentalOutcome(
            rental_id=rental.id,
            module_id=module.id,
            novel_id=module.novel_id,
            amount_paid=price,
            end_time=rental.end_time,
            budget=result.final_budget,
            balance=totals.balance,
            user_balance=user_balance,
            unlock=result,
        )

    def expire_rentals(self) -> int:
        """Deactivate rentals whose access window has passed. Returns how many."""
        now = datetime.now(timezone.utc)
        expired = self.db.execute(
            update(ModuleRental)
            .where(ModuleRental.is_active.is_(True), ModuleRental.end_time <= now)
            .values({ModuleRental.is_active: False}),
            execution_options={"synchronize_session": False},
        ).rowcount
        if expired:
            logger.info("rentals_expired", extra={"amount": expired})
        return expired
