import logging

from pydantic import BaseModel
from sqlalchemy.orm import Session

from novelhub.core.config import settings
from novelhub.db.transaction import require_transaction
from novelhub.models.content_mode import ContentMode
from novelhub.models.module import Module
from novelhub.services.catalog.service import CatalogService

logger = logging.getLogger(__name__)


class AutoSwitchResult(BaseModel):
    """switched=True when a rent module just became published."""

    switched: bool
    module: Module

    model_config = {"arbitrary_types_allowed": True, "frozen": True}


def rent_price_for(paid_total: int) -> int:
    return max(0, paid_total // settings.rent_price_divisor)


class RentBalanceService:
    """Outstanding balance of rent modules and their switch to published."""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogService(db)

    def recalculate(self, module_id: str) -> int:
        """rent_remaining_balance = sum of prices of the module's still-paid chapters."""
        require_transaction(self.db)
        module = self.catalog.get_module(module_id)
        outstanding = self.catalog.paid_chapter_total(module_id)
        module.rent_remaining_balance = outstanding
        self.db.add(module)
        self.db.flush()
        return outstanding

    def conditionally_recalculate(self, module_id: str) -> int:
        """
        Variant used after an unlock pass. The outstanding balance is always
        refreshed; the rental price follows it only for modules that opted in
        (recalculate_rent_on_unlock), otherwise a manually set price is kept.
        """
        outstanding = self.recalculate(module_id)
        module = self.catalog.get_module(module_id)
        if module.recalculate_rent_on_unlock:
            module.rent_balance = rent_price_for(outstanding)
            self.db.add(module)
            self.db.flush()
        logger.info(
            "rent_balance_recalculated",
            extra={
                "module_id": module_id,
                "balance": outstanding,
                "price": module.rent_balance,
            },
        )
        return outstanding

    def check_auto_switch(self, module_id: str) -> AutoSwitchResult:
        """Publish a rent module once nothing inside it is left to pay for."""
        require_transaction(self.db)
        module = self.catalog.get_module(module_id)
        if module.content_mode is not ContentMode.RENT:
            return AutoSwitchResult(switched=False, module=module)

        outstanding = self.catalog.paid_chapter_total(module_id)
        if outstanding > 0:
            return AutoSwitchResult(switched=False, module=module)

        module.rent_remaining_balance = 0
        self.catalog.set_module_mode(module, ContentMode.PUBLISHED)
        logger.info(
            "rent_module_switched_to_published",
            extra={"module_id": module.id, "novel_id": module.novel_id},
        )
        return AutoSwitchResult(switched=True, module=module)
