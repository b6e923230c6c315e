from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from novelhub.api.deps import CurrentUser, get_current_user, get_event_publisher
from novelhub.api.routes.errors import run_flow
from novelhub.db.session import get_db
from novelhub.services.events.service import EventPublisher
from novelhub.services.rentals.service import RentalService

router = APIRouter(prefix="/modules", tags=["modules"])


@router.post("/{module_id}/rent")
def rent_module(
    module_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    events: EventPublisher = Depends(get_event_publisher),
):
    outcome = run_flow(db, lambda s: RentalService(s).rent_module(module_id, user.id))
    events.budget_updated(outcome.novel_id, outcome.budget, outcome.balance)
    events.unlock_completed(outcome.unlock)
    return {
        "success": True,
        "rentalId": outcome.rental_id,
        "amountPaid": outcome.amount_paid,
        "endTime": outcome.end_time.isoformat(),
        "novelBudget": outcome.budget,
        "userBalance": outcome.user_balance,
        "unlockedContent": [item.model_dump() for item in outcome.unlock.unlocked_content],
        "switchedModules": [module.model_dump() for module in outcome.unlock.switched_modules],
    }
