"""
Public novel endpoints: contribute, gift, contribution history.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from novelhub.api.deps import CurrentUser, get_current_user, get_event_publisher
from novelhub.api.routes.errors import run_flow
from novelhub.core.exceptions import NotFound
from novelhub.db.session import get_db
from novelhub.schemas.funding import ContributionIn, GiftIn, LedgerEntryOut
from novelhub.services.catalog.service import CatalogService
from novelhub.services.contributions.service import ContributionService
from novelhub.services.events.service import EventPublisher
from novelhub.services.ledger.service import LedgerService

router = APIRouter(prefix="/novels", tags=["novels"])


@router.post("/{novel_id}/contribute")
def contribute(
    novel_id: str,
    payload: ContributionIn,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    events: EventPublisher = Depends(get_event_publisher),
):
    outcome = run_flow(
        db, lambda s: ContributionService(s).contribute(novel_id, user.id, payload.amount, payload.note)
    )
    events.budget_updated(novel_id, outcome.budget, outcome.balance)
    events.unlock_completed(outcome.unlock)
    return {
        "success": True,
        "novelBudget": outcome.budget,
        "novelBalance": outcome.balance,
        "userBalance": outcome.user_balance,
        "unlockedContent": [item.model_dump() for item in outcome.unlock.unlocked_content],
        "switchedModules": [module.model_dump() for module in outcome.unlock.switched_modules],
    }


@router.post("/{novel_id}/gifts")
def send_gift(
    novel_id: str,
    payload: GiftIn,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    events: EventPublisher = Depends(get_event_publisher),
):
    outcome = run_flow(db, lambda s: ContributionService(s).gift(novel_id, user.id, payload.amount, payload.note))
    events.budget_updated(novel_id, outcome.budget, outcome.balance)
    return {
        "success": True,
        "novelBudget": outcome.budget,
        "novelBalance": outcome.balance,
        "userBalance": outcome.user_balance,
    }


@router.get("/{novel_id}/contribution-history")
def contribution_history(
    novel_id: str,
    db: Session = Depends(get_db),
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
):
    try:
        CatalogService(db).get_novel(novel_id)
    except NotFound:
        raise HTTPException(404, "Novel not found")
    entries = LedgerService(db).history(novel_id, limit=limit, offset=offset)
    return {"contributions": [LedgerEntryOut.model_validate(e).model_dump() for e in entries]}
