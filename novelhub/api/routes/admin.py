"""
Admin API: budget/balance corrections, manual unlock, novel transaction log,
reader wallet top-ups.
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from novelhub.api.deps import CurrentUser, get_admin_user, get_event_publisher
from novelhub.api.routes.errors import run_flow
from novelhub.core.exceptions import NotFound
from novelhub.db.session import get_db
from novelhub.schemas.funding import BalanceUpdateIn, BudgetUpdateIn, NovelTransactionOut, TopUpIn
from novelhub.services.catalog.service import CatalogService
from novelhub.services.contributions.service import ContributionService
from novelhub.services.events.service import EventPublisher
from novelhub.services.ledger.service import LedgerService
from novelhub.services.wallets.service import WalletService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.patch("/novels/{novel_id}/budget")
def admin_update_budget(
    novel_id: str,
    payload: BudgetUpdateIn,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(get_admin_user),
    events: EventPublisher = Depends(get_event_publisher),
):
    outcome = run_flow(
        db,
        lambda s: ContributionService(s).adjust_budget(novel_id, payload.novel_budget, admin.id, payload.note),
    )
    events.budget_updated(novel_id, outcome.budget, outcome.balance)
    events.unlock_completed(outcome.unlock)
    return {
        "novelBudget": outcome.budget,
        "novelBalance": outcome.balance,
        "unlockedContent": [item.model_dump() for item in outcome.unlock.unlocked_content],
    }


@router.patch("/novels/{novel_id}/balance")
def admin_update_balance(
    novel_id: str,
    payload: BalanceUpdateIn,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(get_admin_user),
):
    outcome = run_flow(
        db, lambda s: ContributionService(s).adjust_balance(novel_id, payload.novel_balance, admin.id)
    )
    return {"novelBudget": outcome.budget, "novelBalance": outcome.balance}


@router.post("/novels/{novel_id}/unlock")
def admin_manual_unlock(
    novel_id: str,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(get_admin_user),
    events: EventPublisher = Depends(get_event_publisher),
):
    outcome = run_flow(db, lambda s: ContributionService(s).manual_unlock(novel_id))
    events.unlock_completed(outcome.unlock)
    return {
        "novelBudget": outcome.budget,
        "unlockedContent": [item.model_dump() for item in outcome.unlock.unlocked_content],
        "switchedModules": [module.model_dump() for module in outcome.unlock.switched_modules],
    }


@router.get("/novels/{novel_id}/transactions")
def admin_novel_transactions(
    novel_id: str,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(get_admin_user),
    limit: int = Query(20, ge=1),
    offset: int = Query(0, ge=0),
):
    try:
        novel = CatalogService(db).get_novel(novel_id)
    except NotFound:
        raise HTTPException(404, "Novel not found")
    rows = LedgerService(db).transactions(novel_id, limit=limit, offset=offset)
    return {
        "novel": {"id": novel.id, "title": novel.title, "novelBalance": novel.balance, "novelBudget": novel.budget},
        "transactions": [NovelTransactionOut.model_validate(t).model_dump() for t in rows],
    }


@router.post("/users/{user_id}/top-up")
def admin_top_up_wallet(
    user_id: str,
    payload: TopUpIn,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(get_admin_user),
):
    balance = run_flow(db, lambda s: WalletService(s).top_up(user_id, payload.amount))
    return {"userId": user_id, "balance": balance}
