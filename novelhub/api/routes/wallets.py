from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from novelhub.api.deps import CurrentUser, get_current_user
from novelhub.db.session import get_db
from novelhub.services.wallets.service import WalletService

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("")
def my_wallet(db: Session = Depends(get_db), user: CurrentUser = Depends(get_current_user)):
    return {"userId": user.id, "balance": WalletService(db).get_balance(user.id)}
