# canteen/api/endpoints/wallets.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from canteen.api.deps import Actor, get_actor, require_admin
from canteen.core.database import get_db
from canteen.models.schemas import WalletAudit, WalletOut, WalletTransactionOut
from canteen.services import wallet_ledger

router = APIRouter()
admin_router = APIRouter()


@router.get("/me", response_model=WalletOut)
def my_wallet(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return WalletOut(user_id=actor.user_id, balance=wallet_ledger.get_balance(db, actor.user_id))


@router.get("/me/transactions", response_model=List[WalletTransactionOut])
def my_transactions(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return wallet_ledger.list_transactions(db, actor.user_id)


@admin_router.get("/{user_id}/audit", response_model=WalletAudit)
def audit_wallet(user_id: str, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    require_admin(actor)
    return wallet_ledger.audit(db, user_id)
