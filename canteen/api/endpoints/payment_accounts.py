# canteen/api/endpoints/payment_accounts.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from canteen.api.deps import Actor, get_actor, require_admin
from canteen.core.database import get_db
from canteen.models.schemas import ProviderAccountOut, ProviderAccountUpsert
from canteen.services import payment_accounts

router = APIRouter()
admin_router = APIRouter()


# Public: no identity required
@router.get("", response_model=List[ProviderAccountOut])
def list_accounts(db: Session = Depends(get_db)):
    return payment_accounts.list_active(db)


@router.get("/{provider}", response_model=ProviderAccountOut)
def get_account(provider: str, db: Session = Depends(get_db)):
    return payment_accounts.get_active(db, provider)


@admin_router.get("", response_model=List[ProviderAccountOut])
def list_all_accounts(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    require_admin(actor)
    return payment_accounts.list_all(db)


@admin_router.put("/{provider}", response_model=ProviderAccountOut)
def upsert_account(provider: str, payload: ProviderAccountUpsert, actor: Actor = Depends(get_actor),
                   db: Session = Depends(get_db)):
    require_admin(actor)
    return payment_accounts.upsert(db, provider, **payload.model_dump(exclude_unset=True))
