# canteen/api/endpoints/topups.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from canteen.api.deps import Actor, get_actor, require_admin
from canteen.core.database import get_db
from canteen.models.enums import TopupStatus
from canteen.models.schemas import TopupDecision, TopupOut, TopupSubmit
from canteen.services import topups

router = APIRouter()
admin_router = APIRouter()


@router.post("", response_model=TopupOut, status_code=201)
def submit_topup(payload: TopupSubmit, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return topups.submit(db, actor.user_id, payload.amount, payload.provider, payload.proof_reference)


@router.get("/mine", response_model=List[TopupOut])
def my_topups(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return topups.list_for_user(db, actor.user_id)


@admin_router.get("", response_model=List[TopupOut])
def list_topups(status: Optional[TopupStatus] = None, actor: Actor = Depends(get_actor),
                db: Session = Depends(get_db)):
    require_admin(actor)
    return topups.list_admin(db, status=status)


@admin_router.patch("/{topup_id}", response_model=TopupOut)
def decide_topup(topup_id: int, payload: TopupDecision, actor: Actor = Depends(get_actor),
                 db: Session = Depends(get_db)):
    require_admin(actor)
    return topups.decide(db, topup_id, payload.outcome, payload.reason)
