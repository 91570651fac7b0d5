# canteen/api/endpoints/reservations.py
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from canteen.api.deps import Actor, get_actor, require_admin
from canteen.core.database import get_db
from canteen.models.enums import ReservationStatus
from canteen.models.schemas import (
    BulkOutcome, BulkStatusUpdate, ReservationCreate, ReservationOut, StatusUpdate,
)
from canteen.services import reservations
from canteen.services.pricing import CartLine

router = APIRouter()
admin_router = APIRouter()


# --- STUDENT ---
@router.post("", response_model=ReservationOut, status_code=201)
def create_reservation(payload: ReservationCreate, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    cart = [CartLine(menu_item_id=i.menu_item_id, quantity=i.quantity) for i in payload.items]
    return reservations.create(
        db,
        user_id=actor.user_id,
        cart=cart,
        pickup_slot=payload.pickup_slot,
        note=payload.note,
        student=payload.student,
        grade=payload.grade,
        section=payload.section,
    )


@router.get("/mine", response_model=List[ReservationOut])
def my_reservations(actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return reservations.list_for_user(db, actor.user_id)


@router.get("/{reservation_id}", response_model=ReservationOut)
def get_reservation(reservation_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    return reservations.get(db, reservation_id, viewer_id=actor.user_id, actor_is_admin=actor.is_admin)


# --- ADMIN ---
@admin_router.get("", response_model=List[ReservationOut])
def list_reservations(status: Optional[ReservationStatus] = None, actor: Actor = Depends(get_actor),
                      db: Session = Depends(get_db)):
    require_admin(actor)
    return reservations.list_admin(db, status=status)


@admin_router.post("/bulk", response_model=List[BulkOutcome])
def bulk_set_status(payload: BulkStatusUpdate, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    outcomes = reservations.bulk_set_status(db, payload.ids, payload.status, actor_is_admin=actor.is_admin)
    return [
        BulkOutcome(
            id=o["id"],
            ok=o["ok"],
            error=o.get("error"),
            reservation=ReservationOut.model_validate(o["reservation"]) if o.get("reservation") else None,
        )
        for o in outcomes
    ]


@admin_router.patch("/{reservation_id}", response_model=ReservationOut)
def set_status(reservation_id: int, payload: StatusUpdate, actor: Actor = Depends(get_actor),
               db: Session = Depends(get_db)):
    return reservations.set_status(db, reservation_id, payload.status, actor_is_admin=actor.is_admin)
