# canteen/api/endpoints/menu.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from canteen.api.deps import Actor, get_actor, require_admin
from canteen.core.database import get_db
from canteen.models.schemas import (
    MenuItemCreate, MenuItemOut, MenuItemUpdate, RestockRequest, StockCorrection,
)
from canteen.services import menu

router = APIRouter()
admin_router = APIRouter()


@router.get("", response_model=List[MenuItemOut])
def list_menu(include_inactive: bool = False, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    # Hidden items are only listed for admins
    return menu.list_menu(db, include_inactive=include_inactive and actor.is_admin)


@router.get("/{item_id}", response_model=MenuItemOut)
def get_menu_item(item_id: int, db: Session = Depends(get_db)):
    return menu.get_menu_item(db, item_id)


@admin_router.post("", response_model=MenuItemOut, status_code=201)
def add_menu_item(payload: MenuItemCreate, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    require_admin(actor)
    return menu.create_menu_item(db, **payload.model_dump())


@admin_router.patch("/{item_id}", response_model=MenuItemOut)
def update_menu_item(item_id: int, payload: MenuItemUpdate, actor: Actor = Depends(get_actor),
                     db: Session = Depends(get_db)):
    require_admin(actor)
    return menu.update_menu_item(db, item_id, **payload.model_dump(exclude_unset=True))


@admin_router.delete("/{item_id}")
def delete_menu_item(item_id: int, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    require_admin(actor)
    menu.delete_menu_item(db, item_id)
    return {"ok": True}


@admin_router.post("/{item_id}/restock", response_model=MenuItemOut)
def restock(item_id: int, payload: RestockRequest, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    require_admin(actor)
    return menu.restock(db, item_id, payload.quantity)


@admin_router.put("/{item_id}/stock", response_model=MenuItemOut)
def set_stock(item_id: int, payload: StockCorrection, actor: Actor = Depends(get_actor), db: Session = Depends(get_db)):
    require_admin(actor)
    return menu.set_stock(db, item_id, payload.stock)
