# canteen/services/menu.py
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from canteen.core.errors import InvalidMenuItem, ItemNotFound
from canteen.core.money import to_cents
from canteen.models.enums import Category
from canteen.models.sql_models import MenuItem
from canteen.services import inventory_ledger

logger = logging.getLogger(__name__)


def list_menu(db: Session, include_inactive: bool = False) -> List[MenuItem]:
    query = db.query(MenuItem)
    if not include_inactive:
        query = query.filter(MenuItem.active == True)  # noqa: E712
    return query.order_by(MenuItem.category, MenuItem.name).all()


def get_menu_item(db: Session, item_id: int) -> MenuItem:
    item = db.get(MenuItem, item_id, populate_existing=True)
    if item is None:
        raise ItemNotFound(item_id)
    return item


def _clean_name(name) -> str:
    name = (name or "").strip()
    if not name:
        raise InvalidMenuItem("Missing name")
    return name


def _price_cents(price) -> int:
    try:
        cents = to_cents(price)
    except ValueError as e:
        raise InvalidMenuItem(f"Invalid price: {e}")
    if cents <= 0:
        raise InvalidMenuItem("Price must be greater than zero")
    return cents


def _category(category) -> Category:
    try:
        return Category(category)
    except ValueError:
        raise InvalidMenuItem(f"Unknown category: {category}")


def _commit_item(db: Session, item: MenuItem) -> MenuItem:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise InvalidMenuItem(f"A menu item named '{item.name}' already exists")
    db.refresh(item)
    return item


def create_menu_item(db: Session, name: str, category, price, stock: int = 0,
                     active: bool = True) -> MenuItem:
    limit = inventory_ledger.MAX_QUANTITY
    if not isinstance(stock, int) or isinstance(stock, bool) or not 0 <= stock <= limit:
        raise InvalidMenuItem(f"Stock must be between 0 and {inventory_ledger.MAX_QUANTITY}")
    item = MenuItem(
        name=_clean_name(name),
        category=_category(category),
        price_cents=_price_cents(price),
        stock=stock,
        active=bool(active),
    )
    db.add(item)
    item = _commit_item(db, item)
    logger.info(f"Menu item {item.id} '{item.name}' added")
    return item


def update_menu_item(db: Session, item_id: int, name: str = None, category=None,
                     price=None, active: bool = None) -> MenuItem:
    """Edits catalogue fields. Stock goes through restock/set_stock instead."""
    item = get_menu_item(db, item_id)
    changes = {}
    if name is not None:
        changes["name"] = _clean_name(name)
    if category is not None:
        changes["category"] = _category(category)
    if price is not None:
        # Existing reservations keep their snapshot price
        changes["price_cents"] = _price_cents(price)
    for field, value in changes.items():
        setattr(item, field, value)
    if active is not None:
        item.active = bool(active)
    item = _commit_item(db, item)
    logger.info(f"Menu item {item_id} updated")
    return item


def delete_menu_item(db: Session, item_id: int) -> None:
    item = get_menu_item(db, item_id)
    db.delete(item)
    db.commit()
    logger.info(f"Menu item {item_id} deleted")


def restock(db: Session, item_id: int, qty: int) -> MenuItem:
    try:
        inventory_ledger.restock(db, item_id, qty)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Menu item {item_id} restocked by {qty}")
    return get_menu_item(db, item_id)


def set_stock(db: Session, item_id: int, stock: int) -> MenuItem:
    try:
        inventory_ledger.set_stock(db, item_id, stock)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(f"Menu item {item_id} stock corrected to {stock}")
    return get_menu_item(db, item_id)
