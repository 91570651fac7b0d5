# canteen/services/inventory_ledger.py
"""
Stock counts per menu item.

Every mutation is a single conditional UPDATE so two requests racing for the
last unit cannot both win: the database re-checks `stock >= qty` on the row it
locks. Functions here never commit; the caller owns the transaction, which is
what lets a whole cart be reserved (or rolled back) as one group.
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from canteen.core.database import execute_guarded
from canteen.core.errors import InvalidQuantity, ItemNotFound, InsufficientStock
from canteen.models.sql_models import MenuItem, utcnow

logger = logging.getLogger(__name__)


# Largest count a single line, restock or recount may carry
MAX_QUANTITY = 100_000


def valid_quantity(qty) -> bool:
    return isinstance(qty, int) and not isinstance(qty, bool) and 0 < qty <= MAX_QUANTITY


def _check_qty(qty):
    if not valid_quantity(qty):
        raise InvalidQuantity(f"Quantity must be between 1 and {MAX_QUANTITY}, got {qty}", quantity=qty)


def reserve(db: Session, menu_item_id: int, qty: int) -> None:
    """Takes `qty` units out of stock or raises InsufficientStock / ItemNotFound."""
    _check_qty(qty)
    result = execute_guarded(
        db,
        update(MenuItem)
        .where(MenuItem.id == menu_item_id, MenuItem.stock >= qty)
        .values(stock=MenuItem.stock - qty, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        return

    row = db.execute(
        select(MenuItem.name, MenuItem.stock).where(MenuItem.id == menu_item_id)
    ).first()
    if row is None:
        raise ItemNotFound(menu_item_id)
    logger.info(f"Stock short for item {menu_item_id}: wanted {qty}, have {row.stock}")
    raise InsufficientStock(menu_item_id, requested=qty, available=row.stock, name=row.name)


def release(db: Session, menu_item_id: int, qty: int) -> bool:
    """
    Puts `qty` units back. Returns False when the item no longer exists
    (deleted from the catalogue after it was reserved); there is no row to
    restore in that case, so the release is logged and skipped.
    """
    _check_qty(qty)
    result = execute_guarded(
        db,
        update(MenuItem)
        .where(MenuItem.id == menu_item_id)
        .values(stock=MenuItem.stock + qty, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning(f"Release of {qty} x item {menu_item_id} skipped: item no longer exists")
        return False
    return True


def restock(db: Session, menu_item_id: int, qty: int) -> None:
    """Admin delivery of new stock. Unlike release, a missing item is an error."""
    if not release(db, menu_item_id, qty):
        raise ItemNotFound(menu_item_id)


def set_stock(db: Session, menu_item_id: int, stock: int) -> None:
    """Direct admin correction (stock count after a physical recount)."""
    if not isinstance(stock, int) or isinstance(stock, bool) or not 0 <= stock <= MAX_QUANTITY:
        raise InvalidQuantity(f"Stock must be between 0 and {MAX_QUANTITY}, got {stock}", stock=stock)
    result = execute_guarded(
        db,
        update(MenuItem)
        .where(MenuItem.id == menu_item_id)
        .values(stock=stock, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise ItemNotFound(menu_item_id)


def available(db: Session, menu_item_id: int) -> int:
    """Current stock for display. Not a reservation: it may be stale by the time it is used."""
    stock = db.execute(select(MenuItem.stock).where(MenuItem.id == menu_item_id)).scalar_one_or_none()
    if stock is None:
        raise ItemNotFound(menu_item_id)
    return stock
