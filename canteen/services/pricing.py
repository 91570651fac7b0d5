# canteen/services/pricing.py
from dataclasses import dataclass
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from canteen.core.errors import EmptyCart, InvalidQuantity, StaleCart
from canteen.core.money import MAX_CENTS, from_cents
from canteen.models.sql_models import MenuItem
from canteen.services.inventory_ledger import MAX_QUANTITY, valid_quantity

MAX_ITEM_ID = 2 ** 63 - 1


@dataclass(frozen=True)
class CartLine:
    menu_item_id: int
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    menu_item_id: int
    name: str
    unit_price_cents: int
    quantity: int

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class PriceSnapshot:
    lines: List[PricedLine]

    @property
    def total_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)


def resolve(db: Session, cart: Iterable[CartLine]) -> PriceSnapshot:
    """
    Copies the current name and price of every cart entry.

    `active` is not consulted: an item hidden from the menu can still be sold
    while it has stock. Any bad entry aborts the whole cart.
    """
    cart = list(cart)
    if not cart:
        raise EmptyCart()

    for entry in cart:
        qty = entry.quantity
        if not valid_quantity(qty):
            raise InvalidQuantity(f"Quantity for item {entry.menu_item_id} must be between 1 and {MAX_QUANTITY}",
                                  item_id=entry.menu_item_id, quantity=qty)
        if not 0 < entry.menu_item_id <= MAX_ITEM_ID:
            # Cannot name a stored row
            raise StaleCart(entry.menu_item_id)

    ids = {entry.menu_item_id for entry in cart}
    rows = db.execute(
        select(MenuItem.id, MenuItem.name, MenuItem.price_cents).where(MenuItem.id.in_(ids))
    ).all()
    catalogue = {row.id: row for row in rows}

    lines = []
    for entry in cart:
        item = catalogue.get(entry.menu_item_id)
        if item is None:
            raise StaleCart(entry.menu_item_id)
        lines.append(PricedLine(
            menu_item_id=item.id,
            name=item.name,
            unit_price_cents=item.price_cents,
            quantity=entry.quantity,
        ))
    snapshot = PriceSnapshot(lines=lines)
    if snapshot.total_cents > MAX_CENTS:
        raise InvalidQuantity(f"Order total is too large: {from_cents(snapshot.total_cents)}")
    return snapshot
