# canteen/core/errors.py
"""
Error taxonomy for the ordering engine.

Validation        -> bad input, rejected before any ledger is touched (400)
NotFound          -> unknown reservation / topup / menu item (404)
ResourceConflict  -> not enough stock or balance; a normal business outcome (409)
StateConflict     -> stale client state or a double submit (409)
Authorization     -> caller lacks the admin claim for the action (403)
Store             -> the database failed mid-request, e.g. a lock timeout (503)
Integrity         -> an invariant was violated at runtime; always logged CRITICAL (500)
"""
import logging

logger = logging.getLogger(__name__)


class CanteenError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = None, **fields):
        self.message = message or self.__class__.__doc__ or self.code
        self.fields = fields
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.code, "detail": self.message}
        body.update({k: _jsonable(v) for k, v in self.fields.items()})
        return body


def _jsonable(value):
    # Decimal amounts go out as strings, like the schemas do
    if value is None or isinstance(value, (bool, int, str)):
        return value
    return str(value)


# --- Validation ---
class ValidationError(CanteenError):
    status_code = 400
    code = "validation_error"


class InvalidQuantity(ValidationError):
    """Quantity must be a positive integer."""
    code = "invalid_quantity"


class InvalidAmount(ValidationError):
    """Amount must be greater than zero."""
    code = "invalid_amount"


class EmptyCart(ValidationError):
    """No items in the reservation."""
    code = "empty_cart"


class MissingPickupSlot(ValidationError):
    """Missing pickup slot."""
    code = "missing_pickup_slot"


class InvalidMenuItem(ValidationError):
    code = "invalid_menu_item"


# --- Not found ---
class NotFound(CanteenError):
    status_code = 404
    code = "not_found"


class ItemNotFound(NotFound):
    code = "item_not_found"

    def __init__(self, item_id):
        super().__init__(f"Item {item_id} not found", item_id=item_id)
        self.item_id = item_id


class ReservationNotFound(NotFound):
    code = "reservation_not_found"

    def __init__(self, reservation_id):
        super().__init__(f"Reservation {reservation_id} not found", reservation_id=reservation_id)


class TopupNotFound(NotFound):
    code = "topup_not_found"

    def __init__(self, topup_id):
        super().__init__(f"Topup {topup_id} not found", topup_id=topup_id)


class ProviderAccountNotFound(NotFound):
    code = "provider_account_not_found"

    def __init__(self, provider):
        super().__init__(f"No active payment account for {provider}", provider=provider)


class StaleCart(ItemNotFound):
    """An item in the cart no longer exists in the catalogue."""
    status_code = 409


# --- Resource conflicts ---
class ResourceConflict(CanteenError):
    status_code = 409
    code = "resource_conflict"


class InsufficientStock(ResourceConflict):
    code = "insufficient_stock"

    def __init__(self, item_id, requested: int, available: int, name: str = None):
        label = name or f"item {item_id}"
        super().__init__(
            f"Not enough stock for {label}",
            item_id=item_id, requested=requested, available=available,
        )
        self.item_id = item_id
        self.requested = requested
        self.available = available


class InsufficientBalance(ResourceConflict):
    code = "insufficient_balance"

    def __init__(self, requested, available):
        super().__init__(
            "Insufficient wallet balance",
            requested=requested, available=available, shortfall=requested - available,
        )
        self.requested = requested
        self.available = available


# --- State conflicts ---
class StateConflict(CanteenError):
    status_code = 409
    code = "state_conflict"


class InvalidTransition(StateConflict):
    code = "invalid_transition"

    def __init__(self, current, target):
        current = getattr(current, "value", current)
        target = getattr(target, "value", target)
        super().__init__(f"Cannot move reservation from {current} to {target}", current=current, target=target)


class AlreadyDecided(StateConflict):
    code = "already_decided"

    def __init__(self, topup_id, status):
        super().__init__(
            f"Topup {topup_id} was already {getattr(status, 'value', status)}",
            topup_id=topup_id, status=getattr(status, "value", status),
        )


# --- Authorization ---
class NotAuthorized(CanteenError):
    """Admin privileges required."""
    status_code = 403
    code = "not_authorized"


# --- Store ---
class StoreUnavailable(CanteenError):
    """The database could not complete the request."""
    status_code = 503
    code = "store_unavailable"


# --- Integrity ---
class LedgerIntegrityError(CanteenError):
    """
    A ledger invariant was violated.

    The CRITICAL log line is written when the error is constructed, so every
    instance is logged once even if a caller catches it and never re-raises.
    Only build one at the point where it is raised.
    """
    status_code = 500
    code = "ledger_integrity"

    def __init__(self, message: str = None, **fields):
        super().__init__(message, **fields)
        logger.critical("LEDGER INTEGRITY: %s %s", self.message, fields)
