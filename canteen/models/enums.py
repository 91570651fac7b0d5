# canteen/models/enums.py
import enum


class Category(str, enum.Enum):
    MEALS = "Meals"
    SNACKS = "Snacks"
    BEVERAGES = "Beverages"


class ReservationStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    PREPARING = "Preparing"
    READY = "Ready"
    CLAIMED = "Claimed"
    REJECTED = "Rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (ReservationStatus.CLAIMED, ReservationStatus.REJECTED)


# Every allowed move. Anything not listed here is an InvalidTransition.
RESERVATION_TRANSITIONS = {
    ReservationStatus.PENDING: frozenset({ReservationStatus.APPROVED, ReservationStatus.REJECTED}),
    ReservationStatus.APPROVED: frozenset({ReservationStatus.PREPARING, ReservationStatus.REJECTED}),
    ReservationStatus.PREPARING: frozenset({ReservationStatus.READY}),
    ReservationStatus.READY: frozenset({ReservationStatus.CLAIMED}),
    ReservationStatus.CLAIMED: frozenset(),
    ReservationStatus.REJECTED: frozenset(),
}


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return target in RESERVATION_TRANSITIONS[current]


def sources_for(target: ReservationStatus) -> list:
    """States from which `target` may be reached."""
    return [src for src, targets in RESERVATION_TRANSITIONS.items() if target in targets]


class TopupStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class TopupOutcome(str, enum.Enum):
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Provider(str, enum.Enum):
    GCASH = "GCash"
    MAYA = "Maya"


class TxDirection(str, enum.Enum):
    DEBIT = "debit"
    CREDIT = "credit"
