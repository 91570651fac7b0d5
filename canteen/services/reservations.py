# canteen/services/reservations.py
"""
Reservation lifecycle.

    Pending -> Approved -> Preparing -> Ready -> Claimed
    Pending | Approved -> Rejected   (full refund, stock released)

Stock and money move exactly twice in a reservation's life: once at create
(stock reserved, wallet debited) and, only on rejection, once more in reverse.
Approve/advance are pure status changes.

Create is a two-step saga:
  1. every cart line is reserved inside one transaction; any shortfall rolls
     the whole group back, so nothing is partially deducted;
  2. the wallet debit and the reservation insert commit together; if that
     transaction fails the stock from step 1 is released as a compensation.
Compensations are retried and escalate to LedgerIntegrityError if they
cannot be applied.
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from canteen.core.errors import (
    CanteenError, InvalidTransition, ItemNotFound, MissingPickupSlot, NotAuthorized, ReservationNotFound,
    StaleCart, StoreUnavailable, ValidationError,
)
from canteen.core.money import from_cents
from canteen.core.retry import default_policy, retry_with_policy
from canteen.models.enums import ReservationStatus, sources_for
from canteen.models.sql_models import Reservation, ReservationLine, utcnow
from canteen.services import inventory_ledger, wallet_ledger, pricing
from canteen.services.pricing import CartLine, PricedLine

logger = logging.getLogger(__name__)

REFUNDABLE = (ReservationStatus.PENDING, ReservationStatus.APPROVED)


# --- CREATE ---
def create(db: Session, user_id: str, cart: Iterable[CartLine], pickup_slot: str,
           note: str = None, student: str = None, grade: str = None, section: str = None,
           policy=None) -> Reservation:
    if not pickup_slot or not str(pickup_slot).strip():
        raise MissingPickupSlot()

    snapshot = pricing.resolve(db, cart)

    # 1. Stock for every line, all-or-nothing
    try:
        for line in snapshot.lines:
            inventory_ledger.reserve(db, line.menu_item_id, line.quantity)
        db.commit()
    except ItemNotFound as e:
        db.rollback()
        # Deleted after pricing; same answer as a stale cart caught there
        raise StaleCart(e.item_id) from e
    except Exception:
        db.rollback()
        raise

    # 2. Debit + persist; compensate stock if this does not commit
    try:
        reservation = Reservation(
            user_id=user_id,
            student=student,
            grade=grade,
            section=section,
            pickup_slot=str(pickup_slot).strip(),
            note=note,
            total_cents=snapshot.total_cents,
            status=ReservationStatus.PENDING,
            lines=[
                ReservationLine(
                    position=i,
                    menu_item_id=line.menu_item_id,
                    name=line.name,
                    unit_price_cents=line.unit_price_cents,
                    quantity=line.quantity,
                )
                for i, line in enumerate(snapshot.lines)
            ],
        )
        db.add(reservation)
        db.flush()
        wallet_ledger.debit(
            db, user_id, snapshot.total_cents,
            reason="reservation", ref_type="reservation", ref_id=reservation.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        retry_with_policy(
            policy or default_policy(), _release_lines, db, snapshot.lines,
            description=f"stock release for failed order of {user_id}",
        )
        raise

    logger.info(f"Reservation {reservation.id} created for {user_id}: "
                f"{len(snapshot.lines)} line(s), total {from_cents(snapshot.total_cents)}")
    return reservation


def _release_lines(db: Session, lines: List[PricedLine]):
    try:
        for line in lines:
            inventory_ledger.release(db, line.menu_item_id, line.quantity)
        db.commit()
    except Exception:
        db.rollback()
        raise


# --- TRANSITIONS ---
def _coerce_status(target) -> ReservationStatus:
    try:
        return ReservationStatus(target)
    except ValueError:
        raise ValidationError(f"Unknown reservation status: {target}", status=target)


def _current_status(db: Session, reservation_id: int) -> ReservationStatus:
    status = db.execute(
        select(Reservation.status).where(Reservation.id == reservation_id)
    ).scalar_one_or_none()
    if status is None:
        raise ReservationNotFound(reservation_id)
    return status


def set_status(db: Session, reservation_id: int, target, actor_is_admin: bool = False,
               policy=None) -> Reservation:
    if not actor_is_admin:
        raise NotAuthorized()
    target = _coerce_status(target)
    if target == ReservationStatus.REJECTED:
        return reject(db, reservation_id, policy=policy)

    try:
        # Compare-and-set on the status column: two admins clicking at once
        # cannot both move the same reservation
        result = db.execute(
            update(Reservation)
            .where(Reservation.id == reservation_id, Reservation.status.in_(sources_for(target)))
            .values(status=target, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            current = _current_status(db, reservation_id)
            logger.warning(f"Reservation {reservation_id}: refused {current.value} -> {target.value}")
            raise InvalidTransition(current, target)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Reservation {reservation_id} -> {target.value}")
    return get(db, reservation_id, actor_is_admin=True)


def reject(db: Session, reservation_id: int, policy=None) -> Reservation:
    """
    Rejects a Pending or Approved reservation with a full refund.

    Status change, stock release and wallet credit commit as one
    transaction. The whole refund is retried on transient store failures.
    """
    def _reject_once():
        try:
            result = db.execute(
                update(Reservation)
                .where(Reservation.id == reservation_id, Reservation.status.in_(REFUNDABLE))
                .values(status=ReservationStatus.REJECTED, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                current = _current_status(db, reservation_id)
                logger.warning(f"Reservation {reservation_id}: refused {current.value} -> Rejected")
                raise InvalidTransition(current, ReservationStatus.REJECTED)

            reservation = db.get(Reservation, reservation_id)
            for line in reservation.lines:
                inventory_ledger.release(db, line.menu_item_id, line.quantity)
            wallet_ledger.credit(
                db, reservation.user_id, reservation.total_cents,
                reason="refund", ref_type="reservation", ref_id=reservation.id,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

    retry_with_policy(policy or default_policy(), _reject_once,
                      description=f"refund of reservation {reservation_id}")
    logger.info(f"Reservation {reservation_id} -> Rejected (refunded)")
    return get(db, reservation_id, actor_is_admin=True)


def bulk_set_status(db: Session, reservation_ids: Iterable[int], target,
                    actor_is_admin: bool = False, policy=None) -> List[dict]:
    """Best effort: each id succeeds or fails on its own."""
    if not actor_is_admin:
        raise NotAuthorized()
    target = _coerce_status(target)

    outcomes = []
    for reservation_id in reservation_ids:
        try:
            reservation = set_status(db, reservation_id, target, actor_is_admin=True, policy=policy)
            outcomes.append({"id": reservation_id, "ok": True, "reservation": reservation})
        except CanteenError as e:
            outcomes.append({"id": reservation_id, "ok": False, "error": e.to_dict()})
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Bulk {target.value}: reservation {reservation_id} failed in the store: {e}")
            error = StoreUnavailable(f"Reservation {reservation_id} could not be updated",
                                     reservation_id=reservation_id)
            outcomes.append({"id": reservation_id, "ok": False, "error": error.to_dict()})
    ok = sum(1 for o in outcomes if o["ok"])
    logger.info(f"Bulk {target.value}: {ok}/{len(outcomes)} applied")
    return outcomes


# --- READS ---
def get(db: Session, reservation_id: int, viewer_id: str = None,
        actor_is_admin: bool = False) -> Reservation:
    reservation = db.get(Reservation, reservation_id, populate_existing=True)
    if reservation is None:
        raise ReservationNotFound(reservation_id)
    if not actor_is_admin and reservation.user_id != viewer_id:
        # Do not reveal other students' orders
        raise ReservationNotFound(reservation_id)
    return reservation


def list_for_user(db: Session, user_id: str) -> List[Reservation]:
    return db.query(Reservation)\
        .filter(Reservation.user_id == user_id)\
        .order_by(Reservation.created_at.desc(), Reservation.id.desc())\
        .all()


def list_admin(db: Session, status: Optional[ReservationStatus] = None) -> List[Reservation]:
    query = db.query(Reservation)
    if status is not None:
        query = query.filter(Reservation.status == _coerce_status(status))
    return query.order_by(Reservation.created_at.desc(), Reservation.id.desc()).all()
