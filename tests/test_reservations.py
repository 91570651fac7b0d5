# tests/test_reservations.py
from decimal import Decimal

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import OperationalError

from canteen.core.errors import (
    InsufficientBalance, InsufficientStock, InvalidTransition, ItemNotFound, LedgerIntegrityError,
    MissingPickupSlot, NotAuthorized, ReservationNotFound, StaleCart,
)
from canteen.models.enums import ReservationStatus
from canteen.models.sql_models import MenuItem, Reservation
from canteen.services import inventory_ledger, menu, pricing, reservations, wallet_ledger
from canteen.services.pricing import CartLine
from tests.conftest import stock_of


def _transient():
    return OperationalError("UPDATE menu_items ...", {}, Exception("database is locked"))


def test_create_then_reject_restores_everything(db, make_item, fund):
    item = make_item(price="40.00", stock=3)
    fund("stu-1", "100.00")

    res = reservations.create(db, "stu-1", [CartLine(item.id, 2)], pickup_slot="10:00")

    assert res.total == Decimal("80.00")
    assert res.status == ReservationStatus.PENDING
    assert stock_of(db, item.id) == 1
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("20.00")

    res = reservations.set_status(db, res.id, ReservationStatus.REJECTED, actor_is_admin=True)

    assert res.status == ReservationStatus.REJECTED
    assert stock_of(db, item.id) == 3
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("100.00")


def test_create_stores_line_snapshot_and_labels(db, make_item, fund):
    rice = make_item(name="Pork Sinigang", price="55.00", stock=10)
    drink = make_item(name="Iced Tea", price="20.00", stock=10)
    fund("stu-1", "200.00")

    res = reservations.create(
        db, "stu-1", [CartLine(rice.id, 1), CartLine(drink.id, 3)],
        pickup_slot=" lunch-1 ", note="no ice", student="Ana", grade="7", section="Rizal",
    )

    assert [(l.name, l.unit_price, l.quantity) for l in res.lines] == [
        ("Pork Sinigang", Decimal("55.00"), 1),
        ("Iced Tea", Decimal("20.00"), 3),
    ]
    assert res.total == Decimal("115.00")
    assert res.pickup_slot == "lunch-1"
    assert (res.student, res.grade, res.section, res.note) == ("Ana", "7", "Rizal", "no ice")


def test_price_change_does_not_touch_existing_reservation(db, make_item, fund):
    item = make_item(price="40.00", stock=5)
    fund("stu-1", "100.00")
    res = reservations.create(db, "stu-1", [CartLine(item.id, 2)], pickup_slot="10:00")

    menu.update_menu_item(db, item.id, price="99.00")

    again = reservations.get(db, res.id, viewer_id="stu-1")
    assert again.total == Decimal("80.00")
    assert again.lines[0].unit_price == Decimal("40.00")


def test_short_line_aborts_whole_cart(db, make_item, fund):
    plenty = make_item(name="Pancit", stock=10)
    scarce = make_item(name="Halo-Halo", stock=1)
    fund("stu-1", "500.00")

    with pytest.raises(InsufficientStock) as exc:
        reservations.create(db, "stu-1", [CartLine(plenty.id, 4), CartLine(scarce.id, 2)], pickup_slot="10:00")

    assert exc.value.item_id == scarce.id
    assert stock_of(db, plenty.id) == 10
    assert stock_of(db, scarce.id) == 1
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("500.00")
    assert db.query(Reservation).count() == 0


def test_insufficient_balance_releases_reserved_stock(db, make_item, fund, fast_policy):
    item = make_item(price="40.00", stock=3)
    fund("stu-1", "50.00")

    with pytest.raises(InsufficientBalance):
        reservations.create(db, "stu-1", [CartLine(item.id, 2)], pickup_slot="10:00", policy=fast_policy)

    assert stock_of(db, item.id) == 3
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("50.00")
    assert db.query(Reservation).count() == 0


def test_stale_cart_item(db, make_item, fund):
    item = make_item()
    fund("stu-1", "100.00")

    with pytest.raises(ItemNotFound):
        reservations.create(db, "stu-1", [CartLine(item.id, 1), CartLine(9999, 1)], pickup_slot="10:00")
    assert stock_of(db, item.id) == 3


def test_pickup_slot_required(db, make_item):
    item = make_item()
    with pytest.raises(MissingPickupSlot):
        reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="  ")


def test_hidden_item_with_stock_can_be_ordered(db, make_item, fund):
    item = make_item(name="Secret Menu Siopao", active=False, stock=2)
    fund("stu-1", "100.00")

    res = reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")

    assert res.status == ReservationStatus.PENDING


def test_happy_path_to_claimed_moves_no_money(db, make_item, fund):
    item = make_item(price="40.00", stock=3)
    fund("stu-1", "100.00")
    res = reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")

    for status in ("Approved", "Preparing", "Ready", "Claimed"):
        res = reservations.set_status(db, res.id, status, actor_is_admin=True)
        assert res.status == ReservationStatus(status)

    assert stock_of(db, item.id) == 2
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("60.00")


def test_approved_reservation_can_still_be_rejected(db, make_item, fund):
    item = make_item(price="40.00", stock=3)
    fund("stu-1", "100.00")
    res = reservations.create(db, "stu-1", [CartLine(item.id, 2)], pickup_slot="10:00")
    reservations.set_status(db, res.id, "Approved", actor_is_admin=True)

    reservations.set_status(db, res.id, "Rejected", actor_is_admin=True)

    assert stock_of(db, item.id) == 3
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("100.00")


@pytest.mark.parametrize("path,target", [
    ([], "Ready"),
    ([], "Claimed"),
    ([], "Pending"),
    (["Approved"], "Approved"),
    (["Approved", "Preparing"], "Rejected"),
    (["Approved", "Preparing", "Ready", "Claimed"], "Rejected"),
])
def test_transitions_outside_the_table_are_refused(db, make_item, fund, path, target):
    item = make_item(stock=3)
    fund("stu-1", "100.00")
    res = reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")
    for status in path:
        reservations.set_status(db, res.id, status, actor_is_admin=True)
    before = reservations.get(db, res.id, actor_is_admin=True).status

    with pytest.raises(InvalidTransition):
        reservations.set_status(db, res.id, target, actor_is_admin=True)

    assert reservations.get(db, res.id, actor_is_admin=True).status == before


def test_rejecting_twice_refunds_once(db, make_item, fund):
    item = make_item(price="40.00", stock=3)
    fund("stu-1", "100.00")
    res = reservations.create(db, "stu-1", [CartLine(item.id, 2)], pickup_slot="10:00")
    reservations.set_status(db, res.id, "Rejected", actor_is_admin=True)

    with pytest.raises(InvalidTransition):
        reservations.set_status(db, res.id, "Rejected", actor_is_admin=True)

    assert stock_of(db, item.id) == 3
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("100.00")


def test_students_cannot_change_status(db, make_item, fund):
    item = make_item()
    fund("stu-1", "100.00")
    res = reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")

    with pytest.raises(NotAuthorized):
        reservations.set_status(db, res.id, "Approved", actor_is_admin=False)
    with pytest.raises(NotAuthorized):
        reservations.bulk_set_status(db, [res.id], "Approved", actor_is_admin=False)


def test_unknown_reservation(db):
    with pytest.raises(ReservationNotFound):
        reservations.set_status(db, 404, "Approved", actor_is_admin=True)
    with pytest.raises(ReservationNotFound):
        reservations.set_status(db, 404, "Rejected", actor_is_admin=True)


def test_other_students_reservation_is_hidden(db, make_item, fund):
    item = make_item()
    fund("stu-1", "100.00")
    res = reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")

    with pytest.raises(ReservationNotFound):
        reservations.get(db, res.id, viewer_id="stu-2")


def test_bulk_reports_each_member(db, make_item, fund):
    item = make_item(price="10.00", stock=10)
    fund("stu-1", "100.00")
    first = reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")
    second = reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")
    reservations.set_status(db, second.id, "Rejected", actor_is_admin=True)

    outcomes = reservations.bulk_set_status(db, [first.id, second.id, 404], "Approved", actor_is_admin=True)

    assert [o["ok"] for o in outcomes] == [True, False, False]
    assert outcomes[1]["error"]["error"] == "invalid_transition"
    assert outcomes[2]["error"]["error"] == "reservation_not_found"
    assert reservations.get(db, first.id, actor_is_admin=True).status == ReservationStatus.APPROVED


def test_bulk_reject_refunds_each(db, make_item, fund):
    item = make_item(price="10.00", stock=10)
    fund("stu-1", "30.00")
    fund("stu-2", "30.00")
    a = reservations.create(db, "stu-1", [CartLine(item.id, 2)], pickup_slot="10:00")
    b = reservations.create(db, "stu-2", [CartLine(item.id, 3)], pickup_slot="10:00")

    outcomes = reservations.bulk_set_status(db, [a.id, b.id], "Rejected", actor_is_admin=True)

    assert all(o["ok"] for o in outcomes)
    assert stock_of(db, item.id) == 10
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("30.00")
    assert wallet_ledger.get_balance(db, "stu-2") == Decimal("30.00")


def test_reject_after_item_deleted_still_refunds(db, make_item, fund):
    item = make_item(price="40.00", stock=3)
    fund("stu-1", "100.00")
    res = reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")
    menu.delete_menu_item(db, item.id)

    res = reservations.set_status(db, res.id, "Rejected", actor_is_admin=True)

    assert res.status == ReservationStatus.REJECTED
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("100.00")


def test_transient_failure_during_compensation_is_retried(db, make_item, fund, fast_policy, monkeypatch):
    item = make_item(price="40.00", stock=3)
    fund("stu-1", "10.00")
    real_release = inventory_ledger.release
    calls = {"n": 0}

    def flaky_release(session, menu_item_id, qty):
        calls["n"] += 1
        if calls["n"] == 1:
            raise _transient()
        return real_release(session, menu_item_id, qty)

    monkeypatch.setattr(inventory_ledger, "release", flaky_release)

    with pytest.raises(InsufficientBalance):
        reservations.create(db, "stu-1", [CartLine(item.id, 2)], pickup_slot="10:00", policy=fast_policy)

    assert calls["n"] == 2
    assert stock_of(db, item.id) == 3


def test_compensation_that_keeps_failing_escalates(db, make_item, fund, fast_policy, monkeypatch):
    item = make_item(price="40.00", stock=3)
    fund("stu-1", "10.00")

    def broken_release(session, menu_item_id, qty):
        raise _transient()

    monkeypatch.setattr(inventory_ledger, "release", broken_release)

    with pytest.raises(LedgerIntegrityError):
        reservations.create(db, "stu-1", [CartLine(item.id, 2)], pickup_slot="10:00", policy=fast_policy)


def test_listings_newest_first(db, make_item, fund):
    item = make_item(price="10.00", stock=10)
    fund("stu-1", "100.00")
    fund("stu-2", "100.00")
    first = reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")
    second = reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")
    other = reservations.create(db, "stu-2", [CartLine(item.id, 1)], pickup_slot="10:00")
    reservations.set_status(db, second.id, "Approved", actor_is_admin=True)

    assert [r.id for r in reservations.list_for_user(db, "stu-1")] == [second.id, first.id]
    assert [r.id for r in reservations.list_admin(db)] == [other.id, second.id, first.id]
    assert [r.id for r in reservations.list_admin(db, ReservationStatus.PENDING)] == [other.id, first.id]


def test_bulk_keeps_going_after_a_store_failure(db, make_item, fund, monkeypatch):
    item = make_item(price="10.00", stock=10)
    fund("stu-1", "100.00")
    ids = [reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00").id for _ in range(3)]
    real_set_status = reservations.set_status
    calls = {"n": 0}

    def locked_once(session, reservation_id, target, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise _transient()
        return real_set_status(session, reservation_id, target, **kwargs)

    monkeypatch.setattr(reservations, "set_status", locked_once)

    outcomes = reservations.bulk_set_status(db, ids, "Approved", actor_is_admin=True)

    assert [o["ok"] for o in outcomes] == [False, True, True]
    assert outcomes[0]["error"]["error"] == "store_unavailable"
    assert reservations.get(db, ids[0], actor_is_admin=True).status == ReservationStatus.PENDING
    assert reservations.get(db, ids[2], actor_is_admin=True).status == ReservationStatus.APPROVED


def test_item_deleted_between_pricing_and_reserve_is_a_stale_cart(db, session_factory, make_item, fund,
                                                                   monkeypatch):
    item = make_item(price="40.00", stock=3)
    fund("stu-1", "100.00")
    real_resolve = pricing.resolve

    def resolve_then_delete(session, cart):
        snapshot = real_resolve(session, cart)
        other = session_factory()
        try:
            other.execute(delete(MenuItem).where(MenuItem.id == item.id))
            other.commit()
        finally:
            other.close()
        return snapshot

    monkeypatch.setattr(pricing, "resolve", resolve_then_delete)

    with pytest.raises(StaleCart) as exc:
        reservations.create(db, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00")

    assert exc.value.status_code == 409
    assert exc.value.item_id == item.id
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("100.00")
    assert reservations.list_for_user(db, "stu-1") == []
