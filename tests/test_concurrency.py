# tests/test_concurrency.py
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from canteen.core.errors import AlreadyDecided, InsufficientBalance, InsufficientStock
from canteen.services import reservations, topups, wallet_ledger
from canteen.services.pricing import CartLine
from tests.conftest import stock_of

WORKERS = 8


def _race(session_factory, n, work):
    """Runs `work(session, i)` on n threads released at the same moment."""
    barrier = threading.Barrier(n)

    def _run(i):
        session = session_factory()
        try:
            barrier.wait()
            return ("ok", work(session, i))
        except Exception as e:
            return ("error", e)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=n) as pool:
        return list(pool.map(_run, range(n)))


def test_last_unit_is_sold_once(db, session_factory, make_item, fund):
    item = make_item(name="Last Leche Flan", price="25.00", stock=1)
    for i in range(WORKERS):
        fund(f"stu-{i}", "100.00")

    results = _race(
        session_factory, WORKERS,
        lambda s, i: reservations.create(s, f"stu-{i}", [CartLine(item.id, 1)], pickup_slot="10:00").id,
    )

    wins = [r for kind, r in results if kind == "ok"]
    losses = [r for kind, r in results if kind == "error"]
    assert len(wins) == 1
    assert len(losses) == WORKERS - 1
    assert all(isinstance(e, InsufficientStock) for e in losses)
    assert stock_of(db, item.id) == 0


def test_two_full_balance_debits_only_one_lands(db, session_factory, fund):
    fund("stu-1", "100.00")

    def _debit(session, i):
        wallet_ledger.debit(session, "stu-1", 10000)
        session.commit()

    results = _race(session_factory, 2, _debit)

    assert sorted(kind for kind, _ in results) == ["error", "ok"]
    assert isinstance([r for kind, r in results if kind == "error"][0], InsufficientBalance)
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("0.00")


def test_concurrent_orders_never_overdraw_wallet(db, session_factory, make_item, fund):
    item = make_item(price="30.00", stock=100)
    fund("stu-1", "100.00")

    results = _race(
        session_factory, WORKERS,
        lambda s, i: reservations.create(s, "stu-1", [CartLine(item.id, 1)], pickup_slot="10:00").id,
    )

    wins = [r for kind, r in results if kind == "ok"]
    assert len(wins) == 3
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("10.00")
    # Losers released the stock they had reserved
    assert stock_of(db, item.id) == 97


def test_doubled_topup_approval_credits_once(db, session_factory):
    topup = topups.submit(db, "stu-1", "50.00", "GCash")

    results = _race(session_factory, 4, lambda s, i: topups.decide(s, topup.id, "Approved").id)

    assert sum(1 for kind, _ in results if kind == "ok") == 1
    assert all(isinstance(r, AlreadyDecided) for kind, r in results if kind == "error")
    assert wallet_ledger.get_balance(db, "stu-1") == Decimal("50.00")
