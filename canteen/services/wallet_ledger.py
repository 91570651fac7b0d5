# canteen/services/wallet_ledger.py
"""
Per-user prepaid balance.

`debit` is one conditional UPDATE (`balance_cents >= amount`), never a read
followed by a write, so two debits racing for the same pesos cannot both
succeed. Each debit/credit appends a journal row in the same transaction,
which is what `audit` reconciles against. Amounts here are integer centavos;
the API layer converts to and from Decimal. Nothing here commits.
"""
import logging
from decimal import Decimal

from sqlalchemy import select, update, func, case, insert as sa_insert
from sqlalchemy.orm import Session

from canteen.core.database import execute_guarded
from canteen.core.errors import InvalidAmount, InsufficientBalance, LedgerIntegrityError
from canteen.core.money import MAX_CENTS, from_cents
from canteen.models.enums import TxDirection
from canteen.models.sql_models import Wallet, WalletTransaction, utcnow

logger = logging.getLogger(__name__)


def _check_amount(amount_cents):
    if not isinstance(amount_cents, int) or isinstance(amount_cents, bool) or not 0 < amount_cents <= MAX_CENTS:
        raise InvalidAmount(f"Amount must be between 1 and {MAX_CENTS} centavos, got {amount_cents}")


def _journal(db: Session, user_id: str, direction: TxDirection, amount_cents: int,
             reason: str, ref_type: str = None, ref_id: int = None):
    db.add(WalletTransaction(
        user_id=user_id,
        direction=direction,
        amount_cents=amount_cents,
        reason=reason,
        ref_type=ref_type,
        ref_id=ref_id,
    ))


def _ensure_wallet(db: Session, user_id: str):
    """Creates the wallet row if it is missing, tolerating a concurrent creator."""
    dialect = db.get_bind().dialect.name
    values = {"user_id": user_id, "balance_cents": 0, "updated_at": utcnow()}
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        exists = db.execute(select(Wallet.user_id).where(Wallet.user_id == user_id)).first()
        if exists is None:
            db.execute(sa_insert(Wallet).values(**values))
        return
    db.execute(insert(Wallet).values(**values).on_conflict_do_nothing(index_elements=["user_id"]))


def debit(db: Session, user_id: str, amount_cents: int, reason: str = "reservation",
          ref_type: str = None, ref_id: int = None) -> None:
    _check_amount(amount_cents)
    result = execute_guarded(
        db,
        update(Wallet)
        .where(Wallet.user_id == user_id, Wallet.balance_cents >= amount_cents)
        .values(balance_cents=Wallet.balance_cents - amount_cents, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = balance_cents(db, user_id)
        logger.info(f"Debit refused for {user_id}: wanted {amount_cents}, have {current}")
        raise InsufficientBalance(requested=from_cents(amount_cents), available=from_cents(current))
    _journal(db, user_id, TxDirection.DEBIT, amount_cents, reason, ref_type, ref_id)


def credit(db: Session, user_id: str, amount_cents: int, reason: str = "topup",
           ref_type: str = None, ref_id: int = None) -> None:
    _check_amount(amount_cents)
    _ensure_wallet(db, user_id)
    result = execute_guarded(
        db,
        update(Wallet)
        .where(Wallet.user_id == user_id)
        .values(balance_cents=Wallet.balance_cents + amount_cents, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise LedgerIntegrityError(f"Credit to {user_id} touched {result.rowcount} wallets", user_id=user_id)
    _journal(db, user_id, TxDirection.CREDIT, amount_cents, reason, ref_type, ref_id)


def balance_cents(db: Session, user_id: str) -> int:
    value = db.execute(select(Wallet.balance_cents).where(Wallet.user_id == user_id)).scalar_one_or_none()
    if value is None:
        return 0
    if value < 0:
        raise LedgerIntegrityError(f"Negative balance observed for {user_id}", user_id=user_id, balance_cents=value)
    return value


def get_balance(db: Session, user_id: str) -> Decimal:
    return from_cents(balance_cents(db, user_id))


def list_transactions(db: Session, user_id: str, limit: int = 100):
    return db.query(WalletTransaction)\
        .filter(WalletTransaction.user_id == user_id)\
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())\
        .limit(limit)\
        .all()


def audit(db: Session, user_id: str) -> dict:
    """Checks the stored balance against the sum of its journal."""
    signed = case(
        (WalletTransaction.direction == TxDirection.CREDIT, WalletTransaction.amount_cents),
        else_=-WalletTransaction.amount_cents,
    )
    journal_total = db.execute(
        select(func.coalesce(func.sum(signed), 0)).where(WalletTransaction.user_id == user_id)
    ).scalar_one()
    stored = balance_cents(db, user_id)
    if stored != journal_total:
        raise LedgerIntegrityError(
            f"Wallet {user_id} balance does not match its journal",
            user_id=user_id, balance=from_cents(stored), journal=from_cents(journal_total),
        )
    return {"user_id": user_id, "balance": from_cents(stored), "journal": from_cents(journal_total), "ok": True}
