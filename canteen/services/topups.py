# canteen/services/topups.py
"""
Wallet top-up requests: Pending -> Approved | Rejected, exactly once.

The payment itself happens outside the system (GCash/Maya); an admin looks at
the proof and decides. Only an approval touches the wallet. The decision is a
compare-and-set on `status = 'Pending'` that commits together with the
credit, so a retried or doubled approval can never credit twice.
"""
import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from canteen.core.errors import AlreadyDecided, InvalidAmount, TopupNotFound, ValidationError
from canteen.core.money import to_cents, from_cents
from canteen.models.enums import Provider, TopupOutcome, TopupStatus
from canteen.models.sql_models import Topup, utcnow
from canteen.services import wallet_ledger

logger = logging.getLogger(__name__)


def submit(db: Session, user_id: str, amount, provider, proof_reference: str = "") -> Topup:
    try:
        amount_cents = to_cents(amount)
    except ValueError as e:
        raise InvalidAmount(str(e), amount=str(amount))
    if amount_cents <= 0:
        raise InvalidAmount()
    try:
        provider = Provider(provider)
    except ValueError:
        raise ValidationError(f"Unknown provider: {provider}", provider=provider)

    topup = Topup(
        user_id=user_id,
        amount_cents=amount_cents,
        provider=provider,
        proof_reference=proof_reference or "",
        status=TopupStatus.PENDING,
    )
    try:
        db.add(topup)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(topup)
    logger.info(f"Topup {topup.id} submitted by {user_id}: {from_cents(amount_cents)} via {provider.value}")
    return topup


def decide(db: Session, topup_id: int, outcome, reason: Optional[str] = None) -> Topup:
    try:
        outcome = TopupOutcome(outcome)
    except ValueError:
        raise ValidationError(f"Unknown outcome: {outcome}", outcome=outcome)
    new_status = TopupStatus(outcome.value)

    try:
        result = db.execute(
            update(Topup)
            .where(Topup.id == topup_id, Topup.status == TopupStatus.PENDING)
            .values(status=new_status, decision_reason=reason, decided_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            current = db.execute(select(Topup.status).where(Topup.id == topup_id)).scalar_one_or_none()
            if current is None:
                raise TopupNotFound(topup_id)
            logger.warning(f"Topup {topup_id} already {current.value}; ignoring {outcome.value}")
            raise AlreadyDecided(topup_id, current)

        if new_status == TopupStatus.APPROVED:
            row = db.execute(
                select(Topup.user_id, Topup.amount_cents).where(Topup.id == topup_id)
            ).one()
            wallet_ledger.credit(
                db, row.user_id, row.amount_cents,
                reason="topup", ref_type="topup", ref_id=topup_id,
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Topup {topup_id} -> {new_status.value}")
    return get(db, topup_id)


def get(db: Session, topup_id: int) -> Topup:
    topup = db.get(Topup, topup_id, populate_existing=True)
    if topup is None:
        raise TopupNotFound(topup_id)
    return topup


def list_for_user(db: Session, user_id: str) -> List[Topup]:
    return db.query(Topup)\
        .filter(Topup.user_id == user_id)\
        .order_by(Topup.created_at.desc(), Topup.id.desc())\
        .all()


def list_admin(db: Session, status: Optional[TopupStatus] = None) -> List[Topup]:
    query = db.query(Topup)
    if status is not None:
        query = query.filter(Topup.status == TopupStatus(status))
    return query.order_by(Topup.created_at.desc(), Topup.id.desc()).all()
