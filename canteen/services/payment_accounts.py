# canteen/services/payment_accounts.py
"""
Directory of the canteen's GCash/Maya accounts. Students look one up, pay
into it outside the system, then submit a top-up with their proof.
"""
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from canteen.core.errors import ProviderAccountNotFound, ValidationError
from canteen.models.enums import Provider
from canteen.models.sql_models import ProviderAccount

logger = logging.getLogger(__name__)

EDITABLE = ("account_name", "mobile", "reference", "qr_image_url")


def parse_provider(value) -> Provider:
    """Case-insensitive: 'gcash', 'GCash' and 'GCASH' are the same provider."""
    key = str(value or "").strip().lower()
    if not key:
        raise ValidationError("Missing provider")
    for provider in Provider:
        if provider.value.lower() == key:
            return provider
    raise ValidationError(f"Unknown provider: {value}", provider=str(value))


def list_active(db: Session) -> List[ProviderAccount]:
    query = db.query(ProviderAccount).filter(ProviderAccount.active == True)  # noqa: E712
    return query.order_by(ProviderAccount.provider).all()


def list_all(db: Session) -> List[ProviderAccount]:
    return db.query(ProviderAccount).order_by(ProviderAccount.provider).all()


def get_active(db: Session, provider) -> ProviderAccount:
    provider = parse_provider(provider)
    account = db.get(ProviderAccount, provider, populate_existing=True)
    if account is None or not account.active:
        raise ProviderAccountNotFound(provider.value)
    return account


def _apply(db: Session, provider: Provider, changes: dict) -> ProviderAccount:
    account = db.get(ProviderAccount, provider, populate_existing=True)
    if account is None:
        account = ProviderAccount(provider=provider, **{f: "" for f in EDITABLE}, active=True)
        db.add(account)
    for field, value in changes.items():
        setattr(account, field, value)
    db.commit()
    db.refresh(account)
    return account


def upsert(db: Session, provider, account_name: str = None, mobile: str = None,
           reference: str = None, qr_image_url: str = None, active: bool = None) -> ProviderAccount:
    """
    Creates or edits the account for `provider`. Fields left as None keep
    their stored value, so an admin can toggle `active` without resending
    the rest.
    """
    provider = parse_provider(provider)
    changes = {
        field: str(value).strip()
        for field, value in zip(EDITABLE, (account_name, mobile, reference, qr_image_url))
        if value is not None
    }
    if active is not None:
        changes["active"] = bool(active)

    try:
        try:
            account = _apply(db, provider, changes)
        except IntegrityError:
            # Another admin created the row first; apply ours on top of it
            db.rollback()
            account = _apply(db, provider, changes)
    except Exception:
        db.rollback()
        raise
    logger.info(f"Payment account {provider.value} saved (active={account.active})")
    return account
