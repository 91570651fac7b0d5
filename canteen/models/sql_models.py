# canteen/models/sql_models.py
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, CheckConstraint, Enum, Text,
)
from sqlalchemy.orm import relationship

from canteen.core.database import Base
from canteen.core.money import from_cents
from canteen.models.enums import Category, ReservationStatus, TopupStatus, Provider, TxDirection


def utcnow():
    return datetime.now(timezone.utc)


def _enum(enum_cls, name):
    # Store the readable value ("Pending"), not the member name ("PENDING")
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
    )


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (
        CheckConstraint("price_cents > 0", name="ck_menu_items_price_positive"),
        CheckConstraint("stock >= 0", name="ck_menu_items_stock_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), unique=True, index=True, nullable=False)
    category = Column(_enum(Category, "menu_category"), nullable=False)
    price_cents = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)  # visibility only
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def price(self):
        return from_cents(self.price_cents)


class Wallet(Base):
    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("balance_cents >= 0", name="ck_wallets_balance_non_negative"),
    )

    user_id = Column(String(64), primary_key=True)
    balance_cents = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def balance(self):
        return from_cents(self.balance_cents)


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_wallet_transactions_amount_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    direction = Column(_enum(TxDirection, "tx_direction"), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    reason = Column(String(40), nullable=False)  # reservation, refund, topup
    ref_type = Column(String(20))
    ref_id = Column(Integer)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def amount(self):
        return from_cents(self.amount_cents)


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("total_cents >= 0", name="ck_reservations_total_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    student = Column(String(120))
    grade = Column(String(40))
    section = Column(String(40))
    pickup_slot = Column(String(60), nullable=False)
    note = Column(Text)
    total_cents = Column(Integer, nullable=False)
    status = Column(
        _enum(ReservationStatus, "reservation_status"),
        nullable=False, default=ReservationStatus.PENDING, index=True,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    lines = relationship(
        "ReservationLine",
        back_populates="reservation",
        order_by="ReservationLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def total(self):
        return from_cents(self.total_cents)


class ReservationLine(Base):
    __tablename__ = "reservation_lines"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_reservation_lines_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    reservation_id = Column(Integer, ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    # No FK: the snapshot outlives catalogue deletions
    menu_item_id = Column(Integer, nullable=False)
    name = Column(String(120), nullable=False)
    unit_price_cents = Column(Integer, nullable=False)
    quantity = Column(Integer, nullable=False)

    reservation = relationship("Reservation", back_populates="lines")

    @property
    def unit_price(self):
        return from_cents(self.unit_price_cents)

    @property
    def line_total(self):
        return from_cents(self.unit_price_cents * self.quantity)


class Topup(Base):
    __tablename__ = "topups"
    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_topups_amount_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), index=True, nullable=False)
    amount_cents = Column(Integer, nullable=False)
    provider = Column(_enum(Provider, "topup_provider"), nullable=False)
    proof_reference = Column(String(500), nullable=False, default="")
    status = Column(_enum(TopupStatus, "topup_status"), nullable=False, default=TopupStatus.PENDING, index=True)
    decision_reason = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    decided_at = Column(DateTime(timezone=True))

    @property
    def amount(self):
        return from_cents(self.amount_cents)


class ProviderAccount(Base):
    """Where students send money before submitting a top-up: one row per provider."""
    __tablename__ = "provider_accounts"

    provider = Column(_enum(Provider, "topup_provider"), primary_key=True)
    account_name = Column(String(120), nullable=False, default="")
    mobile = Column(String(30), nullable=False, default="")
    reference = Column(String(120), nullable=False, default="")
    qr_image_url = Column(String(500), nullable=False, default="")  # opaque upload path
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
