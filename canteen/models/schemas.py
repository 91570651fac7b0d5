# canteen/models/schemas.py
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, AliasChoices
from typing import List, Optional

from canteen.models.enums import (
    Category, Provider, ReservationStatus, TopupOutcome, TopupStatus, TxDirection,
)


class ORMModel(BaseModel):
    # Pydantic V2 Config to read SQLAlchemy models
    model_config = {"from_attributes": True}


# --- MENU ---
class MenuItemCreate(BaseModel):
    name: str
    category: Category
    price: Decimal
    stock: int = 0
    active: bool = True


class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[Category] = None
    price: Optional[Decimal] = None
    active: Optional[bool] = None


class RestockRequest(BaseModel):
    quantity: int = Field(..., validation_alias=AliasChoices("quantity", "qty"))


class StockCorrection(BaseModel):
    stock: int


class MenuItemOut(ORMModel):
    id: int
    name: str
    category: Category
    price: Decimal
    stock: int
    active: bool


# --- RESERVATIONS ---
class CartItem(BaseModel):
    # Quantity is range-checked by the engine so the error names the item
    menu_item_id: int = Field(..., validation_alias=AliasChoices("menu_item_id", "id"))
    quantity: int = Field(..., validation_alias=AliasChoices("quantity", "qty"))


class ReservationCreate(BaseModel):
    items: List[CartItem]
    pickup_slot: str = Field("", validation_alias=AliasChoices("pickup_slot", "slot"))
    note: Optional[str] = None
    student: Optional[str] = None
    grade: Optional[str] = None
    section: Optional[str] = None


class StatusUpdate(BaseModel):
    status: ReservationStatus


class BulkStatusUpdate(BaseModel):
    ids: List[int] = Field(..., min_length=1)
    status: ReservationStatus


class ReservationLineOut(ORMModel):
    menu_item_id: int
    name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class ReservationOut(ORMModel):
    id: int
    user_id: str
    student: Optional[str] = None
    grade: Optional[str] = None
    section: Optional[str] = None
    pickup_slot: str
    note: Optional[str] = None
    lines: List[ReservationLineOut]
    total: Decimal
    status: ReservationStatus
    created_at: datetime
    updated_at: datetime


class BulkOutcome(BaseModel):
    id: int
    ok: bool
    error: Optional[dict] = None
    reservation: Optional[ReservationOut] = None


# --- TOPUPS ---
class TopupSubmit(BaseModel):
    amount: Decimal
    provider: Provider
    proof_reference: str = Field("", validation_alias=AliasChoices("proof_reference", "reference"))


class TopupDecision(BaseModel):
    outcome: TopupOutcome = Field(..., validation_alias=AliasChoices("outcome", "status"))
    reason: Optional[str] = None


class TopupOut(ORMModel):
    id: int
    user_id: str
    amount: Decimal
    provider: Provider
    proof_reference: str
    status: TopupStatus
    decision_reason: Optional[str] = None
    created_at: datetime
    decided_at: Optional[datetime] = None


# --- WALLETS ---
class WalletOut(BaseModel):
    user_id: str
    balance: Decimal


class WalletTransactionOut(ORMModel):
    id: int
    direction: TxDirection
    amount: Decimal
    reason: str
    ref_type: Optional[str] = None
    ref_id: Optional[int] = None
    created_at: datetime


class WalletAudit(BaseModel):
    user_id: str
    balance: Decimal
    journal: Decimal
    ok: bool


# --- PAYMENT ACCOUNTS ---
class ProviderAccountUpsert(BaseModel):
    account_name: Optional[str] = Field(None, validation_alias=AliasChoices("account_name", "accountName"))
    mobile: Optional[str] = None
    reference: Optional[str] = None
    qr_image_url: Optional[str] = Field(None, validation_alias=AliasChoices("qr_image_url", "qrImageUrl"))
    active: Optional[bool] = None


class ProviderAccountOut(ORMModel):
    provider: Provider
    account_name: str
    mobile: str
    reference: str
    qr_image_url: str
    active: bool
    updated_at: datetime
