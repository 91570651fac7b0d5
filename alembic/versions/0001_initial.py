"""initial canteen schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name, *values):
    return sa.Enum(*values, name=name, native_enum=False, length=20)


def upgrade() -> None:
    op.create_table(
        "menu_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("category", _enum("menu_category", "Meals", "Snacks", "Beverages"), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("price_cents > 0", name="ck_menu_items_price_positive"),
        sa.CheckConstraint("stock >= 0", name="ck_menu_items_stock_non_negative"),
    )
    op.create_index("ix_menu_items_id", "menu_items", ["id"])
    op.create_index("ix_menu_items_name", "menu_items", ["name"], unique=True)

    op.create_table(
        "wallets",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("balance_cents", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("balance_cents >= 0", name="ck_wallets_balance_non_negative"),
    )

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("direction", _enum("tx_direction", "debit", "credit"), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(40), nullable=False),
        sa.Column("ref_type", sa.String(20)),
        sa.Column("ref_id", sa.Integer()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount_cents > 0", name="ck_wallet_transactions_amount_positive"),
    )
    op.create_index("ix_wallet_transactions_id", "wallet_transactions", ["id"])
    op.create_index("ix_wallet_transactions_user_id", "wallet_transactions", ["user_id"])

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("student", sa.String(120)),
        sa.Column("grade", sa.String(40)),
        sa.Column("section", sa.String(40)),
        sa.Column("pickup_slot", sa.String(60), nullable=False),
        sa.Column("note", sa.Text()),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            _enum("reservation_status", "Pending", "Approved", "Preparing", "Ready", "Claimed", "Rejected"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("total_cents >= 0", name="ck_reservations_total_non_negative"),
    )
    op.create_index("ix_reservations_id", "reservations", ["id"])
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"])
    op.create_index("ix_reservations_status", "reservations", ["status"])

    op.create_table(
        "reservation_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "reservation_id", sa.Integer(),
            sa.ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("menu_item_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_reservation_lines_quantity_positive"),
    )
    op.create_index("ix_reservation_lines_id", "reservation_lines", ["id"])
    op.create_index("ix_reservation_lines_reservation_id", "reservation_lines", ["reservation_id"])

    op.create_table(
        "topups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("provider", _enum("topup_provider", "GCash", "Maya"), nullable=False),
        sa.Column("proof_reference", sa.String(500), nullable=False),
        sa.Column("status", _enum("topup_status", "Pending", "Approved", "Rejected"), nullable=False),
        sa.Column("decision_reason", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("decided_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("amount_cents > 0", name="ck_topups_amount_positive"),
    )
    op.create_index("ix_topups_id", "topups", ["id"])
    op.create_index("ix_topups_user_id", "topups", ["user_id"])
    op.create_index("ix_topups_status", "topups", ["status"])


def downgrade() -> None:
    op.drop_table("topups")
    op.drop_table("reservation_lines")
    op.drop_table("reservations")
    op.drop_table("wallet_transactions")
    op.drop_table("wallets")
    op.drop_table("menu_items")
