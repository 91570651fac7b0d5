"""payment provider accounts

Revision ID: 0002_provider_accounts
Revises: 0001_initial
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0002_provider_accounts"
down_revision: Union[str, None] = "0001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "provider_accounts",
        sa.Column(
            "provider",
            sa.Enum("GCash", "Maya", name="topup_provider", native_enum=False, length=20),
            primary_key=True,
        ),
        sa.Column("account_name", sa.String(120), nullable=False),
        sa.Column("mobile", sa.String(30), nullable=False),
        sa.Column("reference", sa.String(120), nullable=False),
        sa.Column("qr_image_url", sa.String(500), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("provider_accounts")
