"""Add settlement and delivery fields to products

Revision ID: add_settlement_fields
Revises:
Create Date: 2025-12-14

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "add_settlement_fields"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY_COLUMNS = (
    "final_bid_amount",
    "delivery_fee",
    "platform_commission",
    "total_collected",
    "seller_payout",
)


def upgrade() -> None:
    op.add_column(
        "products",
        sa.Column(
            "winner_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=True,
        ),
    )
    for name in MONEY_COLUMNS:
        op.add_column("products", sa.Column(name, sa.Numeric(12, 2), nullable=True))

    op.add_column(
        "products", sa.Column("delivery_status", sa.String(20), nullable=True)
    )
    op.add_column(
        "products",
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    # Sweep query: WHERE status = 'ACTIVE' AND auction_end <= now
    op.create_index(
        "idx_products_status_auction_end",
        "products",
        ["status", "auction_end"],
        unique=False,
    )

    # Top bid lookup: WHERE product_id = X ORDER BY amount DESC, created_at ASC
    op.create_index(
        "idx_bids_product_amount",
        "bids",
        ["product_id", "amount", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("idx_bids_product_amount", table_name="bids")
    op.drop_index("idx_products_status_auction_end", table_name="products")
    op.drop_column("products", "is_paid")
    op.drop_column("products", "delivery_status")
    for name in reversed(MONEY_COLUMNS):
        op.drop_column("products", name)
    op.drop_column("products", "winner_id")
