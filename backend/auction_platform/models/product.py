import enum
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from auction_platform.core.database import Base

if TYPE_CHECKING:
    from auction_platform.models.bid import Bid
    from auction_platform.models.user import User


class AuctionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    CANCELLED = "CANCELLED"


class DeliveryStatus(str, enum.Enum):
    PENDING = "PENDING"
    REQUESTED = "REQUESTED"
    PICKED_UP = "PICKED_UP"
    DELIVERED_PAID = "DELIVERED_PAID"
    CANCELLED = "CANCELLED"


Money = Numeric(12, 2)


class Product(Base):
    """Product ORM model, one auction listing"""

    __tablename__ = "products"
    __table_args__ = (
        # Used by the sweep: WHERE status = 'ACTIVE' AND auction_end <= now
        Index("idx_products_status_auction_end", "status", "auction_end"),
    )

    id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    seller_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )

    starting_bid: Mapped[Decimal] = mapped_column(Money, nullable=False)
    current_bid: Mapped[Decimal] = mapped_column(
        Money, nullable=False, default=Decimal("0")
    )
    auction_end: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    status: Mapped[AuctionStatus] = mapped_column(
        Enum(AuctionStatus, name="auction_status", native_enum=False, length=20),
        default=AuctionStatus.ACTIVE,
        nullable=False,
    )

    # Settlement fields, written once when the auction closes
    winner_id: Mapped[UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    final_bid_amount: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    delivery_fee: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    platform_commission: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    total_collected: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    seller_payout: Mapped[Decimal | None] = mapped_column(Money, nullable=True)

    delivery_status: Mapped[DeliveryStatus | None] = mapped_column(
        Enum(DeliveryStatus, name="delivery_status", native_enum=False, length=20),
        nullable=True,
    )
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    seller: Mapped["User"] = relationship(
        "User", back_populates="products", foreign_keys=[seller_id]
    )
    winner: Mapped[Optional["User"]] = relationship(
        "User", back_populates="won_products", foreign_keys=[winner_id]
    )
    bids: Mapped[list["Bid"]] = relationship("Bid", back_populates="product")

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, title={self.title}, status={self.status})>"
