from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, Numeric
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from auction_platform.core.database import Base

if TYPE_CHECKING:
    from auction_platform.models.product import Product
    from auction_platform.models.user import User


class Bid(Base):
    """Bid ORM model (append-only)"""

    __tablename__ = "bids"
    __table_args__ = (
        # Top bid lookup: WHERE product_id = X ORDER BY amount DESC, created_at ASC
        Index("idx_bids_product_amount", "product_id", "amount", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid4
    )
    product_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True
    )
    bidder_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    product: Mapped["Product"] = relationship("Product", back_populates="bids")
    bidder: Mapped["User"] = relationship("User", back_populates="bids")

    def __repr__(self) -> str:
        return f"<Bid(id={self.id}, product_id={self.product_id}, amount={self.amount})>"
