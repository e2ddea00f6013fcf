"""Data access for auction settlement."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from sqlalchemy import Select, Update, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import joinedload

from auction_platform.models.bid import Bid
from auction_platform.models.product import AuctionStatus, DeliveryStatus, Product
from auction_platform.models.user import User

DEFAULT_LOCATION = "Outside Beirut"
MISSING_PHONE = "N/A"


@dataclass(frozen=True)
class PartyContact:
    """Seller or winner contact details as needed for notifications"""

    id: UUID
    email: str | None
    first_name: str | None = None
    phone: str | None = None
    location: str | None = None

    @property
    def display_name(self) -> str:
        if self.first_name:
            return self.first_name
        if self.email:
            return self.email.split("@")[0]
        return "User"

    @property
    def display_phone(self) -> str:
        return self.phone or MISSING_PHONE

    @property
    def delivery_location(self) -> str:
        return self.location or DEFAULT_LOCATION


@dataclass(frozen=True)
class TopBid:
    bid_id: UUID
    bidder_id: UUID
    amount: Decimal
    bidder: PartyContact


@dataclass(frozen=True)
class DueAuction:
    id: UUID
    title: str
    auction_end: datetime
    status: AuctionStatus


@dataclass(frozen=True)
class AuctionSnapshot:
    """Everything settlement needs to know about one auction"""

    id: UUID
    title: str
    status: AuctionStatus
    auction_end: datetime
    current_bid: Decimal
    seller: PartyContact
    top_bid: TopBid | None = None


@dataclass(frozen=True)
class SettlementPatch:
    """Column values written when an auction closes"""

    status: AuctionStatus = AuctionStatus.ENDED
    winner_id: UUID | None = None
    final_bid_amount: Decimal | None = None
    delivery_fee: Decimal | None = None
    platform_commission: Decimal | None = None
    total_collected: Decimal | None = None
    seller_payout: Decimal | None = None
    delivery_status: DeliveryStatus | None = None

    def to_values(self) -> dict:
        values = {
            "status": self.status,
            "winner_id": self.winner_id,
            "final_bid_amount": self.final_bid_amount,
            "delivery_fee": self.delivery_fee,
            "platform_commission": self.platform_commission,
            "total_collected": self.total_collected,
            "seller_payout": self.seller_payout,
            "delivery_status": self.delivery_status,
        }
        # A no-bid close only writes the status
        return {key: value for key, value in values.items() if value is not None}


class AuctionRepository(Protocol):
    async def find_due_auctions(
        self, now: datetime, limit: int | None = None
    ) -> list[DueAuction]: ...

    async def load_auction_for_settlement(
        self, auction_id: UUID
    ) -> AuctionSnapshot | None: ...

    async def commit_settlement(self, auction_id: UUID, patch: SettlementPatch) -> bool: ...


def due_auctions_query(now: datetime, limit: int | None = None) -> Select:
    """Open auctions whose end time has passed, oldest deadline first"""
    stmt = (
        select(Product.id, Product.title, Product.auction_end, Product.status)
        .where(
            Product.status == AuctionStatus.ACTIVE,
            Product.auction_end <= now,
        )
        .order_by(Product.auction_end.asc(), Product.id.asc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return stmt


def auction_with_seller_query(auction_id: UUID) -> Select:
    return (
        select(Product)
        .options(joinedload(Product.seller).joinedload(User.profile))
        .where(Product.id == auction_id)
    )


def top_bid_query(auction_id: UUID) -> Select:
    """Highest bid; equal amounts go to the earliest bid, then the lowest id"""
    return (
        select(Bid)
        .options(joinedload(Bid.bidder).joinedload(User.profile))
        .where(Bid.product_id == auction_id)
        .order_by(Bid.amount.desc(), Bid.created_at.asc(), Bid.id.asc())
        .limit(1)
    )


def settlement_update(auction_id: UUID, patch: SettlementPatch) -> Update:
    """Conditional update: only matches while the auction is still ACTIVE"""
    return (
        update(Product)
        .where(
            Product.id == auction_id,
            Product.status == AuctionStatus.ACTIVE,
        )
        .values(**patch.to_values())
        .execution_options(synchronize_session=False)
    )


def _contact(user: User) -> PartyContact:
    profile = user.profile
    return PartyContact(
        id=user.id,
        email=user.email,
        first_name=profile.first_name if profile else None,
        phone=profile.phone if profile else None,
        location=profile.location if profile else None,
    )


class SqlAuctionRepository:
    """AuctionRepository over the async SQLAlchemy session factory"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_due_auctions(
        self, now: datetime, limit: int | None = None
    ) -> list[DueAuction]:
        async with self.session_factory() as db:
            result = await db.execute(due_auctions_query(now, limit))
            return [
                DueAuction(id=row.id, title=row.title, auction_end=row.auction_end, status=row.status)
                for row in result.all()
            ]

    async def load_auction_for_settlement(self, auction_id: UUID) -> AuctionSnapshot | None:
        async with self.session_factory() as db:
            result = await db.execute(auction_with_seller_query(auction_id))
            product = result.unique().scalar_one_or_none()

            if not product:
                return None

            bid_result = await db.execute(top_bid_query(auction_id))
            bid = bid_result.unique().scalar_one_or_none()

            top_bid = None
            if bid is not None:
                top_bid = TopBid(
                    bid_id=bid.id,
                    bidder_id=bid.bidder_id,
                    amount=bid.amount,
                    bidder=_contact(bid.bidder),
                )

            return AuctionSnapshot(
                id=product.id,
                title=product.title,
                status=product.status,
                auction_end=product.auction_end,
                current_bid=product.current_bid,
                seller=_contact(product.seller),
                top_bid=top_bid,
            )

    async def commit_settlement(self, auction_id: UUID, patch: SettlementPatch) -> bool:
        async with self.session_factory() as db:
            try:
                result = await db.execute(settlement_update(auction_id, patch))
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            return result.rowcount == 1
