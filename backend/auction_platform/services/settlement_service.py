"""
Auction settlement.

Closes one expired auction:
1. Loads the auction, its seller and its highest bid
2. Determines the winner (highest bidder) or closes with no winner
3. Calculates all financial values
4. Writes the settlement with a conditional update (only while still ACTIVE)
5. Notifies winner and seller, best-effort
"""

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

from auction_platform.models.product import AuctionStatus, DeliveryStatus
from auction_platform.services.auction_repository import (
    AuctionRepository,
    AuctionSnapshot,
    SettlementPatch,
)
from auction_platform.services.financial import (
    FeeSchedule,
    FinancialBreakdown,
    calculate_financials,
)
from auction_platform.services.notification_service import (
    AuctionEndedNoBids,
    AuctionSold,
    AuctionWon,
    NotificationOutcome,
    Notifier,
    dispatch_notification,
)

logger = logging.getLogger(__name__)


class SettlementOutcome(str, enum.Enum):
    CLOSED_WITH_WINNER = "CLOSED_WITH_WINNER"
    CLOSED_NO_BIDS = "CLOSED_NO_BIDS"
    NOT_FOUND = "NOT_FOUND"
    NOT_YET_DUE = "NOT_YET_DUE"
    ALREADY_CLOSED = "ALREADY_CLOSED"
    FAILED = "FAILED"


CLOSED_OUTCOMES = frozenset(
    {SettlementOutcome.CLOSED_WITH_WINNER, SettlementOutcome.CLOSED_NO_BIDS}
)


@dataclass
class SettlementResult:
    auction_id: UUID
    outcome: SettlementOutcome
    message: str
    winner_id: UUID | None = None
    financials: FinancialBreakdown | None = None
    notifications: list[NotificationOutcome] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome in CLOSED_OUTCOMES

    def to_dict(self) -> dict:
        data = {
            "outcome": self.outcome.value,
            "success": self.success,
            "message": self.message,
            "notifications": [n.to_dict() for n in self.notifications],
        }
        if self.winner_id is not None:
            data["winnerId"] = str(self.winner_id)
        if self.financials is not None:
            data["financials"] = self.financials.to_dict()
        if self.error is not None:
            data["error"] = self.error
        return data


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from the database are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SettlementEngine:
    """Settles exactly one auction per call; safe to call repeatedly"""

    def __init__(
        self,
        repository: AuctionRepository,
        notifier: Notifier,
        fee_schedule: Callable[[], FeeSchedule] = FeeSchedule.from_settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.notifier = notifier
        self.fee_schedule = fee_schedule
        self.clock = clock

    async def settle(self, auction_id: UUID) -> SettlementResult:
        try:
            return await self._settle(auction_id)
        except Exception as e:
            logger.exception(f"Error closing auction {auction_id}")
            return SettlementResult(
                auction_id=auction_id,
                outcome=SettlementOutcome.FAILED,
                message="Failed to close auction",
                error=str(e),
            )

    async def _settle(self, auction_id: UUID) -> SettlementResult:
        auction = await self.repository.load_auction_for_settlement(auction_id)

        if auction is None:
            return SettlementResult(
                auction_id=auction_id,
                outcome=SettlementOutcome.NOT_FOUND,
                message="Product not found",
            )

        if _as_utc(auction.auction_end) > self.clock():
            return SettlementResult(
                auction_id=auction_id,
                outcome=SettlementOutcome.NOT_YET_DUE,
                message="Auction has not ended yet",
            )

        if auction.status != AuctionStatus.ACTIVE:
            return SettlementResult(
                auction_id=auction_id,
                outcome=SettlementOutcome.ALREADY_CLOSED,
                message=f"Auction already closed ({auction.status.value})",
            )

        if auction.top_bid is None or auction.current_bid == 0:
            return await self._close_without_bids(auction)

        return await self._close_with_winner(auction)

    def _lost_race(self, auction: AuctionSnapshot) -> SettlementResult:
        logger.info(f"Auction {auction.id} was closed concurrently, nothing written")
        return SettlementResult(
            auction_id=auction.id,
            outcome=SettlementOutcome.ALREADY_CLOSED,
            message="Auction already closed",
        )

    async def _close_without_bids(self, auction: AuctionSnapshot) -> SettlementResult:
        committed = await self.repository.commit_settlement(
            auction.id, SettlementPatch(status=AuctionStatus.ENDED)
        )
        if not committed:
            return self._lost_race(auction)

        logger.info(f"✓ Auction '{auction.title}' ({auction.id}) closed with no bids")

        outcome = await dispatch_notification(
            self.notifier,
            AuctionEndedNoBids(
                seller_email=auction.seller.email,
                seller_name=auction.seller.display_name,
                product_title=auction.title,
            ),
        )

        return SettlementResult(
            auction_id=auction.id,
            outcome=SettlementOutcome.CLOSED_NO_BIDS,
            message="Auction closed with no bids",
            notifications=[outcome],
        )

    async def _close_with_winner(self, auction: AuctionSnapshot) -> SettlementResult:
        winning_bid = auction.top_bid
        winner = winning_bid.bidder
        seller = auction.seller

        if winning_bid.amount != auction.current_bid:
            logger.warning(
                f"Auction {auction.id}: current bid {auction.current_bid} "
                f"differs from top bid {winning_bid.amount}, settling on current bid"
            )

        financials = calculate_financials(
            auction.current_bid, winner.delivery_location, self.fee_schedule()
        )

        committed = await self.repository.commit_settlement(
            auction.id,
            SettlementPatch(
                status=AuctionStatus.ENDED,
                winner_id=winning_bid.bidder_id,
                final_bid_amount=financials.final_bid_amount,
                delivery_fee=financials.delivery_fee,
                platform_commission=financials.platform_commission,
                total_collected=financials.total_collected,
                seller_payout=financials.seller_payout,
                delivery_status=DeliveryStatus.PENDING,
            ),
        )
        if not committed:
            return self._lost_race(auction)

        logger.info(
            f"✓ Auction '{auction.title}' ({auction.id}) won by {winning_bid.bidder_id} "
            f"for {financials.final_bid_amount}"
        )

        notifications = [
            await dispatch_notification(
                self.notifier,
                AuctionWon(
                    winner_email=winner.email,
                    winner_name=winner.display_name,
                    product_title=auction.title,
                    final_bid_amount=financials.final_bid_amount,
                    delivery_fee=financials.delivery_fee,
                    total_amount=financials.total_collected,
                    seller_phone=seller.display_phone,
                ),
            ),
            await dispatch_notification(
                self.notifier,
                AuctionSold(
                    seller_email=seller.email,
                    seller_name=seller.display_name,
                    product_title=auction.title,
                    final_bid_amount=financials.final_bid_amount,
                    platform_commission=financials.platform_commission,
                    seller_payout=financials.seller_payout,
                    winner_name=winner.display_name,
                    winner_phone=winner.display_phone,
                ),
            ),
        ]

        return SettlementResult(
            auction_id=auction.id,
            outcome=SettlementOutcome.CLOSED_WITH_WINNER,
            message=f"Auction closed successfully. Winner: {winner.email or winning_bid.bidder_id}",
            winner_id=winning_bid.bidder_id,
            financials=financials,
            notifications=notifications,
        )
