"""Close every auction whose end time has passed."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from auction_platform.services.auction_repository import AuctionRepository, DueAuction
from auction_platform.services.settlement_service import (
    SettlementEngine,
    SettlementOutcome,
    SettlementResult,
    utcnow,
)

logger = logging.getLogger(__name__)


@dataclass
class SweepItem:
    auction: DueAuction
    result: SettlementResult

    def to_dict(self) -> dict:
        return {
            "productId": str(self.auction.id),
            "productTitle": self.auction.title,
            **self.result.to_dict(),
        }


@dataclass
class SweepReport:
    started_at: datetime
    finished_at: datetime | None = None
    details: list[SweepItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.details)

    @property
    def successful(self) -> int:
        return sum(1 for item in self.details if item.result.success)

    @property
    def failed(self) -> int:
        return sum(
            1 for item in self.details if item.result.outcome == SettlementOutcome.FAILED
        )

    @property
    def skipped(self) -> int:
        return self.total - self.successful - self.failed

    def summary(self) -> dict:
        return {
            "totalChecked": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "timestamp": (self.finished_at or self.started_at).isoformat(),
        }

    def to_dict(self) -> dict:
        return {
            **self.summary(),
            "details": [item.to_dict() for item in self.details],
        }


async def _settle_with_timeout(
    engine: SettlementEngine, auction: DueAuction, timeout: float | None
) -> SettlementResult:
    try:
        return await asyncio.wait_for(engine.settle(auction.id), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"❌ Closing auction {auction.id} timed out after {timeout}s")
        return SettlementResult(
            auction_id=auction.id,
            outcome=SettlementOutcome.FAILED,
            message="Failed to close auction",
            error=f"Settlement timed out after {timeout}s",
        )
    except Exception as e:
        logger.exception(f"❌ Unexpected error closing auction {auction.id}")
        return SettlementResult(
            auction_id=auction.id,
            outcome=SettlementOutcome.FAILED,
            message="Failed to close auction",
            error=str(e),
        )


async def run_sweep(
    repository: AuctionRepository,
    engine: SettlementEngine,
    batch_size: int | None = None,
    settlement_timeout: float | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> SweepReport:
    """
    Find all expired auctions that are still ACTIVE and close them one by one.

    Errors from the due-auction query propagate to the caller; errors while
    closing a single auction are recorded in the report and the sweep moves on.
    """
    report = SweepReport(started_at=clock())

    due_auctions = await repository.find_due_auctions(report.started_at, batch_size)
    logger.info(f"Found {len(due_auctions)} expired auctions to close")

    for auction in due_auctions:
        logger.info(f"Closing auction: {auction.title} ({auction.id})")
        result = await _settle_with_timeout(engine, auction, settlement_timeout)
        report.details.append(SweepItem(auction=auction, result=result))

    report.finished_at = clock()

    logger.info(
        f"Auction closing complete: {report.successful} successful, "
        f"{report.failed} failed, {report.skipped} skipped"
    )
    return report
