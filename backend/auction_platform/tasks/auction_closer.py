# auction_platform/tasks/auction_closer.py
"""Background task that closes expired auctions on a fixed interval."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from functools import partial

from auction_platform.core.config import settings
from auction_platform.core.database import AsyncSessionLocal
from auction_platform.core.mail import MailTransport
from auction_platform.core.redis import RedisLock, redis_client
from auction_platform.services.auction_repository import SqlAuctionRepository
from auction_platform.services.notification_service import EmailNotifier
from auction_platform.services.settlement_service import SettlementEngine
from auction_platform.services.sweep_service import SweepReport, run_sweep

logger = logging.getLogger(__name__)

SWEEP_LOCK_KEY = "auction:sweep:lock"


class AuctionSweepScheduler:
    """
    Runs the auction sweep every `interval_seconds`.

    At most one sweep runs at a time per scheduler. A tick that fires while a
    sweep is still in progress is skipped, not queued. The same guard covers
    sweeps triggered over HTTP through run_once().
    """

    def __init__(
        self,
        sweep: Callable[[], Awaitable[SweepReport]],
        interval_seconds: float = 60,
        lock_factory: Callable[[], RedisLock | None] | None = None,
    ):
        self.sweep = sweep
        self.interval_seconds = interval_seconds
        self.lock_factory = lock_factory

        self._guard = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()

        self.last_report: SweepReport | None = None
        self.last_error: str | None = None
        self.last_run_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        """Whether the recurring timer is active"""
        return self._task is not None and not self._task.done()

    @property
    def is_sweeping(self) -> bool:
        return self._guard.locked()

    async def _acquire_distributed(self) -> tuple[bool, RedisLock | None]:
        if self.lock_factory is None:
            return True, None

        lock = self.lock_factory()
        if lock is None:
            return True, None

        try:
            acquired = await lock.acquire()
        except Exception as e:
            # Redis down: the in-process guard still prevents local overlap
            logger.warning(f"⚠️  Sweep lock unavailable, continuing without it: {e}")
            return True, None

        return acquired, lock if acquired else None

    async def _keep_lock_alive(self, lock: RedisLock) -> None:
        # A full batch can outlast one TTL, refresh well before expiry
        interval = lock.ttl_seconds / 3
        while True:
            await asyncio.sleep(interval)
            try:
                if not await lock.extend():
                    logger.warning("⚠️  Sweep lock lost before the sweep finished")
                    return
            except Exception as e:
                logger.warning(f"⚠️  Failed to extend sweep lock: {e}")

    async def run_once(self) -> SweepReport | None:
        """
        Run one sweep unless one is already in progress.

        Returns None when skipped. Errors from the sweep itself propagate.
        """
        if self._guard.locked():
            logger.warning("⚠️  Auction sweep already running, skipping this run")
            return None

        async with self._guard:
            acquired, lock = await self._acquire_distributed()
            if not acquired:
                logger.info("Auction sweep running in another worker, skipping this run")
                return None

            self.last_run_at = datetime.now(timezone.utc)
            keeper = (
                asyncio.create_task(self._keep_lock_alive(lock)) if lock is not None else None
            )
            try:
                report = await self.sweep()
            except Exception as e:
                self.last_error = str(e)
                raise
            finally:
                if keeper is not None:
                    keeper.cancel()
                    try:
                        await keeper
                    except asyncio.CancelledError:
                        pass
                if lock is not None:
                    try:
                        await lock.release()
                    except Exception as e:
                        logger.warning(f"⚠️  Failed to release sweep lock: {e}")

            self.last_report = report
            self.last_error = None
            return report

    async def _tick(self) -> None:
        logger.info("🔄 Running scheduled auction check...")
        try:
            report = await self.run_once()
        except Exception:
            logger.exception("❌ Scheduler error")
            return

        if report is None:
            return

        if report.total == 0:
            logger.info("✓ No expired auctions found")
            return

        logger.info(
            f"✓ Checked: {report.total}, successful: {report.successful}, "
            f"failed: {report.failed}, skipped: {report.skipped}"
        )
        for item in report.details:
            if item.result.success:
                logger.info(f'✅ Closed: "{item.auction.title}"')
            else:
                logger.info(
                    f'❌ Not closed: "{item.auction.title}" - {item.result.message}'
                    + (f" ({item.result.error})" if item.result.error else "")
                )

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            # Fire and forget so a long sweep makes the next tick skip
            tick = asyncio.create_task(self._tick())
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)

    def start(self) -> None:
        if self.is_running:
            logger.warning("⚠️  Scheduler already running, skipping duplicate start")
            return

        self._task = asyncio.create_task(self._loop())
        logger.info(
            f"🚀 Auction closing scheduler started (interval: {self.interval_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop the timer and wait for any sweep still in flight"""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)

        logger.info("🛑 Auction closing scheduler stopped")


def _redis_sweep_lock() -> RedisLock | None:
    if not settings.SWEEP_USE_REDIS_LOCK or not redis_client.is_connected:
        return None
    return RedisLock(
        redis_client.get_client(), SWEEP_LOCK_KEY, settings.SWEEP_LOCK_TTL_SECONDS
    )


def create_auction_scheduler() -> AuctionSweepScheduler:
    """Wire the SQL repository, e-mail notifier and settlement engine together"""
    repository = SqlAuctionRepository(AsyncSessionLocal)
    notifier = EmailNotifier(MailTransport.from_settings())
    engine = SettlementEngine(repository, notifier)

    return AuctionSweepScheduler(
        sweep=partial(
            run_sweep,
            repository,
            engine,
            batch_size=settings.SWEEP_BATCH_SIZE,
            settlement_timeout=settings.SETTLEMENT_TIMEOUT_SECONDS,
        ),
        interval_seconds=settings.SWEEP_INTERVAL_SECONDS,
        lock_factory=_redis_sweep_lock,
    )
