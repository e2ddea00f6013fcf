# auction_platform/api/cron.py
"""
Cron trigger for closing expired auctions.

GET or POST /api/cron/close-auctions runs one sweep; an external cron
service can ping it every minute. The in-process scheduler calls the same
sweep, and both share the scheduler's "already running" guard.
"""

import logging
import secrets
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse

from auction_platform.api.deps import get_auction_scheduler
from auction_platform.core.config import settings
from auction_platform.tasks.auction_closer import AuctionSweepScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


async def verify_cron_secret(authorization: str | None = Header(None)) -> None:
    """Require `Authorization: Bearer <CRON_SECRET>` when a secret is configured"""
    if not settings.CRON_SECRET:
        return

    expected = f"Bearer {settings.CRON_SECRET}"
    if authorization is None or not secrets.compare_digest(authorization, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid cron secret"
        )


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.api_route(
    "/close-auctions",
    methods=["GET", "POST"],
    dependencies=[Depends(verify_cron_secret)],
)
async def close_auctions(
    scheduler: AuctionSweepScheduler = Depends(get_auction_scheduler),
):
    """Close all expired auctions and report every per-auction outcome"""
    logger.info("🔄 Cron job triggered: Closing expired auctions...")

    try:
        report = await scheduler.run_once()
    except Exception as e:
        logger.exception("❌ Cron job failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "message": "Failed to close auctions",
                "error": str(e),
                "timestamp": _now_iso(),
            },
        )

    if report is None:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "success": True,
                "alreadyRunning": True,
                "message": "Auction closing already in progress",
                "totalChecked": 0,
                "successful": 0,
                "failed": 0,
                "skipped": 0,
                "timestamp": _now_iso(),
                "details": [],
            },
        )

    logger.info("✅ Cron job completed successfully")
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "message": "Auction closing process completed",
            **report.to_dict(),
        },
    )


@router.get("/status")
async def scheduler_status(
    scheduler: AuctionSweepScheduler = Depends(get_auction_scheduler),
):
    """Report whether the automatic auction closing scheduler is active"""
    return {
        "status": "running" if scheduler.is_running else "stopped",
        "checkIntervalSeconds": scheduler.interval_seconds,
        "sweepInProgress": scheduler.is_sweeping,
        "lastRunAt": scheduler.last_run_at.isoformat() if scheduler.last_run_at else None,
        "lastResults": scheduler.last_report.summary() if scheduler.last_report else None,
        "lastError": scheduler.last_error,
    }
