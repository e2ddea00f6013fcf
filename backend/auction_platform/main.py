# auction_platform/main.py
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auction_platform.api import cron, delivery
from auction_platform.core.config import settings
from auction_platform.core.database import close_db
from auction_platform.core.redis import redis_client
from auction_platform.tasks.auction_closer import create_auction_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup and shutdown events for FastAPI application.
    """
    try:
        await redis_client.connect()
        logger.info("✓ Redis connected")
    except Exception as e:
        logger.warning(f"⚠ Redis connection failed: {e}")

    scheduler = create_auction_scheduler()
    app.state.auction_scheduler = scheduler

    if settings.SWEEP_ENABLED:
        scheduler.start()
    else:
        logger.info("Auction scheduler disabled, use /api/cron/close-auctions")

    logger.info("✓ Application started")
    yield

    await scheduler.stop()

    try:
        await redis_client.disconnect()
        logger.info("✓ Redis disconnected")
    except Exception as e:
        logger.warning(f"⚠ Redis disconnect failed: {e}")

    await close_db()
    logger.info("✓ Application shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    description="Auction settlement, delivery and payout bookkeeping",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(cron.router, prefix="/api/cron", tags=["Cron"])
app.include_router(delivery.router, prefix="/api", tags=["Delivery"])


# Global exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler to log and return detailed errors"""
    logger.error(f"Unhandled exception: {exc}")
    logger.error(f"Request: {request.method} {request.url}")
    logger.error(f"Traceback: {traceback.format_exc()}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
            "traceback": traceback.format_exc().split("\n") if app.debug else None,
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors with detailed info"""
    logger.warning(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.get("/")
async def root():
    """Root endpoint - health check"""
    return {
        "message": settings.APP_NAME,
        "status": "running",
        "version": settings.APP_VERSION,
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    redis_status = await redis_client.ping()
    scheduler = getattr(app.state, "auction_scheduler", None)

    return {
        "status": "healthy",
        "redis": "connected" if redis_status else "disconnected",
        "scheduler": "running" if scheduler and scheduler.is_running else "stopped",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("auction_platform.main:app", host="0.0.0.0", port=8000, reload=True)
