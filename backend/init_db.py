#!/usr/bin/env python3
"""Initialize database tables and Redis connection."""
import asyncio
import logging

from auction_platform.core.database import close_db, init_db
from auction_platform.core.redis import redis_client

logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
logger = logging.getLogger("init_db")


async def main():
    """Initialize database and test Redis connection."""
    logger.info("Initializing database...")
    try:
        await init_db()
        logger.info("✅ Database tables created successfully!")
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        return
    finally:
        await close_db()

    logger.info("Testing Redis connection...")
    try:
        await redis_client.connect()
        if await redis_client.ping():
            logger.info("✅ Redis connection successful!")
        else:
            logger.error("❌ Redis ping failed")
        await redis_client.disconnect()
    except Exception as e:
        logger.error(f"❌ Redis connection failed: {e}")


if __name__ == "__main__":
    asyncio.run(main())
