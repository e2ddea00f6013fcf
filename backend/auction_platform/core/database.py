from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from auction_platform.core.config import settings

# When using PgBouncer: keep more client connections, PgBouncer owns the real pool
# When not using PgBouncer: conservative settings, the sweep is the main writer
if settings.USE_PGBOUNCER:
    # PgBouncer mode: PgBouncer owns the backend connections
    pool_config = {
        "pool_size": 20,  # Sweep sessions plus API traffic
        "max_overflow": 40,  # Allow bursts (total = 60 to PgBouncer)
        "pool_recycle": 300,  # PgBouncer handles recycling, so relax here
        "pool_timeout": 30,  # More patient since PgBouncer is fast
        "pool_pre_ping": False,  # PgBouncer handles connection health
    }
else:
    # Direct mode: small pool, one sweep writes at a time
    pool_config = {
        "pool_size": 10,  # Few direct connections to PostgreSQL
        "max_overflow": 10,  # Limited overflow (total = 20)
        "pool_recycle": 120,  # Aggressive recycling to prevent leaks
        "pool_timeout": 10,  # Fail fast if pool exhausted
        "pool_pre_ping": True,  # Check connection health
    }

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,  # Disable SQL logging
    future=True,
    pool_use_lifo=True,  # Use LIFO to reuse recent connections
    connect_args={
        "server_settings": {
            "timezone": "UTC",  # auction_end comparisons are done in UTC
            "application_name": "auction_platform",
        },
        "command_timeout": 30,  # Command timeout
        "statement_cache_size": 0,  # No prepared statement cache (PgBouncer transaction mode)
        "timeout": 15,  # Connection establishment timeout
    },
    **pool_config,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """All ORM models base class"""

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI Dependency: Provide database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Initialize database, create all tables"""
    async with engine.begin() as conn:
        # Import all models to ensure they are registered
        from auction_platform.models import Bid, Product, Profile, User  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connection"""
    await engine.dispose()
