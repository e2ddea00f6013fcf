# Core modules
from auction_platform.core.config import settings
from auction_platform.core.database import Base, close_db, get_db, init_db
from auction_platform.core.redis import redis_client

__all__ = [
    "settings",
    "get_db",
    "init_db",
    "close_db",
    "Base",
    "redis_client",
]
