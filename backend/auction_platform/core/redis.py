import logging
from uuid import uuid4

from redis.asyncio import ConnectionPool, Redis

from auction_platform.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client manager class"""

    def __init__(self):
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    async def connect(self) -> None:
        """Connect to Redis"""
        if self._pool is None:
            self._pool = ConnectionPool.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                max_connections=10,
            )
            self._client = Redis(connection_pool=self._pool)

    async def disconnect(self) -> None:
        """Disconnect from Redis"""
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()
        self._client = None
        self._pool = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def get_client(self) -> Redis:
        """Get Redis client instance"""
        if self._client is None:
            raise RuntimeError("Redis client is not connected. Call connect() first.")
        return self._client

    async def ping(self) -> bool:
        """Test Redis connection"""
        if self._client is None:
            return False
        try:
            return await self._client.ping()
        except Exception:
            return False


redis_client = RedisClient()


# Delete the key only if we still own it
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

# Reset the expiry only if we still own the key
_EXTEND_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("expire", KEYS[1], ARGV[2])
else
    return 0
end
"""


class RedisLock:
    """
    Non-blocking cross-process lock backed by SET NX EX.

    The TTL bounds how long a crashed holder can keep the lock; a live
    holder calls extend() periodically.
    """

    def __init__(self, redis: Redis, key: str, ttl_seconds: int):
        self.redis = redis
        self.key = key
        self.ttl_seconds = ttl_seconds
        self._token: str | None = None

    async def acquire(self) -> bool:
        """Try to take the lock once; returns False if someone else holds it"""
        token = uuid4().hex
        acquired = await self.redis.set(self.key, token, nx=True, ex=self.ttl_seconds)
        if acquired:
            self._token = token
            return True
        return False

    async def extend(self) -> bool:
        """Push the expiry out by another TTL; False if the lock was lost"""
        if self._token is None:
            return False
        extended = await self.redis.eval(
            _EXTEND_SCRIPT, 1, self.key, self._token, self.ttl_seconds
        )
        return bool(extended)

    async def release(self) -> None:
        if self._token is None:
            return
        try:
            await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self._token)
        finally:
            self._token = None
