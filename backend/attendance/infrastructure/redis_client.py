"""
Async Redis client shared by the summary cache and the notifier.
Separated from business logic for clean architecture.
"""

from typing import Optional

import redis.asyncio as redis

from attendance.core.config import get_settings
from attendance.core.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """Lazily created, process-wide Redis connection pool."""

    _instance: Optional[redis.Redis] = None

    @classmethod
    async def get_client(cls) -> Optional[redis.Redis]:
        """Get or create the client. Returns None if Redis is disabled or unreachable."""
        settings = get_settings()
        if not settings.REDIS_ENABLED:
            return None

        if cls._instance is None:
            try:
                client = redis.from_url(
                    settings.REDIS_URL,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    retry_on_timeout=True,
                    health_check_interval=30,
                )
                await client.ping()
                cls._instance = client
                logger.info("redis_connected", url=settings.REDIS_URL)
            except Exception as e:
                logger.error("redis_connection_failed", error=str(e))
                return None

        return cls._instance

    @classmethod
    async def close(cls) -> None:
        if cls._instance is not None:
            await cls._instance.aclose()
            cls._instance = None


async def get_redis() -> Optional[redis.Redis]:
    return await RedisClient.get_client()


async def close_redis() -> None:
    await RedisClient.close()
