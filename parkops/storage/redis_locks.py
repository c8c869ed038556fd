"""Redis-based distributed locks serializing bookings per location."""

import asyncio
import secrets
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import redis.asyncio as redis
from redis.exceptions import RedisError

from parkops.logging import get_logger

logger = get_logger(__name__)

# Delete the key only if we still own it
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class RedisLockHelper:
    """Helper for Redis-based distributed locking."""

    def __init__(
        self,
        redis_url: str,
        ttl_seconds: int = 5,
        wait_seconds: float = 2.0,
        poll_interval_seconds: float = 0.05,
    ):
        """Initialize Redis lock helper."""
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.wait_seconds = wait_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish Redis connection."""
        self._client = redis.from_url(self.redis_url, encoding="utf-8")

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _location_key(location_id: int) -> str:
        return f"parkops:lock:location:{location_id}"

    @asynccontextmanager
    async def acquire_location_lock(
        self, location_id: int
    ) -> AsyncGenerator[bool, None]:
        """Acquire exclusive lock on a location, waiting at most ``wait_seconds``."""
        if not self._client:
            raise RuntimeError("Redis client not connected")

        lock_key = self._location_key(location_id)
        token = secrets.token_hex(8)
        deadline = time.monotonic() + self.wait_seconds
        acquired = False

        try:
            while True:
                acquired = bool(
                    await self._client.set(lock_key, token, ex=self.ttl_seconds, nx=True)
                )
                if acquired or time.monotonic() >= deadline:
                    break
                await asyncio.sleep(self.poll_interval_seconds)

            if not acquired:
                logger.warning("location_lock_timeout", location_id=location_id)
            yield acquired
        finally:
            if acquired:
                await self._release(lock_key, token, location_id)

    async def _release(self, lock_key: str, token: str, location_id: int) -> None:
        # The key expires after ttl_seconds if the delete never reaches Redis
        try:
            await self._client.eval(_RELEASE_SCRIPT, 1, lock_key, token)
        except RedisError as e:
            logger.warning(
                "location_lock_release_failed",
                location_id=location_id,
                error=str(e),
            )
