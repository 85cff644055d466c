"""Redis-based store client for shared or server deployments."""

import json
from dataclasses import dataclass, field
from typing import Any, List, Optional

import redis.asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.retry import Retry

from ..base import BaseStoreClient
from .._utils import logger


@dataclass
class RedisStoreClient(BaseStoreClient):
    """Store client keeping each key as a JSON document under a namespace prefix."""

    _redis_client: Optional[Any] = field(init=False, default=None)
    _connection_pool: Optional[Any] = field(init=False, default=None)
    _initialized: bool = field(init=False, default=False)

    def __post_init__(self):
        self._prefix = f"bizsnap:{self.namespace}:"

        self.redis_url = self.global_config.get("redis_url", "redis://localhost:6379")
        self.redis_password = self.global_config.get("redis_password", None)
        self.max_connections = self.global_config.get("redis_max_connections", 50)
        self.socket_timeout = self.global_config.get("redis_socket_timeout", 5.0)
        self.connection_timeout = self.global_config.get("redis_connection_timeout", 5.0)
        self.health_check_interval = self.global_config.get("redis_health_check_interval", 30)

    async def _ensure_initialized(self):
        """Ensure Redis connection is initialized."""
        if self._initialized:
            return

        retry = Retry(
            ExponentialBackoff(cap=10, base=1),
            retries=3,
            supported_errors=(RedisConnectionError, TimeoutError, ConnectionError)
        )

        self._connection_pool = aioredis.ConnectionPool.from_url(
            self.redis_url,
            password=self.redis_password,
            max_connections=self.max_connections,
            socket_timeout=self.socket_timeout,
            socket_connect_timeout=self.connection_timeout,
            decode_responses=False,
            retry=retry,
            health_check_interval=self.health_check_interval
        )

        self._redis_client = aioredis.Redis(connection_pool=self._connection_pool)

        try:
            await self._redis_client.ping()
            logger.info(f"Connected to Redis for namespace: {self.namespace}")
        except RedisError as e:
            logger.error(f"Redis connection failed: {e}")
            raise

        self._initialized = True

    def _get_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _serialize(self, data: Any) -> bytes:
        return json.dumps(data, ensure_ascii=False, default=str).encode('utf-8')

    def _deserialize(self, data: bytes) -> Any:
        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode('utf-8')
        return json.loads(data)

    async def get(self, key: str, default: Optional[Any] = None) -> Any:
        await self._ensure_initialized()

        try:
            data = await self._redis_client.get(self._get_key(key))
        except RedisError as e:
            logger.error(f"Redis get error for {key}: {e}")
            raise

        if data is None:
            return default
        return self._deserialize(data)

    async def set(self, key: str, value: Any) -> None:
        await self._ensure_initialized()

        try:
            await self._redis_client.set(self._get_key(key), self._serialize(value))
        except RedisError as e:
            logger.error(f"Redis set error for {key}: {e}")
            raise

        logger.debug(f"Stored {key} in Redis namespace: {self.namespace}")

    async def delete(self, key: str) -> None:
        await self._ensure_initialized()
        await self._redis_client.delete(self._get_key(key))

    async def all_keys(self) -> List[str]:
        await self._ensure_initialized()

        keys = []
        # SCAN keeps large keysets from blocking the server
        async for key in self._redis_client.scan_iter(match=f"{self._prefix}*", count=1000):
            if isinstance(key, bytes):
                key = key.decode('utf-8')
            keys.append(key.replace(self._prefix, '', 1))
        return keys

    async def drop(self) -> None:
        """Clear all keys in namespace."""
        await self._ensure_initialized()

        pattern = f"{self._prefix}*"
        cursor = 0

        while True:
            cursor, keys = await self._redis_client.scan(cursor, match=pattern, count=1000)
            if keys:
                await self._redis_client.delete(*keys)
            if cursor == 0:
                break

        logger.info(f"Dropped all data in Redis namespace: {self.namespace}")

    async def close(self) -> None:
        if self._redis_client is not None:
            await self._redis_client.aclose()
        if self._connection_pool is not None:
            await self._connection_pool.disconnect()
        self._initialized = False
