"""
Redis-backed read access to the persistent work queue.

The listener only checks for the presence of keys; writes belong to the
forwarder and the relayer workers.
"""

import logging
from enum import IntEnum
from typing import Optional, Protocol

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class RedisTables(IntEnum):
    """Queue partitions, one redis database each."""
    INCOMING = 0
    WORKING = 1


class QueueStore(Protocol):
    """Read side of the persistent work queue."""

    async def get(self, table: RedisTables, key: str) -> Optional[bytes]:
        ...


class RedisUtility:
    """
    Read-only client for the persistent work queue.

    Each partition lives in its own redis database, so one client is kept per
    partition instead of issuing SELECT on a shared connection pool.
    """

    def __init__(self, host: str, port: int, timeout: float = 5.0):
        """
        Initialize the RedisUtility.

        Args:
            host: Redis host
            port: Redis port
            timeout: Socket connect/read timeout in seconds
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self._clients: dict[RedisTables, aioredis.Redis] = {}

    def select(self, table: RedisTables) -> aioredis.Redis:
        """Return the client bound to a partition, creating it on first use."""
        client = self._clients.get(table)
        if client is None:
            client = aioredis.Redis(
                host=self.host,
                port=self.port,
                db=int(table),
                socket_timeout=self.timeout,
                socket_connect_timeout=self.timeout,
            )
            self._clients[table] = client
            logger.debug(f"Connected redis client for {table.name} (db {int(table)})")
        return client

    async def get(self, table: RedisTables, key: str) -> Optional[bytes]:
        """
        Look up a key in one partition.

        Raises:
            redis.exceptions.RedisError: On connection or protocol failures
        """
        return await self.select(table).get(key)

    async def close(self) -> None:
        """Close all partition clients."""
        for table, client in self._clients.items():
            await client.aclose()
            logger.debug(f"Closed redis client for {table.name}")
        self._clients.clear()
