"""asyncpg access layer.

A ``Database`` owns one connection pool and exposes the handful of
parameterized primitives the sync components need.  Each helper runs inside
its own transaction; callers that need several statements to share one
transaction use ``connection()`` directly.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Iterable, Sequence

import asyncpg

from histsync.config import Settings, get_settings

logger = logging.getLogger("histsync.db")


class Database:
    """Thin wrapper around an ``asyncpg.Pool``."""

    def __init__(self, pool: asyncpg.Pool | None = None) -> None:
        self._pool = pool

    @classmethod
    async def connect(cls, settings: Settings | None = None) -> "Database":
        """Create the connection pool. Call once at app startup."""
        s = settings or get_settings()
        pool = await asyncpg.create_pool(
            s.database_url,
            min_size=s.db_pool_min_size,
            max_size=s.db_pool_max_size,
            command_timeout=s.db_command_timeout,
        )
        logger.info(
            "Database pool initialized (min=%d, max=%d)",
            s.db_pool_min_size,
            s.db_pool_max_size,
        )
        return cls(pool)

    async def close(self) -> None:
        """Drain the pool. Call at app shutdown."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("Database pool closed")

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database pool not initialized, call Database.connect() first")
        return self._pool

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[asyncpg.Connection, None]:
        """Acquire a pooled connection with an open transaction.

        Usage::

            async with db.connection() as conn:
                await conn.execute("DELETE FROM store WHERE user_id = $1", user_id)
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def execute(self, query: str, *args: Any) -> str:
        """Execute a single statement and return its status tag."""
        async with self.connection() as conn:
            return await conn.execute(query, *args)

    async def executemany(self, query: str, args: Iterable[Sequence[Any]]) -> None:
        """Execute one statement per argument tuple inside a single transaction."""
        async with self.connection() as conn:
            await conn.executemany(query, args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.connection() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.connection() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.connection() as conn:
            return await conn.fetchval(query, *args)


def affected_rows(status: str) -> int:
    """Parse the row count out of a status tag such as ``"DELETE 12"``."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0
