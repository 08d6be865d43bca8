"""
Database connection and session management.

Postgres (Supabase) in production; the "memory" storage backend skips the pool.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import asyncpg

from backend.app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Database:
    """Async database connection pool."""

    def __init__(self):
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self, settings: Optional[Settings] = None) -> None:
        """Create connection pool."""
        settings = settings or get_settings()
        if settings.storage_backend != "postgres":
            return

        self.pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=2,
            max_size=10,
            command_timeout=60,
        )
        logger.info("Connected to Postgres")

    async def disconnect(self) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[asyncpg.Connection]:
        """Get a connection from the pool."""
        if self.pool is None:
            raise RuntimeError("Database pool is not connected")
        async with self.pool.acquire() as conn:
            yield conn


# Global database instance
db = Database()
