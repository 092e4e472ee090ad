"""Database connection pool management."""

import logging

import asyncpg
from asyncpg import Pool

from core.storage import AnalysisRepository, ChatRepository, PlanRepository

logger = logging.getLogger("pactwise.database")


class Database:
    """Database connection manager using asyncpg."""

    def __init__(self) -> None:
        self._pool: Pool | None = None

    async def connect(self, database_url: str, min_size: int = 2, max_size: int = 10) -> None:
        """Create database connection pool."""
        self._pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
        )
        logger.info("✅ Database connection pool created")

    async def ensure_schema(self) -> None:
        """Create the tables every repository needs."""
        for repository in (
            AnalysisRepository(self.pool),
            ChatRepository(self.pool),
            PlanRepository(self.pool),
        ):
            await repository.ensure_tables()
        logger.info("✅ Database schema ready")

    async def disconnect(self) -> None:
        """Close database connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("✅ Database connection pool closed")

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> Pool:
        """Get the connection pool."""
        if not self._pool:
            raise RuntimeError("Database not connected")
        return self._pool
