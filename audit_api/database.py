"""
Database connection and session management using asyncpg.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import asyncpg
from asyncpg import Pool, Connection
from fastapi import Request

from audit_api.config import Settings
from audit_api.errors import StoreError

logger = logging.getLogger(__name__)

# Failures of the backing store that are not handled individually
STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class Database:
    """Async PostgreSQL connection pool manager."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: Optional[Pool] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Initialize the connection pool."""
        async with self._lock:
            if self._pool is not None:
                return

            dsn = self._settings.database_url
            if dsn.startswith("postgresql+asyncpg://"):
                dsn = dsn.replace("postgresql+asyncpg://", "postgresql://", 1)

            logger.info("Connecting to PostgreSQL...")

            self._pool = await asyncpg.create_pool(
                dsn=dsn,
                min_size=self._settings.db_pool_min_size,
                max_size=self._settings.db_pool_max_size,
                command_timeout=self._settings.db_command_timeout,
                server_settings={
                    'application_name': self._settings.app_name,
                }
            )

            logger.info("PostgreSQL connection pool created successfully")

    async def disconnect(self) -> None:
        """Close the connection pool."""
        async with self._lock:
            if self._pool is None:
                return

            logger.info("Closing PostgreSQL connection pool...")
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")

    @property
    def pool(self) -> Pool:
        """Get the connection pool."""
        if self._pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """Acquire a connection from the pool."""
        async with self.pool.acquire() as conn:
            yield conn

    async def checkout(self) -> Connection:
        """
        Take a connection from the pool for the duration of a request.

        Raises:
            StoreError: If the pool is not connected or the store is unreachable
        """
        try:
            return await self.pool.acquire()
        except (*STORE_ERRORS, RuntimeError) as e:
            logger.error(f"Failed to acquire database connection: {e}")
            raise StoreError() from e

    async def release(self, conn: Connection) -> None:
        """Return a connection taken with checkout()."""
        await self.pool.release(conn)

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.acquire() as conn:
                result = await conn.fetchval("SELECT 1")
            return result == 1
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


async def get_db(request: Request) -> Database:
    """Dependency injection for the application's database."""
    return request.app.state.database
