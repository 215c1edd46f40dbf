"""
Process-wide psycopg connection pool.

The API process opens it in the lifespan, the email worker around a single
sweep. Connections are autocommit, return dict rows and run in UTC.
"""

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from liqa.config import settings
from liqa.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SERVICE = "database_pool"
CLOSE_TIMEOUT_SECONDS = 30.0
# Health degrades above this share of checked-out connections
UTILIZATION_LIMIT = 90.0


class DatabasePoolManager:
    """Owns the single AsyncConnectionPool and its open/closed state."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    @property
    def ready(self) -> bool:
        return self._initialized and not self._closed

    async def initialize(self) -> None:
        if self._initialized:
            logger.warning("Database pool already initialized")
            return
        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        options = settings.get_db_pool_config()
        self.pool = AsyncConnectionPool(
            conninfo=settings.DATABASE_URL,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=_configure_connection,
            **options,
        )

        try:
            await self.pool.open(wait=True)
            self._initialized = True
            await self._ping()
        except Exception as e:
            logger.error("Database pool failed to open", error=str(e))
            self._initialized = False
            pool, self.pool = self.pool, None
            try:
                await pool.close()
            except Exception as cleanup_error:
                logger.warning("Error closing pool after failed open", error=str(cleanup_error))
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info("Database pool ready", environment=settings.environment, **options)

    async def close(self) -> None:
        if not self.ready:
            return

        logger.info("Closing database pool")
        try:
            await asyncio.wait_for(self.pool.close(), timeout=CLOSE_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning("Database pool close timed out", timeout=CLOSE_TIMEOUT_SECONDS)
        finally:
            self._initialized = False
            self._closed = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[psycopg.AsyncConnection]:
        """
        Borrow a connection for the duration of the block:

            async with db_pool.connection() as conn:
                cur = await conn.execute("SELECT 1")
        """
        if self._closed:
            raise RuntimeError("Database pool is closed")
        if not self._initialized:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        async with self.pool.connection() as conn:
            yield conn

    async def _ping(self) -> float:
        started = time.perf_counter()
        async with self.connection() as conn:
            cur = await conn.execute("SELECT 1 AS ok")
            row = await cur.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError(f"Unexpected ping result: {row!r}")
        return (time.perf_counter() - started) * 1000

    async def health_check(self) -> dict[str, Any]:
        """
        Ping the database and report pool usage.

        ``healthy`` is False when the pool is not open, the ping fails, or
        checked-out connections exceed UTILIZATION_LIMIT percent.
        """
        if self._closed:
            return {"healthy": False, "service": SERVICE, "error": "Pool is closed"}
        if not self._initialized:
            return {"healthy": False, "service": SERVICE, "error": "Pool not initialized"}

        try:
            ping_ms = await self._ping()
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "healthy": False,
                "service": SERVICE,
                "error": str(e),
                "error_type": type(e).__name__,
            }

        stats = self.pool.get_stats()
        size = stats.get("pool_size", 0)
        available = stats.get("pool_available", 0)
        utilization = 100.0 * (size - available) / size if size else 0.0

        return {
            "healthy": utilization < UTILIZATION_LIMIT,
            "service": SERVICE,
            "connection_time_ms": round(ping_ms, 2),
            "pool_stats": {
                "pool_size": size,
                "pool_available": available,
                "pool_utilization_percent": round(utilization, 2),
                "requests_waiting": stats.get("requests_waiting", 0),
            },
        }


async def _configure_connection(conn: psycopg.AsyncConnection) -> None:
    conn.row_factory = dict_row
    # Autocommit keeps idle pooled connections out of INTRANS
    await conn.set_autocommit(True)
    await conn.execute(
        sql.SQL("SET application_name = {}").format(sql.Literal(f"liqa-{settings.environment}"))
    )
    await conn.execute("SET timezone = 'UTC'")
    await conn.execute("SET statement_timeout = '30s'")


db_pool = DatabasePoolManager()


async def db_health_check() -> dict[str, Any]:
    return await db_pool.health_check()
