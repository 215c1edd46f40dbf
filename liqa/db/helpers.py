"""
Query helpers used by the Postgres storage.

Each helper borrows a pooled connection for a single statement and turns
psycopg failures into ``DatabaseError`` so callers only deal with
``StorageError``.
"""

import asyncio
import functools
from typing import Any

import psycopg

from liqa.db.pool import db_pool
from liqa.errors import StorageError
from liqa.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

Params = tuple | dict


class DatabaseError(StorageError):
    """Postgres-backed storage failure."""


async def _run(operation: str, query: str, params: Params, fetch: str | None):
    try:
        async with db_pool.connection() as conn:
            cur = await conn.execute(query, params)
            if fetch == "one":
                return await cur.fetchone()
            if fetch == "all":
                return await cur.fetchall()
            return cur.rowcount
    except psycopg.Error as e:
        logger.error(
            "Storage query failed",
            operation=operation,
            sqlstate=getattr(e, "sqlstate", None),
            statement=" ".join(query.split())[:120],
            error=str(e),
        )
        raise DatabaseError(f"{operation} failed: {e}", operation=operation) from e


async def fetch_one(query: str, params: Params = ()) -> dict[str, Any] | None:
    """First row of the result as a dict, or None."""
    return await _run("fetch_one", query, params, "one")


async def fetch_all(query: str, params: Params = ()) -> list[dict[str, Any]]:
    return await _run("fetch_all", query, params, "all")


async def execute_query(query: str, params: Params = ()) -> int:
    """Run a write statement; returns the affected row count."""
    return await _run("execute", query, params, None)


def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Retry a storage coroutine while Postgres reports transient failures.

    Only a ``DatabaseError`` caused by ``psycopg.OperationalError`` (dropped
    connection, pool exhaustion, server restart) is retried, with delays of
    base_delay, 2*base_delay, 4*base_delay... Anything else, and the final
    transient failure, propagates with ``recoverable`` cleared.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except DatabaseError as e:
                    transient = isinstance(e.__cause__, psycopg.OperationalError)
                    if not transient or attempt >= max_retries:
                        e.recoverable = False
                        if transient:
                            logger.error(
                                "Storage retries exhausted",
                                operation=func.__name__,
                                attempts=attempt + 1,
                            )
                        raise

                    delay = base_delay * 2**attempt
                    attempt += 1
                    logger.warning(
                        "Transient storage failure, retrying",
                        operation=func.__name__,
                        attempt=attempt,
                        delay=delay,
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
