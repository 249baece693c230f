"""
asyncpg pool shared by the event store, the read-model lookups and the
migration runner.

Single statements go through execute / fetch / fetchrow / fetchval, which
borrow a pooled connection and turn driver errors into QueryError.
Multi-statement writes (event append + snapshot, one migration) use
transaction(), which hands out the raw connection; driver errors raised
inside it reach the caller unchanged so it can tell a unique violation
from other failures.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional

import asyncpg
from asyncpg import Connection, Pool, Record

from config.models import DatabaseConfig

from ...utils.logging_setup import get_logger

logger = get_logger(__name__)

# Upper bound for any single statement, seconds
COMMAND_TIMEOUT = 60


class DatabaseError(Exception):
    """Base exception for database operations."""


class DatabaseConnectionError(DatabaseError):
    """Pool could not be created, or was used before connect()."""


class QueryError(DatabaseError):
    """A statement failed."""


class Database:
    """
    Usage:
        db = Database(config.database)
        await db.connect()

        rows = await db.fetch("SELECT payload FROM allocator_events WHERE aggregate_id = $1", guid)

        async with db.transaction() as conn:
            await conn.executemany("INSERT INTO allocator_events ...", rows)

        await db.close()
    """

    def __init__(self, config: DatabaseConfig):
        self._config = config
        self._pool: Optional[Pool] = None

    @property
    def pool(self) -> Pool:
        if self._pool is None:
            raise DatabaseConnectionError("Database not connected. Call connect() first.")
        return self._pool

    async def connect(self) -> None:
        """
        Raises:
            DatabaseConnectionError: If the pool cannot be created.
        """
        if self._pool is not None:
            logger.warning("Database already connected")
            return

        pool_config = self._config.pool
        logger.info(
            f"Connecting to {self._config.database} at {self._config.host}:{self._config.port} "
            f"(pool {pool_config.min_connections}-{pool_config.max_connections})"
        )
        try:
            self._pool = await asyncpg.create_pool(
                self._config.dsn,
                min_size=pool_config.min_connections,
                max_size=pool_config.max_connections,
                command_timeout=COMMAND_TIMEOUT,
            )
        except (OSError, asyncpg.PostgresError) as e:
            logger.error(f"Failed to connect to database: {e}")
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e
        logger.info("Database connection pool established")

    async def close(self) -> None:
        if self._pool is not None:
            logger.info("Closing database connection pool")
            await self._pool.close()
            self._pool = None

    async def _run(self, method: str, query: str, *args: Any, **kwargs: Any) -> Any:
        try:
            async with self.pool.acquire() as conn:
                return await getattr(conn, method)(query, *args, **kwargs)
        except asyncpg.PostgresError as e:
            logger.error(f"{method} failed: {e} ({query.strip()[:200]})")
            raise QueryError(f"{method} failed: {e}") from e

    async def execute(self, query: str, *args: Any) -> str:
        """Run a statement and return its status string (e.g. "UPDATE 1")."""
        return await self._run("execute", query, *args)

    async def fetch(self, query: str, *args: Any) -> List[Record]:
        return await self._run("fetch", query, *args)

    async def fetchrow(self, query: str, *args: Any) -> Optional[Record]:
        return await self._run("fetchrow", query, *args)

    async def fetchval(self, query: str, *args: Any, column: int = 0) -> Any:
        return await self._run("fetchval", query, *args, column=column)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Connection]:
        """Commit on normal exit, roll back when the block raises."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn
