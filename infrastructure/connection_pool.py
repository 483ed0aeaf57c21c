# ============================================================================
# CONNECTION POOL / DATA SOURCE
# ============================================================================
# STATUS: Infrastructure - pooled PostgreSQL access and transactions
# PURPOSE: Explicitly constructed async pool handle with query helpers and
#          all-or-nothing transaction scope
# EXPORTS: DataSource
# DEPENDENCIES: psycopg, psycopg_pool, config.database_config
# ============================================================================
"""
Data Source - Pooled PostgreSQL Access.

================================================================================
ARCHITECTURE
================================================================================

One DataSource is built at worker start-up and injected into everything that
talks to the database; there is no module-level client. Connections are
autocommit, so a plain query() is its own transaction and a load's
transaction is opened explicitly:

    DataSource.query()               -> own connection, autocommit
    DataSource.run_in_transaction()  -> one connection, BEGIN ... COMMIT/ROLLBACK
    DataSource.execute_query(conn)   -> statement on a caller-held connection

Every pooled connection carries statement_timeout from DatabaseConfig, so a
hung statement surfaces as DatabaseError and rolls the load back.

psycopg's AsyncConnection serializes statements issued from concurrent
tasks, so several coroutines may share the transaction's connection.

================================================================================
USAGE
================================================================================

    data_source = DataSource(config.database)
    await data_source.open()

    async def work(conn):
        await data_source.execute_query(conn, "INSERT ...", params)

    await data_source.run_in_transaction(work)
    await data_source.close()
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Sequence, TypeVar, Union

import psycopg
from psycopg import sql
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from config.database_config import DatabaseConfig
from exceptions import DatabaseError, ForeignKeyDbError, UniqueKeyDbError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "DataSource")

T = TypeVar("T")
Query = Union[str, sql.Composable]


def translate_db_error(e: psycopg.Error) -> DatabaseError:
    """Map a psycopg error onto the domain hierarchy."""
    constraint = e.diag.constraint_name if e.diag else None
    if isinstance(e, psycopg.errors.UniqueViolation):
        return UniqueKeyDbError(f"Duplicate key: {e}", constraint=constraint)
    if isinstance(e, psycopg.errors.ForeignKeyViolation):
        return ForeignKeyDbError(f"Foreign key violation: {e}", constraint=constraint)
    if isinstance(e, psycopg.errors.QueryCanceled):
        return DatabaseError(f"Statement timed out or was cancelled: {e}")
    return DatabaseError(f"Query execution failed: {e}")


class DataSource:
    """
    Async connection pool handle.

    Shared process-wide across concurrent loads; each load borrows one
    connection for the lifetime of its transaction.
    """

    def __init__(self, config: DatabaseConfig, pool: Optional[AsyncConnectionPool] = None):
        self.config = config
        self._pool = pool

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def _create_pool(self) -> AsyncConnectionPool:
        logger.info(
            f"Creating connection pool: host={self.config.host} db={self.config.database} "
            f"min={self.config.pool_min_size} max={self.config.pool_max_size} "
            f"statement_timeout={self.config.statement_timeout_ms}ms"
        )
        kwargs = self.config.connection_kwargs()
        kwargs["autocommit"] = True
        return AsyncConnectionPool(
            conninfo="",
            kwargs=kwargs,
            min_size=self.config.pool_min_size,
            max_size=self.config.pool_max_size,
            timeout=self.config.pool_timeout_seconds,
            open=False,
        )

    async def open(self) -> None:
        if self._pool is None:
            self._pool = self._create_pool()
        await self._pool.open()
        logger.info("Database initialized successfully")

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            logger.info("Connection pool closed")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[psycopg.AsyncConnection]:
        """Borrow a pooled connection; it is returned on every exit path."""
        if self._pool is None:
            raise DatabaseError("DataSource.open() has not been called")
        try:
            async with self._pool.connection() as conn:
                yield conn
        except PoolTimeout as e:
            raise DatabaseError(f"No database connection available: {e}") from e

    # ========================================================================
    # QUERIES
    # ========================================================================

    async def execute_query(
        self,
        conn: psycopg.AsyncConnection,
        query: Query,
        params: Optional[Sequence[Any]] = None,
    ) -> int:
        """
        Execute one statement on a caller-held connection.

        Returns:
            Affected row count

        Raises:
            UniqueKeyDbError / ForeignKeyDbError on constraint violations,
            DatabaseError for anything else psycopg raises
        """
        try:
            async with conn.cursor() as cursor:
                await cursor.execute(query, params)
                return cursor.rowcount
        except psycopg.Error as e:
            raise translate_db_error(e) from e

    async def query(self, query: Query, params: Optional[Sequence[Any]] = None) -> int:
        """Execute one autocommitted statement on its own pooled connection."""
        async with self.connection() as conn:
            return await self.execute_query(conn, query, params)

    # ========================================================================
    # TRANSACTIONS
    # ========================================================================

    async def begin_transaction(self, conn: psycopg.AsyncConnection) -> None:
        await self.execute_query(conn, "BEGIN")

    async def commit_transaction(self, conn: psycopg.AsyncConnection) -> None:
        await self.execute_query(conn, "COMMIT")

    async def rollback_transaction(self, conn: psycopg.AsyncConnection) -> None:
        try:
            await self.execute_query(conn, "ROLLBACK")
            logger.info("Transaction rolled back")
        except DatabaseError as rollback_error:
            # The pool discards a connection left in a broken state
            logger.error(f"ROLLBACK failed: {rollback_error}")

    async def run_in_transaction(self, work: Callable[[psycopg.AsyncConnection], Awaitable[T]]) -> T:
        """
        Run work(connection) inside one transaction.

        COMMIT only if work returns normally; on any exception ROLLBACK and
        re-raise. Nested calls are not supported.
        """
        async with self.connection() as conn:
            await self.begin_transaction(conn)
            try:
                result = await work(conn)
            except BaseException:
                await self.rollback_transaction(conn)
                raise
            await self.commit_transaction(conn)
            return result
