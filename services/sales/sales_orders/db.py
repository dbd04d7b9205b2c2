"""
Sales Orders: connection provider

One `Database` object owns the async engine for the process. It is created
explicitly from `Settings`, connected once at startup and disposed at
shutdown. Every statement is written as SQL text with `:name` binds;
SQLAlchemy renders them as `?` for aiosqlite and `$n` for asyncpg.

    async with Database(load_settings()) as db:
        async with db.transaction() as tx:
            await tx.execute("DELETE FROM OrderDetail WHERE orderid = :id", {"id": 1})
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, NamedTuple, NoReturn

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from .config import DbType, Settings
from .errors import ConnectionFailure, Unimplemented
from .query import Query

logger = logging.getLogger(__name__)

Params = Mapping[str, Any] | None


class ExecuteResult(NamedTuple):
    affected_count: int
    generated_id: int | None = None


def _statement(stmt: str | Query, params: Params) -> tuple[str, dict[str, Any]]:
    if isinstance(stmt, Query):
        merged = dict(stmt.params)
        merged.update(params or {})
        return stmt.text, merged
    return stmt, dict(params or {})


def _adapt(params: dict[str, Any], db_type: DbType) -> dict[str, Any]:
    """SQLite stores dates as ISO text; asyncpg wants the objects themselves."""
    if db_type is not DbType.SQLITE:
        return params
    return {
        k: v.isoformat() if isinstance(v, (date, datetime)) else v
        for k, v in params.items()
    }


class Executor:
    """Statement helpers bound to one open connection."""

    def __init__(self, conn: AsyncConnection, db_type: DbType) -> None:
        self.conn = conn
        self.db_type = db_type

    async def execute(
        self,
        stmt: str | Query,
        params: Params = None,
        returning: str | None = None,
    ) -> ExecuteResult:
        """
        Run a statement that returns no rows.

        `returning` names the generated key column of an INSERT; its value is
        reported as `generated_id` (RETURNING on PostgreSQL, lastrowid on SQLite).
        """
        sql, bound = _statement(stmt, params)
        bound = _adapt(bound, self.db_type)
        if returning and self.db_type is DbType.POSTGRES:
            result = await self.conn.execute(text(f"{sql} RETURNING {returning}"), bound)
            row = result.fetchone()
            if row is None:
                return ExecuteResult(0, None)
            return ExecuteResult(1, row[0])

        result = await self.conn.execute(text(sql), bound)
        generated = result.lastrowid if returning else None
        return ExecuteResult(result.rowcount, generated or None)

    async def execute_many(
        self, stmt: str | Query, param_list: Iterable[Mapping[str, Any]]
    ) -> ExecuteResult:
        """Run one statement for every parameter set as a single batch."""
        sql, _ = _statement(stmt, None)
        batch = [_adapt(dict(p), self.db_type) for p in param_list]
        if not batch:
            return ExecuteResult(0)
        result = await self.conn.execute(text(sql), batch)
        # drivers report -1 when they cannot count an executemany
        affected = result.rowcount if result.rowcount >= 0 else len(batch)
        return ExecuteResult(affected)

    async def query_one(self, stmt: str | Query, params: Params = None) -> dict | None:
        sql, bound = _statement(stmt, params)
        result = await self.conn.execute(text(sql), _adapt(bound, self.db_type))
        row = result.fetchone()
        return dict(row._mapping) if row is not None else None

    async def query_many(self, stmt: str | Query, params: Params = None) -> list[dict]:
        sql, bound = _statement(stmt, params)
        result = await self.conn.execute(text(sql), _adapt(bound, self.db_type))
        return [dict(row._mapping) for row in result.fetchall()]


class Transaction(Executor):
    """Executor whose statements share one open transaction."""

    def transaction(self) -> NoReturn:
        raise Unimplemented("nested transactions are not supported")


class Database:
    """
    Shared store handle for the process.

    The backend is fixed by `settings.db_type` when the object is built;
    there is no fallback to the other backend if it cannot be reached.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._engine: AsyncEngine | None = None

    @property
    def db_type(self) -> DbType:
        return self.settings.db_type

    @property
    def connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> "Database":
        """Create the engine and ping the backend with `SELECT 1`."""
        if self._engine is not None:
            return self
        logger.info("Database Type: %s", self.db_type.value)
        engine = create_async_engine(
            self.settings.url, echo=self.settings.echo, pool_pre_ping=True
        )
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (OSError, SQLAlchemyError) as e:
            await engine.dispose()
            logger.error("Failed to connect to %s backend: %s", self.db_type.value, e)
            raise ConnectionFailure(
                f"{self.db_type.value} backend is unreachable: {e}"
            ) from e
        self._engine = engine
        logger.info("Database connection pool initialized.")
        return self

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Database connection pool closed.")

    async def __aenter__(self) -> "Database":
        return await self.connect()

    async def __aexit__(self, *exc_info) -> None:
        await self.dispose()

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise ConnectionFailure("Database is not connected. Call connect() first.")
        return self._engine

    # ── Transactions ─────────────────────────────────

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """
        Open a transaction scope on a fresh connection.

        Commits when the body finishes. Any exception (including the
        TimeoutError raised when the body outlives
        `settings.transaction_timeout`) rolls back and is re-raised as is;
        a failing rollback is logged and never replaces that exception.
        """
        engine = self._require_engine()
        async with engine.connect() as conn:
            trans = await conn.begin()
            try:
                async with asyncio.timeout(self.settings.transaction_timeout):
                    yield Transaction(conn, self.db_type)
            except BaseException as e:
                logger.warning("Rolling back transaction: %r", e)
                try:
                    await trans.rollback()
                except Exception:
                    logger.exception("Rollback failed")
                raise
            await trans.commit()

    # ── Single statements ────────────────────────────

    async def execute(
        self,
        stmt: str | Query,
        params: Params = None,
        returning: str | None = None,
    ) -> ExecuteResult:
        async with self.transaction() as tx:
            return await tx.execute(stmt, params, returning)

    async def execute_many(
        self, stmt: str | Query, param_list: Iterable[Mapping[str, Any]]
    ) -> ExecuteResult:
        async with self.transaction() as tx:
            return await tx.execute_many(stmt, param_list)

    async def query_one(self, stmt: str | Query, params: Params = None) -> dict | None:
        async with self._require_engine().connect() as conn:
            return await Executor(conn, self.db_type).query_one(stmt, params)

    async def query_many(self, stmt: str | Query, params: Params = None) -> list[dict]:
        async with self._require_engine().connect() as conn:
            return await Executor(conn, self.db_type).query_many(stmt, params)
