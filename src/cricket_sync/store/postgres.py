"""PostgreSQL store backed by an asyncpg connection pool."""

from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

import asyncpg

from ..config import AppSettings
from ..cricket_logging import get_logger
from ..errors import PersistenceError
from .base import Row, Store, Where, as_condition, as_rows, chunked
from .schema import allowed_columns

logger = get_logger(__name__)

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def _affected(status: str) -> int:
    """Row count from a command status such as ``DELETE 3`` or ``UPDATE 1``."""
    if isinstance(status, str):
        try:
            return int(status.rsplit(" ", 1)[-1])
        except ValueError:
            return 0
    return 0


def build_where(where: Optional[Where], start: int = 1) -> Tuple[str, List[Any]]:
    """Render a filter mapping as a WHERE clause with positional parameters."""
    if not where:
        return "", []
    clauses = []
    args: List[Any] = []
    index = start
    for column, raw in where.items():
        condition = as_condition(raw)
        if condition.op == "eq":
            clauses.append(f"{column} = ${index}")
            args.append(condition.value)
            index += 1
        elif condition.op == "in":
            clauses.append(f"{column} = ANY(${index})")
            args.append(list(condition.value))
            index += 1
        elif condition.op == "gte":
            clauses.append(f"{column} >= ${index}")
            args.append(condition.value)
            index += 1
        elif condition.op == "ilike_any":
            alternatives = []
            for pattern in condition.value:
                alternatives.append(f"{column} ILIKE ${index}")
                args.append(pattern)
                index += 1
            clauses.append("(" + " OR ".join(alternatives) + ")")
        else:
            raise ValueError(f"Unsupported condition: {condition.op}")
    return " WHERE " + " AND ".join(clauses), args


class PostgresStore(Store):
    """Store implementation issuing parameterized SQL through asyncpg.

    Table and column names cannot be bound as parameters, so every
    identifier is checked against the declared schema before it reaches a
    statement.
    """

    def __init__(
        self,
        pool: asyncpg.Pool,
        batch_size: int = 500,
        columns: Optional[Mapping[str, FrozenSet[str]]] = None,
    ) -> None:
        self._pool = pool
        self.batch_size = batch_size
        self._columns = dict(columns or allowed_columns())
        self._tx_conn: ContextVar[Optional[asyncpg.Connection]] = ContextVar(
            f"cricket_sync_tx_{id(self)}", default=None
        )

    @classmethod
    async def connect(cls, settings: AppSettings) -> "PostgresStore":
        """Open a pool from STORE_URL / STORE_KEY.

        Raises:
            ConfigurationError: If either setting is missing
            PersistenceError: If the database cannot be reached
        """
        settings.require_store()
        dsn = settings.STORE_URL.replace("postgresql+asyncpg://", "postgresql://")
        try:
            pool = await asyncpg.create_pool(
                dsn=dsn,
                password=settings.store_password(),
                min_size=settings.STORE_POOL_MIN,
                max_size=settings.STORE_POOL_MAX,
                command_timeout=settings.STORE_COMMAND_TIMEOUT,
                server_settings={'application_name': 'cricket_sync'},
            )
        except _DB_ERRORS as e:
            raise PersistenceError(f"Could not connect to store: {e}") from e
        logger.info("Store connection pool created",
                    min_size=settings.STORE_POOL_MIN,
                    max_size=settings.STORE_POOL_MAX)
        return cls(pool, batch_size=settings.BATCH_SIZE)

    # Identifier checks

    def _check_table(self, table: str) -> FrozenSet[str]:
        try:
            return self._columns[table]
        except KeyError:
            raise PersistenceError(f"Unknown table: {table!r}", table=table) from None

    def _check_columns(self, table: str, columns: Iterable[str]) -> List[str]:
        known = self._check_table(table)
        columns = list(columns)
        unknown = [c for c in columns if c not in known]
        if unknown:
            raise PersistenceError(f"Unknown columns for {table}: {unknown}", table=table)
        return columns

    def _order_clause(self, table: str, order_by: Optional[Sequence[str]]) -> str:
        if not order_by:
            return ""
        parts = []
        for item in order_by:
            tokens = item.split()
            direction = tokens[1].upper() if len(tokens) == 2 else "ASC"
            if len(tokens) not in (1, 2) or direction not in ("ASC", "DESC"):
                raise PersistenceError(f"Invalid ORDER BY item: {item!r}", table=table)
            self._check_columns(table, [tokens[0]])
            parts.append(f"{tokens[0]} {direction}")
        return " ORDER BY " + ", ".join(parts)

    # Connections

    @asynccontextmanager
    async def _connection(self):
        conn = self._tx_conn.get()
        if conn is not None:
            yield conn
            return
        async with self._pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self):
        """Run the enclosed store calls on one connection inside a transaction.

        Nested use opens a savepoint on the outer transaction's connection.
        """
        outer = self._tx_conn.get()
        if outer is not None:
            async with outer.transaction():
                yield
            return

        try:
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    token = self._tx_conn.set(conn)
                    try:
                        yield
                    finally:
                        self._tx_conn.reset(token)
        except _DB_ERRORS as e:
            raise PersistenceError(f"Transaction failed: {e}") from e

    # Operations

    async def select(
        self,
        table: str,
        columns: Optional[Sequence[str]] = None,
        where: Optional[Where] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        column_sql = ", ".join(self._check_columns(table, columns)) if columns else "*"
        self._check_columns(table, (where or {}).keys())
        where_sql, args = build_where(where)
        query = f"SELECT {column_sql} FROM {table}{where_sql}{self._order_clause(table, order_by)}"
        if limit is not None:
            query += f" LIMIT {int(limit)}"

        try:
            async with self._connection() as conn:
                records = await conn.fetch(query, *args)
        except _DB_ERRORS as e:
            raise PersistenceError(f"Select from {table} failed: {e}", table=table) from e
        return [dict(record) for record in records]

    async def upsert(
        self,
        table: str,
        rows: Iterable[Any],
        conflict_keys: Tuple[str, ...],
    ) -> int:
        data = as_rows(rows)
        if not data:
            return 0

        columns = self._check_columns(table, data[0].keys())
        self._check_columns(table, conflict_keys)
        update_columns = [c for c in columns if c not in conflict_keys]

        placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
        update_clauses = [f"{c} = EXCLUDED.{c}" for c in update_columns]
        if "updated_at" in self._columns[table] and "updated_at" not in columns:
            update_clauses.append("updated_at = NOW()")
        conflict_action = (
            f"DO UPDATE SET {', '.join(update_clauses)}" if update_clauses else "DO NOTHING"
        )
        query = f"""
            INSERT INTO {table} ({', '.join(columns)})
            VALUES ({placeholders})
            ON CONFLICT ({', '.join(conflict_keys)})
            {conflict_action}
        """

        written = 0
        try:
            async with self._connection() as conn:
                for batch in chunked(data, self.batch_size):
                    await conn.executemany(query, [tuple(row.get(c) for c in columns) for row in batch])
                    written += len(batch)
        except _DB_ERRORS as e:
            raise PersistenceError(f"Upsert into {table} failed: {e}", table=table) from e

        logger.debug("Upsert completed", table=table, rows=written)
        return written

    async def update(self, table: str, values: Mapping[str, Any], where: Where) -> int:
        if not where:
            raise PersistenceError("Refusing to update without a filter", table=table)
        columns = self._check_columns(table, values.keys())
        self._check_columns(table, where.keys())

        assignments = [f"{c} = ${i + 1}" for i, c in enumerate(columns)]
        if "updated_at" in self._columns[table] and "updated_at" not in columns:
            assignments.append("updated_at = NOW()")
        where_sql, args = build_where(where, start=len(columns) + 1)
        query = f"UPDATE {table} SET {', '.join(assignments)}{where_sql}"

        try:
            async with self._connection() as conn:
                status = await conn.execute(query, *[values[c] for c in columns], *args)
        except _DB_ERRORS as e:
            raise PersistenceError(f"Update of {table} failed: {e}", table=table) from e
        return _affected(status)

    async def delete(self, table: str, where: Where) -> int:
        if not where:
            raise PersistenceError("Refusing to delete without a filter", table=table)
        self._check_columns(table, where.keys())
        where_sql, args = build_where(where)

        try:
            async with self._connection() as conn:
                status = await conn.execute(f"DELETE FROM {table}{where_sql}", *args)
        except _DB_ERRORS as e:
            raise PersistenceError(f"Delete from {table} failed: {e}", table=table) from e
        return _affected(status)

    async def close(self) -> None:
        await self._pool.close()
        logger.info("Store connection pool closed")


async def create_store(settings: AppSettings) -> PostgresStore:
    """Connect the configured store."""
    return await PostgresStore.connect(settings)
