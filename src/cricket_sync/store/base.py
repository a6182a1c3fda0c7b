"""Persistence boundary used by every pipeline.

Filters are plain mappings of column name to condition. A bare value means
equality; the helpers below build the other supported conditions::

    {"id": "M1"}                                  # id = 'M1'
    {"match_id": one_of(["M1", "M2"])}            # match_id IN (...)
    {"created_at": at_least(cutoff)}              # created_at >= cutoff
    {"result": ilike_any("%progress%", "%yet to begin%")}

All conditions of one filter are ANDed.
"""

import abc
import re
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
)

Row = Dict[str, Any]
Where = Mapping[str, Any]


class Condition(NamedTuple):
    op: str
    value: Any


def one_of(values: Iterable[Any]) -> Condition:
    return Condition("in", tuple(values))


def at_least(value: Any) -> Condition:
    return Condition("gte", value)


def ilike_any(*patterns: str) -> Condition:
    """Case-insensitive SQL LIKE against any of the patterns."""
    return Condition("ilike_any", tuple(patterns))


def as_condition(value: Any) -> Condition:
    if isinstance(value, Condition):
        return value
    return Condition("eq", value)


def _like_regex(pattern: str) -> "re.Pattern[str]":
    parts = (re.escape(chunk) for chunk in pattern.split("%"))
    return re.compile("^" + ".*".join(parts) + "$", re.IGNORECASE | re.DOTALL)


def condition_holds(actual: Any, condition: Condition) -> bool:
    """Evaluate one condition against a value, following SQL NULL rules."""
    if condition.op == "eq":
        return actual is not None and actual == condition.value
    if condition.op == "in":
        return actual is not None and actual in condition.value
    if condition.op == "gte":
        return actual is not None and actual >= condition.value
    if condition.op == "ilike_any":
        if actual is None:
            return False
        return any(_like_regex(p).match(str(actual)) for p in condition.value)
    raise ValueError(f"Unsupported condition: {condition.op}")


def row_matches(row: Mapping[str, Any], where: Optional[Where]) -> bool:
    if not where:
        return True
    return all(condition_holds(row.get(col), as_condition(v)) for col, v in where.items())


def chunked(items: Sequence[Any], size: int) -> Iterable[Sequence[Any]]:
    """Consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("size must be at least 1")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def as_rows(rows: Iterable[Any]) -> List[Row]:
    """Accept row models or plain dicts."""
    return [row.to_row() if hasattr(row, "to_row") else dict(row) for row in rows]


class Store(abc.ABC):
    """Relational store with conflict-key upserts and transactions.

    Every method raises :class:`cricket_sync.errors.PersistenceError` on
    failure. Operations issued inside ``async with store.transaction()``
    commit or roll back together.
    """

    batch_size: int = 500

    @abc.abstractmethod
    async def select(
        self,
        table: str,
        columns: Optional[Sequence[str]] = None,
        where: Optional[Where] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """Rows of ``table`` matching ``where``; all columns by default."""

    @abc.abstractmethod
    async def upsert(
        self,
        table: str,
        rows: Iterable[Any],
        conflict_keys: Tuple[str, ...],
    ) -> int:
        """Insert or overwrite rows on ``conflict_keys``; returns rows written."""

    @abc.abstractmethod
    async def update(self, table: str, values: Mapping[str, Any], where: Where) -> int:
        """Set ``values`` on matching rows; returns rows updated."""

    @abc.abstractmethod
    async def delete(self, table: str, where: Where) -> int:
        """Delete matching rows; returns rows deleted."""

    @abc.abstractmethod
    def transaction(self):
        """Async context manager grouping the enclosed operations."""

    async def close(self) -> None:
        pass

    async def existing_ids(self, table: str, ids: Sequence[str], column: str = "id") -> set:
        """Which of ``ids`` are already stored in ``table``."""
        found = set()
        for chunk in chunked(list(ids), self.batch_size):
            rows = await self.select(table, columns=[column], where={column: one_of(chunk)})
            found.update(row[column] for row in rows)
        return found

    async def upsert_models(self, models: Sequence[Any]) -> int:
        """Upsert row models into their own table, in batches."""
        if not models:
            return 0
        model_type = type(models[0])
        written = 0
        for batch in chunked(list(models), self.batch_size):
            written += await self.upsert(model_type.TABLE, batch, model_type.CONFLICT_KEYS)
        return written

    async def __aenter__(self) -> "Store":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
