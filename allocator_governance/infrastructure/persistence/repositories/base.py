"""
Shared SQL for the read-model lookup tables.

application_details and issue_details are keyed by id, looked up by
allocator actor id, and carry the highest meta-allocator block the poller
has processed. Subclasses map rows to records and back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from asyncpg import Record

from ..database import Database

T = TypeVar("T")


class BaseRepository(ABC, Generic[T]):
    """Lookup, upsert and watermark queries over one table."""

    key_column = "id"

    def __init__(self, db: Database):
        self._db = db

    @property
    @abstractmethod
    def table_name(self) -> str:
        pass

    @abstractmethod
    def _to_entity(self, record: Record) -> T:
        pass

    @abstractmethod
    def _to_row(self, entity: T) -> Dict[str, Any]:
        pass

    async def find_one_where(self, order_by: Optional[str] = None, **conditions: Any) -> Optional[T]:
        """
        First row matching all conditions; a None value matches NULL.

        Args:
            order_by: ORDER BY expression, e.g. "issue_number DESC NULLS LAST".
        """
        where, params = self._where(conditions)
        query = f"SELECT * FROM {self.table_name} WHERE {where}"
        if order_by:
            query += f" ORDER BY {order_by}"
        record = await self._db.fetchrow(query + " LIMIT 1", *params)
        return self._to_entity(record) if record else None

    async def upsert(self, entity: T) -> None:
        """Insert the row, or overwrite every non-key column of the existing one."""
        row = self._to_row(entity)
        columns = list(row)
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in columns if c != self.key_column)
        await self._db.execute(
            f"INSERT INTO {self.table_name} ({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT ({self.key_column}) DO UPDATE SET {updates}",
            *row.values(),
        )

    async def max_value(self, column: str, default: int) -> int:
        """Highest non-null value of an integer column, or default on an empty table."""
        value = await self._db.fetchval(f"SELECT MAX({column}) FROM {self.table_name}")
        return default if value is None else int(value)

    @staticmethod
    def _where(conditions: Dict[str, Any]) -> Tuple[str, List[Any]]:
        if not conditions:
            return "TRUE", []
        clauses: List[str] = []
        params: List[Any] = []
        for column, value in conditions.items():
            if value is None:
                clauses.append(f"{column} IS NULL")
            else:
                params.append(value)
                clauses.append(f"{column} = ${len(params)}")
        return " AND ".join(clauses), params
