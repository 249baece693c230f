"""Persistence: asyncpg database, event stores and read-model repositories."""

from .database import Database, DatabaseError, DatabaseConnectionError, QueryError
from .event_store import PostgresAllocatorRepository
from .in_memory_event_store import InMemoryAllocatorRepository

__all__ = [
    "Database",
    "DatabaseError",
    "DatabaseConnectionError",
    "QueryError",
    "PostgresAllocatorRepository",
    "InMemoryAllocatorRepository",
]
