"""Read-model repositories."""

from .base import BaseRepository
from .application_details_repository import PostgresApplicationDetailsRepository
from .issue_details_repository import PostgresIssueDetailsRepository
from .in_memory import InMemoryApplicationDetailsRepository, InMemoryIssueDetailsRepository

__all__ = [
    "BaseRepository",
    "PostgresApplicationDetailsRepository",
    "PostgresIssueDetailsRepository",
    "InMemoryApplicationDetailsRepository",
    "InMemoryIssueDetailsRepository",
]
