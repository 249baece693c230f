"""Domain interfaces for dependency injection."""

from .allocator_repository import AllocatorRepository
from .chain_client import ChainClient, MetaAllocatorApproval
from .event_bus import EventBus, EventHandler
from .read_models import (
    NO_BLOCK,
    RefreshStatus,
    ApplicationDetails,
    IssueDetails,
    ApplicationDetailsRepository,
    IssueDetailsRepository,
)

__all__ = [
    "AllocatorRepository",
    "ChainClient",
    "MetaAllocatorApproval",
    "EventBus",
    "EventHandler",
    "NO_BLOCK",
    "RefreshStatus",
    "ApplicationDetails",
    "IssueDetails",
    "ApplicationDetailsRepository",
    "IssueDetailsRepository",
]
