"""
Read-model lookups used by the approval poller.

Projections are written elsewhere; the poller only needs to find the
record an on-chain approval belongs to, to record that the approval was
processed, and to know the highest meta-allocator block already seen.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


# Sentinel watermark meaning "no approval recorded yet"
NO_BLOCK = -1


class RefreshStatus:
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass
class ApplicationDetails:
    """Projection row for one allocator application."""
    id: str
    application_number: Optional[int] = None
    actor_id: Optional[str] = None
    meta_allocator_block: Optional[int] = None
    meta_allocator_tx_hash: Optional[str] = None


@dataclass
class IssueDetails:
    """Projection row for one refresh request issue."""
    id: str
    application_id: str
    actor_id: Optional[str] = None
    issue_number: Optional[int] = None
    refresh_status: str = RefreshStatus.PENDING
    meta_allocator_block: Optional[int] = None
    meta_allocator_tx_hash: Optional[str] = None


class ApplicationDetailsRepository(ABC):
    """Lookup of application projections."""

    @abstractmethod
    async def get_by_id(self, application_id: str) -> Optional[ApplicationDetails]:
        pass

    @abstractmethod
    async def upsert(self, details: ApplicationDetails) -> None:
        pass

    @abstractmethod
    async def get_by_actor_id(self, actor_id: str) -> Optional[ApplicationDetails]:
        pass

    @abstractmethod
    async def last_meta_allocator_block(self) -> int:
        """Highest recorded meta-allocator block, or NO_BLOCK."""
        pass

    @abstractmethod
    async def record_meta_allocator_approval(
        self, application_id: str, block_number: int, tx_hash: str
    ) -> None:
        pass


class IssueDetailsRepository(ABC):
    """Lookup of refresh issue projections."""

    @abstractmethod
    async def upsert(self, issue: IssueDetails) -> None:
        pass

    @abstractmethod
    async def find_pending_by_actor_id(self, actor_id: str) -> Optional[IssueDetails]:
        """Most recent PENDING refresh issue for the allocator, if any."""
        pass

    @abstractmethod
    async def last_meta_allocator_block(self) -> int:
        """Highest recorded meta-allocator block, or NO_BLOCK."""
        pass

    @abstractmethod
    async def record_meta_allocator_approval(
        self, issue_id: str, block_number: int, tx_hash: str
    ) -> None:
        """Record the approval and mark the refresh APPROVED."""
        pass
