"""Allocator repository interface: load by id, save with a version check."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from ..allocator.allocator import DatacapAllocator


class AllocatorRepository(ABC):
    """
    Event-sourced storage for DatacapAllocator aggregates.

    The aggregate version is the number of events in its stream.
    """

    # Sentinel for save(): skip the optimistic concurrency check
    ANY_VERSION = -1

    @abstractmethod
    async def get_by_id(self, guid: str) -> Optional[DatacapAllocator]:
        """
        Load an aggregate by identifier.

        Returns:
            The rebuilt aggregate, or None if no stream exists.

        Raises:
            ReplayIntegrityError: If the stored stream cannot be applied.
        """
        pass

    @abstractmethod
    async def save(self, allocator: DatacapAllocator, expected_version: int) -> None:
        """
        Append the aggregate's uncommitted events.

        Args:
            allocator: Aggregate with staged events.
            expected_version: Stream version observed at load time,
                or ANY_VERSION to skip the check.

        Raises:
            ConcurrencyError: If the stored version differs from expected_version.
        """
        pass
