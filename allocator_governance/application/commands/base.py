"""
Shared plumbing for allocator command handlers.

Each handler loads one aggregate, invokes one or more of its operations and
commits the staged events as a single unit: save with a version check,
publish on the event bus, and write one audit entry per event.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from ...domain.allocator.allocator import DatacapAllocator
from ...domain.exceptions import ApplicationNotFoundError
from ...domain.interfaces.allocator_repository import AllocatorRepository
from ...domain.interfaces.event_bus import EventBus
from ...utils.logging_setup import get_logger
from ...utils.structured_logger import LogCategory, StructuredLogger
from ..command_bus import C, CommandHandler


logger = get_logger(__name__)
audit = StructuredLogger(logger)

D = TypeVar("D")


class PhaseStatus(Enum):
    """Outcome of a review phase submitted by a reviewer."""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class PhaseResult(Generic[D]):
    """Review outcome plus the payload for that outcome."""
    status: PhaseStatus
    data: D


class AllocatorCommandHandler(CommandHandler[C]):
    """Base handler with load / commit helpers."""

    def __init__(self, repository: AllocatorRepository, event_bus: Optional[EventBus] = None):
        self._repository = repository
        self._event_bus = event_bus

    async def _load(self, application_id: str) -> DatacapAllocator:
        """
        Raises:
            ApplicationNotFoundError: If no aggregate exists for the id.
        """
        allocator = await self._repository.get_by_id(application_id)
        if allocator is None:
            raise ApplicationNotFoundError(application_id)
        return allocator

    async def _commit(self, allocator: DatacapAllocator, expected_version: int) -> None:
        """Persist staged events, then publish and audit them."""
        events = allocator.get_uncommitted_events()
        if not events:
            logger.debug(f"Allocator {allocator.guid}: nothing to commit")
            return

        await self._repository.save(allocator, expected_version)

        for event in events:
            if self._event_bus is not None:
                self._event_bus.publish(event)
            audit.info(LogCategory.LIFECYCLE, event.event_name, {
                "aggregate_id": event.aggregate_id,
                "source": event.source,
                "status": allocator.status.value,
                "version": allocator.version,
            })


def unexpected_result(result: Any) -> ValueError:
    return ValueError(f"Invalid result status: {getattr(result, 'status', result)!r}")
