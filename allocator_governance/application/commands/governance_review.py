"""Governance review command."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Union

from ...domain.allocator.allocator import DatacapAllocator
from ...domain.allocator.types import GovernanceReviewApprovedData, GovernanceReviewRejectedData
from ...domain.interfaces.allocator_repository import AllocatorRepository
from ...domain.interfaces.event_bus import EventBus
from ...domain.services.allocation_path_resolver import AllocationPathResolver
from ..command_bus import Command
from .base import AllocatorCommandHandler, PhaseResult, PhaseStatus, unexpected_result


@dataclass(frozen=True)
class SubmitGovernanceReviewResultCommand(Command):
    application_id: str
    result: PhaseResult[Union[GovernanceReviewApprovedData, GovernanceReviewRejectedData]]


class SubmitGovernanceReviewResultHandler(AllocatorCommandHandler[SubmitGovernanceReviewResultCommand]):
    """
    Approve onto the resolved pathway or reject.

    Saves without a version check: a reviewer decision overrides whatever
    changed since the load.
    """

    command_type = SubmitGovernanceReviewResultCommand

    def __init__(
        self,
        repository: AllocatorRepository,
        resolver: AllocationPathResolver,
        event_bus: Optional[EventBus] = None,
    ):
        super().__init__(repository, event_bus)
        self._resolver = resolver

    async def handle(self, command: SubmitGovernanceReviewResultCommand) -> DatacapAllocator:
        allocator = await self._load(command.application_id)
        result = command.result

        if result.status is PhaseStatus.APPROVED:
            path = self._resolver.resolve(result.data.allocator_type)
            allocator.approve_governance_review(result.data, path)
        elif result.status is PhaseStatus.REJECTED:
            allocator.reject_governance_review(result.data)
        else:
            raise unexpected_result(result)

        await self._commit(allocator, AllocatorRepository.ANY_VERSION)
        return allocator
