"""
Resolution strategies for on-chain meta-allocator approvals.

An approval is matched against pending records in a fixed priority order:
refresh issues first, then applications. Issue-based tracking takes
precedence because a refresh reuses the allocator's actor id.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List

from ...domain.exceptions import ResolutionError
from ...domain.interfaces.chain_client import MetaAllocatorApproval
from ...domain.interfaces.read_models import ApplicationDetailsRepository, IssueDetailsRepository
from ...utils.result import Err, Ok, Result
from ..command_bus import Command
from ..commands.approvals import (
    ApproveRefreshByMetaAllocatorCommand,
    UpdateMetaAllocatorApprovalsCommand,
)


class ApprovalResolver(ABC):
    """Turns an approval into a command, or explains why it cannot."""

    name: str = "resolver"

    @abstractmethod
    async def resolve(self, approval: MetaAllocatorApproval, actor_id: str) -> Result[Command, ResolutionError]:
        pass


class IssueApprovalResolver(ApprovalResolver):
    """Match a pending refresh issue by allocator actor id."""

    name = "issue"

    def __init__(self, issues: IssueDetailsRepository):
        self._issues = issues

    async def resolve(self, approval: MetaAllocatorApproval, actor_id: str) -> Result[Command, ResolutionError]:
        issue = await self._issues.find_pending_by_actor_id(actor_id)
        if issue is None:
            return Err(ResolutionError(f"Issue not found for actorId {actor_id}"))
        return Ok(ApproveRefreshByMetaAllocatorCommand(issue=issue, approval=approval))


class ApplicationApprovalResolver(ApprovalResolver):
    """Match an application by allocator actor id."""

    name = "application"

    def __init__(self, application_details: ApplicationDetailsRepository):
        self._application_details = application_details

    async def resolve(self, approval: MetaAllocatorApproval, actor_id: str) -> Result[Command, ResolutionError]:
        details = await self._application_details.get_by_actor_id(actor_id)
        if details is None:
            return Err(ResolutionError(f"Application details not found for actorId {actor_id}"))
        return Ok(UpdateMetaAllocatorApprovalsCommand(
            application_id=details.id,
            block_number=approval.block_number,
            tx_hash=approval.tx_hash,
        ))


def default_resolvers(
    issues: IssueDetailsRepository,
    application_details: ApplicationDetailsRepository,
) -> List[ApprovalResolver]:
    """Strategies in priority order."""
    return [
        IssueApprovalResolver(issues),
        ApplicationApprovalResolver(application_details),
    ]
