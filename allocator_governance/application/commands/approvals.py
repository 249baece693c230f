"""
Final approval commands: RKH multisig votes and on-chain meta-allocator grants.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from ...domain.allocator.allocator import DatacapAllocator
from ...domain.interfaces.allocator_repository import AllocatorRepository
from ...domain.interfaces.chain_client import MetaAllocatorApproval
from ...domain.interfaces.event_bus import EventBus
from ...domain.interfaces.read_models import (
    ApplicationDetailsRepository,
    IssueDetails,
    IssueDetailsRepository,
)
from ...utils.logging_setup import get_logger
from ..command_bus import Command
from .base import AllocatorCommandHandler


logger = get_logger(__name__)


@dataclass(frozen=True)
class UpdateRKHApprovalsCommand(Command):
    application_id: str
    message_id: int
    approvals: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class UpdateMetaAllocatorApprovalsCommand(Command):
    application_id: str
    block_number: int
    tx_hash: str


@dataclass(frozen=True)
class ApproveRefreshByMetaAllocatorCommand(Command):
    issue: IssueDetails
    approval: MetaAllocatorApproval


@dataclass(frozen=True)
class UpdateDatacapAllocationCommand(Command):
    application_id: str
    datacap: Any = None


class UpdateRKHApprovalsHandler(AllocatorCommandHandler[UpdateRKHApprovalsCommand]):
    command_type = UpdateRKHApprovalsCommand

    async def handle(self, command: UpdateRKHApprovalsCommand) -> DatacapAllocator:
        allocator = await self._load(command.application_id)
        version = allocator.version
        allocator.update_rkh_approvals(command.message_id, list(command.approvals))
        await self._commit(allocator, version)
        return allocator


class UpdateMetaAllocatorApprovalsHandler(AllocatorCommandHandler[UpdateMetaAllocatorApprovalsCommand]):
    """Complete the on-chain approval of a new application and advance the watermark."""

    command_type = UpdateMetaAllocatorApprovalsCommand

    def __init__(
        self,
        repository: AllocatorRepository,
        application_details: ApplicationDetailsRepository,
        event_bus: Optional[EventBus] = None,
    ):
        super().__init__(repository, event_bus)
        self._application_details = application_details

    async def handle(self, command: UpdateMetaAllocatorApprovalsCommand) -> DatacapAllocator:
        allocator = await self._load(command.application_id)
        version = allocator.version
        allocator.complete_meta_allocator_approval(command.block_number, command.tx_hash)
        await self._commit(allocator, version)
        await self._application_details.record_meta_allocator_approval(
            allocator.guid, command.block_number, command.tx_hash
        )
        return allocator


class ApproveRefreshByMetaAllocatorHandler(AllocatorCommandHandler[ApproveRefreshByMetaAllocatorCommand]):
    """Complete the on-chain approval of a refresh tracked by an issue."""

    command_type = ApproveRefreshByMetaAllocatorCommand

    def __init__(
        self,
        repository: AllocatorRepository,
        issues: IssueDetailsRepository,
        event_bus: Optional[EventBus] = None,
    ):
        super().__init__(repository, event_bus)
        self._issues = issues

    async def handle(self, command: ApproveRefreshByMetaAllocatorCommand) -> DatacapAllocator:
        issue, approval = command.issue, command.approval
        allocator = await self._load(issue.application_id)
        version = allocator.version
        allocator.complete_meta_allocator_approval(approval.block_number, approval.tx_hash)
        await self._commit(allocator, version)
        await self._issues.record_meta_allocator_approval(
            issue.id, approval.block_number, approval.tx_hash
        )
        logger.info(f"Refresh issue {issue.id} approved by {approval.contract_address}")
        return allocator


class UpdateDatacapAllocationHandler(AllocatorCommandHandler[UpdateDatacapAllocationCommand]):
    """Passive hook: completes a pending RKH approval when one exists."""

    command_type = UpdateDatacapAllocationCommand

    async def handle(self, command: UpdateDatacapAllocationCommand) -> DatacapAllocator:
        allocator = await self._load(command.application_id)
        allocator.update_datacap_allocation(command.datacap)
        await self._commit(allocator, AllocatorRepository.ANY_VERSION)
        return allocator
