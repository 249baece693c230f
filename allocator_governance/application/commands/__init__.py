"""Allocator commands and their handlers."""

from __future__ import annotations
from typing import Optional

from ...domain.interfaces.allocator_repository import AllocatorRepository
from ...domain.interfaces.event_bus import EventBus
from ...domain.interfaces.read_models import ApplicationDetailsRepository, IssueDetailsRepository
from ...domain.services.allocation_path_resolver import AllocationPathResolver
from ..command_bus import CommandBus
from .base import AllocatorCommandHandler, PhaseResult, PhaseStatus
from .create_application import CreateApplicationCommand, CreateApplicationHandler
from .kyc import (
    SubmitKYCResultCommand,
    SubmitKYCResultHandler,
    RevokeKYCCommand,
    RevokeKYCHandler,
)
from .governance_review import (
    SubmitGovernanceReviewResultCommand,
    SubmitGovernanceReviewResultHandler,
)
from .approvals import (
    UpdateRKHApprovalsCommand,
    UpdateRKHApprovalsHandler,
    UpdateMetaAllocatorApprovalsCommand,
    UpdateMetaAllocatorApprovalsHandler,
    ApproveRefreshByMetaAllocatorCommand,
    ApproveRefreshByMetaAllocatorHandler,
    UpdateDatacapAllocationCommand,
    UpdateDatacapAllocationHandler,
)
from .refresh import RequestDatacapRefreshCommand, RequestDatacapRefreshHandler
from .metadata import (
    SetAllocatorMultisigCommand,
    SetAllocatorMultisigHandler,
    SetApplicationPullRequestCommand,
    SetApplicationPullRequestHandler,
    EditApplicationCommand,
    EditApplicationHandler,
)


def register_command_handlers(
    bus: CommandBus,
    repository: AllocatorRepository,
    resolver: AllocationPathResolver,
    application_details: ApplicationDetailsRepository,
    issues: IssueDetailsRepository,
    event_bus: Optional[EventBus] = None,
    rkh_approval_threshold: int = 2,
) -> CommandBus:
    """Register every allocator command handler on the bus."""
    handlers = [
        CreateApplicationHandler(
            repository, application_details, event_bus,
            rkh_approval_threshold=rkh_approval_threshold,
        ),
        SubmitKYCResultHandler(repository, event_bus),
        RevokeKYCHandler(repository, event_bus),
        SubmitGovernanceReviewResultHandler(repository, resolver, event_bus),
        UpdateRKHApprovalsHandler(repository, event_bus),
        UpdateMetaAllocatorApprovalsHandler(repository, application_details, event_bus),
        ApproveRefreshByMetaAllocatorHandler(repository, issues, event_bus),
        UpdateDatacapAllocationHandler(repository, event_bus),
        RequestDatacapRefreshHandler(repository, event_bus),
        SetAllocatorMultisigHandler(repository, application_details, event_bus),
        SetApplicationPullRequestHandler(repository, event_bus),
        EditApplicationHandler(repository, event_bus),
    ]
    for handler in handlers:
        bus.register(handler)
    return bus


__all__ = [
    "AllocatorCommandHandler",
    "PhaseResult",
    "PhaseStatus",
    "register_command_handlers",
    "CreateApplicationCommand",
    "SubmitKYCResultCommand",
    "RevokeKYCCommand",
    "SubmitGovernanceReviewResultCommand",
    "UpdateRKHApprovalsCommand",
    "UpdateMetaAllocatorApprovalsCommand",
    "ApproveRefreshByMetaAllocatorCommand",
    "UpdateDatacapAllocationCommand",
    "RequestDatacapRefreshCommand",
    "SetAllocatorMultisigCommand",
    "SetApplicationPullRequestCommand",
    "EditApplicationCommand",
    "CreateApplicationHandler",
    "SubmitKYCResultHandler",
    "RevokeKYCHandler",
    "SubmitGovernanceReviewResultHandler",
    "UpdateRKHApprovalsHandler",
    "UpdateMetaAllocatorApprovalsHandler",
    "ApproveRefreshByMetaAllocatorHandler",
    "UpdateDatacapAllocationHandler",
    "RequestDatacapRefreshHandler",
    "SetAllocatorMultisigHandler",
    "SetApplicationPullRequestHandler",
    "EditApplicationHandler",
]
