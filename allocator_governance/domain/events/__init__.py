"""Allocator domain events."""

from .domain_events import (
    # Base
    DomainEvent,
    # Creation
    ApplicationCreated,
    # KYC
    KYCApproved,
    GovernanceReviewStarted,
    KYCRejected,
    KYCRevoked,
    # Governance review
    GovernanceReviewApproved,
    GovernanceReviewRejected,
    # Final approval
    RKHApprovalsUpdated,
    RKHApprovalCompleted,
    MetaAllocatorApprovalCompleted,
    # Refresh and metadata
    DatacapRefreshRequested,
    AllocatorMultisigUpdated,
    ApplicationPullRequestUpdated,
    ApplicationEdited,
    # Registry
    EVENT_REGISTRY,
    deserialize_event,
    deserialize_events,
)

__all__ = [
    "DomainEvent",
    "ApplicationCreated",
    "KYCApproved",
    "GovernanceReviewStarted",
    "KYCRejected",
    "KYCRevoked",
    "GovernanceReviewApproved",
    "GovernanceReviewRejected",
    "RKHApprovalsUpdated",
    "RKHApprovalCompleted",
    "MetaAllocatorApprovalCompleted",
    "DatacapRefreshRequested",
    "AllocatorMultisigUpdated",
    "ApplicationPullRequestUpdated",
    "ApplicationEdited",
    "EVENT_REGISTRY",
    "deserialize_event",
    "deserialize_events",
]
