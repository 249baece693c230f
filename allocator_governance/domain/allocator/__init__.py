"""
Allocator application value types and instruction ledger.

The aggregate itself lives in `allocator_governance.domain.allocator.allocator`
(it depends on the event module, which depends on these types).
"""

from .types import (
    ApplicationStatus,
    InstructionStatus,
    StatusCheckpoint,
    AllocatorType,
    AllocationPath,
    ApplicationPullRequest,
    ApplicantProfile,
    KYCApprovedData,
    KYCRejectedData,
    GovernanceReviewApprovedData,
    GovernanceReviewRejectedData,
    RKH_ADDRESS,
    MDMA_ADDRESS,
    ZEROED_ALLOCATOR_ID,
)
from .instructions import ApplicationInstruction, Ledger
from .pull_request_file import (
    ApplicationPullRequestFile,
    ApplicationSection,
    AuditEntry,
    PathwayAddresses,
)

__all__ = [
    "ApplicationStatus",
    "InstructionStatus",
    "StatusCheckpoint",
    "AllocatorType",
    "AllocationPath",
    "ApplicationPullRequest",
    "ApplicantProfile",
    "KYCApprovedData",
    "KYCRejectedData",
    "GovernanceReviewApprovedData",
    "GovernanceReviewRejectedData",
    "RKH_ADDRESS",
    "MDMA_ADDRESS",
    "ZEROED_ALLOCATOR_ID",
    "ApplicationInstruction",
    "Ledger",
    "ApplicationPullRequestFile",
    "ApplicationSection",
    "AuditEntry",
    "PathwayAddresses",
]
