"""
Value types for the datacap allocator application aggregate.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ApplicationStatus(Enum):
    """Lifecycle phase of an allocator application."""
    KYC_PHASE = "KYC_PHASE"
    GOVERNANCE_REVIEW_PHASE = "GOVERNANCE_REVIEW_PHASE"
    RKH_APPROVAL_PHASE = "RKH_APPROVAL_PHASE"
    META_APPROVAL_PHASE = "META_APPROVAL_PHASE"
    APPROVED = "APPROVED"  # Legacy value, no operation enters or accepts it
    REJECTED = "REJECTED"
    IN_REFRESH = "IN_REFRESH"
    DC_ALLOCATED = "DC_ALLOCATED"


class InstructionStatus(Enum):
    """Outcome of a single funding tranche."""
    PENDING = "PENDING"
    GRANTED = "GRANTED"
    DENIED = "DENIED"


class StatusCheckpoint(Enum):
    """Named lifecycle checkpoints recorded as epoch-millisecond timestamps."""
    APPLICATION_SUBMITTED = "Application Submitted"
    KYC_SUBMITTED = "KYC Submitted"
    KYC_FAILED = "KYC Failed"
    APPROVED = "Approved"
    DECLINED = "Declined"
    DC_ALLOCATED = "DC Allocated"


class AllocatorType(Enum):
    """Pathway classifier chosen by governance reviewers."""
    RKH = "RKH"
    MDMA = "MDMA"
    ORMA = "ORMA"
    AMA = "AMA"


# Well-known addresses
RKH_ADDRESS = "f080"
MDMA_ADDRESS = "f410fw325e6novwl57jcsbhz6koljylxuhqq5jnp5ftq"

# Actor id written on rejected applications
ZEROED_ALLOCATOR_ID = "f00000000"

RKH_PATHWAY = "RKH"
DEFAULT_META_PATHWAY = "MDMA"
SMART_CONTRACT_ALLOCATOR = "smart_contract_allocator"

DEFAULT_RKH_APPROVAL_THRESHOLD = 2
INITIAL_DATACAP_AMOUNT = 5


def empty_checkpoints() -> Dict[str, Optional[int]]:
    """Checkpoint map with every checkpoint unreached."""
    return {checkpoint.value: None for checkpoint in StatusCheckpoint}


@dataclass(frozen=True)
class AllocationPath:
    """Resolved approval pathway for an allocator type."""
    pathway: str
    address: str
    is_meta_allocator: bool


@dataclass(frozen=True)
class ApplicationPullRequest:
    """GitHub pull request tracking the application file."""
    pr_number: int
    pr_url: str
    comment_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pr_number": self.pr_number,
            "pr_url": self.pr_url,
            "comment_id": self.comment_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApplicationPullRequest":
        return cls(
            pr_number=data["pr_number"],
            pr_url=data["pr_url"],
            comment_id=data.get("comment_id"),
        )


@dataclass(frozen=True)
class ApplicantProfile:
    """Descriptive fields supplied when an application is created."""
    application_number: int
    applicant_name: str = ""
    applicant_address: str = ""
    applicant_org_name: str = ""
    applicant_org_addresses: str = ""
    allocation_tranche_schedule: str = ""
    allocation_audit: str = ""
    allocation_distribution_required: str = ""
    allocation_required_storage_providers: str = ""
    bookkeeping_repo: str = ""
    allocation_required_replicas: str = ""
    datacap_allocation_limits: str = ""
    applicant_github_handle: str = ""
    other_github_handles: List[str] = field(default_factory=list)
    on_chain_address_for_datacap_allocation: str = ""


# =============================================================================
# Phase result payloads
# =============================================================================

@dataclass(frozen=True)
class KYCApprovedData:
    """Reviewer payload recorded with a KYC approval."""
    message: str = ""
    reviewer: str = ""


@dataclass(frozen=True)
class KYCRejectedData:
    """Reviewer payload recorded with a KYC rejection."""
    message: str = ""
    reviewer: str = ""


@dataclass(frozen=True)
class GovernanceReviewApprovedData:
    """Governance decision that sends the application to a pathway."""
    final_datacap: int
    allocator_type: AllocatorType = AllocatorType.RKH
    is_mdma_allocator: Optional[bool] = None
    reviewer: str = ""


@dataclass(frozen=True)
class GovernanceReviewRejectedData:
    """Governance decision that rejects the application."""
    message: str = ""
    reviewer: str = ""
