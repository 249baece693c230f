"""
Domain events for the datacap allocator application aggregate.

Every state change of an application is captured as one of these typed,
immutable events. They provide:
- The audit trail of the application lifecycle
- The payload the aggregate re-applies when rebuilt from its event stream
- Serialization for the event store (JSON)

Usage:
    from allocator_governance.domain.events.domain_events import KYCRevoked

    event = KYCRevoked(aggregate_id="app-123")

    # Serialize for persistence
    data = event.to_dict()
    restored = deserialize_event(data)
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Optional, Dict, Any, List, Type, TypeVar, Tuple, Callable, ClassVar
from enum import Enum
import json

from ...utils.timezone import now_utc
from ..allocator.instructions import ApplicationInstruction, ledger_from_list
from ..allocator.types import ApplicationStatus
from ..exceptions import ReplayIntegrityError


T = TypeVar('T', bound='DomainEvent')

Ledger = Tuple[ApplicationInstruction, ...]


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    return value


# Field-name driven decoding for from_dict
_FIELD_DECODERS: Dict[str, Callable[[Any], Any]] = {
    "timestamp": datetime.fromisoformat,
    "instructions": ledger_from_list,
    "status": ApplicationStatus,
    "approvals": tuple,
    "signers": tuple,
    "allocation_tooling": tuple,
    "other_github_handles": tuple,
}


# =============================================================================
# Base Domain Event
# =============================================================================

@dataclass(frozen=True, slots=True)
class DomainEvent:
    """
    Base class for all allocator events.

    All events are immutable (frozen) and carry the aggregate they belong to,
    when they happened and which surface produced them.
    """
    aggregate_name: ClassVar[str] = "allocator"

    aggregate_id: str = ""
    timestamp: datetime = field(default_factory=now_utc)
    source: str = "api"

    @property
    def event_name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event to a JSON-compatible dictionary."""
        result = {f.name: _encode(getattr(self, f.name)) for f in fields(self)}
        result['aggregate_name'] = self.aggregate_name
        result['_event_type'] = self.event_name
        return result

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """
        Deserialize event from dictionary.

        Args:
            data: Dictionary produced by to_dict().

        Returns:
            Reconstructed event instance.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            if key not in known:
                continue
            decoder = _FIELD_DECODERS.get(key)
            if decoder is not None and value is not None and not isinstance(value, datetime):
                value = decoder(value)
            kwargs[key] = value
        return cls(**kwargs)

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls: Type[T], json_str: str) -> T:
        """Deserialize event from JSON string."""
        return cls.from_dict(json.loads(json_str))


# =============================================================================
# Creation
# =============================================================================

@dataclass(frozen=True, slots=True)
class ApplicationCreated(DomainEvent):
    """A new allocator application entered the KYC phase."""
    application_number: int = 0
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
    other_github_handles: Tuple[str, ...] = ()
    on_chain_address_for_datacap_allocation: str = ""
    instructions: Ledger = ()
    rkh_approval_threshold: int = 2


# =============================================================================
# KYC Events
# =============================================================================

@dataclass(frozen=True, slots=True)
class KYCApproved(DomainEvent):
    """KYC screening passed."""
    kyc_submitted_at: int = 0
    message: str = ""
    reviewer: str = ""


@dataclass(frozen=True, slots=True)
class GovernanceReviewStarted(DomainEvent):
    """The application entered governance review."""


@dataclass(frozen=True, slots=True)
class KYCRejected(DomainEvent):
    """KYC screening failed. The application stays in the KYC phase."""
    kyc_failed_at: int = 0
    message: str = ""
    reviewer: str = ""


@dataclass(frozen=True, slots=True)
class KYCRevoked(DomainEvent):
    """A previous KYC approval was withdrawn during governance review."""


# =============================================================================
# Governance Review Events
# =============================================================================

@dataclass(frozen=True, slots=True)
class GovernanceReviewApproved(DomainEvent):
    """
    Governance approved the application onto a pathway.

    Carries the resolved pathway and the resulting status, which is
    DC_ALLOCATED for direct (MDMA-flagged) allocations.
    """
    pathway: str = ""
    address: str = ""
    is_meta_allocator: bool = False
    is_mdma: bool = False
    allocation_tooling: Tuple[str, ...] = ()
    instructions: Ledger = ()
    status: ApplicationStatus = ApplicationStatus.RKH_APPROVAL_PHASE
    approved_at: int = 0
    dc_allocated_at: Optional[int] = None
    reviewer: str = ""


@dataclass(frozen=True, slots=True)
class GovernanceReviewRejected(DomainEvent):
    """Governance rejected the application."""
    instructions: Ledger = ()
    allocator_actor_id: str = ""
    declined_at: int = 0
    message: str = ""
    reviewer: str = ""


# =============================================================================
# Final Approval Events
# =============================================================================

@dataclass(frozen=True, slots=True)
class RKHApprovalsUpdated(DomainEvent):
    """The set of RKH signers approving the allocation changed."""
    message_id: int = 0
    approvals: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RKHApprovalCompleted(DomainEvent):
    """The RKH multisig reached its threshold and datacap was allocated."""
    pathway: str = ""
    address: str = ""
    instructions: Ledger = ()
    dc_allocated_at: int = 0


@dataclass(frozen=True, slots=True)
class MetaAllocatorApprovalCompleted(DomainEvent):
    """A meta-allocator contract granted the allowance on-chain."""
    block_number: int = 0
    tx_hash: str = ""
    instructions: Ledger = ()
    dc_allocated_at: int = 0


# =============================================================================
# Refresh and Metadata Events
# =============================================================================

@dataclass(frozen=True, slots=True)
class DatacapRefreshRequested(DomainEvent):
    """A new tranche was requested after a completed allocation."""
    instructions: Ledger = ()


@dataclass(frozen=True, slots=True)
class AllocatorMultisigUpdated(DomainEvent):
    """The allocator's multisig was (re)configured."""
    allocator_actor_id: str = ""
    multisig_address: str = ""
    multisig_threshold: int = 0
    signers: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ApplicationPullRequestUpdated(DomainEvent):
    """
    The pull request tracking the application file changed.

    `status` is the phase the application is headed to: KYC_PHASE for a new
    application, GOVERNANCE_REVIEW_PHASE for a refresh.
    """
    pr_number: int = 0
    pr_url: str = ""
    comment_id: Optional[int] = None
    status: ApplicationStatus = ApplicationStatus.KYC_PHASE


@dataclass(frozen=True, slots=True)
class ApplicationEdited(DomainEvent):
    """The application was synchronised from its registry file."""
    file: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Event Registry
# =============================================================================

EVENT_REGISTRY: Dict[str, Type[DomainEvent]] = {
    cls.__name__: cls
    for cls in (
        ApplicationCreated,
        KYCApproved,
        GovernanceReviewStarted,
        KYCRejected,
        KYCRevoked,
        GovernanceReviewApproved,
        GovernanceReviewRejected,
        RKHApprovalsUpdated,
        RKHApprovalCompleted,
        MetaAllocatorApprovalCompleted,
        DatacapRefreshRequested,
        AllocatorMultisigUpdated,
        ApplicationPullRequestUpdated,
        ApplicationEdited,
    )
}


def deserialize_event(data: Dict[str, Any]) -> DomainEvent:
    """
    Deserialize any allocator event from dictionary.

    Uses the _event_type field to determine the correct class.

    Raises:
        ReplayIntegrityError: If the event type is missing or unknown.
    """
    event_type = data.get('_event_type')
    if not event_type:
        raise ReplayIntegrityError("Missing _event_type field in event data")

    event_class = EVENT_REGISTRY.get(event_type)
    if not event_class:
        raise ReplayIntegrityError(f"Unknown event type: {event_type}")

    return event_class.from_dict(data)


def deserialize_events(data_list: List[Dict[str, Any]]) -> List[DomainEvent]:
    """Deserialize a list of allocator events."""
    return [deserialize_event(d) for d in data_list]
