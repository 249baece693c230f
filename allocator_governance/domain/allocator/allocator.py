"""
DatacapAllocator: the allocator application aggregate.

The aggregate owns every lifecycle invariant of an application. Each public
operation checks the current phase, computes the resulting values, and stages
one event that carries them. State only ever changes by applying an event,
both for live operations and when the aggregate is rebuilt from its stream.

Lifecycle:
    KYC_PHASE -> GOVERNANCE_REVIEW_PHASE -> RKH_APPROVAL_PHASE | META_APPROVAL_PHASE
              -> DC_ALLOCATED -> (refresh) -> GOVERNANCE_REVIEW_PHASE
    GOVERNANCE_REVIEW_PHASE -> REJECTED

Construction:
    DatacapAllocator.create(guid, profile)        # new application
    DatacapAllocator.load_from_history(guid, ev)  # replay a stored stream
    DatacapAllocator.from_state(state, version)   # snapshot rehydration
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Type
import json

from ...utils.logging_setup import get_logger
from ...utils.timezone import now_epoch_ms
from ..events.domain_events import (
    EVENT_REGISTRY,
    DomainEvent,
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
from ..exceptions import InvalidPhaseError, ReplayIntegrityError
from .instructions import (
    ApplicationInstruction,
    Ledger,
    active_instruction,
    append_refresh,
    deny_active,
    grant_active,
    ledger_from_audits,
    ledger_from_list,
    ledger_to_list,
    replace_active,
)
from .pull_request_file import ApplicationPullRequestFile
from .types import (
    AllocationPath,
    ApplicantProfile,
    ApplicationPullRequest,
    ApplicationStatus,
    GovernanceReviewApprovedData,
    GovernanceReviewRejectedData,
    KYCApprovedData,
    KYCRejectedData,
    StatusCheckpoint,
    DEFAULT_META_PATHWAY,
    DEFAULT_RKH_APPROVAL_THRESHOLD,
    INITIAL_DATACAP_AMOUNT,
    MDMA_ADDRESS,
    RKH_ADDRESS,
    RKH_PATHWAY,
    SMART_CONTRACT_ALLOCATOR,
    ZEROED_ALLOCATOR_ID,
    empty_checkpoints,
)


logger = get_logger(__name__)

# Phases in which `edit` keeps the RKH pathway defaults
_RKH_EDIT_PHASES = frozenset({
    ApplicationStatus.KYC_PHASE,
    ApplicationStatus.GOVERNANCE_REVIEW_PHASE,
    ApplicationStatus.RKH_APPROVAL_PHASE,
})

# Phases in which `edit` syncs meta-allocator terms and the ledger
_META_EDIT_PHASES = frozenset({
    ApplicationStatus.KYC_PHASE,
    ApplicationStatus.GOVERNANCE_REVIEW_PHASE,
    ApplicationStatus.META_APPROVAL_PHASE,
    ApplicationStatus.DC_ALLOCATED,
})


@dataclass(frozen=True)
class AllocatorState:
    """
    Complete state of one allocator application.

    Frozen: the aggregate replaces it wholesale when an event is applied.
    Checkpoints are held in a read-only mapping.
    """
    guid: str
    application_number: int = 0

    # Applicant
    applicant_name: str = ""
    applicant_address: str = ""
    applicant_org_name: str = ""
    applicant_org_addresses: str = ""
    applicant_github_handle: str = ""
    other_github_handles: Tuple[str, ...] = ()
    on_chain_address_for_datacap_allocation: str = ""

    # Allocation terms
    allocation_tranche_schedule: str = ""
    allocation_audit: str = ""
    allocation_distribution_required: str = ""
    allocation_required_storage_providers: str = ""
    allocation_required_replicas: str = ""
    allocation_max_dc_client: str = ""
    allocation_standardized_allocations: Tuple[str, ...] = ()
    allocation_tooling: Tuple[str, ...] = ()
    bookkeeping_repo: str = ""
    datacap_allocation_limits: str = ""

    # Lifecycle
    status: ApplicationStatus = ApplicationStatus.KYC_PHASE
    status_timestamps: Mapping[str, Optional[int]] = field(default_factory=empty_checkpoints)
    instructions: Ledger = ()

    # Pathway
    pathway: str = ""
    ma_address: str = ""
    is_meta_allocator: bool = False
    is_mdma: bool = False

    # Allocator multisig
    allocator_actor_id: str = ""
    allocator_multisig_address: str = ""
    allocator_multisig_threshold: int = 0
    allocator_multisig_signers: Tuple[str, ...] = ()

    # RKH approvals
    rkh_message_id: Optional[int] = None
    rkh_approvals: Tuple[str, ...] = ()
    rkh_approval_threshold: int = DEFAULT_RKH_APPROVAL_THRESHOLD

    # External references
    pull_request: Optional[ApplicationPullRequest] = None
    meta_allocator_block_number: Optional[int] = None
    meta_allocator_tx_hash: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status_timestamps", MappingProxyType(dict(self.status_timestamps)))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "instructions":
                value = ledger_to_list(value)
            elif isinstance(value, ApplicationStatus):
                value = value.value
            elif isinstance(value, ApplicationPullRequest):
                value = value.to_dict()
            elif isinstance(value, tuple):
                value = list(value)
            elif isinstance(value, Mapping):
                value = dict(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AllocatorState":
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        for name in (
            "other_github_handles",
            "allocation_standardized_allocations",
            "allocation_tooling",
            "allocator_multisig_signers",
            "rkh_approvals",
        ):
            if name in kwargs:
                kwargs[name] = tuple(kwargs[name])
        if "status" in kwargs:
            kwargs["status"] = ApplicationStatus(kwargs["status"])
        if "instructions" in kwargs:
            kwargs["instructions"] = ledger_from_list(kwargs["instructions"])
        if kwargs.get("pull_request") is not None:
            kwargs["pull_request"] = ApplicationPullRequest.from_dict(kwargs["pull_request"])
        if "status_timestamps" in kwargs:
            kwargs["status_timestamps"] = {**empty_checkpoints(), **kwargs["status_timestamps"]}
        return cls(**kwargs)


class DatacapAllocator:
    """
    Allocator application aggregate root.

    Public operations raise InvalidPhaseError before touching state when
    invoked from a phase they do not accept.
    """

    def __init__(self, state: AllocatorState, version: int = 0):
        self._state = state
        self._version = version
        self._uncommitted: List[DomainEvent] = []

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        guid: str,
        profile: ApplicantProfile,
        rkh_approval_threshold: int = DEFAULT_RKH_APPROVAL_THRESHOLD,
    ) -> "DatacapAllocator":
        """
        Start a new application in KYC_PHASE with one nominal PENDING tranche.
        """
        allocator = cls(AllocatorState(guid=guid))
        profile_fields = {f.name: getattr(profile, f.name) for f in fields(profile)}
        profile_fields["other_github_handles"] = tuple(profile.other_github_handles)

        initial = ApplicationInstruction(
            method="",
            datacap_amount=INITIAL_DATACAP_AMOUNT,
            start_timestamp=now_epoch_ms(),
        )
        allocator._apply_change(ApplicationCreated(
            aggregate_id=guid,
            instructions=(initial,),
            rkh_approval_threshold=rkh_approval_threshold,
            **profile_fields,
        ))
        return allocator

    @classmethod
    def load_from_history(cls, guid: str, events: Iterable[DomainEvent]) -> "DatacapAllocator":
        """Rebuild an aggregate by replaying its full event stream."""
        allocator = cls(AllocatorState(guid=guid))
        allocator.replay(events)
        return allocator

    @classmethod
    def from_state(cls, state: AllocatorState, version: int = 0) -> "DatacapAllocator":
        """Rehydrate an aggregate from a snapshot of its state."""
        return cls(state, version)

    def replay(self, events: Iterable[DomainEvent]) -> None:
        """Apply already-persisted events without staging them."""
        for event in events:
            self.apply(event)
            self._version += 1

    # -------------------------------------------------------------------------
    # Event plumbing
    # -------------------------------------------------------------------------

    def apply(self, event: DomainEvent) -> None:
        """
        Apply one event to the current state.

        Raises:
            ReplayIntegrityError: If no handler exists for the event type.
        """
        handler = _EVENT_HANDLERS.get(type(event))
        if handler is None:
            raise ReplayIntegrityError(
                f"No apply handler for event {type(event).__name__} on allocator {self.guid}"
            )
        handler(self, event)

    def _apply_change(self, event: DomainEvent) -> None:
        self.apply(event)
        self._uncommitted.append(event)
        self._version += 1
        logger.debug(f"Allocator {self.guid}: staged {event.event_name} (v{self._version})")

    def get_uncommitted_events(self) -> List[DomainEvent]:
        return list(self._uncommitted)

    def mark_events_committed(self) -> None:
        self._uncommitted.clear()

    def _update(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)

    def _checkpoint(self, checkpoint: StatusCheckpoint, value: Optional[int]) -> Dict[str, Optional[int]]:
        timestamps = dict(self._state.status_timestamps)
        timestamps[checkpoint.value] = value
        return timestamps

    def _ensure_status(self, *allowed: ApplicationStatus) -> None:
        if self._state.status not in allowed:
            raise InvalidPhaseError()

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def state(self) -> AllocatorState:
        return self._state

    @property
    def guid(self) -> str:
        return self._state.guid

    @property
    def version(self) -> int:
        return self._version

    @property
    def status(self) -> ApplicationStatus:
        return self._state.status

    @property
    def status_timestamps(self) -> Dict[str, Optional[int]]:
        return dict(self._state.status_timestamps)

    @property
    def instructions(self) -> Ledger:
        return self._state.instructions

    @property
    def active_instruction(self) -> Optional[ApplicationInstruction]:
        return active_instruction(self._state.instructions)

    @property
    def grant_cycle(self) -> int:
        """Number of tranches ever issued to this application."""
        return len(self._state.instructions)

    @property
    def pathway(self) -> str:
        return self._state.pathway

    @property
    def ma_address(self) -> str:
        return self._state.ma_address

    @property
    def is_meta_allocator(self) -> bool:
        return self._state.is_meta_allocator

    @property
    def is_mdma(self) -> bool:
        return self._state.is_mdma

    @property
    def allocation_tooling(self) -> Tuple[str, ...]:
        return self._state.allocation_tooling

    @property
    def allocator_actor_id(self) -> str:
        return self._state.allocator_actor_id

    @property
    def rkh_approvals(self) -> Tuple[str, ...]:
        return self._state.rkh_approvals

    @property
    def rkh_approval_threshold(self) -> int:
        return self._state.rkh_approval_threshold

    @property
    def pull_request(self) -> Optional[ApplicationPullRequest]:
        return self._state.pull_request

    @property
    def rkh_address(self) -> str:
        return RKH_ADDRESS

    @property
    def mdma_address(self) -> str:
        return MDMA_ADDRESS

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serialisable state."""
        return self._state.to_dict()

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True)

    def __repr__(self) -> str:
        return f"DatacapAllocator(guid={self.guid!r}, status={self.status.value}, version={self._version})"

    # -------------------------------------------------------------------------
    # KYC
    # -------------------------------------------------------------------------

    def approve_kyc(self, data: KYCApprovedData) -> None:
        self._ensure_status(ApplicationStatus.KYC_PHASE)
        self._apply_change(KYCApproved(
            aggregate_id=self.guid,
            kyc_submitted_at=now_epoch_ms(),
            message=data.message,
            reviewer=data.reviewer,
        ))
        self._apply_change(GovernanceReviewStarted(aggregate_id=self.guid))

    def reject_kyc(self, data: KYCRejectedData) -> None:
        self._ensure_status(ApplicationStatus.KYC_PHASE)
        self._apply_change(KYCRejected(
            aggregate_id=self.guid,
            kyc_failed_at=now_epoch_ms(),
            message=data.message,
            reviewer=data.reviewer,
        ))

    def revoke_kyc(self) -> None:
        self._ensure_status(ApplicationStatus.GOVERNANCE_REVIEW_PHASE)
        self._apply_change(KYCRevoked(aggregate_id=self.guid))

    # -------------------------------------------------------------------------
    # Governance review
    # -------------------------------------------------------------------------

    def approve_governance_review(
        self,
        data: GovernanceReviewApprovedData,
        path: AllocationPath,
    ) -> None:
        """
        Send the application to its resolved pathway.

        An MDMA-flagged decision allocates directly: the tranche is granted
        and the application lands in DC_ALLOCATED without a final approval.
        """
        self._ensure_status(ApplicationStatus.GOVERNANCE_REVIEW_PHASE)

        now = now_epoch_ms()
        direct = bool(data.is_mdma_allocator)
        ledger = replace_active(
            self._state.instructions,
            method=path.pathway,
            datacap_amount=data.final_datacap,
        )

        if direct:
            ledger = grant_active(ledger, now)
            status = ApplicationStatus.DC_ALLOCATED
        elif path.is_meta_allocator:
            status = ApplicationStatus.META_APPROVAL_PHASE
        else:
            status = ApplicationStatus.RKH_APPROVAL_PHASE

        self._apply_change(GovernanceReviewApproved(
            aggregate_id=self.guid,
            pathway=path.pathway,
            address=path.address,
            is_meta_allocator=path.is_meta_allocator,
            is_mdma=direct,
            allocation_tooling=(SMART_CONTRACT_ALLOCATOR,) if path.is_meta_allocator else (),
            instructions=ledger,
            status=status,
            approved_at=now,
            dc_allocated_at=now if direct else None,
            reviewer=data.reviewer,
        ))
        logger.info(f"Allocator {self.guid}: governance approved via {path.pathway} -> {status.value}")

    def reject_governance_review(self, data: GovernanceReviewRejectedData) -> None:
        self._ensure_status(ApplicationStatus.GOVERNANCE_REVIEW_PHASE)
        self._apply_change(GovernanceReviewRejected(
            aggregate_id=self.guid,
            instructions=deny_active(self._state.instructions),
            allocator_actor_id=ZEROED_ALLOCATOR_ID,
            declined_at=now_epoch_ms(),
            message=data.message,
            reviewer=data.reviewer,
        ))
        logger.info(f"Allocator {self.guid}: governance rejected")

    # -------------------------------------------------------------------------
    # Final approval
    # -------------------------------------------------------------------------

    def update_rkh_approvals(self, message_id: int, approvals: List[str]) -> None:
        """
        Replace the RKH signer list.

        Nothing is staged when the signer count is unchanged. Reaching the
        threshold completes the RKH approval.
        """
        self._ensure_status(ApplicationStatus.RKH_APPROVAL_PHASE)

        if len(approvals) == len(self._state.rkh_approvals):
            return

        self._apply_change(RKHApprovalsUpdated(
            aggregate_id=self.guid,
            message_id=message_id,
            approvals=tuple(approvals),
        ))

        if len(approvals) >= self._state.rkh_approval_threshold:
            self.complete_rkh_approval()

    def complete_rkh_approval(self) -> None:
        self._ensure_status(ApplicationStatus.RKH_APPROVAL_PHASE)
        now = now_epoch_ms()
        self._apply_change(RKHApprovalCompleted(
            aggregate_id=self.guid,
            pathway=RKH_PATHWAY,
            address=RKH_ADDRESS,
            instructions=grant_active(self._state.instructions, now),
            dc_allocated_at=now,
        ))
        logger.info(f"Allocator {self.guid}: RKH approval completed")

    def complete_meta_allocator_approval(self, block_number: int, tx_hash: str) -> None:
        self._ensure_status(ApplicationStatus.META_APPROVAL_PHASE)
        now = now_epoch_ms()
        self._apply_change(MetaAllocatorApprovalCompleted(
            aggregate_id=self.guid,
            block_number=block_number,
            tx_hash=tx_hash,
            instructions=grant_active(self._state.instructions, now),
            dc_allocated_at=now,
        ))
        logger.info(
            f"Allocator {self.guid}: meta-allocator approval completed "
            f"(block={block_number}, tx={tx_hash})"
        )

    def update_datacap_allocation(self, datacap: Any = None) -> None:
        """
        Best-effort hook that completes a pending RKH approval.

        Only a phase mismatch is tolerated; anything else propagates.
        """
        try:
            self.complete_rkh_approval()
        except InvalidPhaseError:
            logger.debug(
                f"Allocator {self.guid}: datacap update {datacap!r} ignored in {self.status.value}"
            )

    # -------------------------------------------------------------------------
    # Refresh and metadata
    # -------------------------------------------------------------------------

    def request_datacap_refresh(self) -> None:
        """Open the next tranche at twice the previous amount."""
        self._ensure_status(ApplicationStatus.DC_ALLOCATED)
        self._apply_change(DatacapRefreshRequested(
            aggregate_id=self.guid,
            instructions=append_refresh(self._state.instructions, now_epoch_ms()),
        ))

    def set_allocator_multisig(
        self,
        allocator_actor_id: str,
        multisig_address: str,
        multisig_threshold: int,
        signers: List[str],
    ) -> None:
        self._ensure_status(ApplicationStatus.KYC_PHASE)
        self._apply_change(AllocatorMultisigUpdated(
            aggregate_id=self.guid,
            allocator_actor_id=allocator_actor_id,
            multisig_address=multisig_address,
            multisig_threshold=multisig_threshold,
            signers=tuple(signers),
        ))

    def set_application_pull_request(
        self,
        pr_number: int,
        pr_url: str,
        comment_id: Optional[int] = None,
        refresh: bool = False,
    ) -> None:
        """
        Record the pull request tracking this application.

        A new application accepts it in KYC_PHASE; a refresh in DC_ALLOCATED.
        The event carries the phase the application is headed to.
        """
        if refresh:
            self._ensure_status(ApplicationStatus.DC_ALLOCATED)
            target = ApplicationStatus.GOVERNANCE_REVIEW_PHASE
        else:
            self._ensure_status(ApplicationStatus.KYC_PHASE)
            target = ApplicationStatus.KYC_PHASE

        self._apply_change(ApplicationPullRequestUpdated(
            aggregate_id=self.guid,
            pr_number=pr_number,
            pr_url=pr_url,
            comment_id=comment_id,
            status=target,
        ))

    def edit(self, file: ApplicationPullRequestFile) -> None:
        """Synchronise the application from its registry file."""
        self._apply_change(ApplicationEdited(
            aggregate_id=self.guid,
            file=file.model_dump(mode="json"),
        ))

    # -------------------------------------------------------------------------
    # Apply handlers
    # -------------------------------------------------------------------------

    def _on_application_created(self, event: ApplicationCreated) -> None:
        self._update(
            application_number=event.application_number,
            applicant_name=event.applicant_name,
            applicant_address=event.applicant_address,
            applicant_org_name=event.applicant_org_name,
            applicant_org_addresses=event.applicant_org_addresses,
            allocation_tranche_schedule=event.allocation_tranche_schedule,
            allocation_audit=event.allocation_audit,
            allocation_distribution_required=event.allocation_distribution_required,
            allocation_required_storage_providers=event.allocation_required_storage_providers,
            bookkeeping_repo=event.bookkeeping_repo,
            allocation_required_replicas=event.allocation_required_replicas,
            datacap_allocation_limits=event.datacap_allocation_limits,
            applicant_github_handle=event.applicant_github_handle,
            other_github_handles=event.other_github_handles,
            on_chain_address_for_datacap_allocation=event.on_chain_address_for_datacap_allocation,
            instructions=event.instructions,
            rkh_approval_threshold=event.rkh_approval_threshold,
            status=ApplicationStatus.KYC_PHASE,
            status_timestamps=empty_checkpoints(),
        )

    def _on_kyc_approved(self, event: KYCApproved) -> None:
        self._update(status_timestamps=self._checkpoint(
            StatusCheckpoint.KYC_SUBMITTED, event.kyc_submitted_at
        ))

    def _on_governance_review_started(self, event: GovernanceReviewStarted) -> None:
        self._update(status=ApplicationStatus.GOVERNANCE_REVIEW_PHASE)

    def _on_kyc_rejected(self, event: KYCRejected) -> None:
        self._update(status_timestamps=self._checkpoint(
            StatusCheckpoint.KYC_FAILED, event.kyc_failed_at
        ))

    def _on_kyc_revoked(self, event: KYCRevoked) -> None:
        self._update(status_timestamps=self._checkpoint(StatusCheckpoint.KYC_SUBMITTED, None))

    def _on_governance_review_approved(self, event: GovernanceReviewApproved) -> None:
        timestamps = self._checkpoint(StatusCheckpoint.APPROVED, event.approved_at)
        if event.dc_allocated_at is not None:
            timestamps[StatusCheckpoint.DC_ALLOCATED.value] = event.dc_allocated_at
        self._update(
            pathway=event.pathway,
            ma_address=event.address,
            is_meta_allocator=event.is_meta_allocator,
            is_mdma=event.is_mdma,
            allocation_tooling=event.allocation_tooling,
            instructions=event.instructions,
            status=event.status,
            status_timestamps=timestamps,
        )

    def _on_governance_review_rejected(self, event: GovernanceReviewRejected) -> None:
        self._update(
            instructions=event.instructions,
            allocator_actor_id=event.allocator_actor_id,
            status=ApplicationStatus.REJECTED,
            status_timestamps=self._checkpoint(StatusCheckpoint.DECLINED, event.declined_at),
        )

    def _on_rkh_approvals_updated(self, event: RKHApprovalsUpdated) -> None:
        self._update(rkh_message_id=event.message_id, rkh_approvals=event.approvals)

    def _on_rkh_approval_completed(self, event: RKHApprovalCompleted) -> None:
        self._update(
            allocation_tooling=(),
            pathway=event.pathway,
            ma_address=event.address,
            instructions=event.instructions,
            status=ApplicationStatus.DC_ALLOCATED,
            status_timestamps=self._checkpoint(StatusCheckpoint.DC_ALLOCATED, event.dc_allocated_at),
        )

    def _on_meta_allocator_approval_completed(self, event: MetaAllocatorApprovalCompleted) -> None:
        self._update(
            meta_allocator_block_number=event.block_number,
            meta_allocator_tx_hash=event.tx_hash,
            instructions=event.instructions,
            status=ApplicationStatus.DC_ALLOCATED,
            status_timestamps=self._checkpoint(StatusCheckpoint.DC_ALLOCATED, event.dc_allocated_at),
        )

    def _on_datacap_refresh_requested(self, event: DatacapRefreshRequested) -> None:
        # DC_ALLOCATED -> IN_REFRESH -> GOVERNANCE_REVIEW_PHASE collapses into one event.
        # Approvals belong to the previous tranche.
        self._update(
            instructions=event.instructions,
            rkh_message_id=None,
            rkh_approvals=(),
            status=ApplicationStatus.GOVERNANCE_REVIEW_PHASE,
        )

    def _on_allocator_multisig_updated(self, event: AllocatorMultisigUpdated) -> None:
        self._update(
            allocator_actor_id=event.allocator_actor_id,
            allocator_multisig_address=event.multisig_address,
            allocator_multisig_threshold=event.multisig_threshold,
            allocator_multisig_signers=event.signers,
        )

    def _on_application_pull_request_updated(self, event: ApplicationPullRequestUpdated) -> None:
        self._update(pull_request=ApplicationPullRequest(
            pr_number=event.pr_number,
            pr_url=event.pr_url,
            comment_id=event.comment_id,
        ))

    def _on_application_edited(self, event: ApplicationEdited) -> None:
        file = ApplicationPullRequestFile.model_validate(event.file)
        state = self._state
        changes: Dict[str, Any] = dict(
            applicant_name=file.name,
            applicant_address=file.address,
            applicant_org_name=file.organization,
            applicant_org_addresses=file.associated_org_addresses,
        )

        if state.status in _RKH_EDIT_PHASES and not state.is_meta_allocator:
            changes.update(
                pathway=RKH_PATHWAY,
                ma_address=RKH_ADDRESS,
                allocation_tooling=(),
            )
        elif state.status in _META_EDIT_PHASES and state.is_meta_allocator and state.is_mdma:
            terms = file.application
            changes.update(
                pathway=file.metapathway_type or DEFAULT_META_PATHWAY,
                ma_address=file.ma_address or MDMA_ADDRESS,
                allocation_tooling=(SMART_CONTRACT_ALLOCATOR,),
                allocation_standardized_allocations=tuple(terms.allocations),
                allocation_audit=_first(terms.audit),
                allocation_distribution_required=_first(terms.distribution),
                allocation_tranche_schedule=terms.tranche_schedule,
                allocation_required_replicas=terms.required_replicas,
                allocation_required_storage_providers=terms.required_sps,
                allocation_max_dc_client=terms.max_DC_client,
                applicant_github_handle=_first(terms.github_handles),
                on_chain_address_for_datacap_allocation=terms.client_contract_address,
                bookkeeping_repo=terms.allocation_bookkeeping,
                instructions=ledger_from_audits(file.audits, file.metapathway_type or ""),
            )
            if file.pathway_addresses is not None:
                changes.update(
                    allocator_multisig_address=file.pathway_addresses.msig or "",
                    allocator_multisig_signers=tuple(file.pathway_addresses.signers),
                )

        self._update(**changes)


def _first(items: List[str]) -> str:
    return items[0] if items else ""


# Closed dispatch table: exactly one apply handler per registered event type.
_EVENT_HANDLERS: Dict[Type[DomainEvent], Callable[[DatacapAllocator, Any], None]] = {
    ApplicationCreated: DatacapAllocator._on_application_created,
    KYCApproved: DatacapAllocator._on_kyc_approved,
    GovernanceReviewStarted: DatacapAllocator._on_governance_review_started,
    KYCRejected: DatacapAllocator._on_kyc_rejected,
    KYCRevoked: DatacapAllocator._on_kyc_revoked,
    GovernanceReviewApproved: DatacapAllocator._on_governance_review_approved,
    GovernanceReviewRejected: DatacapAllocator._on_governance_review_rejected,
    RKHApprovalsUpdated: DatacapAllocator._on_rkh_approvals_updated,
    RKHApprovalCompleted: DatacapAllocator._on_rkh_approval_completed,
    MetaAllocatorApprovalCompleted: DatacapAllocator._on_meta_allocator_approval_completed,
    DatacapRefreshRequested: DatacapAllocator._on_datacap_refresh_requested,
    AllocatorMultisigUpdated: DatacapAllocator._on_allocator_multisig_updated,
    ApplicationPullRequestUpdated: DatacapAllocator._on_application_pull_request_updated,
    ApplicationEdited: DatacapAllocator._on_application_edited,
}

_unhandled = set(EVENT_REGISTRY.values()).symmetric_difference(_EVENT_HANDLERS)
if _unhandled:
    raise ReplayIntegrityError(
        f"Allocator handler table out of sync with event registry: "
        f"{sorted(cls.__name__ for cls in _unhandled)}"
    )
