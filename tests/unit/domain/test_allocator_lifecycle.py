"""
Unit tests for the DatacapAllocator aggregate operations.

Each operation is exercised from its permitted phase; phase violations are
covered in test_phase_guards.py.
"""

from unittest.mock import patch

import pytest

from allocator_governance.domain.allocator.allocator import DatacapAllocator
from allocator_governance.domain.allocator.types import (
    AllocationPath,
    AllocatorType,
    ApplicationStatus,
    GovernanceReviewApprovedData,
    GovernanceReviewRejectedData,
    InstructionStatus,
    KYCApprovedData,
    KYCRejectedData,
    StatusCheckpoint,
    MDMA_ADDRESS,
    RKH_ADDRESS,
    SMART_CONTRACT_ALLOCATOR,
    ZEROED_ALLOCATOR_ID,
)
from allocator_governance.domain.events.domain_events import (
    ApplicationCreated,
    ApplicationPullRequestUpdated,
    GovernanceReviewApproved,
    GovernanceReviewStarted,
    KYCApproved,
    RKHApprovalCompleted,
    RKHApprovalsUpdated,
)


RKH_PATH = AllocationPath(pathway="RKH", address=RKH_ADDRESS, is_meta_allocator=False)
MDMA_PATH = AllocationPath(pathway="MDMA", address=MDMA_ADDRESS, is_meta_allocator=True)


def event_types(allocator):
    return [type(e) for e in allocator.get_uncommitted_events()]


@pytest.fixture
def allocator(applicant_profile) -> DatacapAllocator:
    return DatacapAllocator.create("app-1", applicant_profile)


@pytest.fixture
def in_review(allocator) -> DatacapAllocator:
    allocator.approve_kyc(KYCApprovedData(message="ok", reviewer="kyc-bot"))
    allocator.mark_events_committed()
    return allocator


class TestCreate:
    """Tests for DatacapAllocator.create."""

    def test_starts_in_kyc_with_nominal_tranche(self, allocator, applicant_profile) -> None:
        """A new application has one PENDING tranche of 5 with no method."""
        assert allocator.status == ApplicationStatus.KYC_PHASE
        assert allocator.grant_cycle == 1
        active = allocator.active_instruction
        assert active.method == ""
        assert active.datacap_amount == 5
        assert active.status == InstructionStatus.PENDING
        assert active.start_timestamp is not None

    def test_copies_profile(self, allocator, applicant_profile) -> None:
        state = allocator.state
        assert state.application_number == 123
        assert state.applicant_name == "Alice Allocator"
        assert state.other_github_handles == ("bob",)
        assert state.on_chain_address_for_datacap_allocation == "f1alicepayout"

    def test_stages_created_event(self, allocator) -> None:
        assert event_types(allocator) == [ApplicationCreated]
        assert allocator.version == 1

    def test_no_checkpoint_reached(self, allocator) -> None:
        assert all(value is None for value in allocator.status_timestamps.values())

    def test_well_known_addresses(self, allocator) -> None:
        assert allocator.rkh_address == "f080"
        assert allocator.mdma_address == MDMA_ADDRESS


class TestKYC:
    """Tests for the KYC phase operations."""

    def test_approve_moves_to_governance_review(self, allocator) -> None:
        allocator.mark_events_committed()
        allocator.approve_kyc(KYCApprovedData(message="ok"))

        assert allocator.status == ApplicationStatus.GOVERNANCE_REVIEW_PHASE
        assert allocator.status_timestamps[StatusCheckpoint.KYC_SUBMITTED.value] is not None
        assert event_types(allocator) == [KYCApproved, GovernanceReviewStarted]
        assert allocator.version == 3

    def test_reject_records_failure_and_stays_in_kyc(self, allocator) -> None:
        allocator.reject_kyc(KYCRejectedData(message="documents missing"))

        assert allocator.status == ApplicationStatus.KYC_PHASE
        assert allocator.status_timestamps[StatusCheckpoint.KYC_FAILED.value] is not None
        assert allocator.status_timestamps[StatusCheckpoint.KYC_SUBMITTED.value] is None

    def test_revoke_clears_submission(self, in_review) -> None:
        in_review.revoke_kyc()

        assert in_review.status == ApplicationStatus.GOVERNANCE_REVIEW_PHASE
        assert in_review.status_timestamps[StatusCheckpoint.KYC_SUBMITTED.value] is None


class TestGovernanceReview:
    """Tests for governance review approval and rejection."""

    def test_rkh_path_waits_for_rkh(self, in_review) -> None:
        data = GovernanceReviewApprovedData(final_datacap=1000, allocator_type=AllocatorType.RKH)
        in_review.approve_governance_review(data, RKH_PATH)

        assert in_review.status == ApplicationStatus.RKH_APPROVAL_PHASE
        assert in_review.pathway == "RKH"
        assert in_review.ma_address == RKH_ADDRESS
        assert in_review.is_meta_allocator is False
        assert in_review.allocation_tooling == ()
        active = in_review.active_instruction
        assert (active.method, active.datacap_amount, active.status) == (
            "RKH", 1000, InstructionStatus.PENDING
        )
        assert in_review.status_timestamps[StatusCheckpoint.APPROVED.value] is not None
        assert in_review.status_timestamps[StatusCheckpoint.DC_ALLOCATED.value] is None

    def test_meta_path_waits_for_chain(self, in_review) -> None:
        data = GovernanceReviewApprovedData(
            final_datacap=2048, allocator_type=AllocatorType.MDMA, is_mdma_allocator=False
        )
        in_review.approve_governance_review(data, MDMA_PATH)

        assert in_review.status == ApplicationStatus.META_APPROVAL_PHASE
        assert in_review.is_meta_allocator is True
        assert in_review.is_mdma is False
        assert in_review.allocation_tooling == (SMART_CONTRACT_ALLOCATOR,)
        assert in_review.ma_address == MDMA_ADDRESS
        assert in_review.active_instruction.method == "MDMA"

    def test_mdma_flag_allocates_directly(self, in_review) -> None:
        """An MDMA-flagged decision grants the tranche without a final approval."""
        data = GovernanceReviewApprovedData(
            final_datacap=1000, allocator_type=AllocatorType.MDMA, is_mdma_allocator=True
        )
        in_review.approve_governance_review(data, MDMA_PATH)

        assert in_review.status == ApplicationStatus.DC_ALLOCATED
        assert in_review.is_mdma is True
        active = in_review.active_instruction
        assert active.status == InstructionStatus.GRANTED
        assert active.allocated_timestamp is not None
        timestamps = in_review.status_timestamps
        assert timestamps[StatusCheckpoint.DC_ALLOCATED.value] == active.allocated_timestamp
        assert timestamps[StatusCheckpoint.APPROVED.value] is not None

    def test_unset_mdma_flag_is_not_direct(self, in_review) -> None:
        data = GovernanceReviewApprovedData(final_datacap=10, is_mdma_allocator=None)
        in_review.approve_governance_review(data, RKH_PATH)

        assert in_review.status == ApplicationStatus.RKH_APPROVAL_PHASE
        assert in_review.is_mdma is False

    def test_approval_event_carries_target_status(self, in_review) -> None:
        data = GovernanceReviewApprovedData(final_datacap=10, is_mdma_allocator=False)
        in_review.approve_governance_review(data, MDMA_PATH)

        (event,) = in_review.get_uncommitted_events()
        assert isinstance(event, GovernanceReviewApproved)
        assert event.status == ApplicationStatus.META_APPROVAL_PHASE
        assert event.dc_allocated_at is None

    def test_reject_denies_active_tranche(self, in_review) -> None:
        in_review.reject_governance_review(GovernanceReviewRejectedData(message="no"))

        assert in_review.status == ApplicationStatus.REJECTED
        assert in_review.allocator_actor_id == ZEROED_ALLOCATOR_ID
        assert in_review.active_instruction.status == InstructionStatus.DENIED
        assert in_review.status_timestamps[StatusCheckpoint.DECLINED.value] is not None

    def test_reject_ignores_prior_method_and_amount(self, make_allocator) -> None:
        """Rejection denies the tranche whatever method and amount it carried."""
        allocator = make_allocator(ApplicationStatus.GOVERNANCE_REVIEW_PHASE)
        allocator.reject_governance_review(GovernanceReviewRejectedData())

        assert allocator.active_instruction.status == InstructionStatus.DENIED
        assert allocator.active_instruction.datacap_amount == 5
        assert allocator.allocator_actor_id == "f00000000"


class TestRKHApprovals:
    """Tests for update_rkh_approvals and complete_rkh_approval."""

    @pytest.fixture
    def awaiting_rkh(self, in_review) -> DatacapAllocator:
        in_review.approve_governance_review(GovernanceReviewApprovedData(final_datacap=1000), RKH_PATH)
        in_review.mark_events_committed()
        return in_review

    def test_below_threshold_records_signers(self, awaiting_rkh) -> None:
        awaiting_rkh.update_rkh_approvals(7, ["f1rkh1"])

        assert awaiting_rkh.status == ApplicationStatus.RKH_APPROVAL_PHASE
        assert awaiting_rkh.rkh_approvals == ("f1rkh1",)
        assert awaiting_rkh.state.rkh_message_id == 7
        assert event_types(awaiting_rkh) == [RKHApprovalsUpdated]

    def test_same_length_is_noop(self, awaiting_rkh) -> None:
        awaiting_rkh.update_rkh_approvals(7, ["f1rkh1"])
        awaiting_rkh.mark_events_committed()
        version = awaiting_rkh.version

        awaiting_rkh.update_rkh_approvals(7, ["f1rkh2"])

        assert awaiting_rkh.get_uncommitted_events() == []
        assert awaiting_rkh.version == version
        assert awaiting_rkh.rkh_approvals == ("f1rkh1",)

    def test_threshold_completes_approval(self, awaiting_rkh) -> None:
        awaiting_rkh.update_rkh_approvals(7, ["f1rkh1", "f1rkh2"])

        assert awaiting_rkh.status == ApplicationStatus.DC_ALLOCATED
        assert awaiting_rkh.active_instruction.status == InstructionStatus.GRANTED
        assert awaiting_rkh.pathway == "RKH"
        assert awaiting_rkh.ma_address == RKH_ADDRESS
        assert awaiting_rkh.allocation_tooling == ()
        assert event_types(awaiting_rkh) == [RKHApprovalsUpdated, RKHApprovalCompleted]

    def test_custom_threshold(self, applicant_profile) -> None:
        allocator = DatacapAllocator.create("app-3", applicant_profile, rkh_approval_threshold=3)
        allocator.approve_kyc(KYCApprovedData())
        allocator.approve_governance_review(GovernanceReviewApprovedData(final_datacap=1), RKH_PATH)

        allocator.update_rkh_approvals(1, ["a", "b"])
        assert allocator.status == ApplicationStatus.RKH_APPROVAL_PHASE

        allocator.update_rkh_approvals(1, ["a", "b", "c"])
        assert allocator.status == ApplicationStatus.DC_ALLOCATED

    def test_complete_directly(self, awaiting_rkh) -> None:
        awaiting_rkh.complete_rkh_approval()

        assert awaiting_rkh.status == ApplicationStatus.DC_ALLOCATED
        assert awaiting_rkh.status_timestamps[StatusCheckpoint.DC_ALLOCATED.value] is not None


class TestMetaAllocatorApproval:
    def test_records_block_and_grants(self, make_allocator) -> None:
        allocator = make_allocator(ApplicationStatus.META_APPROVAL_PHASE, is_meta_allocator=True)
        allocator.complete_meta_allocator_approval(4_500_000, "0xabc")

        assert allocator.status == ApplicationStatus.DC_ALLOCATED
        assert allocator.state.meta_allocator_block_number == 4_500_000
        assert allocator.state.meta_allocator_tx_hash == "0xabc"
        assert allocator.active_instruction.status == InstructionStatus.GRANTED


class TestUpdateDatacapAllocation:
    """Tests for the best-effort datacap allocation hook."""

    def test_completes_pending_rkh_approval(self, make_allocator) -> None:
        allocator = make_allocator(ApplicationStatus.RKH_APPROVAL_PHASE)
        allocator.update_datacap_allocation(1000)

        assert allocator.status == ApplicationStatus.DC_ALLOCATED

    def test_wrong_phase_is_ignored(self, make_allocator) -> None:
        allocator = make_allocator(ApplicationStatus.KYC_PHASE)
        before = allocator.to_json()

        allocator.update_datacap_allocation(1000)

        assert allocator.to_json() == before
        assert allocator.get_uncommitted_events() == []

    def test_other_errors_propagate(self, make_allocator) -> None:
        allocator = make_allocator(ApplicationStatus.RKH_APPROVAL_PHASE)
        with patch.object(DatacapAllocator, "complete_rkh_approval", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                allocator.update_datacap_allocation(1000)


class TestRefresh:
    """Tests for request_datacap_refresh."""

    def test_doubles_previous_tranche(self, make_allocator) -> None:
        allocator = make_allocator(ApplicationStatus.DC_ALLOCATED)
        allocator.request_datacap_refresh()

        assert allocator.grant_cycle == 2
        previous, new = allocator.instructions
        assert new.datacap_amount == previous.datacap_amount * 2
        assert new.method == previous.method
        assert new.status == InstructionStatus.PENDING
        assert allocator.status == ApplicationStatus.GOVERNANCE_REVIEW_PHASE

    def test_every_refresh_appends_one(self, make_allocator) -> None:
        """Refresh after each RKH grant keeps doubling."""
        allocator = make_allocator(ApplicationStatus.DC_ALLOCATED)
        for expected_length in (2, 3, 4):
            allocator.request_datacap_refresh()
            assert allocator.grant_cycle == expected_length
            allocator = make_allocator(
                ApplicationStatus.RKH_APPROVAL_PHASE, instructions=allocator.instructions
            )
            allocator.complete_rkh_approval()
        assert [i.datacap_amount for i in allocator.instructions] == [5, 10, 20, 40]

    def test_keeps_checkpoints_and_resets_rkh_votes(self, make_allocator) -> None:
        allocator = make_allocator(
            ApplicationStatus.DC_ALLOCATED,
            rkh_approvals=("a", "b"),
            rkh_message_id=9,
            status_timestamps={"Approved": 1, "DC Allocated": 2},
        )
        allocator.request_datacap_refresh()

        assert allocator.status_timestamps["Approved"] == 1
        assert allocator.status_timestamps["DC Allocated"] == 2
        assert allocator.rkh_approvals == ()
        assert allocator.state.rkh_message_id is None


class TestMetadata:
    """Tests for multisig and pull request metadata."""

    def test_set_allocator_multisig(self, allocator) -> None:
        allocator.set_allocator_multisig("f0123", "f2msig", 2, ["f1a", "f1b"])

        state = allocator.state
        assert state.allocator_actor_id == "f0123"
        assert state.allocator_multisig_address == "f2msig"
        assert state.allocator_multisig_threshold == 2
        assert state.allocator_multisig_signers == ("f1a", "f1b")

    def test_pull_request_for_new_application(self, allocator) -> None:
        allocator.mark_events_committed()
        allocator.set_application_pull_request(42, "https://github.com/org/repo/pull/42", comment_id=7)

        assert allocator.pull_request.pr_number == 42
        assert allocator.pull_request.comment_id == 7
        assert allocator.status == ApplicationStatus.KYC_PHASE
        (event,) = allocator.get_uncommitted_events()
        assert isinstance(event, ApplicationPullRequestUpdated)
        assert event.status == ApplicationStatus.KYC_PHASE

    def test_pull_request_for_refresh(self, make_allocator) -> None:
        """The refresh PR targets governance review; the aggregate status is untouched."""
        allocator = make_allocator(ApplicationStatus.DC_ALLOCATED)
        allocator.set_application_pull_request(43, "https://github.com/org/repo/pull/43", refresh=True)

        assert allocator.status == ApplicationStatus.DC_ALLOCATED
        (event,) = allocator.get_uncommitted_events()
        assert event.status == ApplicationStatus.GOVERNANCE_REVIEW_PHASE


class TestWorkedExample:
    def test_create_kyc_direct_allocation_refresh(self, applicant_profile) -> None:
        allocator = DatacapAllocator.create("app-123", applicant_profile)
        assert allocator.status == ApplicationStatus.KYC_PHASE
        assert [(i.method, i.datacap_amount, i.status) for i in allocator.instructions] == [
            ("", 5, InstructionStatus.PENDING)
        ]

        allocator.approve_kyc(KYCApprovedData())
        assert allocator.status == ApplicationStatus.GOVERNANCE_REVIEW_PHASE
        assert allocator.status_timestamps["KYC Submitted"] is not None

        allocator.approve_governance_review(
            GovernanceReviewApprovedData(
                final_datacap=1000, allocator_type=AllocatorType.RKH, is_mdma_allocator=True
            ),
            RKH_PATH,
        )
        assert allocator.status == ApplicationStatus.DC_ALLOCATED
        active = allocator.active_instruction
        assert (active.method, active.datacap_amount, active.status) == (
            "RKH", 1000, InstructionStatus.GRANTED
        )

        allocator.request_datacap_refresh()
        assert allocator.grant_cycle == 2
        assert allocator.active_instruction.datacap_amount == 2000
        assert allocator.active_instruction.status == InstructionStatus.PENDING
        assert allocator.status == ApplicationStatus.GOVERNANCE_REVIEW_PHASE


class TestStateIsReadOnly:
    """Checkpoints change only through operations."""

    def test_state_checkpoints_cannot_be_mutated(self, allocator) -> None:
        with pytest.raises(TypeError):
            allocator.state.status_timestamps["Approved"] = 1

        assert allocator.status_timestamps["Approved"] is None

    def test_property_returns_a_copy(self, allocator) -> None:
        allocator.status_timestamps["Approved"] = 1

        assert allocator.state.status_timestamps["Approved"] is None

    def test_snapshot_dict_holds_plain_checkpoints(self, allocator) -> None:
        allocator.approve_kyc(KYCApprovedData())

        checkpoints = allocator.to_dict()["status_timestamps"]

        assert type(checkpoints) is dict
        assert checkpoints["KYC Submitted"] is not None
