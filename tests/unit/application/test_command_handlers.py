"""
Unit tests for the allocator command handlers against in-memory stores.
"""

from typing import List

import pytest

from allocator_governance.application.commands import (
    ApproveRefreshByMetaAllocatorCommand,
    CreateApplicationCommand,
    EditApplicationCommand,
    PhaseResult,
    PhaseStatus,
    RequestDatacapRefreshCommand,
    RevokeKYCCommand,
    SetAllocatorMultisigCommand,
    SetApplicationPullRequestCommand,
    SubmitGovernanceReviewResultCommand,
    SubmitKYCResultCommand,
    UpdateDatacapAllocationCommand,
    UpdateMetaAllocatorApprovalsCommand,
    UpdateRKHApprovalsCommand,
)
from allocator_governance.domain.allocator.types import (
    AllocatorType,
    ApplicationStatus,
    GovernanceReviewApprovedData,
    GovernanceReviewRejectedData,
    InstructionStatus,
    KYCApprovedData,
    KYCRejectedData,
)
from allocator_governance.domain.events.domain_events import (
    DomainEvent,
    GovernanceReviewStarted,
    KYCApproved,
)
from allocator_governance.domain.exceptions import (
    ApplicationNotFoundError,
    ConcurrencyError,
    ConfigurationError,
    InvalidPhaseError,
)
from allocator_governance.domain.interfaces import (
    ApplicationDetails,
    IssueDetails,
    MetaAllocatorApproval,
    RefreshStatus,
)


MDMA_FIL = "f410fw325e6novwl57jcsbhz6koljylxuhqq5jnp5ftq"

APPROVE_KYC = PhaseResult(PhaseStatus.APPROVED, KYCApprovedData(message="ok"))


async def create(command_bus, profile, application_id="app-1"):
    return await command_bus.send(CreateApplicationCommand(profile=profile, application_id=application_id))


async def to_governance_review(command_bus, profile, application_id="app-1"):
    await create(command_bus, profile, application_id)
    return await command_bus.send(SubmitKYCResultCommand(application_id, APPROVE_KYC))


async def to_meta_approval(command_bus, profile, application_id="app-1"):
    await to_governance_review(command_bus, profile, application_id)
    return await command_bus.send(SubmitGovernanceReviewResultCommand(
        application_id,
        PhaseResult(PhaseStatus.APPROVED, GovernanceReviewApprovedData(
            final_datacap=1024, allocator_type=AllocatorType.MDMA, is_mdma_allocator=False,
        )),
    ))


class TestCreateApplication:
    @pytest.mark.asyncio
    async def test_creates_stream_and_projection(
        self, command_bus, repository, application_details, applicant_profile
    ) -> None:
        allocator = await create(command_bus, applicant_profile)

        assert allocator.status == ApplicationStatus.KYC_PHASE
        assert allocator.get_uncommitted_events() == []
        assert repository.stream_version("app-1") == 1
        details = await application_details.get_by_id("app-1")
        assert details == ApplicationDetails(id="app-1", application_number=123)

    @pytest.mark.asyncio
    async def test_generates_id(self, command_bus, repository, applicant_profile) -> None:
        allocator = await command_bus.send(CreateApplicationCommand(profile=applicant_profile))

        assert allocator.guid
        assert repository.stream_version(allocator.guid) == 1

    @pytest.mark.asyncio
    async def test_duplicate_id_conflicts(self, command_bus, applicant_profile) -> None:
        await create(command_bus, applicant_profile)
        with pytest.raises(ConcurrencyError):
            await create(command_bus, applicant_profile)


class TestKYCCommands:
    @pytest.mark.asyncio
    async def test_approve_publishes_events(self, command_bus, event_bus, applicant_profile) -> None:
        received: List[DomainEvent] = []
        event_bus.subscribe(DomainEvent, received.append)
        await create(command_bus, applicant_profile)

        allocator = await command_bus.send(SubmitKYCResultCommand("app-1", APPROVE_KYC))

        assert allocator.status == ApplicationStatus.GOVERNANCE_REVIEW_PHASE
        assert [type(e) for e in received][-2:] == [KYCApproved, GovernanceReviewStarted]

    @pytest.mark.asyncio
    async def test_reject(self, command_bus, repository, applicant_profile) -> None:
        await create(command_bus, applicant_profile)
        allocator = await command_bus.send(SubmitKYCResultCommand(
            "app-1", PhaseResult(PhaseStatus.REJECTED, KYCRejectedData(message="no id"))
        ))

        assert allocator.status == ApplicationStatus.KYC_PHASE
        assert allocator.status_timestamps["KYC Failed"] is not None
        assert repository.stream_version("app-1") == 2

    @pytest.mark.asyncio
    async def test_unknown_result_status_raises(self, command_bus, repository, applicant_profile) -> None:
        await create(command_bus, applicant_profile)
        with pytest.raises(ValueError):
            await command_bus.send(SubmitKYCResultCommand("app-1", PhaseResult("MAYBE", None)))
        assert repository.stream_version("app-1") == 1

    @pytest.mark.asyncio
    async def test_missing_application(self, command_bus) -> None:
        with pytest.raises(ApplicationNotFoundError) as exc_info:
            await command_bus.send(SubmitKYCResultCommand("ghost", APPROVE_KYC))

        assert exc_info.value.to_response()["status"] == "404"
        assert exc_info.value.to_response()["errorCode"] == "5404"

    @pytest.mark.asyncio
    async def test_revoke(self, command_bus, applicant_profile) -> None:
        await to_governance_review(command_bus, applicant_profile)
        allocator = await command_bus.send(RevokeKYCCommand("app-1"))

        assert allocator.status_timestamps["KYC Submitted"] is None

    @pytest.mark.asyncio
    async def test_phase_violation_writes_nothing(self, command_bus, repository, applicant_profile) -> None:
        await create(command_bus, applicant_profile)
        with pytest.raises(InvalidPhaseError):
            await command_bus.send(RevokeKYCCommand("app-1"))
        assert repository.stream_version("app-1") == 1


class TestGovernanceReviewCommand:
    @pytest.mark.asyncio
    async def test_approve_resolves_meta_path(self, command_bus, applicant_profile) -> None:
        allocator = await to_meta_approval(command_bus, applicant_profile)

        assert allocator.status == ApplicationStatus.META_APPROVAL_PHASE
        assert allocator.ma_address == MDMA_FIL
        assert allocator.active_instruction.datacap_amount == 1024

    @pytest.mark.asyncio
    async def test_reject(self, command_bus, applicant_profile) -> None:
        await to_governance_review(command_bus, applicant_profile)
        allocator = await command_bus.send(SubmitGovernanceReviewResultCommand(
            "app-1", PhaseResult(PhaseStatus.REJECTED, GovernanceReviewRejectedData(message="no"))
        ))

        assert allocator.status == ApplicationStatus.REJECTED
        assert allocator.allocator_actor_id == "f00000000"

    @pytest.mark.asyncio
    async def test_unconfigured_allocator_type(self, command_bus, repository, applicant_profile) -> None:
        await to_governance_review(command_bus, applicant_profile)
        with pytest.raises(ConfigurationError):
            await command_bus.send(SubmitGovernanceReviewResultCommand(
                "app-1",
                PhaseResult(PhaseStatus.APPROVED, GovernanceReviewApprovedData(
                    final_datacap=1, allocator_type=AllocatorType.AMA,
                )),
            ))
        assert repository.stream_version("app-1") == 3

    @pytest.mark.asyncio
    async def test_unknown_result_status_raises(self, command_bus, applicant_profile) -> None:
        await to_governance_review(command_bus, applicant_profile)
        with pytest.raises(ValueError):
            await command_bus.send(SubmitGovernanceReviewResultCommand("app-1", PhaseResult(None, None)))


class TestApprovalCommands:
    @pytest.mark.asyncio
    async def test_rkh_threshold(self, command_bus, applicant_profile) -> None:
        await to_governance_review(command_bus, applicant_profile)
        await command_bus.send(SubmitGovernanceReviewResultCommand(
            "app-1", PhaseResult(PhaseStatus.APPROVED, GovernanceReviewApprovedData(final_datacap=100))
        ))

        partial = await command_bus.send(UpdateRKHApprovalsCommand("app-1", 5, ("f1a",)))
        assert partial.status == ApplicationStatus.RKH_APPROVAL_PHASE

        done = await command_bus.send(UpdateRKHApprovalsCommand("app-1", 5, ("f1a", "f1b")))
        assert done.status == ApplicationStatus.DC_ALLOCATED

    @pytest.mark.asyncio
    async def test_meta_approval_records_watermark(
        self, command_bus, application_details, applicant_profile
    ) -> None:
        await to_meta_approval(command_bus, applicant_profile)

        allocator = await command_bus.send(UpdateMetaAllocatorApprovalsCommand("app-1", 900, "0xabc"))

        assert allocator.status == ApplicationStatus.DC_ALLOCATED
        assert await application_details.last_meta_allocator_block() == 900
        assert (await application_details.get_by_id("app-1")).meta_allocator_tx_hash == "0xabc"

    @pytest.mark.asyncio
    async def test_refresh_approval_marks_issue(self, command_bus, issues, applicant_profile) -> None:
        await to_meta_approval(command_bus, applicant_profile)
        await command_bus.send(UpdateMetaAllocatorApprovalsCommand("app-1", 900, "0xabc"))
        await command_bus.send(RequestDatacapRefreshCommand("app-1"))
        await command_bus.send(SubmitGovernanceReviewResultCommand(
            "app-1",
            PhaseResult(PhaseStatus.APPROVED, GovernanceReviewApprovedData(
                final_datacap=2048, allocator_type=AllocatorType.MDMA, is_mdma_allocator=False,
            )),
        ))
        issue = IssueDetails(id="issue-1", application_id="app-1", actor_id="f0456", issue_number=7)
        await issues.upsert(issue)
        approval = MetaAllocatorApproval(
            block_number=950, tx_hash="0xdef", contract_address="0xB6F5",
            allocator_address="f0456", allowance_before="0", allowance_after="2048",
        )

        allocator = await command_bus.send(ApproveRefreshByMetaAllocatorCommand(issue, approval))

        assert allocator.status == ApplicationStatus.DC_ALLOCATED
        assert allocator.active_instruction.status == InstructionStatus.GRANTED
        assert await issues.find_pending_by_actor_id("f0456") is None
        assert await issues.last_meta_allocator_block() == 950

    @pytest.mark.asyncio
    async def test_datacap_allocation_outside_rkh_is_noop(
        self, command_bus, repository, applicant_profile
    ) -> None:
        await create(command_bus, applicant_profile)
        allocator = await command_bus.send(UpdateDatacapAllocationCommand("app-1", 1000))

        assert allocator.status == ApplicationStatus.KYC_PHASE
        assert repository.stream_version("app-1") == 1


class TestMetadataCommands:
    @pytest.mark.asyncio
    async def test_multisig_indexes_actor_id(self, command_bus, application_details, applicant_profile) -> None:
        await create(command_bus, applicant_profile)
        await command_bus.send(SetAllocatorMultisigCommand("app-1", "f0456", "f2msig", 2, ("f1a", "f1b")))

        details = await application_details.get_by_actor_id("f0456")
        assert details.id == "app-1"

    @pytest.mark.asyncio
    async def test_pull_request(self, command_bus, applicant_profile) -> None:
        await create(command_bus, applicant_profile)
        allocator = await command_bus.send(SetApplicationPullRequestCommand(
            "app-1", 12, "https://github.com/org/repo/pull/12", comment_id=99
        ))

        assert allocator.pull_request.pr_url.endswith("/12")
        assert allocator.status == ApplicationStatus.KYC_PHASE

    @pytest.mark.asyncio
    async def test_edit(self, command_bus, applicant_profile, pull_request_file) -> None:
        await create(command_bus, applicant_profile)
        allocator = await command_bus.send(EditApplicationCommand("app-1", pull_request_file))

        assert allocator.state.applicant_name == "Updated Name"
        assert allocator.pathway == "RKH"


class TestStaleWrites:
    @pytest.mark.asyncio
    async def test_stale_version_conflicts(self, repository, applicant_profile, command_bus) -> None:
        """Two loads of the same version: the second save loses."""
        await create(command_bus, applicant_profile)
        first = await repository.get_by_id("app-1")
        second = await repository.get_by_id("app-1")

        first.approve_kyc(KYCApprovedData())
        await repository.save(first, 1)

        second.reject_kyc(KYCRejectedData())
        with pytest.raises(ConcurrencyError) as exc_info:
            await repository.save(second, 1)
        assert exc_info.value.actual_version == 3
        assert second.get_uncommitted_events()
