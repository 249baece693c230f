"""Pytest configuration and fixtures."""

from dataclasses import replace
from typing import Any, Dict

import pytest

from config.models import ChainConfig, GovernanceConfig, MetaAllocatorConfig, PollerConfig
from allocator_governance.application.command_bus import CommandBus
from allocator_governance.application.commands import register_command_handlers
from allocator_governance.application.simple_event_bus import SimpleEventBus
from allocator_governance.domain.allocator.allocator import AllocatorState, DatacapAllocator
from allocator_governance.domain.allocator.pull_request_file import ApplicationPullRequestFile
from allocator_governance.domain.allocator.types import ApplicantProfile, ApplicationStatus
from allocator_governance.domain.services import AllocationPathResolver
from allocator_governance.infrastructure.persistence import InMemoryAllocatorRepository
from allocator_governance.infrastructure.persistence.repositories import (
    InMemoryApplicationDetailsRepository,
    InMemoryIssueDetailsRepository,
)


MDMA_ETH_ADDRESS = "0xB6F5d279AEad97dFA45209F3E53969c2EF43C21d"
MDMA_FIL_ADDRESS = "f410fw325e6novwl57jcsbhz6koljylxuhqq5jnp5ftq"
ORMA_ETH_ADDRESS = "0xE896C15F5120A07C2481e0fcf3d008E1C9E76C1f"
ORMA_FIL_ADDRESS = "f410f5clmcx2recqhyjeb4d6phuai4he6o3a77guvfny"


def allocator_in(status: ApplicationStatus, **changes: Any) -> DatacapAllocator:
    """Aggregate rehydrated directly into the given status."""
    created = DatacapAllocator.create("app-in-status", ApplicantProfile(application_number=1))
    state: AllocatorState = replace(created.state, status=status, **changes)
    return DatacapAllocator.from_state(state, version=1)


@pytest.fixture
def make_allocator():
    """Factory for aggregates in an arbitrary status."""
    return allocator_in


@pytest.fixture
def applicant_profile() -> ApplicantProfile:
    """Profile of a typical allocator application."""
    return ApplicantProfile(
        application_number=123,
        applicant_name="Alice Allocator",
        applicant_address="f1alice",
        applicant_org_name="Alice Storage Co",
        applicant_org_addresses="1 Main St",
        allocation_tranche_schedule="5PiB, 10PiB",
        allocation_audit="Quarterly",
        allocation_distribution_required="Global",
        allocation_required_storage_providers="5",
        bookkeeping_repo="https://github.com/alice/bookkeeping",
        allocation_required_replicas="4",
        datacap_allocation_limits="5PiB",
        applicant_github_handle="alice",
        other_github_handles=["bob"],
        on_chain_address_for_datacap_allocation="f1alicepayout",
    )


@pytest.fixture
def governance_config() -> GovernanceConfig:
    return GovernanceConfig(
        rkh_approval_threshold=2,
        meta_allocators=[
            MetaAllocatorConfig(name="MDMA", eth_address=MDMA_ETH_ADDRESS, fil_address=MDMA_FIL_ADDRESS),
            MetaAllocatorConfig(name="ORMA", eth_address=ORMA_ETH_ADDRESS, fil_address=ORMA_FIL_ADDRESS),
        ],
    )


@pytest.fixture
def chain_config() -> ChainConfig:
    return ChainConfig(
        rpc_url="http://localhost:1234/rpc/v1",
        chain_id=314,
        valid_meta_allocator_addresses=[MDMA_ETH_ADDRESS, ORMA_ETH_ADDRESS],
    )


@pytest.fixture
def poller_config() -> PollerConfig:
    return PollerConfig(enabled=True, interval_sec=0.01)


@pytest.fixture
def resolver(governance_config) -> AllocationPathResolver:
    return AllocationPathResolver(governance_config)


@pytest.fixture
def repository() -> InMemoryAllocatorRepository:
    return InMemoryAllocatorRepository()


@pytest.fixture
def application_details() -> InMemoryApplicationDetailsRepository:
    return InMemoryApplicationDetailsRepository()


@pytest.fixture
def issues() -> InMemoryIssueDetailsRepository:
    return InMemoryIssueDetailsRepository()


@pytest.fixture
def event_bus() -> SimpleEventBus:
    return SimpleEventBus()


@pytest.fixture
def command_bus(repository, resolver, application_details, issues, event_bus) -> CommandBus:
    """Command bus with every handler wired to in-memory stores."""
    return register_command_handlers(
        CommandBus(),
        repository,
        resolver,
        application_details,
        issues,
        event_bus=event_bus,
        rkh_approval_threshold=2,
    )


@pytest.fixture
def pull_request_file_data() -> Dict[str, Any]:
    """Registry file of an MDMA allocator with two audits."""
    return {
        "application_number": 456,
        "address": "f1updatedaddress",
        "name": "Updated Name",
        "organization": "Updated Org",
        "associated_org_addresses": "2 Side St",
        "metapathway_type": "MDMA",
        "ma_address": "456",
        "allocator_id": "f0456",
        "application": {
            "allocations": ["Standard"],
            "audit": ["Monthly", "Yearly"],
            "tranche_schedule": "Doubling",
            "distribution": ["Regional"],
            "required_sps": "3",
            "required_replicas": "2",
            "tooling": ["smart_contract_allocator"],
            "max_DC_client": "1PiB",
            "github_handles": ["updated-handle", "other"],
            "allocation_bookkeeping": "https://github.com/updated/bookkeeping",
            "client_contract_address": "f410fclientcontract",
        },
        "history": {"Application Submitted": "2024-01-01T00:00:00.000Z"},
        "audits": [
            {
                "started": "2024-01-01T00:00:00.000Z",
                "ended": "2024-02-01T00:00:00.000Z",
                "dc_allocated": "2024-01-15T00:00:00.000Z",
                "datacap_amount": 456,
                "outcome": "GRANTED",
            },
            {
                "started": "2024-03-01T00:00:00.000Z",
                "ended": None,
                "dc_allocated": None,
                "datacap_amount": None,
                "outcome": None,
            },
        ],
        "old_allocator_id": None,
        "pathway_addresses": {"msig": "f081", "signers": ["f1signer1", "f1signer2"]},
    }


@pytest.fixture
def pull_request_file(pull_request_file_data) -> ApplicationPullRequestFile:
    return ApplicationPullRequestFile.model_validate(pull_request_file_data)
