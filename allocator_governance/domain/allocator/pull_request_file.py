"""
Ingest schema for the application file kept in the allocator registry.

The registry file is the external source of truth that `edit` synchronises
the aggregate from. Unknown keys are preserved; absent keys take defaults.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import InstructionStatus


class ApplicationSection(BaseModel):
    """Allocation terms declared by the applicant."""

    model_config = ConfigDict(extra="allow")

    allocations: List[str] = Field(default_factory=list, description="Standardized allocations")
    audit: List[str] = Field(default_factory=list, description="Audit terms")
    tranche_schedule: str = Field(default="", description="Tranche schedule")
    distribution: List[str] = Field(default_factory=list, description="Required distribution")
    required_sps: str = Field(default="", description="Required storage providers")
    required_replicas: str = Field(default="", description="Required replicas")
    tooling: List[str] = Field(default_factory=list, description="Allocation tooling")
    max_DC_client: str = Field(default="", description="Max datacap per client")
    github_handles: List[str] = Field(default_factory=list)
    allocation_bookkeeping: str = Field(default="", description="Bookkeeping repository URL")
    client_contract_address: str = Field(default="", description="On-chain contract address")


class AuditEntry(BaseModel):
    """One audit (tranche) in the application history."""

    model_config = ConfigDict(extra="allow")

    started: Optional[str] = None
    ended: Optional[str] = None
    dc_allocated: Optional[str] = None
    datacap_amount: Optional[float] = None
    outcome: Optional[InstructionStatus] = None


class PathwayAddresses(BaseModel):
    """Multisig controlling the allocator on its pathway."""

    model_config = ConfigDict(extra="allow")

    msig: Optional[str] = None
    signers: List[str] = Field(default_factory=list)


class ApplicationPullRequestFile(BaseModel):
    """Flat application record as stored in the registry repository."""

    model_config = ConfigDict(extra="allow")

    application_number: Optional[int] = None
    address: str = ""
    name: str = ""
    organization: str = ""
    associated_org_addresses: str = ""
    metapathway_type: Optional[str] = None
    ma_address: Optional[str] = None
    allocator_id: Optional[str] = None
    application: ApplicationSection = Field(default_factory=ApplicationSection)
    history: Dict[str, Optional[str]] = Field(default_factory=dict)
    audits: List[AuditEntry] = Field(default_factory=list)
    old_allocator_id: Optional[str] = None
    pathway_addresses: Optional[PathwayAddresses] = None
