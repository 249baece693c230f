"""In-memory read-model lookups for tests and the demo run mode."""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, Optional

from ....domain.interfaces.read_models import (
    NO_BLOCK,
    ApplicationDetails,
    ApplicationDetailsRepository,
    IssueDetails,
    IssueDetailsRepository,
    RefreshStatus,
)


class InMemoryApplicationDetailsRepository(ApplicationDetailsRepository):
    def __init__(self):
        self._rows: Dict[str, ApplicationDetails] = {}

    async def get_by_id(self, application_id: str) -> Optional[ApplicationDetails]:
        row = self._rows.get(application_id)
        return replace(row) if row else None

    async def upsert(self, details: ApplicationDetails) -> None:
        self._rows[details.id] = replace(details)

    async def get_by_actor_id(self, actor_id: str) -> Optional[ApplicationDetails]:
        for row in self._rows.values():
            if row.actor_id == actor_id:
                return replace(row)
        return None

    async def last_meta_allocator_block(self) -> int:
        blocks = [r.meta_allocator_block for r in self._rows.values() if r.meta_allocator_block is not None]
        return max(blocks, default=NO_BLOCK)

    async def record_meta_allocator_approval(
        self, application_id: str, block_number: int, tx_hash: str
    ) -> None:
        row = self._rows.get(application_id)
        if row is None:
            return
        row.meta_allocator_block = block_number
        row.meta_allocator_tx_hash = tx_hash


class InMemoryIssueDetailsRepository(IssueDetailsRepository):
    def __init__(self):
        self._rows: Dict[str, IssueDetails] = {}

    async def upsert(self, issue: IssueDetails) -> None:
        self._rows[issue.id] = replace(issue)

    async def find_pending_by_actor_id(self, actor_id: str) -> Optional[IssueDetails]:
        pending = [
            r for r in self._rows.values()
            if r.actor_id == actor_id and r.refresh_status == RefreshStatus.PENDING
        ]
        if not pending:
            return None
        latest = max(pending, key=lambda r: r.issue_number or 0)
        return replace(latest)

    async def last_meta_allocator_block(self) -> int:
        blocks = [r.meta_allocator_block for r in self._rows.values() if r.meta_allocator_block is not None]
        return max(blocks, default=NO_BLOCK)

    async def record_meta_allocator_approval(
        self, issue_id: str, block_number: int, tx_hash: str
    ) -> None:
        row = self._rows.get(issue_id)
        if row is None:
            return
        row.meta_allocator_block = block_number
        row.meta_allocator_tx_hash = tx_hash
        row.refresh_status = RefreshStatus.APPROVED
