"""PostgreSQL lookup of refresh issue projections."""

from __future__ import annotations
from typing import Any, Dict, Optional

from asyncpg import Record

from ....domain.interfaces.read_models import (
    NO_BLOCK,
    IssueDetails,
    IssueDetailsRepository,
    RefreshStatus,
)
from .base import BaseRepository


class PostgresIssueDetailsRepository(BaseRepository[IssueDetails], IssueDetailsRepository):
    """issue_details table."""

    @property
    def table_name(self) -> str:
        return "issue_details"

    def _to_entity(self, record: Record) -> IssueDetails:
        return IssueDetails(
            id=record["id"],
            application_id=record["application_id"],
            actor_id=record["actor_id"],
            issue_number=record["issue_number"],
            refresh_status=record["refresh_status"],
            meta_allocator_block=record["meta_allocator_block"],
            meta_allocator_tx_hash=record["meta_allocator_tx_hash"],
        )

    def _to_row(self, entity: IssueDetails) -> Dict[str, Any]:
        return {
            "id": entity.id,
            "application_id": entity.application_id,
            "actor_id": entity.actor_id,
            "issue_number": entity.issue_number,
            "refresh_status": entity.refresh_status,
            "meta_allocator_block": entity.meta_allocator_block,
            "meta_allocator_tx_hash": entity.meta_allocator_tx_hash,
        }

    async def find_pending_by_actor_id(self, actor_id: str) -> Optional[IssueDetails]:
        return await self.find_one_where(
            order_by="issue_number DESC NULLS LAST",
            actor_id=actor_id,
            refresh_status=RefreshStatus.PENDING,
        )

    async def last_meta_allocator_block(self) -> int:
        return await self.max_value("meta_allocator_block", NO_BLOCK)

    async def record_meta_allocator_approval(
        self, issue_id: str, block_number: int, tx_hash: str
    ) -> None:
        await self._db.execute(
            """
            UPDATE issue_details
            SET meta_allocator_block = $2, meta_allocator_tx_hash = $3, refresh_status = $4
            WHERE id = $1
            """,
            issue_id,
            block_number,
            tx_hash,
            RefreshStatus.APPROVED,
        )
