"""PostgreSQL lookup of application projections."""

from __future__ import annotations
from typing import Any, Dict, Optional

from asyncpg import Record

from ....domain.interfaces.read_models import (
    NO_BLOCK,
    ApplicationDetails,
    ApplicationDetailsRepository,
)
from .base import BaseRepository


class PostgresApplicationDetailsRepository(BaseRepository[ApplicationDetails], ApplicationDetailsRepository):
    """application_details table."""

    @property
    def table_name(self) -> str:
        return "application_details"

    def _to_entity(self, record: Record) -> ApplicationDetails:
        return ApplicationDetails(
            id=record["id"],
            application_number=record["application_number"],
            actor_id=record["actor_id"],
            meta_allocator_block=record["meta_allocator_block"],
            meta_allocator_tx_hash=record["meta_allocator_tx_hash"],
        )

    def _to_row(self, entity: ApplicationDetails) -> Dict[str, Any]:
        return {
            "id": entity.id,
            "application_number": entity.application_number,
            "actor_id": entity.actor_id,
            "meta_allocator_block": entity.meta_allocator_block,
            "meta_allocator_tx_hash": entity.meta_allocator_tx_hash,
        }

    async def get_by_id(self, application_id: str) -> Optional[ApplicationDetails]:
        return await self.find_one_where(id=application_id)

    async def get_by_actor_id(self, actor_id: str) -> Optional[ApplicationDetails]:
        return await self.find_one_where(actor_id=actor_id)

    async def last_meta_allocator_block(self) -> int:
        return await self.max_value("meta_allocator_block", NO_BLOCK)

    async def record_meta_allocator_approval(
        self, application_id: str, block_number: int, tx_hash: str
    ) -> None:
        await self._db.execute(
            """
            UPDATE application_details
            SET meta_allocator_block = $2, meta_allocator_tx_hash = $3
            WHERE id = $1
            """,
            application_id,
            block_number,
            tx_hash,
        )
