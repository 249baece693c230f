"""
PostgreSQL event store for allocator aggregates.

Tables (see migrations/001_event_store.sql):
- allocator_events: one row per event, unique on (aggregate_id, version)
- allocator_snapshots: periodic state snapshots to shorten replays
"""

from __future__ import annotations
import json
from typing import Any, Optional

import asyncpg

from ...domain.allocator.allocator import AllocatorState, DatacapAllocator
from ...domain.events.domain_events import deserialize_event
from ...domain.exceptions import ConcurrencyError
from ...domain.interfaces.allocator_repository import AllocatorRepository
from ...utils.logging_setup import get_logger
from .database import Database, QueryError


logger = get_logger(__name__)


def _from_json(data: Any) -> Any:
    if data is None:
        return None
    if isinstance(data, (dict, list)):
        return data
    return json.loads(data)


class PostgresAllocatorRepository(AllocatorRepository):
    """
    Event-sourced repository on asyncpg.

    Loads the latest snapshot plus the events recorded after it. Saves append
    all staged events in one transaction after checking the stream version.
    """

    def __init__(self, db: Database, snapshot_every: int = 50):
        """
        Args:
            db: Connected database.
            snapshot_every: Snapshot interval in events; 0 disables snapshots.
        """
        self._db = db
        self._snapshot_every = snapshot_every

    async def get_by_id(self, guid: str) -> Optional[DatacapAllocator]:
        snapshot = await self._db.fetchrow(
            """
            SELECT version, state FROM allocator_snapshots
            WHERE aggregate_id = $1
            ORDER BY version DESC
            LIMIT 1
            """,
            guid,
        )
        after = snapshot["version"] if snapshot else 0

        rows = await self._db.fetch(
            """
            SELECT payload FROM allocator_events
            WHERE aggregate_id = $1 AND version > $2
            ORDER BY version
            """,
            guid,
            after,
        )

        if snapshot:
            state = AllocatorState.from_dict(_from_json(snapshot["state"]))
            allocator = DatacapAllocator.from_state(state, version=after)
        elif rows:
            allocator = DatacapAllocator(AllocatorState(guid=guid))
        else:
            return None

        allocator.replay(deserialize_event(_from_json(row["payload"])) for row in rows)
        return allocator

    async def save(self, allocator: DatacapAllocator, expected_version: int) -> None:
        events = allocator.get_uncommitted_events()
        if not events:
            return

        guid = allocator.guid
        try:
            async with self._db.transaction() as conn:
                current = await conn.fetchval(
                    "SELECT COALESCE(MAX(version), 0) FROM allocator_events WHERE aggregate_id = $1",
                    guid,
                )
                if expected_version != self.ANY_VERSION and expected_version != current:
                    raise ConcurrencyError(guid, expected_version, current)

                await conn.executemany(
                    """
                    INSERT INTO allocator_events
                        (aggregate_id, version, event_type, payload, recorded_at)
                    VALUES ($1, $2, $3, $4::jsonb, $5)
                    """,
                    [
                        (guid, current + i + 1, event.event_name, event.to_json(), event.timestamp)
                        for i, event in enumerate(events)
                    ],
                )

                new_version = current + len(events)
                if self._should_snapshot(current, new_version) and allocator.version == new_version:
                    await conn.execute(
                        """
                        INSERT INTO allocator_snapshots (aggregate_id, version, state)
                        VALUES ($1, $2, $3::jsonb)
                        ON CONFLICT (aggregate_id, version) DO NOTHING
                        """,
                        guid,
                        new_version,
                        json.dumps(allocator.to_dict(), sort_keys=True),
                    )
                    logger.debug(f"Snapshot written for {guid} at v{new_version}")
        except asyncpg.UniqueViolationError as e:
            # A concurrent writer appended the same versions first
            raise ConcurrencyError(guid, expected_version, -1) from e
        except asyncpg.PostgresError as e:
            raise QueryError(f"Saving allocator {guid} failed: {e}") from e

        allocator.mark_events_committed()
        logger.debug(f"Saved {len(events)} event(s) for {guid} (v{new_version})")

    def _should_snapshot(self, previous: int, current: int) -> bool:
        if self._snapshot_every <= 0:
            return False
        return current // self._snapshot_every > previous // self._snapshot_every
