"""
In-memory allocator repository.

Streams hold serialised events, so every load exercises the same
deserialize-and-replay path as the PostgreSQL store. Used by tests and by
the --demo run mode.
"""

from __future__ import annotations
import threading
from typing import Any, Dict, List, Optional

from ...domain.allocator.allocator import DatacapAllocator
from ...domain.events.domain_events import deserialize_events
from ...domain.exceptions import ConcurrencyError
from ...domain.interfaces.allocator_repository import AllocatorRepository
from ...utils.logging_setup import get_logger


logger = get_logger(__name__)


class InMemoryAllocatorRepository(AllocatorRepository):
    """Thread-safe event streams keyed by aggregate id."""

    def __init__(self):
        self._streams: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    async def get_by_id(self, guid: str) -> Optional[DatacapAllocator]:
        with self._lock:
            stream = list(self._streams.get(guid, []))
        if not stream:
            return None
        return DatacapAllocator.load_from_history(guid, deserialize_events(stream))

    async def save(self, allocator: DatacapAllocator, expected_version: int) -> None:
        events = allocator.get_uncommitted_events()
        if not events:
            return

        with self._lock:
            stream = self._streams.get(allocator.guid, [])
            current = len(stream)
            if expected_version != self.ANY_VERSION and expected_version != current:
                raise ConcurrencyError(allocator.guid, expected_version, current)
            self._streams[allocator.guid] = stream + [e.to_dict() for e in events]

        allocator.mark_events_committed()
        logger.debug(f"Saved {len(events)} event(s) for {allocator.guid} (v{current + len(events)})")

    def stream_version(self, guid: str) -> int:
        with self._lock:
            return len(self._streams.get(guid, []))

    def get_stream(self, guid: str) -> List[Dict[str, Any]]:
        """Serialised events of one stream, oldest first."""
        with self._lock:
            return list(self._streams.get(guid, []))
