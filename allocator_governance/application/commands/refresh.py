"""Datacap refresh command."""

from __future__ import annotations
from dataclasses import dataclass

from ...domain.allocator.allocator import DatacapAllocator
from ..command_bus import Command
from .base import AllocatorCommandHandler


@dataclass(frozen=True)
class RequestDatacapRefreshCommand(Command):
    application_id: str


class RequestDatacapRefreshHandler(AllocatorCommandHandler[RequestDatacapRefreshCommand]):
    command_type = RequestDatacapRefreshCommand

    async def handle(self, command: RequestDatacapRefreshCommand) -> DatacapAllocator:
        allocator = await self._load(command.application_id)
        version = allocator.version
        allocator.request_datacap_refresh()
        await self._commit(allocator, version)
        return allocator
