"""Commands that update application metadata: multisig, pull request, registry file."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Tuple

from ...domain.allocator.allocator import DatacapAllocator
from ...domain.allocator.pull_request_file import ApplicationPullRequestFile
from ...domain.interfaces.allocator_repository import AllocatorRepository
from ...domain.interfaces.event_bus import EventBus
from ...domain.interfaces.read_models import ApplicationDetails, ApplicationDetailsRepository
from ..command_bus import Command
from .base import AllocatorCommandHandler


@dataclass(frozen=True)
class SetAllocatorMultisigCommand(Command):
    application_id: str
    allocator_actor_id: str
    multisig_address: str
    multisig_threshold: int
    signers: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SetApplicationPullRequestCommand(Command):
    application_id: str
    pr_number: int
    pr_url: str
    comment_id: Optional[int] = None
    refresh: bool = False


@dataclass(frozen=True)
class EditApplicationCommand(Command):
    application_id: str
    file: ApplicationPullRequestFile


class SetAllocatorMultisigHandler(AllocatorCommandHandler[SetAllocatorMultisigCommand]):
    """Record the multisig and index the application by its actor id."""

    command_type = SetAllocatorMultisigCommand

    def __init__(
        self,
        repository: AllocatorRepository,
        application_details: ApplicationDetailsRepository,
        event_bus: Optional[EventBus] = None,
    ):
        super().__init__(repository, event_bus)
        self._application_details = application_details

    async def handle(self, command: SetAllocatorMultisigCommand) -> DatacapAllocator:
        allocator = await self._load(command.application_id)
        version = allocator.version
        allocator.set_allocator_multisig(
            command.allocator_actor_id,
            command.multisig_address,
            command.multisig_threshold,
            list(command.signers),
        )
        await self._commit(allocator, version)

        details = await self._application_details.get_by_id(allocator.guid)
        if details is None:
            details = ApplicationDetails(
                id=allocator.guid,
                application_number=allocator.state.application_number,
            )
        details.actor_id = command.allocator_actor_id
        await self._application_details.upsert(details)
        return allocator


class SetApplicationPullRequestHandler(AllocatorCommandHandler[SetApplicationPullRequestCommand]):
    command_type = SetApplicationPullRequestCommand

    async def handle(self, command: SetApplicationPullRequestCommand) -> DatacapAllocator:
        allocator = await self._load(command.application_id)
        version = allocator.version
        allocator.set_application_pull_request(
            command.pr_number,
            command.pr_url,
            comment_id=command.comment_id,
            refresh=command.refresh,
        )
        await self._commit(allocator, version)
        return allocator


class EditApplicationHandler(AllocatorCommandHandler[EditApplicationCommand]):
    command_type = EditApplicationCommand

    async def handle(self, command: EditApplicationCommand) -> DatacapAllocator:
        allocator = await self._load(command.application_id)
        version = allocator.version
        allocator.edit(command.file)
        await self._commit(allocator, version)
        return allocator
