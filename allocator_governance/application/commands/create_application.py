"""Create a new allocator application."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import uuid

from ...domain.allocator.allocator import DatacapAllocator
from ...domain.allocator.types import ApplicantProfile, DEFAULT_RKH_APPROVAL_THRESHOLD
from ...domain.interfaces.allocator_repository import AllocatorRepository
from ...domain.interfaces.event_bus import EventBus
from ...domain.interfaces.read_models import ApplicationDetails, ApplicationDetailsRepository
from ..command_bus import Command
from .base import AllocatorCommandHandler


@dataclass(frozen=True)
class CreateApplicationCommand(Command):
    profile: ApplicantProfile
    application_id: Optional[str] = None


class CreateApplicationHandler(AllocatorCommandHandler[CreateApplicationCommand]):
    """Stage ApplicationCreated on a fresh stream and seed the application projection."""

    command_type = CreateApplicationCommand

    def __init__(
        self,
        repository: AllocatorRepository,
        application_details: ApplicationDetailsRepository,
        event_bus: Optional[EventBus] = None,
        rkh_approval_threshold: int = DEFAULT_RKH_APPROVAL_THRESHOLD,
    ):
        super().__init__(repository, event_bus)
        self._application_details = application_details
        self._rkh_approval_threshold = rkh_approval_threshold

    async def handle(self, command: CreateApplicationCommand) -> DatacapAllocator:
        guid = command.application_id or str(uuid.uuid4())
        allocator = DatacapAllocator.create(
            guid, command.profile, rkh_approval_threshold=self._rkh_approval_threshold
        )
        # Version 0: the stream must not exist yet
        await self._commit(allocator, 0)
        await self._application_details.upsert(ApplicationDetails(
            id=guid,
            application_number=command.profile.application_number,
        ))
        return allocator
