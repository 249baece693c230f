"""KYC phase commands."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from ...domain.allocator.allocator import DatacapAllocator
from ...domain.allocator.types import KYCApprovedData, KYCRejectedData
from ..command_bus import Command
from .base import AllocatorCommandHandler, PhaseResult, PhaseStatus, unexpected_result


@dataclass(frozen=True)
class SubmitKYCResultCommand(Command):
    application_id: str
    result: PhaseResult[Union[KYCApprovedData, KYCRejectedData]]


@dataclass(frozen=True)
class RevokeKYCCommand(Command):
    application_id: str


class SubmitKYCResultHandler(AllocatorCommandHandler[SubmitKYCResultCommand]):
    command_type = SubmitKYCResultCommand

    async def handle(self, command: SubmitKYCResultCommand) -> DatacapAllocator:
        allocator = await self._load(command.application_id)
        version = allocator.version

        if command.result.status is PhaseStatus.APPROVED:
            allocator.approve_kyc(command.result.data)
        elif command.result.status is PhaseStatus.REJECTED:
            allocator.reject_kyc(command.result.data)
        else:
            raise unexpected_result(command.result)

        await self._commit(allocator, version)
        return allocator


class RevokeKYCHandler(AllocatorCommandHandler[RevokeKYCCommand]):
    command_type = RevokeKYCCommand

    async def handle(self, command: RevokeKYCCommand) -> DatacapAllocator:
        allocator = await self._load(command.application_id)
        version = allocator.version
        allocator.revoke_kyc()
        await self._commit(allocator, version)
        return allocator
