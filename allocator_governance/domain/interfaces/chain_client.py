"""Chain client interface for meta-allocator approval logs."""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class MetaAllocatorApproval:
    """One decoded AllowanceChanged log."""
    block_number: int
    tx_hash: str
    contract_address: str
    allocator_address: str  # 0x EVM address or native f-address
    allowance_before: str
    allowance_after: str


class ChainClient(ABC):
    """Read-only access to the EVM JSON-RPC endpoint."""

    @abstractmethod
    async def get_block_number(self) -> int:
        """
        Current chain head.

        Raises:
            ChainError: If the RPC call fails.
        """
        pass

    @abstractmethod
    async def fetch_approvals(self, from_block: int, to_block: int) -> List[MetaAllocatorApproval]:
        """
        Fetch AllowanceChanged logs in [from_block, to_block].

        Logs that fail to decode are skipped individually.

        Raises:
            ChainError: If the log request itself fails.
        """
        pass

    @abstractmethod
    async def eth_address_to_filecoin_address(self, eth_address: str) -> Optional[str]:
        """
        Translate a 0x address to its native Filecoin address.

        Returns:
            The Filecoin address, or None if the node has no mapping.

        Raises:
            ChainError: If the RPC call fails.
        """
        pass
