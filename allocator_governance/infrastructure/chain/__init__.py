"""Chain access."""

from .evm_client import Web3ChainClient, ALLOWANCE_CHANGED_EVENT_ABI, ALLOWANCE_CHANGED_TOPIC

__all__ = ["Web3ChainClient", "ALLOWANCE_CHANGED_EVENT_ABI", "ALLOWANCE_CHANGED_TOPIC"]
