"""
EVM JSON-RPC client for meta-allocator AllowanceChanged logs.

web3 is synchronous over HTTP; every call runs in a worker thread so the
event loop stays free for command handling.
"""

from __future__ import annotations
import asyncio
from typing import Any, Dict, List, Optional

from eth_abi.exceptions import DecodingError
from web3 import Web3
from web3.exceptions import Web3Exception

from config.models import ChainConfig

from ...domain.exceptions import ChainError
from ...domain.interfaces.chain_client import ChainClient, MetaAllocatorApproval
from ...utils.logging_setup import get_logger


logger = get_logger(__name__)

ALLOWANCE_CHANGED_EVENT_ABI = [
    {
        "type": "event",
        "name": "AllowanceChanged",
        "inputs": [
            {"name": "allocator", "type": "address", "indexed": True, "internalType": "address"},
            {"name": "allowanceBefore", "type": "uint256", "indexed": False, "internalType": "uint256"},
            {"name": "allowanceAfter", "type": "uint256", "indexed": False, "internalType": "uint256"},
        ],
        "anonymous": False,
    },
]

ALLOWANCE_CHANGED_TOPIC = Web3.to_hex(Web3.keccak(text="AllowanceChanged(address,uint256,uint256)"))

# Transport failures: RPC error responses, HTTP errors (requests raises OSError subclasses)
_RPC_ERRORS = (Web3Exception, ValueError, OSError)


class Web3ChainClient(ChainClient):
    """ChainClient over a Lotus / EVM HTTP endpoint."""

    def __init__(self, config: ChainConfig, web3: Optional[Web3] = None):
        self._config = config
        self._w3 = web3 or Web3(Web3.HTTPProvider(
            config.rpc_url,
            request_kwargs={"timeout": config.request_timeout_sec},
        ))
        self._event = self._w3.eth.contract(abi=ALLOWANCE_CHANGED_EVENT_ABI).events.AllowanceChanged()

    async def check_chain_id(self) -> int:
        """Return the node's chain id, warning when it differs from config."""
        try:
            chain_id = await asyncio.to_thread(lambda: self._w3.eth.chain_id)
        except _RPC_ERRORS as e:
            raise ChainError(f"eth_chainId failed: {e}") from e
        if chain_id != self._config.chain_id:
            logger.warning(f"RPC chain id {chain_id} differs from configured {self._config.chain_id}")
        return chain_id

    async def get_block_number(self) -> int:
        try:
            head = await asyncio.to_thread(lambda: self._w3.eth.block_number)
        except _RPC_ERRORS as e:
            raise ChainError(f"eth_blockNumber failed: {e}") from e
        logger.debug(f"Head block is {head}")
        return head

    async def fetch_approvals(self, from_block: int, to_block: int) -> List[MetaAllocatorApproval]:
        log_filter = {
            "fromBlock": from_block,
            "toBlock": to_block,
            "topics": [ALLOWANCE_CHANGED_TOPIC],
        }
        try:
            logs = await asyncio.to_thread(self._w3.eth.get_logs, log_filter)
        except _RPC_ERRORS as e:
            raise ChainError(f"eth_getLogs [{from_block}, {to_block}] failed: {e}") from e

        logger.debug(f"eth_getLogs returned {len(logs)} logs")
        approvals = []
        for log in logs:
            approval = self._decode(log)
            if approval is not None:
                approvals.append(approval)
        return approvals

    def _decode(self, log: Any) -> Optional[MetaAllocatorApproval]:
        try:
            decoded = self._event.process_log(log)
            args = decoded["args"]
            return MetaAllocatorApproval(
                block_number=decoded["blockNumber"],
                tx_hash=Web3.to_hex(log["transactionHash"]),
                contract_address=decoded["address"],
                allocator_address=args["allocator"],
                allowance_before=str(args["allowanceBefore"]),
                allowance_after=str(args["allowanceAfter"]),
            )
        except (Web3Exception, DecodingError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                f"Decoding log at block {log.get('blockNumber')} "
                f"(tx {log.get('transactionHash')!r}) failed, skipping: {e}"
            )
            return None

    async def eth_address_to_filecoin_address(self, eth_address: str) -> Optional[str]:
        try:
            response: Dict[str, Any] = await asyncio.to_thread(
                self._w3.provider.make_request,
                "Filecoin.EthAddressToFilecoinAddress",
                [eth_address],
            )
        except _RPC_ERRORS as e:
            raise ChainError(f"Filecoin.EthAddressToFilecoinAddress failed: {e}") from e

        if response.get("error"):
            raise ChainError(f"Filecoin.EthAddressToFilecoinAddress error: {response['error']}")
        return response.get("result")
