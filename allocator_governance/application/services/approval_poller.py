"""
Meta-allocator approval poller.

Each tick:
1. Read the watermark: highest meta-allocator block recorded on applications
   and issues (-1 when none, or when the lookup fails)
2. Clamp the start block to the node's log lookback window
3. Fetch AllowanceChanged logs up to the head
4. Drop logs from contracts outside the allow-list
5. Translate 0x allocator addresses to native addresses
6. Resolve each approval through the ordered strategies and dispatch the command

Failures are contained per approval so one bad log never aborts the batch.
Delivery is at-least-once: an approval that was already applied fails the
aggregate's phase check and is logged.
"""

from __future__ import annotations
import asyncio
from typing import List, Optional, Sequence

from config.models import ChainConfig, PollerConfig

from ...domain.exceptions import ChainError, ConfigurationError
from ...domain.interfaces.chain_client import ChainClient, MetaAllocatorApproval
from ...domain.interfaces.read_models import (
    NO_BLOCK,
    ApplicationDetailsRepository,
    IssueDetailsRepository,
)
from ...utils.logging_setup import get_logger
from ...utils.structured_logger import LogCategory, StructuredLogger
from ...utils.trace_context import get_cycle_id, new_cycle
from ..command_bus import Command, CommandBus
from .approval_resolvers import ApprovalResolver, default_resolvers


logger = get_logger(__name__)
audit = StructuredLogger(logger)


def clamp_from_block(from_block: int, head: int, window: int = 2000, headroom: int = 10) -> int:
    """
    Keep from_block inside the node's lookback window.

    When the gap to the head exceeds the window, the oldest blocks are
    skipped and polling restarts at head - (window - headroom).
    """
    if from_block > head - window:
        return from_block
    return head - (window - headroom)


def validate_poller_config(chain: ChainConfig, poller: PollerConfig) -> None:
    """
    Raises:
        ConfigurationError: If the poller cannot run with this config.
    """
    if poller.interval_sec <= 0:
        raise ConfigurationError("poller.interval_sec must be positive")
    if not chain.valid_meta_allocator_addresses:
        raise ConfigurationError("chain.valid_meta_allocator_addresses must not be empty")
    if not chain.rpc_url:
        raise ConfigurationError("chain.rpc_url is required")


class MetaAllocatorApprovalPoller:
    """
    Fixed-interval reconciliation of on-chain approvals.

    Ticks never overlap. stop() lets the running tick finish and schedules
    no further tick.
    """

    def __init__(
        self,
        chain: ChainClient,
        command_bus: CommandBus,
        application_details: ApplicationDetailsRepository,
        issues: IssueDetailsRepository,
        chain_config: ChainConfig,
        poller_config: PollerConfig,
        resolvers: Optional[Sequence[ApprovalResolver]] = None,
    ):
        self._chain = chain
        self._command_bus = command_bus
        self._application_details = application_details
        self._issues = issues
        self._chain_config = chain_config
        self._poller_config = poller_config
        self._resolvers: List[ApprovalResolver] = list(
            resolvers if resolvers is not None else default_resolvers(issues, application_details)
        )
        self._allowed = {a.lower() for a in chain_config.valid_meta_allocator_addresses}

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._tick_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the polling loop in a background task."""
        if self._running:
            logger.warning("Approval poller already running")
            return
        self._running = True
        self._stop_event.clear()
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(f"Approval poller started (interval={self._poller_config.interval_sec}s)")

    async def stop(self) -> None:
        """Stop after the current tick completes."""
        self._running = False
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Approval poller stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            with new_cycle():
                try:
                    validate_poller_config(self._chain_config, self._poller_config)
                except ConfigurationError as e:
                    logger.error(f"Failed to subscribe to meta-allocator approvals: {e}")
                    self._running = False
                    break

                try:
                    await self.run_once()
                except Exception as e:
                    # Wait for next tick
                    logger.error(f"Approval poller tick failed: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._poller_config.interval_sec)
            except asyncio.TimeoutError:
                pass

    async def run_once(self) -> int:
        """
        Run one reconciliation tick.

        Returns:
            Number of commands dispatched successfully.
        """
        async with self._tick_lock:
            last_block = max(
                await self._watermark("application", self._application_details),
                await self._watermark("issue", self._issues),
            )
            logger.info(f"[{get_cycle_id()}] Last meta-allocator block is {last_block}")

            approvals = await self._fetch_approvals(last_block + 1)
            logger.info(
                f"[{get_cycle_id()}] Found {len(approvals)} AllowanceChanged events "
                f"since block {last_block + 1}"
            )

            dispatched = 0
            for approval in approvals:
                if await self._process(approval):
                    dispatched += 1
            return dispatched

    async def _watermark(self, name: str, repository) -> int:
        try:
            return await repository.last_meta_allocator_block()
        except Exception as e:
            logger.warning(f"Failed to read {name} watermark, assuming none: {e}")
            return NO_BLOCK

    async def _fetch_approvals(self, from_block: int) -> List[MetaAllocatorApproval]:
        try:
            head = await self._chain.get_block_number()
            start = clamp_from_block(
                from_block,
                head,
                window=self._chain_config.lookback_window,
                headroom=self._chain_config.lookback_headroom,
            )
            if start > from_block:
                logger.warning(
                    f"Lookback window exceeded: skipping blocks {from_block}..{start - 1} "
                    f"({start - from_block} blocks)"
                )
            if start > head:
                return []
            logger.debug(f"Fetching approvals in [{start}, {head}]")
            return await self._chain.fetch_approvals(start, head)
        except ChainError as e:
            logger.error(f"Fetching approvals failed, retrying next tick: {e}")
            return []

    async def _process(self, approval: MetaAllocatorApproval) -> bool:
        logger.info(
            f"Processing approval {approval.tx_hash}, approved by {approval.contract_address}"
        )
        if approval.contract_address.lower() not in self._allowed:
            logger.debug(f"Invalid contract address: {approval.contract_address}")
            return False

        actor_id = await self._to_actor_id(approval.allocator_address)
        if actor_id is None:
            return False

        command = await self._resolve(approval, actor_id)
        if command is None:
            return False

        try:
            await self._command_bus.send(command)
        except Exception as e:
            logger.error(f"Error updating meta-allocator approval for {actor_id}: {e}")
            return False

        audit.info(LogCategory.CHAIN, "MetaAllocatorApprovalProcessed", {
            "actor_id": actor_id,
            "command": command.command_name,
            "block_number": approval.block_number,
            "tx_hash": approval.tx_hash,
            "contract_address": approval.contract_address,
        })
        logger.info(f"Successfully processed meta-allocator approval for actorId: {actor_id}")
        return True

    async def _to_actor_id(self, address: str) -> Optional[str]:
        if not address.lower().startswith("0x"):
            return address
        try:
            actor_id = await self._chain.eth_address_to_filecoin_address(address)
        except ChainError as e:
            logger.error(f"Failed to convert Ethereum address {address}: {e}")
            return None
        if not actor_id:
            logger.error(f"Failed to convert Ethereum address to Filecoin address: {address}")
            return None
        logger.debug(f"Converted {address} to Filecoin id {actor_id}")
        return actor_id

    async def _resolve(self, approval: MetaAllocatorApproval, actor_id: str) -> Optional[Command]:
        for resolver in self._resolvers:
            try:
                result = await resolver.resolve(approval, actor_id)
            except Exception as e:
                logger.error(f"{resolver.name} resolver failed for {actor_id}: {e}")
                continue
            if result.is_ok():
                logger.debug(f"Approval {approval.tx_hash} resolved by {resolver.name} resolver")
                return result.unwrap()
            logger.info(f"{resolver.name} resolver: {result.error}")

        logger.warning(f"No pending record for approval {approval.tx_hash} (actorId {actor_id})")
        return None
