"""
Trade Monitor Module for friend.tech Sell Watcher

Polls the shares contract for Trade events and hands them, one at a time
and in chain order, to the trade callback.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ftbot.services.friend_tech_contract import TradeEvent

logger = logging.getLogger(__name__)

LAST_BLOCK_KEY = "last_processed_block"
LAST_EVENT_KEY = "last_dispatched_event"


@dataclass
class MonitorConfig:
    """Trade monitor configuration."""
    poll_interval: float = 5.0
    block_batch_size: int = 500
    error_backoff: float = 5.0
    start_block: Optional[int] = None


class TradeMonitor:
    """Polls Trade logs and dispatches them sequentially."""

    def __init__(
        self,
        contract,
        config: MonitorConfig,
        on_trade: Callable[[TradeEvent], Awaitable[None]],
        state=None
    ):
        """
        Initialize trade monitor.

        Args:
            contract: Object with async block_number() and get_trade_events(from_block, to_block)
            config: Monitor configuration
            on_trade: Async callback awaited for every event
            state: Optional key-value store used to persist the block and event cursors
        """
        self.contract = contract
        self.config = config
        self.on_trade = on_trade
        self.state = state
        self.running = False
        self.next_block: Optional[int] = None
        self.last_event: Optional[tuple[int, int]] = None
        self._task: Optional[asyncio.Task] = None

    async def _resolve_start_block(self) -> int:
        if self.state is not None:
            cursor = self.state.get(LAST_EVENT_KEY)
            if cursor is not None:
                self.last_event = (int(cursor[0]), int(cursor[1]))

        if self.config.start_block is not None:
            return self.config.start_block
        if self.state is not None:
            last = self.state.get(LAST_BLOCK_KEY)
            if last is not None:
                return int(last) + 1
        if self.last_event is not None:
            return self.last_event[0]
        # Nothing stored, start watching from the chain head
        return await self.contract.block_number()

    async def run_once(self) -> int:
        """
        Process one batch of blocks.

        Returns:
            Number of events dispatched (events handled before a restart are skipped)
        """
        if self.next_block is None:
            self.next_block = await self._resolve_start_block()

        latest = await self.contract.block_number()
        if self.next_block > latest:
            return 0

        to_block = min(self.next_block + self.config.block_batch_size - 1, latest)
        events = await self.contract.get_trade_events(self.next_block, to_block)

        dispatched = 0
        for event in events:
            position = (event.block_number, event.log_index)
            if self.last_event is not None and position <= self.last_event:
                # Already dispatched before a restart
                continue
            # Claimed before dispatch, never replayed after a crash
            self.last_event = position
            if self.state is not None:
                self.state.set(LAST_EVENT_KEY, list(position))
            await self.on_trade(event)
            dispatched += 1

        if dispatched:
            logger.debug("Dispatched %d trade(s) from blocks %d-%d", dispatched, self.next_block, to_block)

        self.next_block = to_block + 1
        if self.state is not None:
            self.state.set(LAST_BLOCK_KEY, to_block)

        return dispatched

    async def run_loop(self):
        """Run continuous monitoring loop."""
        self.running = True
        print("🔍 Watching for sell events...")

        while self.running:
            try:
                await self.run_once()
                # Keep polling without delay while catching up on old blocks
                latest = await self.contract.block_number()
                if self.next_block is not None and self.next_block <= latest:
                    continue
                await asyncio.sleep(self.config.poll_interval)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Monitor error: %s", e)
                await asyncio.sleep(self.config.error_backoff)

    def start(self) -> asyncio.Task:
        """Start monitoring in background task."""
        self._task = asyncio.create_task(self.run_loop())
        return self._task

    def stop(self):
        """Stop monitoring."""
        self.running = False
        if self._task:
            self._task.cancel()
