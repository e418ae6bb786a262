"""
Sell Watcher - mirrors sells of our keys

When a trader sells keys of the watched wallet, we sell the same share
of our keys of that trader:
- Buy events and other subjects are ignored
- Balances are read on-chain right after the event
- Position size comes from the proportional sell allocator
- Every handled sell is reported to Telegram
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ftbot.services.friend_tech_contract import TradeEvent
from ftbot.services.sell_allocator import compute_sell_amount
from ftbot.utils.formatting import compare_hashes, escape_markdown, escape_markdown_url, pluralize, round_eth

logger = logging.getLogger(__name__)

ROOM_URL = "https://friend.tech/rooms/{address}"


@dataclass
class SellDecision:
    """Outcome of one handled sell event."""
    trader: str
    i_own: int
    trader_holds: int
    to_sell: int
    own_after_sell: int
    tx_hash: Optional[str] = None
    skipped_reason: Optional[str] = None

    @property
    def sold(self) -> bool:
        return self.tx_hash is not None


class SellWatcher:
    """Reacts to Trade events by selling keys proportionally."""

    def __init__(
        self,
        watched_address: str,
        contract,
        notifier,
        users_api=None,
        dry_run: bool = False,
        dev_mode: bool = False,
        throttle_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize sell watcher.

        Args:
            watched_address: Our wallet, the subject whose keys are watched
            contract: Object with async shares_balance(subject, holder) and sell_shares(subject, amount)
            notifier: Object with async send(message) -> bool
            users_api: Optional object with async find_user(address) for display names
            dry_run: Compute and notify, never submit sells
            dev_mode: Accept sells of any subject and throttle events
            throttle_seconds: Quiet period after a handled event in dev mode
            clock: Monotonic time source
        """
        self.watched_address = watched_address.lower()
        self.contract = contract
        self.notifier = notifier
        self.users_api = users_api
        self.dry_run = dry_run
        self.dev_mode = dev_mode
        self.throttle_seconds = throttle_seconds
        self.clock = clock
        self._throttled_until = 0.0

    def is_relevant(self, event: TradeEvent) -> bool:
        """Sells of our keys only (any subject in dev mode)."""
        if event.is_buy:
            return False
        if self.dev_mode:
            return True
        return compare_hashes(event.subject, self.watched_address)

    def _allow(self) -> bool:
        now = self.clock()
        if now < self._throttled_until:
            return False
        if self.dev_mode:
            self._throttled_until = now + self.throttle_seconds
        return True

    async def handle_trade(self, event: TradeEvent) -> Optional[SellDecision]:
        """
        Handle a single Trade event.

        Returns:
            SellDecision for handled sells, None for ignored events
        """
        if not self.is_relevant(event):
            return None

        trader_holds, i_own = await asyncio.gather(
            self.contract.shares_balance(event.subject, event.trader),
            self.contract.shares_balance(event.trader, event.subject)
        )

        if not self._allow():
            logger.debug("Throttled sell event %s", event.transaction_hash)
            return None

        to_sell = compute_sell_amount(i_own, trader_holds, event.share_amount)
        decision = SellDecision(
            trader=event.trader,
            i_own=i_own,
            trader_holds=trader_holds,
            to_sell=to_sell,
            own_after_sell=i_own - to_sell
        )
        logger.info(
            "%s sold %d of our keys, holds %d, we own %d -> sell %d",
            event.trader, event.share_amount, trader_holds, i_own, to_sell
        )

        await self._notify(await self._sell_signal_message(event, decision))

        if not to_sell:
            decision.skipped_reason = "no need to sell"
            return decision

        if self.dry_run:
            decision.skipped_reason = "dry run"
            print(f"🧪 Dry run: would sell {to_sell} {pluralize('key', to_sell)} of {event.trader}")
            return decision

        print(f"\n👉 Selling {to_sell} {pluralize('key', to_sell)} of {event.trader}...")
        decision.tx_hash = await self.contract.sell_shares(event.trader, to_sell)
        print(f"✅ Sold. Transaction: {decision.tx_hash}")

        await self._notify(self._sold_message(decision))
        return decision

    async def on_trade(self, event: TradeEvent):
        """Monitor callback. Errors are logged so the watcher keeps running."""
        try:
            await self.handle_trade(event)
        except Exception:
            logger.exception("Failed to handle trade %s", event.transaction_hash or event)

    async def _notify(self, message: str):
        try:
            delivered = await self.notifier.send(message)
        except Exception:
            logger.exception("Notification delivery failed")
            return
        if delivered:
            print("🔔 Sent notification")

    async def _lookup_user(self, address: str):
        if self.users_api is None:
            return None
        try:
            return await self.users_api.find_user(address)
        except Exception as e:
            logger.warning("User lookup for %s failed: %s", address, e)
            return None

    async def _sell_signal_message(self, event: TradeEvent, decision: SellDecision) -> str:
        user = await self._lookup_user(event.trader)

        name = escape_markdown(user.twitter_name if user and user.twitter_name else "⚠️ Unknown user")
        url = escape_markdown_url(ROOM_URL.format(address=event.trader))
        price = escape_markdown(f"{round_eth(event.eth_amount)} ETH")
        keys = f"{event.share_amount} {pluralize('key', event.share_amount)}"

        if decision.to_sell:
            sell_msg = f"Trying to sell {decision.to_sell} {pluralize('key', decision.to_sell)}"
        else:
            sell_msg = "No need to sell"

        return (
            f"🚨 [{name}]({url}) sold *{keys}* for *{price}*\\. "
            f"I own {decision.i_own}, trader holds {decision.trader_holds} of my keys\\. {sell_msg}"
        )

    def _sold_message(self, decision: SellDecision) -> str:
        message = f"✅ Sold *{decision.to_sell} {pluralize('key', decision.to_sell)}* of {decision.trader}"
        if decision.own_after_sell:
            left = decision.own_after_sell
            message += f", you still own *{left} {pluralize('key', left)}*"
        else:
            message += ", you don’t own any keys of this user anymore"
        return message
