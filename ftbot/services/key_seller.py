"""
Key Seller

Sells a list of key orders one after the other:
- Quotes the sell price after fees
- Submits sellShares and waits for the receipt
- A failed order is reported and the next one still runs
- Orders are spaced by a jittered delay
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ftbot.services.friend_tech_api import KeyHolding
from ftbot.utils.formatting import pluralize, round_eth

logger = logging.getLogger(__name__)


@dataclass
class SellOrder:
    address: str
    quantity: int
    twitter_name: str = ""
    index: int = 0


@dataclass
class SellResult:
    order: SellOrder
    success: bool
    price_eth: Optional[float] = None
    tx_hash: Optional[str] = None
    tx_status: Optional[int] = None
    error: Optional[str] = None


def orders_from_holdings(holdings: dict[str, KeyHolding]) -> list[SellOrder]:
    """One order per held subject, selling the whole balance."""
    return [
        SellOrder(address=h.address, quantity=h.balance, twitter_name=h.twitter_name, index=i)
        for i, h in enumerate(holdings.values(), start=1)
    ]


def jittered_delay(delay: float, rand: Callable[[float, float], float] = random.uniform) -> float:
    """Random wait between 50% and 150% of `delay`."""
    half = delay / 2
    return rand(delay - half, delay + half)


class KeySeller:
    """Executes sell orders against the shares contract."""

    def __init__(
        self,
        contract,
        delay: float = 1.0,
        wait_for_receipt: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize key seller.

        Args:
            contract: Object with async get_sell_price_after_fee, sell_shares and wait_for_transaction
            delay: Average seconds between orders
            wait_for_receipt: Wait for each transaction to be mined before the next order
            sleep: Async sleep used between orders
        """
        self.contract = contract
        self.delay = delay
        self.wait_for_receipt = wait_for_receipt
        self.sleep = sleep

    async def execute_order(self, order: SellOrder, total: int = 1) -> SellResult:
        """Execute a single order. Errors are captured in the result."""
        label = order.twitter_name or order.address
        print(f"\n👉 [{order.index}/{total}] Selling {order.quantity} {pluralize('key', order.quantity)} of {label}")

        result = SellResult(order=order, success=False)
        try:
            result.price_eth = await self.contract.get_sell_price_after_fee(order.address, order.quantity)
            print(f"   Price after fee: {round_eth(result.price_eth)} ETH")

            result.tx_hash = await self.contract.sell_shares(order.address, order.quantity)
            print(f"   Transaction: {result.tx_hash}")

            if self.wait_for_receipt:
                result.tx_status = await self.contract.wait_for_transaction(result.tx_hash)
                if result.tx_status != 1:
                    raise RuntimeError(f"transaction reverted (status {result.tx_status})")

            result.success = True
            print("   ✅ Sold")

        except Exception as e:
            result.error = str(e)
            logger.error("Sell of %s failed: %s", order.address, e)
            print(f"   ❌ Failed: {e}")

        return result

    async def sell_orders(self, orders: list[SellOrder]) -> list[SellResult]:
        """Execute orders in sequence, waiting between them."""
        results = []
        for position, order in enumerate(orders, start=1):
            results.append(await self.execute_order(order, total=len(orders)))
            if position < len(orders) and self.delay > 0:
                await self.sleep(jittered_delay(self.delay))

        sold = sum(1 for r in results if r.success)
        print(f"\n📊 Sold {sold}/{len(results)} {pluralize('order', len(results))}")
        return results
