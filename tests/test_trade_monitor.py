"""Tests for Trade Monitor."""

import asyncio
import pytest
from ftbot.services.friend_tech_contract import TradeEvent
from ftbot.services.trade_monitor import LAST_BLOCK_KEY, MonitorConfig, TradeMonitor
from ftbot.storage.state_store import StateStore


def make_event(block_number, log_index=0, share_amount=1):
    return TradeEvent(
        trader="0xtrader",
        subject="0xsubject",
        is_buy=False,
        share_amount=share_amount,
        eth_amount=0.01,
        protocol_eth_amount=0.0,
        subject_eth_amount=0.0,
        supply=5,
        block_number=block_number,
        log_index=log_index
    )


class FakeChain:
    def __init__(self, head, events):
        self.head = head
        self.events = events
        self.queries = []

    async def block_number(self):
        return self.head

    async def get_trade_events(self, from_block, to_block):
        self.queries.append((from_block, to_block))
        return [e for e in self.events if from_block <= e.block_number <= to_block]


class TestTradeMonitor:
    """Test cases for TradeMonitor."""

    def setup_method(self):
        self.received = []

    async def on_trade(self, event):
        self.received.append((event.block_number, event.log_index))

    def test_starts_at_chain_head_without_state(self):
        chain = FakeChain(head=100, events=[make_event(90), make_event(100)])
        monitor = TradeMonitor(chain, MonitorConfig(), self.on_trade)

        count = asyncio.run(monitor.run_once())

        assert count == 1
        assert self.received == [(100, 0)]
        assert monitor.next_block == 101

    def test_dispatches_in_order_and_batches(self):
        events = [make_event(10, 0), make_event(10, 1), make_event(12), make_event(15)]
        chain = FakeChain(head=15, events=events)
        monitor = TradeMonitor(chain, MonitorConfig(block_batch_size=3, start_block=10), self.on_trade)

        asyncio.run(monitor.run_once())
        asyncio.run(monitor.run_once())

        assert chain.queries == [(10, 12), (13, 15)]
        assert self.received == [(10, 0), (10, 1), (12, 0), (15, 0)]

    def test_waits_when_caught_up(self):
        chain = FakeChain(head=50, events=[])
        monitor = TradeMonitor(chain, MonitorConfig(start_block=51), self.on_trade)

        assert asyncio.run(monitor.run_once()) == 0
        assert chain.queries == []

    def test_persists_and_resumes_cursor(self, tmp_path):
        path = str(tmp_path / "state.json")
        chain = FakeChain(head=20, events=[make_event(20), make_event(25)])
        first = TradeMonitor(chain, MonitorConfig(start_block=18), self.on_trade, state=StateStore(path).load())
        asyncio.run(first.run_once())

        assert StateStore(path).load().get(LAST_BLOCK_KEY) == 20

        chain.head = 30
        second = TradeMonitor(chain, MonitorConfig(), self.on_trade, state=StateStore(path).load())
        asyncio.run(second.run_once())

        assert chain.queries[-1] == (21, 30)
        assert self.received == [(20, 0), (25, 0)]

    def test_restart_mid_batch_does_not_redeliver(self, tmp_path):
        path = str(tmp_path / "state.json")
        events = [make_event(10, 0), make_event(10, 1), make_event(12)]
        chain = FakeChain(head=12, events=events)
        sells = []

        class Killed(Exception):
            pass

        async def sell_then_die(event):
            sells.append((event.block_number, event.log_index))
            raise Killed()

        first = TradeMonitor(chain, MonitorConfig(start_block=10), sell_then_die, state=StateStore(path).load())
        with pytest.raises(Killed):
            asyncio.run(first.run_once())

        assert StateStore(path).load().get(LAST_BLOCK_KEY) is None

        second = TradeMonitor(chain, MonitorConfig(), self.on_trade, state=StateStore(path).load())
        assert asyncio.run(second.run_once()) == 2

        assert chain.queries[-1] == (10, 12)
        assert sells == [(10, 0)]
        assert self.received == [(10, 1), (12, 0)]

    def test_events_are_handled_one_at_a_time(self):
        active = []
        overlaps = []

        async def slow_handler(event):
            if active:
                overlaps.append(event.block_number)
            active.append(event)
            await asyncio.sleep(0)
            active.pop()

        chain = FakeChain(head=3, events=[make_event(1), make_event(2), make_event(3)])
        monitor = TradeMonitor(chain, MonitorConfig(start_block=1), slow_handler)

        assert asyncio.run(monitor.run_once()) == 3
        assert overlaps == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
