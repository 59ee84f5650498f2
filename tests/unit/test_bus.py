"""Unit tests for BroadcastBus and Subscription."""

import asyncio

import pytest

from console_relay.bus import BroadcastBus
from console_relay.errors import BusClosed, BusLagged


async def _drain(subscription, count):
    return [await subscription.receive() for _ in range(count)]


# =============================================================================
# Publish
# =============================================================================

class TestPublish:
    """publish() never blocks and reports how many subscribers got the line."""

    def test_publish_without_subscribers(self, bus):
        assert bus.publish("nobody listening") == 0

    async def test_publish_counts_subscribers(self, bus):
        first = bus.subscribe()
        second = bus.subscribe()

        assert bus.publish("line") == 2
        assert first.pending == 1
        assert second.pending == 1

    def test_publish_after_close_is_dropped(self, bus):
        bus.close()
        assert bus.publish("late") == 0

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            BroadcastBus(capacity=0)


# =============================================================================
# Receive
# =============================================================================

class TestReceive:
    """Per-subscriber ordering, lag and close semantics."""

    async def test_lines_arrive_in_publish_order(self, bus):
        subscription = bus.subscribe()
        for i in range(5):
            bus.publish(f"line {i}")

        assert await _drain(subscription, 5) == [f"line {i}" for i in range(5)]

    async def test_no_replay_of_earlier_lines(self, bus):
        bus.publish("before")
        subscription = bus.subscribe()
        bus.publish("after")

        assert await subscription.receive() == "after"
        assert subscription.pending == 0

    async def test_subscribers_are_independent(self, bus):
        fast = bus.subscribe()
        slow = bus.subscribe()
        bus.publish("a")
        bus.publish("b")

        assert await _drain(fast, 2) == ["a", "b"]
        assert slow.pending == 2
        assert await slow.receive() == "a"

    async def test_lagging_subscriber_skips_then_resumes(self):
        bus = BroadcastBus(capacity=4)
        subscription = bus.subscribe()
        for i in range(10):
            bus.publish(f"l{i}")

        with pytest.raises(BusLagged) as exc_info:
            await subscription.receive()
        assert exc_info.value.skipped == 6

        assert await _drain(subscription, 4) == ["l6", "l7", "l8", "l9"]

    async def test_lag_is_reported_once(self):
        bus = BroadcastBus(capacity=1)
        subscription = bus.subscribe()
        bus.publish("dropped")
        bus.publish("kept")

        with pytest.raises(BusLagged):
            await subscription.receive()
        assert await subscription.receive() == "kept"

    async def test_close_drains_before_bus_closed(self, bus):
        subscription = bus.subscribe()
        bus.publish("a")
        bus.publish("b")
        bus.close()

        assert await _drain(subscription, 2) == ["a", "b"]
        with pytest.raises(BusClosed):
            await subscription.receive()

    async def test_close_wakes_waiting_receiver(self, bus):
        subscription = bus.subscribe()
        waiter = asyncio.create_task(subscription.receive())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        bus.close()
        with pytest.raises(BusClosed):
            await asyncio.wait_for(waiter, timeout=1.0)

    async def test_publish_from_another_thread_wakes_receiver(self, bus):
        subscription = bus.subscribe()
        waiter = asyncio.create_task(subscription.receive())
        await asyncio.sleep(0.01)

        await asyncio.to_thread(bus.publish, "from reader thread")

        assert await asyncio.wait_for(waiter, timeout=1.0) == "from reader thread"


# =============================================================================
# Subscription lifecycle
# =============================================================================

class TestSubscriptionLifecycle:
    """Subscriptions release their slot when closed or when their loop dies."""

    async def test_close_unsubscribes(self, bus):
        subscription = bus.subscribe()
        assert bus.subscriber_count == 1

        subscription.close()
        subscription.close()

        assert bus.subscriber_count == 0
        assert subscription.closed
        assert bus.publish("line") == 0
        with pytest.raises(BusClosed):
            await subscription.receive()

    async def test_async_context_manager_closes(self, bus):
        async with bus.subscribe() as subscription:
            assert bus.subscriber_count == 1
        assert subscription.closed
        assert bus.subscriber_count == 0

    def test_subscription_on_dead_loop_is_dropped(self, bus):
        loop = asyncio.new_event_loop()
        subscription = bus.subscribe(loop=loop)
        loop.close()

        assert bus.publish("line") == 0
        assert bus.subscriber_count == 0
        assert subscription.closed
