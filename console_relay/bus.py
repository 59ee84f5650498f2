"""BroadcastBus - single-producer, multi-subscriber line distribution.

The producer is the log reader thread; subscribers are fanout sessions
running on the asyncio event loop. The bus is the only object shared
between them:

    reader thread --publish()--> BroadcastBus --receive()--> session tasks

Policy:
- publish() never blocks. Each subscription has its own ring of
  ``capacity`` lines; when it is full the oldest line is evicted and
  counted as skipped.
- A subscription sees only lines published after subscribe(); there is
  no replay.
- A subscriber that lost lines gets BusLagged(skipped) from its next
  receive(), then continues with the oldest retained line.
- Once close() is called and a ring is drained, receive() raises BusClosed.

Rings are guarded by one threading.Lock. Wake-ups cross into the event loop
with loop.call_soon_threadsafe, so the producer never calls asyncio
primitives directly.
"""

from __future__ import annotations

import asyncio
import threading
from collections import deque
from typing import Deque, Optional, Set

from console_relay.errors import BusClosed, BusLagged
from console_relay.observability.metrics import SUBSCRIBERS

DEFAULT_CAPACITY = 16


class Subscription:
    """Receiving end of the bus, owned by exactly one consumer task."""

    def __init__(
        self,
        bus: "BroadcastBus",
        capacity: int,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._bus = bus
        self._capacity = capacity
        self._loop = loop
        self._pending: Deque[str] = deque()
        self._skipped = 0
        self._closed = False
        self._ready = asyncio.Event()

    # -- producer side (called with the bus lock held) ----------------------

    def _push(self, line: str) -> bool:
        if len(self._pending) >= self._capacity:
            self._pending.popleft()
            self._skipped += 1
        self._pending.append(line)
        return self._wake()

    def _wake(self) -> bool:
        """Schedule the ready event on the owning loop.

        Returns False when the loop is already closed.
        """
        try:
            self._loop.call_soon_threadsafe(self._ready.set)
        except RuntimeError:
            return False
        return True

    # -- consumer side -------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of lines waiting to be received."""
        with self._bus._lock:
            return len(self._pending)

    async def receive(self) -> str:
        """Wait for the next line.

        Raises:
            BusLagged: lines were dropped since the last receive
            BusClosed: the bus (or this subscription) is closed and drained
        """
        while True:
            with self._bus._lock:
                if self._skipped:
                    skipped, self._skipped = self._skipped, 0
                    raise BusLagged(skipped)
                if self._pending:
                    return self._pending.popleft()
                if self._closed or self._bus._closed:
                    raise BusClosed()
                self._ready.clear()
            await self._ready.wait()

    def close(self) -> None:
        """Detach from the bus. Idempotent."""
        if self._closed:
            return
        self._bus._unsubscribe(self)
        self._closed = True
        self._ready.set()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class BroadcastBus:
    """Fan one stream of lines out to any number of subscriptions."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._lock = threading.Lock()
        self._subscribers: Set[Subscription] = set()
        self._closed = False

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> Subscription:
        """Create a subscription that observes only future publishes.

        Must be called from the event loop that will receive on it unless
        ``loop`` is given.
        """
        if loop is None:
            loop = asyncio.get_running_loop()
        subscription = Subscription(self, self._capacity, loop)
        with self._lock:
            self._subscribers.add(subscription)
            SUBSCRIBERS.set(len(self._subscribers))
        return subscription

    def publish(self, line: str) -> int:
        """Queue a line for every live subscription. Safe from any thread.

        Returns:
            Number of subscriptions the line was queued for
        """
        with self._lock:
            if self._closed:
                return 0
            dead = [sub for sub in self._subscribers if not sub._push(line)]
            for sub in dead:
                # Owning loop is gone; nobody can receive on it any more
                self._subscribers.discard(sub)
                sub._closed = True
            if dead:
                SUBSCRIBERS.set(len(self._subscribers))
            return len(self._subscribers)

    def close(self) -> None:
        """Mark the producer as finished and wake every receiver."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for sub in self._subscribers:
                sub._wake()

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers.discard(subscription)
            SUBSCRIBERS.set(len(self._subscribers))


__all__ = ["BroadcastBus", "Subscription", "DEFAULT_CAPACITY"]
