"""Subscriber handles for the distribution hub.

Each subscription owns an independent bounded buffer. Publishing appends to
the buffer and never waits for the consumer: when the buffer is full the
oldest pending update is discarded and counted in :attr:`Subscription.dropped`.
"""

from __future__ import annotations

import asyncio
import enum
import threading
from collections import deque
from collections.abc import AsyncIterator

from fleetsim.exceptions import SubscriptionClosedError
from fleetsim.models.realtime import RealtimeUpdate


class SubscriptionFilter(enum.StrEnum):
    """Payload kinds a subscriber can ask for."""

    ALL = "all"
    LOCATION = "location"
    SENSOR = "sensor"
    ALERT = "alert"
    FUEL_ALERT = "fuel_alert"

    def matches(self, update: RealtimeUpdate) -> bool:
        if self is SubscriptionFilter.ALL:
            return True
        if self is SubscriptionFilter.LOCATION:
            return update.is_location
        if self is SubscriptionFilter.SENSOR:
            return update.is_sensor
        if self is SubscriptionFilter.ALERT:
            return update.is_alert
        return update.is_fuel_alert


def _resolve(waiter: asyncio.Future[None]) -> None:
    if not waiter.done():
        waiter.set_result(None)


class Subscription:
    """Stream of :class:`RealtimeUpdate` values matching one filter.

    Iterate with ``async for`` or poll with :meth:`get` / :meth:`get_nowait`.
    Iteration ends once the subscription is closed by
    :meth:`DistributionHub.unsubscribe`; anything still buffered at that point
    is discarded.
    """

    def __init__(
        self,
        filter: SubscriptionFilter = SubscriptionFilter.ALL,
        vehicle_id: str | None = None,
        *,
        maxsize: int = 0,
    ) -> None:
        self.filter = SubscriptionFilter(filter)
        self.vehicle_id = vehicle_id
        self.maxsize = maxsize
        self._buffer: deque[RealtimeUpdate] = deque(maxlen=maxsize or None)
        self._lock = threading.Lock()
        self._waiter: asyncio.Future[None] | None = None
        self._closed = False
        self.dropped = 0
        self.delivered = 0

    def __repr__(self) -> str:
        scope = f" vehicle={self.vehicle_id}" if self.vehicle_id else ""
        return f"<Subscription filter={self.filter.value}{scope} pending={len(self)} closed={self._closed}>"

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def closed(self) -> bool:
        return self._closed

    def matches(self, update: RealtimeUpdate) -> bool:
        if self.vehicle_id is not None and update.vehicle_id != self.vehicle_id:
            return False
        return self.filter.matches(update)

    # ------------------------------------------------------------------
    # Producer side (hub)
    # ------------------------------------------------------------------

    def _push(self, update: RealtimeUpdate) -> bool:
        with self._lock:
            if self._closed:
                return False
            if self.maxsize and len(self._buffer) >= self.maxsize:
                self.dropped += 1
            self._buffer.append(update)
            self.delivered += 1
        self._wake()
        return True

    def _close(self) -> None:
        with self._lock:
            self._closed = True
            self._buffer.clear()
        self._wake()

    def _wake(self) -> None:
        waiter = self._waiter
        if waiter is None or waiter.done():
            return
        loop = waiter.get_loop()
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            _resolve(waiter)
        else:
            loop.call_soon_threadsafe(_resolve, waiter)

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def get_nowait(self) -> RealtimeUpdate:
        """Return the oldest pending update.

        Raises
        ------
        asyncio.QueueEmpty
            Nothing is buffered.
        SubscriptionClosedError
            The subscription was closed.
        """
        with self._lock:
            if self._buffer:
                return self._buffer.popleft()
            if self._closed:
                raise SubscriptionClosedError("Subscription is closed")
        raise asyncio.QueueEmpty

    async def get(self) -> RealtimeUpdate:
        """Wait for the next update."""
        while True:
            try:
                return self.get_nowait()
            except asyncio.QueueEmpty:
                pass
            waiter = asyncio.get_running_loop().create_future()
            self._waiter = waiter
            try:
                # Re-check after publishing the waiter so a concurrent push is not missed.
                if self._buffer or self._closed:
                    continue
                await waiter
            finally:
                if self._waiter is waiter:
                    self._waiter = None

    def __aiter__(self) -> AsyncIterator[RealtimeUpdate]:
        return self

    async def __anext__(self) -> RealtimeUpdate:
        try:
            return await self.get()
        except SubscriptionClosedError:
            raise StopAsyncIteration from None
