"""Real-time distribution hub.

Owns one logical connection to the backend and fans
:class:`RealtimeUpdate` values out to any number of local subscribers.

Connection states::

    disconnected -> connecting -> connected -> disconnected   (clean close, code 1000)
                         |            |
                         +-> errored <+                       (handshake failure, abnormal close,
                                                               transport error)

From ``errored`` a single reconnect is scheduled after
``reconnect_delay`` seconds, up to ``max_reconnect_attempts`` in a row. A
successful handshake resets the counter. When the bound is exceeded the hub
settles in ``disconnected`` with ``retries_exhausted=True`` and no timer
left behind; state listeners see that transition like any other.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import enum
import logging
import threading
from collections import deque
from collections.abc import Callable
from types import TracebackType

from fleetsim import _constants as C
from fleetsim._redact import redact_url
from fleetsim.config import HubConfig
from fleetsim.exceptions import EnvelopeError, FleetSimTransportError
from fleetsim.models.realtime import RealtimeUpdate
from fleetsim.realtime.envelope import decode_message, dumps_update, join_message
from fleetsim.realtime.mqtt import MqttTransport
from fleetsim.realtime.subscription import Subscription, SubscriptionFilter
from fleetsim.realtime.transport import Transport, WebSocketTransport

_logger = logging.getLogger(__name__)


class ConnectionState(enum.StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERRORED = "errored"


@dataclasses.dataclass(frozen=True)
class HubStatus:
    """Point-in-time view of the hub's connection."""

    state: ConnectionState
    retries_exhausted: bool = False
    reconnect_attempts: int = 0
    reconnect_pending: bool = False
    subscriber_count: int = 0
    last_error: str | None = None
    close_code: int | None = None

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED


StateListener = Callable[[HubStatus], None]
TransportFactory = Callable[[HubConfig], Transport]


def default_transport_factory(config: HubConfig) -> Transport:
    if config.transport == "mqtt":
        return MqttTransport(config.mqtt)
    return WebSocketTransport(config.url, token=config.token)


class DistributionHub:
    """Connection manager plus per-subscriber fan-out.

    Parameters
    ----------
    config : HubConfig or None
        Endpoint, reconnect policy, timeouts and buffer sizes.
    transport_factory : callable or None
        Builds a fresh :class:`Transport` for every connection attempt.
        Defaults to WebSocket or MQTT according to ``config.transport``.
    """

    def __init__(
        self,
        config: HubConfig | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._config = config or HubConfig()
        self._transport_factory = transport_factory or default_transport_factory

        self._registry_lock = threading.Lock()
        self._subscriptions: list[Subscription] = []
        self._listeners: list[StateListener] = []

        self._state = ConnectionState.DISCONNECTED
        self._attempts = 0
        self._retries_exhausted = False
        self._reconnect_pending = False
        self._last_error: str | None = None
        self._close_code: int | None = None

        self._supervisor: asyncio.Task[None] | None = None
        self._transport: Transport | None = None
        self._outbound: deque[RealtimeUpdate] = deque(maxlen=self._config.outbound_queue_size or None)
        self._outbound_ready = asyncio.Event()
        self._state_waiters: list[tuple[ConnectionState, asyncio.Future[HubStatus]]] = []

    async def __aenter__(self) -> DistributionHub:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    @property
    def config(self) -> HubConfig:
        return self._config

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> HubStatus:
        with self._registry_lock:
            subscriber_count = len(self._subscriptions)
        return HubStatus(
            state=self._state,
            retries_exhausted=self._retries_exhausted,
            reconnect_attempts=self._attempts,
            reconnect_pending=self._reconnect_pending,
            subscriber_count=subscriber_count,
            last_error=self._last_error,
            close_code=self._close_code,
        )

    def add_state_listener(self, listener: StateListener) -> None:
        with self._registry_lock:
            self._listeners.append(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        with self._registry_lock, contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    async def wait_for_state(self, state: ConnectionState, timeout: float | None = None) -> HubStatus:
        """Wait until the hub enters *state* (returns at once if it already is)."""
        if self._state == state:
            return self.status()
        future: asyncio.Future[HubStatus] = asyncio.get_running_loop().create_future()
        entry = (state, future)
        self._state_waiters.append(entry)
        try:
            async with asyncio.timeout(timeout):
                return await future
        finally:
            with contextlib.suppress(ValueError):
                self._state_waiters.remove(entry)

    def _set_state(self, state: ConnectionState) -> None:
        previous = self._state
        self._state = state
        status = self.status()
        if previous != state:
            _logger.debug("Hub state %s -> %s", previous, state)
        for wanted, future in list(self._state_waiters):
            if wanted == state and not future.done():
                future.set_result(status)
        with self._registry_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(status)
            except Exception:
                _logger.warning("Hub state listener %r failed", listener, exc_info=True)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Start the connection supervisor. A no-op while one is active."""
        if self._supervisor is not None and not self._supervisor.done():
            return
        self._attempts = 0
        self._retries_exhausted = False
        self._last_error = None
        self._outbound_ready.clear()
        self._supervisor = asyncio.create_task(self._supervise(), name="fleetsim-hub")

    async def disconnect(self) -> None:
        """Close the connection with code 1000 and cancel any pending reconnect.

        Idempotent.
        """
        task = self._supervisor
        self._supervisor = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._outbound.clear()
        self._reconnect_pending = False
        if self._state != ConnectionState.DISCONNECTED:
            self._close_code = C.CLOSE_NORMAL
            self._set_state(ConnectionState.DISCONNECTED)

    async def _supervise(self) -> None:
        config = self._config
        while True:
            clean = await self._run_connection()
            if clean:
                self._set_state(ConnectionState.DISCONNECTED)
                _logger.info("Hub connection closed cleanly")
                return
            if self._attempts >= config.max_reconnect_attempts:
                self._retries_exhausted = True
                _logger.warning(
                    "Hub giving up after %d reconnect attempts: %s",
                    self._attempts,
                    self._last_error,
                )
                self._set_state(ConnectionState.DISCONNECTED)
                return
            self._attempts += 1
            self._reconnect_pending = True
            _logger.info(
                "Hub reconnecting in %.1fs (attempt %d/%d)",
                config.reconnect_delay,
                self._attempts,
                config.max_reconnect_attempts,
            )
            try:
                await asyncio.sleep(config.reconnect_delay)
            finally:
                self._reconnect_pending = False

    async def _run_connection(self) -> bool:
        """One connection attempt. Returns ``True`` on a clean close."""
        config = self._config
        self._set_state(ConnectionState.CONNECTING)
        transport = self._transport_factory(config)
        try:
            async with asyncio.timeout(config.connect_timeout):
                await transport.open()
            self._transport = transport
            self._attempts = 0
            self._close_code = None
            self._set_state(ConnectionState.CONNECTED)
            _logger.info("Hub connected to %s", redact_url(config.url))

            await self._send(transport, join_message(config.fleet_id))
            await self._pump(transport)

            self._close_code = transport.close_code
            if self._close_code == C.CLOSE_NORMAL:
                await self._close_quietly(transport, C.CLOSE_NORMAL)
                return True
            self._last_error = f"connection closed abnormally (code={self._close_code})"
        except asyncio.CancelledError:
            await self._close_quietly(transport, C.CLOSE_NORMAL)
            raise
        except TimeoutError:
            self._last_error = "timed out"
        except (FleetSimTransportError, OSError) as exc:
            self._last_error = str(exc)
            if isinstance(exc, FleetSimTransportError) and exc.close_code is not None:
                self._close_code = exc.close_code
        except Exception as exc:
            _logger.warning("Unexpected error on hub connection", exc_info=True)
            self._last_error = f"{type(exc).__name__}: {exc}"
        finally:
            self._transport = None

        _logger.warning("Hub connection failed: %s", self._last_error)
        self._outbound.clear()
        await self._close_quietly(transport, C.CLOSE_ABNORMAL)
        self._set_state(ConnectionState.ERRORED)
        return False

    async def _pump(self, transport: Transport) -> None:
        """Read until the transport closes; forward outbound updates meanwhile."""
        reader = asyncio.create_task(self._read(transport))
        tasks: set[asyncio.Task[None]] = {reader}
        if self._config.forward_published:
            tasks.add(asyncio.create_task(self._forward(transport)))
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                task.result()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _read(self, transport: Transport) -> None:
        async for raw in transport.messages():
            self._handle_inbound(raw)

    async def _forward(self, transport: Transport) -> None:
        ready = self._outbound_ready
        while True:
            if not self._outbound:
                ready.clear()
                await ready.wait()
                continue
            update = self._outbound.popleft()
            await self._send(transport, dumps_update(update))

    async def _send(self, transport: Transport, text: str) -> None:
        try:
            async with asyncio.timeout(self._config.send_timeout):
                await transport.send(text)
        except TimeoutError as exc:
            raise FleetSimTransportError("Send timed out", url=redact_url(self._config.url)) from exc

    async def _close_quietly(self, transport: Transport, code: int) -> None:
        try:
            async with asyncio.timeout(self._config.send_timeout):
                await transport.close(code)
        except (FleetSimTransportError, OSError, TimeoutError):
            _logger.debug("Transport close failed", exc_info=True)

    def _handle_inbound(self, raw: str) -> None:
        try:
            update = decode_message(raw)
        except EnvelopeError as exc:
            _logger.debug("Ignoring malformed message: %s", exc)
            return
        if update is None:
            return
        self._fan_out(update)

    # ------------------------------------------------------------------
    # Subscriptions and publishing
    # ------------------------------------------------------------------

    def subscribe(
        self,
        filter: SubscriptionFilter = SubscriptionFilter.ALL,
        vehicle_id: str | None = None,
    ) -> Subscription:
        subscription = Subscription(filter, vehicle_id, maxsize=self._config.subscriber_queue_size)
        with self._registry_lock:
            self._subscriptions.append(subscription)
        _logger.debug("Subscribed %r", subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove *subscription*; it receives nothing further. Returns ``False`` if unknown."""
        with self._registry_lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                return False
        subscription._close()
        _logger.debug("Unsubscribed %r", subscription)
        return True

    def publish(self, update: RealtimeUpdate) -> int:
        """Deliver *update* to every matching subscriber without blocking.

        Returns the number of subscribers that received it. With
        ``forward_published`` and a live connection the update is also
        queued for the transport.
        """
        delivered = self._fan_out(update)
        if self._config.forward_published and self._state == ConnectionState.CONNECTED:
            self._outbound.append(update)
            self._outbound_ready.set()
        return delivered

    def _fan_out(self, update: RealtimeUpdate) -> int:
        with self._registry_lock:
            subscriptions = list(self._subscriptions)
        delivered = 0
        for subscription in subscriptions:
            if subscription.matches(update) and subscription._push(update):
                delivered += 1
        return delivered
