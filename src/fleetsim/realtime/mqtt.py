"""MQTT transport.

paho-mqtt runs its network loop on a background thread; every callback is
bridged onto the hub's asyncio loop with ``call_soon_threadsafe`` so the
rest of the hub only ever sees asyncio primitives.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from fleetsim import _constants as C
from fleetsim._redact import redact_settings
from fleetsim.config import MqttSettings
from fleetsim.exceptions import FleetSimTransportError

_logger = logging.getLogger(__name__)

_EOF = object()


def _default_client_factory(settings: MqttSettings) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=settings.client_id,
        protocol=mqtt.MQTTv5,
    )


class MqttTransport:
    """Threaded paho-mqtt client exposed through the hub's transport interface.

    Inbound text arrives on ``settings.topic``. Outbound envelopes are
    published to ``settings.publish_topic`` (defaults to the same topic).
    """

    def __init__(
        self,
        settings: MqttSettings,
        *,
        client_factory: Callable[[MqttSettings], Any] | None = None,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory or _default_client_factory
        self._client: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        self._connected: asyncio.Future[None] | None = None
        self._closing = False
        self._close_code: int | None = None

    @property
    def url(self) -> str:
        scheme = "mqtts" if self._settings.tls else "mqtt"
        return f"{scheme}://{self._settings.host}:{self._settings.port}/{self._settings.topic}"

    @property
    def close_code(self) -> int | None:
        return self._close_code

    @property
    def publish_topic(self) -> str:
        return self._settings.publish_topic or self._settings.topic

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _on_connect(self, client: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any) -> None:
        if reason_code.value != 0:
            _logger.warning("MQTT connect failed: %s", reason_code)
            self._threadsafe(self._fail_connect, f"MQTT connect refused: {reason_code}")
            return
        _logger.debug("MQTT connected reason=%s, subscribing topic=%s", reason_code, self._settings.topic)
        client.subscribe(self._settings.topic, qos=0)
        self._threadsafe(self._resolve_connect)

    def _on_message(self, _client: Any, _userdata: Any, msg: Any) -> None:
        try:
            text = msg.payload.decode("utf-8")
        except UnicodeDecodeError:
            _logger.debug("MQTT payload is not UTF-8 topic=%s", msg.topic, exc_info=True)
            return
        _logger.debug("MQTT message topic=%s bytes=%d", msg.topic, len(msg.payload))
        self._threadsafe(self._inbox.put_nowait, text)

    def _on_disconnect(self, _client: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any) -> None:
        if self._closing:
            return
        _logger.debug("MQTT disconnected: %s", reason_code)
        self._threadsafe(self._mark_lost, f"MQTT connection lost: {reason_code}")

    # ------------------------------------------------------------------
    # Loop-side state changes
    # ------------------------------------------------------------------

    def _threadsafe(self, callback: Callable[..., Any], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(callback, *args)

    def _resolve_connect(self) -> None:
        if self._connected is not None and not self._connected.done():
            self._connected.set_result(None)

    def _fail_connect(self, message: str) -> None:
        if self._connected is not None and not self._connected.done():
            self._connected.set_exception(FleetSimTransportError(message, url=self.url))

    def _mark_lost(self, message: str) -> None:
        self._close_code = C.CLOSE_ABNORMAL
        self._fail_connect(message)
        self._inbox.put_nowait(_EOF)

    # ------------------------------------------------------------------
    # Transport interface
    # ------------------------------------------------------------------

    async def open(self) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._connected = loop.create_future()
        settings = self._settings

        client = self._client_factory(settings)
        client.enable_logger(_logger)
        if settings.username:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()
        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect
        self._client = client

        _logger.debug("MQTT connecting settings=%s", redact_settings(dataclasses.asdict(settings)))
        try:
            await loop.run_in_executor(
                None,
                lambda: client.connect(settings.host, settings.port, keepalive=settings.keepalive),
            )
        except OSError as exc:
            self._client = None
            raise FleetSimTransportError(f"MQTT connect failed: {exc}", url=self.url) from exc
        client.loop_start()
        try:
            await self._connected
        except BaseException:
            await self._shutdown(C.CLOSE_ABNORMAL)
            raise

    async def send(self, text: str) -> None:
        client = self._client
        if client is None or self._close_code is not None:
            raise FleetSimTransportError("MQTT transport is not open", url=self.url)
        info = client.publish(self.publish_topic, text, qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise FleetSimTransportError(f"MQTT publish failed rc={info.rc}", url=self.url)

    async def messages(self) -> AsyncIterator[str]:
        while True:
            item = await self._inbox.get()
            if item is _EOF:
                return
            yield item

    async def close(self, code: int = C.CLOSE_NORMAL) -> None:
        await self._shutdown(code)

    async def _shutdown(self, code: int) -> None:
        client = self._client
        self._client = None
        self._closing = True
        if self._close_code is None:
            self._close_code = code
        self._inbox.put_nowait(_EOF)
        if client is None:
            return
        try:
            _logger.debug("MQTT disconnect requested")
            client.disconnect()
        finally:
            await asyncio.get_running_loop().run_in_executor(None, client.loop_stop)
            _logger.debug("MQTT network loop stopped")
