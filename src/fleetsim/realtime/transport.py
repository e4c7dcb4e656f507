"""Real-time transports.

The hub talks to the backend through the structural :class:`Transport`
protocol so tests can pass small fakes while production uses
:class:`WebSocketTransport` (aiohttp) or
:class:`fleetsim.realtime.mqtt.MqttTransport` (paho-mqtt).
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import aiohttp

from fleetsim import _constants as C
from fleetsim._redact import redact_url
from fleetsim.exceptions import FleetSimTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural interface of one connection attempt.

    A transport instance is opened at most once. :meth:`messages` ends when
    the peer closes; :attr:`close_code` then tells a clean shutdown
    (``1000``) from an abnormal one.
    """

    @property
    def close_code(self) -> int | None:
        ...

    async def open(self) -> None:
        ...

    async def send(self, text: str) -> None:
        ...

    def messages(self) -> AsyncIterator[str]:
        ...

    async def close(self, code: int = C.CLOSE_NORMAL) -> None:
        ...


def with_token(url: str, token: str | None) -> str:
    """Append ``token`` as a query parameter, replacing any existing one."""
    if not token:
        return url
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "token"]
    query.append(("token", token))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class WebSocketTransport:
    """aiohttp WebSocket client transport.

    Parameters
    ----------
    url : str
        Endpoint, e.g. ``wss://host/RealTime``.
    token : str or None
        Bearer token sent as ``?token=``.
    session : aiohttp.ClientSession or None
        Shared HTTP session. When omitted the transport owns a private
        session and closes it with the connection.
    heartbeat : float or None
        WebSocket ping interval passed to aiohttp.
    """

    def __init__(
        self,
        url: str,
        *,
        token: str | None = None,
        session: aiohttp.ClientSession | None = None,
        heartbeat: float | None = None,
    ) -> None:
        self._url = with_token(url, token)
        self._session = session
        self._owns_session = session is None
        self._heartbeat = heartbeat
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._close_code: int | None = None

    @property
    def url(self) -> str:
        return redact_url(self._url)

    @property
    def close_code(self) -> int | None:
        if self._close_code is not None:
            return self._close_code
        return self._ws.close_code if self._ws is not None else None

    async def open(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        _logger.debug("WebSocket connecting url=%s", self.url)
        try:
            self._ws = await self._session.ws_connect(self._url, heartbeat=self._heartbeat)
        except aiohttp.WSServerHandshakeError as exc:
            await self._release_session()
            raise FleetSimTransportError(
                f"WebSocket handshake rejected: HTTP {exc.status}",
                url=self.url,
            ) from exc
        except (aiohttp.ClientError, OSError) as exc:
            await self._release_session()
            raise FleetSimTransportError(f"WebSocket connect failed: {exc}", url=self.url) from exc

    async def send(self, text: str) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            raise FleetSimTransportError("WebSocket is not open", url=self.url)
        try:
            await ws.send_str(text)
        except (aiohttp.ClientError, ConnectionError) as exc:
            raise FleetSimTransportError(f"WebSocket send failed: {exc}", url=self.url) from exc

    async def messages(self) -> AsyncIterator[str]:
        ws = self._ws
        if ws is None:
            raise FleetSimTransportError("WebSocket is not open", url=self.url)
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.BINARY:
                yield msg.data.decode("utf-8", errors="replace")
            elif msg.type == aiohttp.WSMsgType.ERROR:
                self._close_code = C.CLOSE_ABNORMAL
                raise FleetSimTransportError(
                    f"WebSocket error: {ws.exception()}",
                    url=self.url,
                    close_code=C.CLOSE_ABNORMAL,
                )
        if ws.close_code is None:
            self._close_code = C.CLOSE_ABNORMAL
        _logger.debug("WebSocket closed url=%s code=%s", self.url, self.close_code)

    async def close(self, code: int = C.CLOSE_NORMAL) -> None:
        ws = self._ws
        try:
            if ws is not None and not ws.closed:
                await ws.close(code=code, message=b"Client disconnect")
        finally:
            await self._release_session()

    async def _release_session(self) -> None:
        session = self._session
        if self._owns_session and session is not None:
            self._session = None
            await session.close()
