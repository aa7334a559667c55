"""aiohttp WebSocket implementation of the PushTransport port."""
from __future__ import annotations

import logging
from typing import AsyncIterator

import aiohttp

logger = logging.getLogger(__name__)


class AiohttpPushTransport:
    def __init__(
        self,
        url: str,
        *,
        heartbeat: float | None = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._url = url
        self._heartbeat = heartbeat
        self._session = session
        self._owns_session = session is None
        self._ws: aiohttp.ClientWebSocketResponse | None = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def open(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._ws = await self._session.ws_connect(self._url, heartbeat=self._heartbeat)
        logger.debug("WS opened: %s", self._url)

    async def send_text(self, raw: str) -> None:
        if self._ws is None:
            raise RuntimeError("transport is not open")
        await self._ws.send_str(raw)

    async def receive(self) -> AsyncIterator[str]:
        if self._ws is None:
            return
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data
            elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                logger.debug("WS closed by peer: %s", msg.type)
                break

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
