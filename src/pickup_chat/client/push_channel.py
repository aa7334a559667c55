"""Push channel client: one authenticated bidirectional connection per session."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError as PydanticValidationError

from pickup_chat.application.dto.push import PushEvent
from pickup_chat.application.exceptions import TransportError
from pickup_chat.application.ports.transport import PushTransport
from pickup_chat.domain.entities.connection import ConnectionState
from pickup_chat.domain.value_objects.enums import InboundFrameType, MessageType
from pickup_chat.infrastructure.http.mappers import message_to_entity
from pickup_chat.infrastructure.ws.protocol import AuthFrame, ChatFrame, InboundFrame

logger = logging.getLogger(__name__)

OnPushEvent = Callable[[PushEvent], Awaitable[None]]
OnDisconnect = Callable[[], Awaitable[None]]
TransportFactory = Callable[[], PushTransport]


class PushChannelClient:
    """Owns the lifetime of the push connection.

    No automatic reconnect: a drop flips ``connection.connected`` to False and
    callers decide when to ``connect()`` again. Every connect re-sends the
    auth frame before anything else.
    """

    def __init__(self, user_id: str, transport_factory: TransportFactory) -> None:
        self._transport_factory = transport_factory
        self._transport: PushTransport | None = None
        self._reader: asyncio.Task[None] | None = None
        self._handlers: list[OnPushEvent] = []
        self._disconnect_handlers: list[OnDisconnect] = []
        self.connection = ConnectionState(user_id=user_id)

    @property
    def is_connected(self) -> bool:
        return (
            self.connection.connected
            and self._transport is not None
            and self._transport.is_open
        )

    def on_message(self, handler: OnPushEvent) -> None:
        self._handlers.append(handler)

    def on_disconnect(self, handler: OnDisconnect) -> None:
        self._disconnect_handlers.append(handler)

    async def connect(self) -> None:
        if self.is_connected:
            return
        await self.close()

        transport = self._transport_factory()
        try:
            await transport.open()
        except Exception as exc:
            self.connection.dropped()
            logger.warning("Push channel connect failed: %s", exc)
            raise TransportError(f"push channel unavailable: {exc}") from exc

        self._transport = transport
        self.connection.opened()
        try:
            await transport.send_text(AuthFrame(user_id=self.connection.user_id).to_json())
        except Exception as exc:
            self._transport = None
            self.connection.dropped()
            logger.warning("Push channel auth failed: %s", exc)
            try:
                await transport.close()
            except Exception:
                logger.debug("Error closing push transport", exc_info=True)
            raise TransportError(f"push channel unavailable: {exc}") from exc
        self.connection.auth_sent()
        logger.info("Push channel connected for user %s", self.connection.user_id)

        self._reader = asyncio.create_task(
            self._read_loop(transport), name=f"push-reader-{self.connection.user_id}",
        )

    async def send(
        self,
        event_id: int,
        content: str,
        message_type: str = MessageType.TEXT,
        metadata: dict[str, Any] | None = None,
        receiver_id: str | None = None,
    ) -> bool:
        """Send a chat frame. A no-op returning False while the channel is down."""
        if not self.is_connected or self._transport is None:
            logger.debug("Push channel not open, dropping chat frame for event %s", event_id)
            return False
        frame = ChatFrame(
            event_id=event_id,
            content=content,
            message_type=message_type,
            metadata=metadata,
            receiver_id=receiver_id,
        )
        try:
            await self._transport.send_text(frame.to_json())
        except Exception:
            logger.exception("Push channel send failed")
            await self._mark_dropped()
            return False
        return True

    async def close(self) -> None:
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        transport, self._transport = self._transport, None
        if transport is not None:
            try:
                await transport.close()
            except Exception:
                logger.debug("Error closing push transport", exc_info=True)
        self.connection.dropped()

    async def _read_loop(self, transport: PushTransport) -> None:
        try:
            async for raw in transport.receive():
                await self._dispatch(raw)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Push channel read error")
        if transport is self._transport:
            await self._mark_dropped()

    async def _dispatch(self, raw: str) -> None:
        try:
            frame = InboundFrame.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("Ignoring malformed push frame")
            return

        if frame.type not in InboundFrameType.__members__.values():
            if frame.type == "error":
                logger.warning("Push channel error frame: %s", frame.detail)
            else:
                logger.debug("Ignoring push frame of type %s", frame.type)
            return
        if frame.message is None:
            logger.warning("Push frame %s without message payload", frame.type)
            return

        event = PushEvent(kind=InboundFrameType(frame.type), message=message_to_entity(frame.message))
        for handler in list(self._handlers):
            try:
                await handler(event)
            except Exception:
                logger.exception("Push handler failed for %s", frame.type)

    async def _mark_dropped(self) -> None:
        was_connected = self.connection.connected
        self.connection.dropped()
        if not was_connected:
            return
        logger.info("Push channel disconnected for user %s", self.connection.user_id)
        for handler in list(self._disconnect_handlers):
            try:
                await handler()
            except Exception:
                logger.exception("Disconnect handler failed")
