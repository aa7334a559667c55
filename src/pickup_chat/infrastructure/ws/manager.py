"""In-process push connection registry, keyed by authenticated user id."""
from __future__ import annotations

import logging

from fastapi import WebSocket

from pickup_chat.api.v1.schemas.message import MessageSchema
from pickup_chat.domain.value_objects.enums import InboundFrameType
from pickup_chat.infrastructure.ws.protocol import InboundFrame

logger = logging.getLogger(__name__)


class ConnectionManager:
    """One user may hold several sockets (one per tab); each gets every frame."""

    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = {}

    def register(self, ws: WebSocket, user_id: str) -> None:
        self._connections.setdefault(user_id, set()).add(ws)
        logger.debug("WS authenticated: %s (users=%d)", user_id, len(self._connections))

    def disconnect(self, ws: WebSocket, user_id: str | None) -> None:
        if user_id is None:
            return
        conns = self._connections.get(user_id)
        if conns:
            conns.discard(ws)
            if not conns:
                del self._connections[user_id]
        logger.debug("WS disconnected: %s", user_id)

    async def send_message_frame(
        self,
        user_id: str,
        kind: InboundFrameType,
        message: MessageSchema,
    ) -> int:
        """Push one message frame to every socket of ``user_id``. Returns sockets reached."""
        raw = InboundFrame(type=str(kind), message=message).model_dump_json(by_alias=True)
        dead: list[WebSocket] = []
        sent = 0
        for ws in list(self._connections.get(user_id, set())):
            try:
                await ws.send_text(raw)
                sent += 1
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws, user_id)
        return sent

    async def fan_out(
        self,
        message: MessageSchema,
        sender_id: str,
        recipients: set[str],
    ) -> None:
        """``message_sent`` echo to the sender, ``new_message`` to everyone else."""
        await self.send_message_frame(sender_id, InboundFrameType.MESSAGE_SENT, message)
        for user_id in sorted(recipients - {sender_id}):
            await self.send_message_frame(user_id, InboundFrameType.NEW_MESSAGE, message)
