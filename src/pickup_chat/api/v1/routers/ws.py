from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from pickup_chat.application.dto.principal import Principal
from pickup_chat.application.exceptions import AppError
from pickup_chat.domain.value_objects.enums import OutboundFrameType
from pickup_chat.infrastructure.http.mappers import message_to_schema
from pickup_chat.infrastructure.ws.manager import ConnectionManager
from pickup_chat.infrastructure.ws.protocol import AuthFrame, ChatFrame, InboundFrame
from pickup_chat.services import chat_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/ws")
async def ws_chat(websocket: WebSocket) -> None:
    await websocket.accept()
    manager: ConnectionManager = websocket.app.state.manager
    user_id: str | None = None
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame_type = json.loads(raw).get("type")
            except (ValueError, AttributeError):
                await _send_error(websocket, "invalid_payload")
                continue

            if frame_type == OutboundFrameType.AUTH:
                user_id = await _handle_auth(websocket, manager, raw, user_id)
            elif frame_type == OutboundFrameType.CHAT:
                if user_id is None:
                    await _send_error(websocket, "not_authenticated")
                    continue
                await _handle_chat(websocket, manager, raw, user_id)
            else:
                await _send_error(websocket, f"unknown_type:{frame_type}")
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", user_id)
    finally:
        manager.disconnect(websocket, user_id)


async def _handle_auth(
    ws: WebSocket,
    manager: ConnectionManager,
    raw: str,
    current: str | None,
) -> str | None:
    try:
        frame = AuthFrame.model_validate_json(raw)
    except PydanticValidationError:
        await _send_error(ws, "invalid_auth")
        return current
    if current is not None and current != frame.user_id:
        manager.disconnect(ws, current)
    manager.register(ws, frame.user_id)
    return frame.user_id


async def _handle_chat(
    ws: WebSocket,
    manager: ConnectionManager,
    raw: str,
    user_id: str,
) -> None:
    try:
        frame = ChatFrame.model_validate_json(raw)
    except PydanticValidationError as exc:
        await _send_error(ws, "invalid_data", str(exc.error_count()))
        return

    store = ws.app.state.store
    principal = Principal(user_id=user_id)
    try:
        message = await chat_service.send_message(
            frame.event_id,
            principal,
            frame.content,
            frame.receiver_id,
            frame.message_type,
            frame.metadata,
            store,
            ws.app.state.clock,
        )
    except AppError as exc:
        await _send_error(ws, "send_failed", exc.detail)
        return

    event = await store.get_event(frame.event_id)
    if event is not None:
        await manager.fan_out(
            message_to_schema(message), user_id, chat_service.push_recipients(message, event),
        )


async def _send_error(ws: WebSocket, code: str, detail: str | None = None) -> None:
    frame = InboundFrame(type="error", detail=f"{code}: {detail}" if detail else code)
    await ws.send_text(frame.model_dump_json(exclude_none=True))
