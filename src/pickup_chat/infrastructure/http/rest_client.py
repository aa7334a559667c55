"""httpx implementation of the ChatApi port."""
from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from pickup_chat.api.v1.schemas.conversation import ConversationSchema
from pickup_chat.api.v1.schemas.message import MessageSchema, SendMessageRequest
from pickup_chat.application.exceptions import AppError, FetchError, SendError, UnauthorizedError
from pickup_chat.domain.entities.conversation import ConversationSummary
from pickup_chat.domain.entities.message import Message
from pickup_chat.domain.value_objects.enums import MessageType
from pickup_chat.infrastructure.http.mappers import conversation_to_entity, message_to_entity

logger = logging.getLogger(__name__)

_conversations = TypeAdapter(list[ConversationSchema])
_messages = TypeAdapter(list[MessageSchema])


class ChatRestClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_conversations(self) -> list[ConversationSummary]:
        resp = await self._request("GET", "/api/my-chats", FetchError)
        return [conversation_to_entity(c) for c in self._parse(_conversations, resp, FetchError)]

    async def list_messages(self, event_id: int, other_user_id: str | None = None) -> list[Message]:
        resp = await self._request(
            "GET", f"/api/events/{event_id}/messages", FetchError,
            params=_other_user(other_user_id),
        )
        return [message_to_entity(m) for m in self._parse(_messages, resp, FetchError)]

    async def send_message(
        self,
        event_id: int,
        content: str,
        receiver_id: str | None,
        message_type: str = MessageType.TEXT,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        try:
            kind = MessageType(message_type)
        except ValueError as exc:
            raise SendError(f"Unknown message type: {message_type}") from exc
        body = SendMessageRequest(
            content=content,
            receiver_id=receiver_id,
            message_type=kind,
            metadata=metadata,
        )
        resp = await self._request(
            "POST", f"/api/events/{event_id}/messages", SendError,
            json=body.model_dump(mode="json", by_alias=True),
        )
        return message_to_entity(self._parse(TypeAdapter(MessageSchema), resp, SendError))

    async def mark_read(self, event_id: int, other_user_id: str | None = None) -> None:
        await self._request(
            "POST", f"/api/events/{event_id}/messages/read", SendError,
            params=_other_user(other_user_id),
        )

    async def delete_chatroom(self, event_id: int, other_user_id: str | None = None) -> None:
        await self._request(
            "DELETE", f"/api/events/{event_id}/chatroom", SendError,
            params=_other_user(other_user_id),
        )

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: type[AppError],
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise error_cls(f"{method} {path}: {exc}") from exc

        if resp.status_code == 401:
            raise UnauthorizedError(_detail(resp))
        if resp.is_error:
            logger.warning("%s %s -> %d", method, path, resp.status_code)
            raise error_cls(_detail(resp))
        return resp

    @staticmethod
    def _parse(adapter: TypeAdapter[Any], resp: httpx.Response, error_cls: type[AppError]) -> Any:
        try:
            return adapter.validate_json(resp.content)
        except PydanticValidationError as exc:
            raise error_cls(f"unexpected response body: {exc.error_count()} errors") from exc


def _other_user(other_user_id: str | None) -> dict[str, str]:
    return {"otherUserId": other_user_id} if other_user_id else {}


def _detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("message") or body)
    return str(body)
