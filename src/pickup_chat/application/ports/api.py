from __future__ import annotations

from typing import Any, Protocol

from pickup_chat.domain.entities.conversation import ConversationSummary
from pickup_chat.domain.entities.message import Message


class ChatApi(Protocol):
    """REST collaborator consumed by the chat session."""

    async def list_conversations(self) -> list[ConversationSummary]: ...

    async def list_messages(self, event_id: int, other_user_id: str | None = None) -> list[Message]: ...

    async def send_message(
        self,
        event_id: int,
        content: str,
        receiver_id: str | None,
        message_type: str = "text",
        metadata: dict[str, Any] | None = None,
    ) -> Message: ...

    async def mark_read(self, event_id: int, other_user_id: str | None = None) -> None: ...

    async def delete_chatroom(self, event_id: int, other_user_id: str | None = None) -> None: ...

    async def aclose(self) -> None: ...
