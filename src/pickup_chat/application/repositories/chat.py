from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from pickup_chat.domain.entities.event import EventSummary
from pickup_chat.domain.entities.message import Message
from pickup_chat.domain.entities.user import UserProfile


class DirectoryReader(Protocol):
    async def get_user(self, user_id: str) -> UserProfile | None: ...

    async def get_event(self, event_id: int) -> EventSummary | None: ...

    async def events_for_member(self, user_id: str) -> list[EventSummary]: ...


class MessageReader(Protocol):
    async def list_for_event(self, event_id: int) -> list[Message]:
        """All messages of an event, ascending by creation time then id."""
        ...


class MessageWriter(Protocol):
    async def create(
        self,
        *,
        event_id: int,
        sender_id: str,
        receiver_id: str | None,
        content: str,
        message_type: str,
        metadata: dict[str, Any] | None,
        created_at: datetime,
    ) -> Message: ...

    async def add_reader(self, message_ids: list[int], user_id: str) -> int: ...

    async def delete(self, message_ids: list[int]) -> int: ...


class ChatRepository(DirectoryReader, MessageReader, MessageWriter, Protocol):
    pass
