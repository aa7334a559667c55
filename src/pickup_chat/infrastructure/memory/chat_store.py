"""In-memory ChatRepository for the development backend and tests."""
from __future__ import annotations

import dataclasses
import itertools
from datetime import datetime
from typing import Any

from pickup_chat.domain.entities.event import EventSummary
from pickup_chat.domain.entities.message import Message
from pickup_chat.domain.entities.user import UserProfile
from pickup_chat.domain.value_objects.ids import Confirmed


class InMemoryChatStore:
    def __init__(self) -> None:
        self._users: dict[str, UserProfile] = {}
        self._events: dict[int, EventSummary] = {}
        self._messages: dict[int, Message] = {}
        self._ids = itertools.count(1)

    # -- seeding -------------------------------------------------------------

    def add_user(self, user: UserProfile) -> UserProfile:
        self._users[user.id] = user
        return user

    def add_event(self, event: EventSummary) -> EventSummary:
        self._events[event.id] = event
        return event

    # -- DirectoryReader -------------------------------------------------------

    async def get_user(self, user_id: str) -> UserProfile | None:
        return self._users.get(user_id)

    async def get_event(self, event_id: int) -> EventSummary | None:
        return self._events.get(event_id)

    async def events_for_member(self, user_id: str) -> list[EventSummary]:
        return [e for e in self._events.values() if e.is_member(user_id)]

    # -- MessageReader -----------------------------------------------------------

    async def list_for_event(self, event_id: int) -> list[Message]:
        rows = [m for m in self._messages.values() if m.event_id == event_id]
        rows.sort(key=lambda m: (m.created_at, m.server_id or 0))
        return rows

    # -- MessageWriter -------------------------------------------------------------

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
    ) -> Message:
        message_id = next(self._ids)
        message = Message(
            ref=Confirmed(message_id),
            event_id=event_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            message_type=message_type,
            metadata=metadata,
            read_by=frozenset({sender_id}),
            created_at=created_at,
            sender=self._users.get(sender_id),
        )
        self._messages[message_id] = message
        return message

    async def add_reader(self, message_ids: list[int], user_id: str) -> int:
        changed = 0
        for message_id in message_ids:
            message = self._messages.get(message_id)
            if message is None or user_id in message.read_by:
                continue
            self._messages[message_id] = dataclasses.replace(
                message, read_by=message.read_by | {user_id},
            )
            changed += 1
        return changed

    async def delete(self, message_ids: list[int]) -> int:
        removed = [self._messages.pop(i, None) for i in message_ids]
        return sum(1 for m in removed if m is not None)
