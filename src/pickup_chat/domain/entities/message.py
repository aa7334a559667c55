from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from pickup_chat.domain.entities.user import UserProfile
from pickup_chat.domain.value_objects.enums import MessageType
from pickup_chat.domain.value_objects.ids import Confirmed, ConversationKey, MessageRef, Pending


@dataclass(frozen=True, slots=True)
class Message:
    ref: MessageRef
    event_id: int
    sender_id: str
    content: str
    created_at: datetime
    receiver_id: str | None = None
    message_type: str = MessageType.TEXT
    metadata: dict[str, Any] | None = None
    read_by: frozenset[str] = field(default_factory=frozenset)
    sender: UserProfile | None = None

    @property
    def pending(self) -> bool:
        return isinstance(self.ref, Pending)

    @property
    def server_id(self) -> int | None:
        return self.ref.id if isinstance(self.ref, Confirmed) else None

    def counterparty_for(self, viewer_id: str) -> str | None:
        if self.sender_id == viewer_id:
            return self.receiver_id
        return self.sender_id

    def thread_for(self, viewer_id: str) -> ConversationKey:
        """Event-wide messages (no receiver) form the thread without a counterparty."""
        if self.receiver_id is None:
            return ConversationKey(self.event_id, None)
        return ConversationKey(self.event_id, self.counterparty_for(viewer_id))

    def belongs_to(self, key: ConversationKey, viewer_id: str) -> bool:
        return self.thread_for(viewer_id) == key

    def is_unread_for(self, user_id: str) -> bool:
        return self.sender_id != user_id and user_id not in self.read_by

    def with_reader(self, user_id: str) -> Message:
        if user_id in self.read_by:
            return self
        return dataclasses.replace(self, read_by=self.read_by | {user_id})

    def same_payload(self, other: Message) -> bool:
        """True when ``other`` carries the same sender, conversation and content."""
        return (
            self.sender_id == other.sender_id
            and self.event_id == other.event_id
            and self.receiver_id == other.receiver_id
            and self.content == other.content
        )


def count_unread(messages: Iterable[Message], user_id: str) -> int:
    return sum(1 for m in messages if not m.pending and m.is_unread_for(user_id))
