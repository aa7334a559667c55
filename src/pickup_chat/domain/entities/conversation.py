from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from pickup_chat.domain.entities.event import EventSummary
from pickup_chat.domain.entities.message import Message
from pickup_chat.domain.entities.user import UserProfile
from pickup_chat.domain.value_objects.ids import ConversationKey


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    event: EventSummary
    last_message: Message | None
    unread_count: int
    other_participant: UserProfile | None = None

    @property
    def event_id(self) -> int:
        return self.event.id

    @property
    def key(self) -> ConversationKey:
        counterparty = self.other_participant.id if self.other_participant else None
        return ConversationKey(self.event.id, counterparty)

    def with_unread(self, count: int) -> ConversationSummary:
        return dataclasses.replace(self, unread_count=max(count, 0))

    def with_last_message(self, message: Message) -> ConversationSummary:
        return dataclasses.replace(self, last_message=message)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title, sport and counterparty."""
        needle = query.strip().lower()
        if not needle:
            return True
        haystack = [self.event.title, self.event.sport]
        if self.other_participant is not None:
            haystack.append(self.other_participant.display_name)
            if self.other_participant.email:
                haystack.append(self.other_participant.email)
        return any(needle in value.lower() for value in haystack if value)
