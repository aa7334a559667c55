from __future__ import annotations

from dataclasses import dataclass

from pickup_chat.domain.entities.message import Message
from pickup_chat.domain.value_objects.enums import InboundFrameType


@dataclass(frozen=True, slots=True)
class PushEvent:
    kind: InboundFrameType
    message: Message

    @property
    def notify(self) -> bool:
        """Only messages from someone else raise a user-facing notification."""
        return self.kind == InboundFrameType.NEW_MESSAGE
