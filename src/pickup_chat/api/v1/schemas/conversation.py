from __future__ import annotations

from pickup_chat.api.v1.schemas.common import CamelModel
from pickup_chat.api.v1.schemas.message import MessageSchema, UserSchema


class EventSchema(CamelModel):
    id: int
    title: str
    sport: str
    host_id: str
    accepted_users: list[str] = []


class ConversationSchema(CamelModel):
    event_id: int
    event: EventSchema
    last_message: MessageSchema | None = None
    unread_count: int = 0
    other_participant: UserSchema | None = None
