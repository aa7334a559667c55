from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from pickup_chat.api.v1.schemas.common import CamelModel
from pickup_chat.domain.value_objects.enums import MessageType


class UserSchema(CamelModel):
    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None


class SendMessageRequest(CamelModel):
    content: str = Field(min_length=1)
    receiver_id: str | None = None
    message_type: MessageType = MessageType.TEXT
    metadata: dict[str, Any] | None = None


class MessageSchema(CamelModel):
    id: int
    event_id: int
    sender_id: str
    receiver_id: str | None = None
    content: str
    message_type: str = MessageType.TEXT
    metadata: dict[str, Any] | None = None
    read_by: list[str] = []
    created_at: datetime
    sender: UserSchema | None = None
