"""Push-channel frame models."""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from pickup_chat.api.v1.schemas.message import MessageSchema
from pickup_chat.domain.value_objects.enums import MessageType


class _Frame(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class AuthFrame(_Frame):
    """Client → Server, first frame after the transport opens."""

    type: Literal["auth"] = "auth"
    user_id: str = Field(alias="userId")


class ChatFrame(_Frame):
    """Client → Server."""

    type: Literal["chat"] = "chat"
    event_id: int = Field(alias="eventId")
    content: str
    message_type: str = Field(default=MessageType.TEXT, alias="messageType")
    metadata: dict[str, Any] | None = None
    receiver_id: str | None = Field(default=None, alias="receiverId")


class InboundFrame(_Frame):
    """Server → Client."""

    type: str  # new_message | message_sent | error
    message: MessageSchema | None = None
    detail: str | None = None
