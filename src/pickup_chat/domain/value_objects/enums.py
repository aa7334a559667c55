from __future__ import annotations

from enum import StrEnum


class MessageType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    LOCATION = "location"


class OutboundFrameType(StrEnum):
    AUTH = "auth"
    CHAT = "chat"


class InboundFrameType(StrEnum):
    NEW_MESSAGE = "new_message"
    MESSAGE_SENT = "message_sent"


class ReadPhase(StrEnum):
    IDLE = "idle"
    ARMED = "armed_for_read"
    SENT = "sent"


class NoticeVariant(StrEnum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"
