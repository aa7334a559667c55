from __future__ import annotations

from datetime import datetime, timezone

from pickup_chat.api.v1.schemas.conversation import ConversationSchema, EventSchema
from pickup_chat.api.v1.schemas.message import MessageSchema, UserSchema
from pickup_chat.domain.entities.conversation import ConversationSummary
from pickup_chat.domain.entities.event import EventSummary
from pickup_chat.domain.entities.message import Message
from pickup_chat.domain.entities.user import UserProfile
from pickup_chat.domain.value_objects.ids import Confirmed


def _aware(ts: datetime) -> datetime:
    # server timestamps without an offset are UTC
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def user_to_entity(schema: UserSchema) -> UserProfile:
    return UserProfile(
        id=schema.id,
        email=schema.email,
        first_name=schema.first_name,
        last_name=schema.last_name,
        profile_image_url=schema.profile_image_url,
    )


def user_to_schema(profile: UserProfile) -> UserSchema:
    return UserSchema.model_validate(profile)


def message_to_entity(schema: MessageSchema) -> Message:
    return Message(
        ref=Confirmed(schema.id),
        event_id=schema.event_id,
        sender_id=schema.sender_id,
        receiver_id=schema.receiver_id,
        content=schema.content,
        message_type=schema.message_type,
        metadata=schema.metadata,
        read_by=frozenset(schema.read_by),
        created_at=_aware(schema.created_at),
        sender=user_to_entity(schema.sender) if schema.sender else None,
    )


def message_to_schema(message: Message) -> MessageSchema:
    if message.server_id is None:
        raise ValueError("only confirmed messages go on the wire")
    return MessageSchema(
        id=message.server_id,
        event_id=message.event_id,
        sender_id=message.sender_id,
        receiver_id=message.receiver_id,
        content=message.content,
        message_type=message.message_type,
        metadata=message.metadata,
        read_by=sorted(message.read_by),
        created_at=message.created_at,
        sender=user_to_schema(message.sender) if message.sender else None,
    )


def event_to_entity(schema: EventSchema) -> EventSummary:
    return EventSummary(
        id=schema.id,
        title=schema.title,
        sport=schema.sport,
        host_id=schema.host_id,
        participant_ids=frozenset(schema.accepted_users),
    )


def event_to_schema(event: EventSummary) -> EventSchema:
    return EventSchema(
        id=event.id,
        title=event.title,
        sport=event.sport,
        host_id=event.host_id,
        accepted_users=sorted(event.participant_ids),
    )


def conversation_to_entity(schema: ConversationSchema) -> ConversationSummary:
    return ConversationSummary(
        event=event_to_entity(schema.event),
        last_message=message_to_entity(schema.last_message) if schema.last_message else None,
        unread_count=max(schema.unread_count, 0),
        other_participant=user_to_entity(schema.other_participant) if schema.other_participant else None,
    )


def conversation_to_schema(summary: ConversationSummary) -> ConversationSchema:
    return ConversationSchema(
        event_id=summary.event_id,
        event=event_to_schema(summary.event),
        last_message=message_to_schema(summary.last_message) if summary.last_message else None,
        unread_count=summary.unread_count,
        other_participant=user_to_schema(summary.other_participant) if summary.other_participant else None,
    )
