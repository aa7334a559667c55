from __future__ import annotations

from typing import Any

from pickup_chat.application.dto.principal import Principal
from pickup_chat.application.exceptions import ValidationError
from pickup_chat.application.policies.permissions import (
    assert_event_chat_access,
    assert_valid_receiver,
)
from pickup_chat.application.ports.clock import Clock
from pickup_chat.application.repositories.chat import ChatRepository
from pickup_chat.domain.entities.conversation import ConversationSummary
from pickup_chat.domain.entities.event import EventSummary
from pickup_chat.domain.entities.message import Message, count_unread
from pickup_chat.domain.value_objects.enums import MessageType
from pickup_chat.domain.value_objects.ids import ConversationKey


def _visible_to(message: Message, user_id: str) -> bool:
    return (
        message.receiver_id is None
        or message.sender_id == user_id
        or message.receiver_id == user_id
    )


async def _thread(
    event_id: int,
    principal: Principal,
    other_user_id: str | None,
    store: ChatRepository,
) -> list[Message]:
    key = ConversationKey(event_id, other_user_id)
    return [
        m for m in await store.list_for_event(event_id)
        if _visible_to(m, principal.user_id) and m.belongs_to(key, principal.user_id)
    ]


async def send_message(
    event_id: int,
    principal: Principal,
    content: str,
    receiver_id: str | None,
    message_type: str,
    metadata: dict[str, Any] | None,
    store: ChatRepository,
    clock: Clock,
) -> Message:
    event = assert_event_chat_access(principal, await store.get_event(event_id))
    text = content.strip()
    if not text:
        raise ValidationError("Message content is empty")
    if message_type not in MessageType.__members__.values():
        raise ValidationError(f"Unknown message type: {message_type}")
    assert_valid_receiver(principal, event, receiver_id)

    return await store.create(
        event_id=event.id,
        sender_id=principal.user_id,
        receiver_id=receiver_id,
        content=text,
        message_type=message_type,
        metadata=metadata,
        created_at=clock.now(),
    )


async def list_messages(
    event_id: int,
    principal: Principal,
    other_user_id: str | None,
    store: ChatRepository,
) -> list[Message]:
    assert_event_chat_access(principal, await store.get_event(event_id))
    return await _thread(event_id, principal, other_user_id, store)


async def list_chats(
    principal: Principal,
    store: ChatRepository,
) -> list[ConversationSummary]:
    """One summary per (event, counterparty) thread with at least one message."""
    user_id = principal.user_id
    summaries: list[ConversationSummary] = []
    for event in await store.events_for_member(user_id):
        threads: dict[str | None, list[Message]] = {}
        for message in await store.list_for_event(event.id):
            if not _visible_to(message, user_id):
                continue
            threads.setdefault(message.thread_for(user_id).counterparty_id, []).append(message)

        for counterparty_id, messages in threads.items():
            other = await store.get_user(counterparty_id) if counterparty_id else None
            summaries.append(
                ConversationSummary(
                    event=event,
                    last_message=messages[-1],
                    unread_count=count_unread(messages, user_id),
                    other_participant=other,
                )
            )
    summaries.sort(key=_last_activity, reverse=True)
    return summaries


async def mark_read(
    event_id: int,
    principal: Principal,
    other_user_id: str | None,
    store: ChatRepository,
) -> int:
    assert_event_chat_access(principal, await store.get_event(event_id))
    unseen = [
        m.server_id for m in await _thread(event_id, principal, other_user_id, store)
        if m.server_id is not None and m.is_unread_for(principal.user_id)
    ]
    return await store.add_reader(unseen, principal.user_id)


async def delete_chatroom(
    event_id: int,
    principal: Principal,
    other_user_id: str | None,
    store: ChatRepository,
) -> int:
    """Remove the thread's messages for both participants."""
    assert_event_chat_access(principal, await store.get_event(event_id))
    ids = [
        m.server_id for m in await _thread(event_id, principal, other_user_id, store)
        if m.server_id is not None
    ]
    return await store.delete(ids)


def push_recipients(message: Message, event: EventSummary) -> set[str]:
    """Users who get ``new_message`` for ``message``; the sender gets ``message_sent``."""
    if message.receiver_id is not None:
        return {message.receiver_id}
    members = set(event.participant_ids) | {event.host_id}
    members.discard(message.sender_id)
    return members


def _last_activity(summary: ConversationSummary) -> tuple[int, str]:
    if summary.last_message is None:
        return 0, ""
    return 1, summary.last_message.created_at.isoformat()
