"""Chat session: wires push channel, message store, conversation list and read tracker.

Dependencies (current user, REST api, push client, notifier, timers) are
constructor parameters; nothing is looked up from ambient state.
"""
from __future__ import annotations

import logging
from typing import Any

from pickup_chat.application.dto.notice import Notice
from pickup_chat.application.dto.principal import Principal
from pickup_chat.application.dto.push import PushEvent
from pickup_chat.application.exceptions import (
    FetchError,
    SendError,
    TransportError,
    UnauthorizedError,
)
from pickup_chat.application.ports.api import ChatApi
from pickup_chat.application.ports.clock import Clock, Scheduler, SystemClock
from pickup_chat.application.ports.notifier import Notifier
from pickup_chat.client.conversation_list import ConversationList
from pickup_chat.client.grouping import MessageGroup, group_by_date
from pickup_chat.client.message_store import DEFAULT_FALLBACK_SECONDS, MessageStore
from pickup_chat.client.push_channel import PushChannelClient
from pickup_chat.client.read_tracker import DEFAULT_DELAY_SECONDS, ReadStateTracker
from pickup_chat.client.tasks import BackgroundTasks
from pickup_chat.domain.entities.connection import ConnectionState
from pickup_chat.domain.entities.conversation import ConversationSummary
from pickup_chat.domain.entities.message import Message
from pickup_chat.domain.value_objects.enums import MessageType, NoticeVariant
from pickup_chat.domain.value_objects.ids import ConversationKey, Pending, PendingTokenFactory

logger = logging.getLogger(__name__)


def resolve_recipient(key: ConversationKey) -> str | None:
    """The active thread decides the receiver; the event-wide thread has none."""
    return key.counterparty_id


class ChatSession:
    def __init__(
        self,
        user: Principal,
        api: ChatApi,
        push: PushChannelClient,
        notifier: Notifier,
        scheduler: Scheduler,
        *,
        clock: Clock | None = None,
        read_delay: float = DEFAULT_DELAY_SECONDS,
        fallback_seconds: float = DEFAULT_FALLBACK_SECONDS,
    ) -> None:
        self._user = user
        self._api = api
        self._push = push
        self._notifier = notifier
        self._clock = clock or SystemClock()
        self._tasks = BackgroundTasks()
        self._tokens = PendingTokenFactory()
        self._active: ConversationKey | None = None
        self._visible = True
        self.messages_loading = False
        self.messages_failed = False

        self.store = MessageStore(
            user.user_id,
            scheduler,
            fallback_seconds=fallback_seconds,
            on_expired=self._on_pending_expired,
        )
        self.conversations = ConversationList(api)
        self.tracker = ReadStateTracker(
            scheduler, self._send_read_receipt, delay=read_delay, tasks=self._tasks,
        )

        push.on_message(self._on_push)
        push.on_disconnect(self._on_disconnect)

    # -- lifecycle ----------------------------------------------------------

    @property
    def user(self) -> Principal:
        return self._user

    @property
    def connection(self) -> ConnectionState:
        return self._push.connection

    @property
    def active_key(self) -> ConversationKey | None:
        return self._active

    async def start(self) -> None:
        await self.reconnect()
        await self.refresh_conversations()

    async def reconnect(self) -> bool:
        try:
            await self._push.connect()
        except TransportError as exc:
            self._notifier.notify(Notice(
                title="Disconnected",
                description=f"Live updates unavailable: {exc.detail}",
                variant=NoticeVariant.DESTRUCTIVE,
            ))
            return False
        return True

    async def stop(self) -> None:
        self.tracker.cancel()
        self.store.reset(None)
        self._active = None
        await self._tasks.cancel_all()
        await self._push.close()
        await self._api.aclose()

    async def drain(self) -> None:
        """Wait for background refreshes and read-receipts to settle."""
        await self._tasks.drain()

    # -- conversation selection ---------------------------------------------

    async def open_conversation(self, key: ConversationKey) -> None:
        if key != self._active:
            self._active = key
            self.store.reset(key)
            self.messages_failed = False
        self._observe_read_state()
        await self.refresh_messages()

    def close_conversation(self) -> None:
        self._active = None
        self.store.reset(None)
        self.tracker.cancel()

    def set_visible(self, visible: bool) -> None:
        self._visible = visible
        self._observe_read_state()

    # -- fetches -------------------------------------------------------------

    async def refresh_conversations(self) -> None:
        try:
            ok = await self.conversations.refresh()
        except UnauthorizedError:
            self._unauthorized()
            return
        if not ok and self.conversations.load_failed:
            self._notifier.notify(Notice(
                title="Error",
                description="Failed to load conversations.",
                variant=NoticeVariant.DESTRUCTIVE,
            ))

    async def refresh_messages(self) -> None:
        key = self._active
        if key is None:
            return
        self.messages_loading = True
        try:
            messages = await self._api.list_messages(key.event_id, key.counterparty_id)
        except UnauthorizedError:
            self.messages_loading = False
            self._unauthorized()
            return
        except FetchError as exc:
            if key == self._active:
                self.messages_loading = False
                self.messages_failed = True
            logger.warning("Failed to load messages for event %s: %s", key.event_id, exc.detail)
            return

        if key != self._active:
            logger.debug("Ignoring messages for inactive conversation %s", key)
            return
        self.messages_loading = False
        self.messages_failed = False
        self.store.reconcile(messages)
        self._after_store_change()

    # -- sending ---------------------------------------------------------------

    async def send(
        self,
        content: str,
        message_type: str = MessageType.TEXT,
        metadata: dict[str, Any] | None = None,
    ) -> Message | None:
        text = content.strip()
        key = self._active
        if not text or key is None:
            return None
        if message_type not in {t.value for t in MessageType}:
            logger.warning("Refusing to send unknown message type %r", message_type)
            self._notifier.notify(Notice(
                title="Error",
                description=f"Unsupported message type: {message_type}",
                variant=NoticeVariant.DESTRUCTIVE,
            ))
            return None

        receiver_id = resolve_recipient(key)
        ref = self._tokens.next()
        optimistic = Message(
            ref=ref,
            event_id=key.event_id,
            sender_id=self._user.user_id,
            receiver_id=receiver_id,
            content=text,
            message_type=message_type,
            metadata=metadata,
            read_by=frozenset({self._user.user_id}),
            created_at=self._clock.now(),
            sender=self._user.profile,
        )
        self.store.append_optimistic(optimistic)

        try:
            confirmed = await self._api.send_message(
                key.event_id, text, receiver_id, message_type, metadata,
            )
        except UnauthorizedError:
            self.store.remove_pending(ref)
            self._unauthorized()
            return None
        except SendError as exc:
            self.store.remove_pending(ref)
            logger.warning("Send failed for event %s: %s", key.event_id, exc.detail)
            self._notifier.notify(Notice(
                title="Error",
                description="Failed to send message. Please try again.",
                variant=NoticeVariant.DESTRUCTIVE,
            ))
            return None

        if key == self._active:
            self.store.confirm(ref, confirmed)
            self.conversations.note_message(key, confirmed)
            self._after_store_change()
        return confirmed

    async def delete_chatroom(self) -> bool:
        key = self._active
        if key is None:
            return False
        try:
            await self._api.delete_chatroom(key.event_id, key.counterparty_id)
        except UnauthorizedError:
            self._unauthorized()
            return False
        except SendError as exc:
            logger.warning("Delete chatroom failed for event %s: %s", key.event_id, exc.detail)
            self._notifier.notify(Notice(
                title="Error",
                description="Failed to delete chatroom. Please try again.",
                variant=NoticeVariant.DESTRUCTIVE,
            ))
            return False

        self._notifier.notify(Notice(
            title="Chatroom Deleted",
            description="The chatroom has been deleted successfully.",
        ))
        self.conversations.remove(key)
        self.close_conversation()
        await self.refresh_conversations()
        return True

    # -- views -----------------------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        return self.store.merge()

    def groups(self) -> list[MessageGroup]:
        return group_by_date(self.store.merge(), self._clock.now())

    @property
    def total_unread(self) -> int:
        return self.conversations.total_unread

    def filter_conversations(self, query: str) -> list[ConversationSummary]:
        return self.conversations.filter(query)

    # -- callbacks ---------------------------------------------------------------

    async def _on_push(self, event: PushEvent) -> None:
        message = event.message
        if event.notify:
            self._notifier.notify(Notice(
                title="New message",
                description=message.content or "You have a new message",
            ))
        if self._active is not None and self.store.apply_push(message):
            self.conversations.note_message(self._active, message)
            self._after_store_change()
        self._tasks.spawn(self.refresh_conversations(), name="refresh-conversations")

    async def _on_disconnect(self) -> None:
        self._notifier.notify(Notice(
            title="Disconnected",
            description="Live chat connection lost. Reconnect to receive new messages.",
            variant=NoticeVariant.DESTRUCTIVE,
        ))

    def _on_pending_expired(self, ref: Pending) -> None:
        logger.debug("Pending %s expired, refetching", ref)
        self._tasks.spawn(self.refresh_messages(), name="refresh-messages")
        self._tasks.spawn(self.refresh_conversations(), name="refresh-conversations")

    async def _send_read_receipt(self, key: ConversationKey) -> None:
        try:
            await self._api.mark_read(key.event_id, key.counterparty_id)
        except UnauthorizedError:
            self._unauthorized()
            return
        if key != self._active:
            return
        self.store.mark_read(self._user.user_id)
        self.conversations.mark_read(key)
        self._observe_read_state()
        await self.refresh_conversations()

    # -- helpers -------------------------------------------------------------------

    def _after_store_change(self) -> None:
        if self._active is not None:
            self.conversations.set_unread(self._active, self.store.unread_count(self._user.user_id))
        self._observe_read_state()

    def _observe_read_state(self) -> None:
        latest = self.store.latest_confirmed()
        self.tracker.observe(
            self._active,
            unread=self.store.unread_count(self._user.user_id),
            latest=latest.ref if latest else None,
            visible=self._visible,
        )

    def _unauthorized(self) -> None:
        self._notifier.notify(Notice(
            title="Unauthorized",
            description="You are logged out. Logging in again...",
            variant=NoticeVariant.DESTRUCTIVE,
        ))
        self._notifier.redirect_to_login()

