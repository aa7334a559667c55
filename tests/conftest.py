"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Callable

import pytest

from pickup_chat.application.dto.notice import Notice
from pickup_chat.application.dto.principal import Principal
from pickup_chat.application.exceptions import AppError
from pickup_chat.client.push_channel import PushChannelClient
from pickup_chat.client.session import ChatSession
from pickup_chat.domain.entities.conversation import ConversationSummary
from pickup_chat.domain.entities.event import EventSummary
from pickup_chat.domain.entities.message import Message, count_unread
from pickup_chat.domain.entities.user import UserProfile
from pickup_chat.domain.value_objects.ids import Confirmed, ConversationKey, Pending

ME = "user-a"
HOST = "host-1"
OTHER = "user-b"

T0 = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_message(
    message_id: int | str,
    *,
    content: str = "hello",
    sender_id: str = OTHER,
    receiver_id: str | None = ME,
    event_id: int = 1,
    at: datetime | None = None,
    minutes: float = 0,
    read_by: set[str] | None = None,
) -> Message:
    ref = Confirmed(message_id) if isinstance(message_id, int) else Pending(message_id)
    return Message(
        ref=ref,
        event_id=event_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        content=content,
        created_at=(at or T0) + timedelta(minutes=minutes),
        read_by=frozenset(read_by if read_by is not None else {sender_id}),
    )


def make_event(event_id: int = 1, *, title: str = "Sunday Pickup Basketball", sport: str = "basketball") -> EventSummary:
    return EventSummary(
        id=event_id,
        title=title,
        sport=sport,
        host_id=HOST,
        participant_ids=frozenset({ME, OTHER}),
    )


def make_summary(
    event_id: int = 1,
    *,
    other: UserProfile | None = None,
    unread: int = 0,
    title: str = "Sunday Pickup Basketball",
    sport: str = "basketball",
    last_message: Message | None = None,
) -> ConversationSummary:
    return ConversationSummary(
        event=make_event(event_id, title=title, sport=sport),
        last_message=last_message,
        unread_count=unread,
        other_participant=other,
    )


class _FakeHandle:
    def __init__(self, when: float, seq: int, callback: Callable[[], None]) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimer:
    """Deterministic Clock + Scheduler: time only moves on ``advance``."""

    def __init__(self, start: datetime = T0) -> None:
        self._start = start
        self.elapsed = 0.0
        self._handles: list[_FakeHandle] = []
        self._seq = itertools.count()

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self.elapsed)

    def call_later(self, delay: float, callback: Callable[[], None]) -> _FakeHandle:
        handle = _FakeHandle(self.elapsed + delay, next(self._seq), callback)
        self._handles.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self._handles.remove(handle)
            self.elapsed = handle.when
            handle.callback()
        self.elapsed = target

    @property
    def pending(self) -> int:
        return sum(1 for h in self._handles if not h.cancelled)


@dataclass
class RecordingNotifier:
    notices: list[Notice] = field(default_factory=list)
    redirects: int = 0

    def notify(self, notice: Notice) -> None:
        self.notices.append(notice)

    def redirect_to_login(self) -> None:
        self.redirects += 1

    @property
    def titles(self) -> list[str]:
        return [n.title for n in self.notices]


@dataclass
class FakeChatApi:
    """In-memory ChatApi; records every call and can be told to fail."""

    viewer_id: str = ME
    summaries: list[ConversationSummary] = field(default_factory=list)
    threads: dict[ConversationKey, list[Message]] = field(default_factory=dict)
    calls: list[tuple[Any, ...]] = field(default_factory=list)
    fetch_error: AppError | None = None
    send_error: AppError | None = None
    read_error: AppError | None = None
    clock: Callable[[], datetime] = lambda: T0
    send_gate: asyncio.Event | None = None
    read_gate: asyncio.Event | None = None
    closed: bool = False
    _ids: Any = field(default_factory=lambda: itertools.count(42))

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]

    async def list_conversations(self) -> list[ConversationSummary]:
        self.calls.append(("list_conversations",))
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.summaries)

    async def list_messages(self, event_id: int, other_user_id: str | None = None) -> list[Message]:
        self.calls.append(("list_messages", event_id, other_user_id))
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.threads.get(ConversationKey(event_id, other_user_id), []))

    async def send_message(
        self,
        event_id: int,
        content: str,
        receiver_id: str | None,
        message_type: str = "text",
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        self.calls.append(("send_message", event_id, content, receiver_id))
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.send_error is not None:
            raise self.send_error
        message = Message(
            ref=Confirmed(next(self._ids)),
            event_id=event_id,
            sender_id=self.viewer_id,
            receiver_id=receiver_id,
            content=content,
            message_type=message_type,
            metadata=metadata,
            read_by=frozenset({self.viewer_id}),
            created_at=self.clock(),
        )
        self.threads.setdefault(ConversationKey(event_id, receiver_id), []).append(message)
        return message

    async def mark_read(self, event_id: int, other_user_id: str | None = None) -> None:
        self.calls.append(("mark_read", event_id, other_user_id))
        if self.read_gate is not None:
            await self.read_gate.wait()
        if self.read_error is not None:
            raise self.read_error
        key = ConversationKey(event_id, other_user_id)
        thread = [m.with_reader(self.viewer_id) for m in self.threads.get(key, [])]
        self.threads[key] = thread
        self.summaries = [
            s.with_unread(count_unread(thread, self.viewer_id)) if s.key == key else s
            for s in self.summaries
        ]

    async def delete_chatroom(self, event_id: int, other_user_id: str | None = None) -> None:
        self.calls.append(("delete_chatroom", event_id, other_user_id))
        if self.send_error is not None:
            raise self.send_error
        key = ConversationKey(event_id, other_user_id)
        self.threads.pop(key, None)
        self.summaries = [s for s in self.summaries if s.key != key]

    async def aclose(self) -> None:
        self.closed = True


class FakeTransport:
    """PushTransport double: frames pushed by the test come out of ``receive``."""

    def __init__(self, *, fail_open: bool = False, fail_send: bool = False) -> None:
        self.fail_open = fail_open
        self.fail_send = fail_send
        self.sent: list[dict[str, Any]] = []
        self.opened = 0
        self._open = False
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        if self.fail_open:
            raise OSError("connection refused")
        self.opened += 1
        self._open = True

    async def send_text(self, raw: str) -> None:
        if self.fail_send:
            raise ConnectionResetError("peer closed during handshake")
        self.sent.append(json.loads(raw))

    async def receive(self) -> AsyncIterator[str]:
        while True:
            item = await self._inbox.get()
            if item is None:
                self._open = False
                return
            yield item

    async def close(self) -> None:
        self._open = False
        self._inbox.put_nowait(None)

    def push(self, frame: dict[str, Any]) -> None:
        self.push_raw(json.dumps(frame))

    def push_raw(self, raw: str) -> None:
        self._inbox.put_nowait(raw)

    def drop(self) -> None:
        self._inbox.put_nowait(None)


def wire_message(message: Message) -> dict[str, Any]:
    """camelCase payload as the server puts it on the push channel."""
    return {
        "id": message.server_id,
        "eventId": message.event_id,
        "senderId": message.sender_id,
        "receiverId": message.receiver_id,
        "content": message.content,
        "messageType": message.message_type,
        "metadata": message.metadata,
        "readBy": sorted(message.read_by),
        "createdAt": message.created_at.isoformat(),
    }


async def settle(rounds: int = 10) -> None:
    """Let queued reader/handler callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def me() -> Principal:
    return Principal(user_id=ME, email="alex@example.com", first_name="Alex", last_name="Kim")


@pytest.fixture
def timer() -> FakeTimer:
    return FakeTimer()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def api(timer: FakeTimer) -> FakeChatApi:
    return FakeChatApi(clock=timer.now)


@dataclass
class SessionHarness:
    session: ChatSession
    api: FakeChatApi
    timer: FakeTimer
    notifier: RecordingNotifier
    transports: list[FakeTransport]
    push: PushChannelClient

    @property
    def transport(self) -> FakeTransport:
        return self.transports[-1]


@pytest.fixture
def harness(me: Principal, api: FakeChatApi, timer: FakeTimer, notifier: RecordingNotifier) -> SessionHarness:
    transports: list[FakeTransport] = []

    def factory() -> FakeTransport:
        transports.append(FakeTransport())
        return transports[-1]

    push = PushChannelClient(me.user_id, factory)
    session = ChatSession(
        me, api, push, notifier, timer,
        clock=timer, read_delay=1.0, fallback_seconds=1.5,
    )
    return SessionHarness(session, api, timer, notifier, transports, push)
