from __future__ import annotations

import pytest

from pickup_chat.application.exceptions import SendError
from pickup_chat.client.read_tracker import ReadStateTracker
from pickup_chat.domain.value_objects.enums import ReadPhase
from pickup_chat.domain.value_objects.ids import Confirmed, ConversationKey
from tests.conftest import OTHER, FakeTimer

KEY = ConversationKey(1, OTHER)
OTHER_KEY = ConversationKey(2, OTHER)


class _Receipts:
    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[ConversationKey] = []
        self.error = error

    async def __call__(self, key: ConversationKey) -> None:
        self.sent.append(key)
        if self.error is not None:
            raise self.error


@pytest.fixture
def receipts():
    return _Receipts()


@pytest.fixture
def tracker(timer: FakeTimer, receipts: _Receipts) -> ReadStateTracker:
    return ReadStateTracker(timer, receipts, delay=1.0)


@pytest.mark.asyncio
async def test_receipt_sent_once_after_delay(tracker, timer, receipts):
    tracker.observe(KEY, unread=2, latest=Confirmed(5), visible=True)
    assert tracker.phase == ReadPhase.ARMED

    timer.advance(0.5)
    await tracker.drain()
    assert receipts.sent == []

    timer.advance(0.5)
    await tracker.drain()
    assert receipts.sent == [KEY]
    assert tracker.phase == ReadPhase.SENT

    # same view observed again: no second receipt
    tracker.observe(KEY, unread=2, latest=Confirmed(5), visible=True)
    timer.advance(5)
    await tracker.drain()
    assert receipts.sent == [KEY]


@pytest.mark.asyncio
async def test_nothing_unread_stays_idle(tracker, timer, receipts):
    tracker.observe(KEY, unread=0, latest=Confirmed(5), visible=True)
    tracker.observe(KEY, unread=3, latest=None, visible=True)
    timer.advance(2)
    await tracker.drain()

    assert tracker.phase == ReadPhase.IDLE
    assert receipts.sent == []


@pytest.mark.asyncio
async def test_hidden_view_disarms(tracker, timer, receipts):
    tracker.observe(KEY, unread=1, latest=Confirmed(5), visible=True)
    tracker.observe(KEY, unread=1, latest=Confirmed(5), visible=False)
    timer.advance(2)
    await tracker.drain()

    assert tracker.phase == ReadPhase.IDLE
    assert receipts.sent == []

    tracker.observe(KEY, unread=1, latest=Confirmed(5), visible=True)
    timer.advance(1)
    await tracker.drain()
    assert receipts.sent == [KEY]


@pytest.mark.asyncio
async def test_switch_before_delay_cancels(tracker, timer, receipts):
    tracker.observe(KEY, unread=1, latest=Confirmed(5), visible=True)
    timer.advance(0.5)
    tracker.observe(OTHER_KEY, unread=0, latest=Confirmed(9), visible=True)
    timer.advance(2)
    await tracker.drain()

    assert receipts.sent == []
    assert tracker.key == OTHER_KEY


@pytest.mark.asyncio
async def test_newer_message_rearms(tracker, timer, receipts):
    tracker.observe(KEY, unread=1, latest=Confirmed(5), visible=True)
    timer.advance(1)
    await tracker.drain()

    tracker.observe(KEY, unread=1, latest=Confirmed(6), visible=True)
    assert tracker.phase == ReadPhase.ARMED
    timer.advance(1)
    await tracker.drain()

    assert receipts.sent == [KEY, KEY]


@pytest.mark.asyncio
async def test_failed_receipt_is_not_retried(timer):
    receipts = _Receipts(error=SendError("503"))
    tracker = ReadStateTracker(timer, receipts, delay=1.0)

    tracker.observe(KEY, unread=1, latest=Confirmed(5), visible=True)
    timer.advance(1)
    await tracker.drain()
    tracker.observe(KEY, unread=1, latest=Confirmed(5), visible=True)
    timer.advance(5)
    await tracker.drain()

    assert receipts.sent == [KEY]
    assert tracker.phase == ReadPhase.SENT


@pytest.mark.asyncio
async def test_cancel_resets(tracker, timer, receipts):
    tracker.observe(KEY, unread=1, latest=Confirmed(5), visible=True)
    tracker.cancel()
    timer.advance(2)
    await tracker.drain()

    assert tracker.phase == ReadPhase.IDLE
    assert tracker.key is None
    assert receipts.sent == []
