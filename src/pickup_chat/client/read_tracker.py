"""Debounced read-receipts: at most one per visit to a conversation with unread messages.

Idle --(active, has unread, visible)--> ArmedForRead --(delay elapsed)--> Sent
Sent --(conversation switch | newer message)--> Idle
ArmedForRead --(switch | hidden)--> Idle, timer discarded
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable

from pickup_chat.application.exceptions import AppError
from pickup_chat.application.ports.clock import Scheduler, TimerHandle
from pickup_chat.client.tasks import BackgroundTasks
from pickup_chat.domain.value_objects.enums import ReadPhase
from pickup_chat.domain.value_objects.ids import ConversationKey, MessageRef

logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 1.0

SendReceipt = Callable[[ConversationKey], Awaitable[None]]


class ReadStateTracker:
    def __init__(
        self,
        scheduler: Scheduler,
        send_receipt: SendReceipt,
        *,
        delay: float = DEFAULT_DELAY_SECONDS,
        tasks: BackgroundTasks | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._send_receipt = send_receipt
        self._delay = delay
        self._tasks = tasks if tasks is not None else BackgroundTasks()
        self._phase = ReadPhase.IDLE
        self._key: ConversationKey | None = None
        self._timer: TimerHandle | None = None
        self._acked_through: MessageRef | None = None
        self._latest: MessageRef | None = None

    @property
    def phase(self) -> ReadPhase:
        return self._phase

    @property
    def key(self) -> ConversationKey | None:
        return self._key

    def observe(
        self,
        key: ConversationKey | None,
        *,
        unread: int,
        latest: MessageRef | None,
        visible: bool,
    ) -> None:
        """Feed the current view state; arms, disarms or re-arms as needed."""
        if key != self._key:
            self._disarm()
            self._phase = ReadPhase.IDLE
            self._key = key
            self._acked_through = None
        self._latest = latest

        if self._phase == ReadPhase.SENT and latest is not None and latest != self._acked_through:
            self._phase = ReadPhase.IDLE

        if self._phase == ReadPhase.ARMED and not visible:
            self._disarm()
            self._phase = ReadPhase.IDLE
            return

        if (
            self._phase == ReadPhase.IDLE
            and key is not None
            and visible
            and latest is not None
            and unread > 0
        ):
            self._arm(key)

    def cancel(self) -> None:
        self._disarm()
        self._phase = ReadPhase.IDLE
        self._key = None

    async def drain(self) -> None:
        await self._tasks.drain()

    def _arm(self, key: ConversationKey) -> None:
        self._phase = ReadPhase.ARMED
        self._timer = self._scheduler.call_later(self._delay, lambda: self._fire(key))

    def _disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, key: ConversationKey) -> None:
        self._timer = None
        if self._phase != ReadPhase.ARMED or key != self._key:
            return
        self._phase = ReadPhase.SENT
        self._acked_through = self._latest
        self._tasks.spawn(self._deliver(key), name=f"read-receipt-{key.event_id}")

    async def _deliver(self, key: ConversationKey) -> None:
        try:
            await self._send_receipt(key)
        except AppError as exc:
            # not retried; the next new message or revisit re-arms
            logger.warning("Read receipt for event %s failed: %s", key.event_id, exc.detail)
