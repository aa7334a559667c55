"""Single ordered, duplicate-free message view for the open conversation.

Three sources feed the store: server snapshots (``reconcile``), push-delivered
confirmations (``apply_push``) and locally originated optimistic entries
(``append_optimistic``). Ordering is decided by ``merge`` alone, never by the
order in which network responses land.

Sort key: ``(effective timestamp, confirmed before pending, id)`` where ``id``
is the server id for confirmed records and the insertion sequence for pending
ones. A pending entry's effective timestamp is clamped to the newest confirmed
timestamp known when it was created.
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from pickup_chat.application.ports.clock import Scheduler, TimerHandle
from pickup_chat.domain.entities.message import Message
from pickup_chat.domain.value_objects.ids import Confirmed, ConversationKey, Pending

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_SECONDS = 1.5

OnExpired = Callable[[Pending], None]


@dataclass(slots=True)
class _PendingEntry:
    message: Message
    seq: int
    anchor: datetime
    timer: TimerHandle | None = None


class MessageStore:
    def __init__(
        self,
        viewer_id: str,
        scheduler: Scheduler,
        *,
        fallback_seconds: float = DEFAULT_FALLBACK_SECONDS,
        on_expired: OnExpired | None = None,
    ) -> None:
        self._viewer_id = viewer_id
        self._scheduler = scheduler
        self._fallback_seconds = fallback_seconds
        self._on_expired = on_expired
        self._key: ConversationKey | None = None
        self._confirmed: dict[int, Message] = {}
        self._pushed_ids: set[int] = set()
        self._pending: dict[str, _PendingEntry] = {}
        self._seq = 0

    @property
    def key(self) -> ConversationKey | None:
        return self._key

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def reset(self, key: ConversationKey | None) -> None:
        """Switch to another conversation. Optimistic entries never leak across a switch."""
        for entry in self._pending.values():
            if entry.timer is not None:
                entry.timer.cancel()
        self._pending.clear()
        self._confirmed.clear()
        self._pushed_ids.clear()
        self._key = key

    def accepts(self, message: Message) -> bool:
        return self._key is not None and message.belongs_to(self._key, self._viewer_id)

    # -- optimistic entries -------------------------------------------------

    def append_optimistic(self, message: Message) -> bool:
        """Insert a pending message at the logical end. Returns False for a repeated token."""
        if not isinstance(message.ref, Pending):
            raise ValueError("optimistic messages must carry a Pending ref")
        token = message.ref.token
        if token in self._pending:
            return False

        self._seq += 1
        newest = self._newest_confirmed_at()
        anchor = message.created_at if newest is None else max(message.created_at, newest)
        entry = _PendingEntry(message=message, seq=self._seq, anchor=anchor)
        entry.timer = self._scheduler.call_later(
            self._fallback_seconds, lambda: self._expire(token),
        )
        self._pending[token] = entry
        return True

    def remove_pending(self, ref: Pending) -> bool:
        entry = self._pending.pop(ref.token, None)
        if entry is None:
            return False
        if entry.timer is not None:
            entry.timer.cancel()
        return True

    def confirm(self, ref: Pending, message: Message) -> None:
        """Replace a pending entry by its server-confirmed record."""
        self.remove_pending(ref)
        if message.server_id is None or not self.accepts(message):
            return
        self._confirmed[message.server_id] = message

    def _expire(self, token: str) -> None:
        entry = self._pending.pop(token, None)
        if entry is None:
            return
        logger.debug("Optimistic message %s not confirmed in %.1fs, clearing", token, self._fallback_seconds)
        if self._on_expired is not None:
            self._on_expired(Pending(token))

    # -- confirmed records --------------------------------------------------

    def apply_push(self, message: Message) -> bool:
        """Upsert a push-delivered confirmed record. Returns False if it is for another conversation."""
        server_id = message.server_id
        if server_id is None or not self.accepts(message):
            return False
        is_new = server_id not in self._confirmed
        self._confirmed[server_id] = self._keep_read_state(message)
        self._pushed_ids.add(server_id)
        if is_new:
            self._consume_pending(message)
        return True

    def reconcile(self, server_messages: list[Message]) -> None:
        """Replace the confirmed subset with a fresh server snapshot."""
        snapshot: dict[int, Message] = {}
        for message in server_messages:
            if message.server_id is None or not self.accepts(message):
                continue
            snapshot[message.server_id] = message

        newest = max((_confirmed_sort_key(m) for m in snapshot.values()), default=None)
        for server_id in self._pushed_ids - snapshot.keys():
            pushed = self._confirmed.get(server_id)
            # the snapshot predates this push; keep it until a later snapshot includes it
            if pushed is not None and (newest is None or _confirmed_sort_key(pushed) > newest):
                snapshot[server_id] = pushed

        fresh = [m for sid, m in snapshot.items() if sid not in self._confirmed]
        self._confirmed = snapshot
        self._pushed_ids &= snapshot.keys()
        for message in sorted(fresh, key=_confirmed_sort_key):
            self._consume_pending(message)

    def _consume_pending(self, confirmed: Message) -> None:
        for token, entry in self._pending.items():
            if entry.message.same_payload(confirmed):
                self.remove_pending(Pending(token))
                return

    def _keep_read_state(self, message: Message) -> Message:
        known = self._confirmed.get(message.server_id)  # type: ignore[arg-type]
        if known is None or known.read_by <= message.read_by:
            return message
        return dataclasses.replace(message, read_by=message.read_by | known.read_by)

    def _newest_confirmed_at(self) -> datetime | None:
        return max((m.created_at for m in self._confirmed.values()), default=None)

    # -- read state ---------------------------------------------------------

    def mark_read(self, user_id: str) -> int:
        """Add ``user_id`` to ``read_by`` of every visible confirmed message."""
        changed = 0
        for server_id, message in self._confirmed.items():
            updated = message.with_reader(user_id)
            if updated is not message:
                self._confirmed[server_id] = updated
                changed += 1
        return changed

    def unread_count(self, user_id: str) -> int:
        return sum(1 for m in self._confirmed.values() if m.is_unread_for(user_id))

    # -- views --------------------------------------------------------------

    def merge(self) -> list[Message]:
        confirmed = sorted(self._confirmed.values(), key=_confirmed_sort_key)
        rows: list[tuple[datetime, int, int, Message]] = [
            (m.created_at, 0, m.server_id or 0, m) for m in confirmed
        ]
        rows.extend((e.anchor, 1, e.seq, e.message) for e in self._pending.values())
        rows.sort(key=lambda row: row[:3])
        return [row[3] for row in rows]

    def latest(self) -> Message | None:
        merged = self.merge()
        return merged[-1] if merged else None

    def latest_confirmed(self) -> Message | None:
        if not self._confirmed:
            return None
        return max(self._confirmed.values(), key=_confirmed_sort_key)

    def __len__(self) -> int:
        return len(self._confirmed) + len(self._pending)


def _confirmed_sort_key(message: Message) -> tuple[datetime, int]:
    ref = message.ref
    return message.created_at, ref.id if isinstance(ref, Confirmed) else 0
