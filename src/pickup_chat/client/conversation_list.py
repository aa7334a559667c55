from __future__ import annotations

import logging
from typing import Callable

from pickup_chat.application.exceptions import FetchError
from pickup_chat.application.ports.api import ChatApi
from pickup_chat.domain.entities.conversation import ConversationSummary
from pickup_chat.domain.entities.message import Message
from pickup_chat.domain.value_objects.ids import ConversationKey

logger = logging.getLogger(__name__)


class ConversationList:
    """Searchable list of the signed-in user's conversations.

    The server is the source of truth for unread counts; local adjustments
    (after a read-receipt or from the open conversation's merged view) only
    bridge the gap until the next refresh lands.
    """

    def __init__(self, api: ChatApi) -> None:
        self._api = api
        self._items: list[ConversationSummary] = []
        self._generation = 0
        self._applied_generation = 0
        self.loading = False
        self.load_failed = False

    @property
    def items(self) -> list[ConversationSummary]:
        return list(self._items)

    @property
    def total_unread(self) -> int:
        return sum(c.unread_count for c in self._items)

    async def refresh(self) -> bool:
        """Refetch summaries. On failure the cached list is kept and ``load_failed`` is set.

        Only FetchError is absorbed here; UnauthorizedError propagates to the caller.
        """
        self._generation += 1
        generation = self._generation
        self.loading = True
        try:
            summaries = await self._api.list_conversations()
        except FetchError as exc:
            if generation == self._generation:
                self.loading = False
                self.load_failed = True
            logger.warning("Failed to load conversations: %s", exc.detail)
            return False

        if generation < self._applied_generation:
            logger.debug("Dropping stale conversation list (gen=%d)", generation)
            return False
        self._applied_generation = generation
        self._items = list(summaries)
        self.load_failed = False
        if generation == self._generation:
            self.loading = False
        return True

    def filter(self, query: str) -> list[ConversationSummary]:
        return [c for c in self._items if c.matches(query)]

    def get(self, key: ConversationKey) -> ConversationSummary | None:
        for summary in self._items:
            if summary.key == key:
                return summary
        return None

    def set_unread(self, key: ConversationKey, count: int) -> None:
        self._update(key, lambda c: c.with_unread(count))

    def mark_read(self, key: ConversationKey) -> None:
        self._update(key, lambda c: c.with_unread(0))

    def note_message(self, key: ConversationKey, message: Message) -> None:
        self._update(key, lambda c: c.with_last_message(message))

    def remove(self, key: ConversationKey) -> None:
        self._items = [c for c in self._items if c.key != key]

    def _update(
        self,
        key: ConversationKey,
        change: Callable[[ConversationSummary], ConversationSummary],
    ) -> None:
        for index, summary in enumerate(self._items):
            if summary.key == key:
                self._items[index] = change(summary)
                return
