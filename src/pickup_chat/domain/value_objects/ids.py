"""Message and conversation identity.

A message is either ``Confirmed`` (server-assigned integer id) or ``Pending``
(locally generated token). The two never compare equal, so reconciliation
never relies on string/number coercion.
"""
from __future__ import annotations

import itertools
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Confirmed:
    id: int

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True, slots=True)
class Pending:
    token: str

    def __str__(self) -> str:
        return self.token


MessageRef = Confirmed | Pending


@dataclass(frozen=True, slots=True)
class ConversationKey:
    """One (event, counterparty) thread. ``counterparty_id=None`` is the event-wide thread."""

    event_id: int
    counterparty_id: str | None = None


class PendingTokenFactory:
    """Issues ``temp-1``, ``temp-2``, ... for the lifetime of one session."""

    def __init__(self, prefix: str = "temp") -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def next(self) -> Pending:
        return Pending(f"{self._prefix}-{next(self._counter)}")
