from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class EventSummary:
    id: int
    title: str
    sport: str
    host_id: str
    participant_ids: frozenset[str] = field(default_factory=frozenset)

    def is_member(self, user_id: str) -> bool:
        return user_id == self.host_id or user_id in self.participant_ids
