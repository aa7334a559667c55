"""Date-labelled buckets over an already ordered message sequence."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable

from pickup_chat.domain.entities.message import Message

TODAY = "Today"
YESTERDAY = "Yesterday"


@dataclass(slots=True)
class MessageGroup:
    label: str
    day: date
    messages: list[Message] = field(default_factory=list)


def day_label(day: date, today: date) -> str:
    if day == today:
        return TODAY
    if day == today - timedelta(days=1):
        return YESTERDAY
    return f"{day.month}/{day.day}/{day.year}"


def local_day(ts: datetime, tz: tzinfo | None = None) -> date:
    # astimezone(None) converts to the system local zone
    return ts.astimezone(tz).date()


def group_by_date(
    messages: Iterable[Message],
    now: datetime,
    tz: tzinfo | None = None,
) -> list[MessageGroup]:
    """Start a new group whenever the viewer-local calendar date changes."""
    today = local_day(now, tz)
    groups: list[MessageGroup] = []
    for message in messages:
        day = local_day(message.created_at, tz)
        if not groups or groups[-1].day != day:
            groups.append(MessageGroup(label=day_label(day, today), day=day))
        groups[-1].messages.append(message)
    return groups
