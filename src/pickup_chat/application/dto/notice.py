from __future__ import annotations

from dataclasses import dataclass

from pickup_chat.domain.value_objects.enums import NoticeVariant


@dataclass(frozen=True, slots=True)
class Notice:
    title: str
    description: str
    variant: NoticeVariant = NoticeVariant.DEFAULT
