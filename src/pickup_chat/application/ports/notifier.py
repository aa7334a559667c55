from __future__ import annotations

from typing import Protocol

from pickup_chat.application.dto.notice import Notice


class Notifier(Protocol):
    def notify(self, notice: Notice) -> None: ...

    def redirect_to_login(self) -> None: ...
