from __future__ import annotations

from typing import AsyncIterator, Protocol


class PushTransport(Protocol):
    """One bidirectional text-frame connection."""

    @property
    def is_open(self) -> bool: ...

    async def open(self) -> None: ...

    async def send_text(self, raw: str) -> None: ...

    def receive(self) -> AsyncIterator[str]: ...

    async def close(self) -> None: ...
