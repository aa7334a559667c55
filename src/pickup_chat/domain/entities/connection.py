from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ConnectionState:
    """Live push-channel session. Exactly one per authenticated client session."""

    user_id: str
    connected: bool = False
    authenticated: bool = False

    def opened(self) -> None:
        self.connected = True
        self.authenticated = False

    def auth_sent(self) -> None:
        self.authenticated = True

    def dropped(self) -> None:
        self.connected = False
        self.authenticated = False
