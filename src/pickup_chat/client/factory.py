from __future__ import annotations

from pickup_chat.application.dto.principal import Principal
from pickup_chat.application.ports.clock import LoopScheduler, SystemClock
from pickup_chat.application.ports.notifier import Notifier
from pickup_chat.client.push_channel import PushChannelClient
from pickup_chat.client.session import ChatSession
from pickup_chat.config import Settings, settings as default_settings
from pickup_chat.infrastructure.http.rest_client import ChatRestClient
from pickup_chat.infrastructure.notify.logging_notifier import LoggingNotifier
from pickup_chat.infrastructure.ws.aiohttp_transport import AiohttpPushTransport


def build_session(
    user: Principal,
    *,
    token: str | None = None,
    notifier: Notifier | None = None,
    settings: Settings | None = None,
) -> ChatSession:
    """Wire a ChatSession against the configured REST API and push endpoint."""
    cfg = settings or default_settings
    api = ChatRestClient(
        cfg.API_BASE_URL,
        token if token is not None else cfg.API_TOKEN,
        timeout=cfg.HTTP_TIMEOUT_SECONDS,
    )
    push = PushChannelClient(
        user.user_id,
        lambda: AiohttpPushTransport(cfg.PUSH_URL, heartbeat=cfg.PUSH_HEARTBEAT_SECONDS),
    )
    return ChatSession(
        user,
        api,
        push,
        notifier or LoggingNotifier(),
        LoopScheduler(),
        clock=SystemClock(),
        read_delay=cfg.READ_RECEIPT_DELAY_SECONDS,
        fallback_seconds=cfg.OPTIMISTIC_FALLBACK_SECONDS,
    )
