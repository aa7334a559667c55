from __future__ import annotations

import logging
from typing import Callable

from pickup_chat.application.dto.notice import Notice
from pickup_chat.domain.value_objects.enums import NoticeVariant

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Notifier for headless clients: notices go to the log, login redirects to a hook."""

    def __init__(self, on_login_required: Callable[[], None] | None = None) -> None:
        self._on_login_required = on_login_required

    def notify(self, notice: Notice) -> None:
        level = logging.WARNING if notice.variant == NoticeVariant.DESTRUCTIVE else logging.INFO
        logger.log(level, "%s: %s", notice.title, notice.description)

    def redirect_to_login(self) -> None:
        logger.warning("Session is no longer authorized; login required")
        if self._on_login_required is not None:
            self._on_login_required()
