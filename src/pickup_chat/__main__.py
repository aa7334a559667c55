"""Entrypoint: python -m pickup_chat (development backend)"""
from __future__ import annotations

import logging

import uvicorn

from pickup_chat.api.middleware.correlation_id import CorrelationIdFilter
from pickup_chat.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, handlers=[handler])


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "pickup_chat.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL,
        log_config=None,
    )


if __name__ == "__main__":
    main()
