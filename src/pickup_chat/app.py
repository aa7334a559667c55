from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pickup_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from pickup_chat.api.v1.routers import chats, health, messages, ws
from pickup_chat.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from pickup_chat.application.ports.clock import SystemClock
from pickup_chat.config import settings
from pickup_chat.infrastructure.memory.chat_store import InMemoryChatStore
from pickup_chat.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if settings.SEED_DEV_DATA:
        from pickup_chat.scripts.seed_dev_data import seed

        await seed(app.state.store, app.state.clock)
    logger.info("Chat backend ready")
    yield
    logger.info("Chat backend stopped")


def create_app(store: InMemoryChatStore | None = None) -> FastAPI:
    app = FastAPI(
        title="Pickup Chat Dev Backend",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = store if store is not None else InMemoryChatStore()
    app.state.clock = SystemClock()
    app.state.manager = ConnectionManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(chats.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(UnauthorizedError)
    async def _unauthorized(_req: Request, exc: UnauthorizedError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})
