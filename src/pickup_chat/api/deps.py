"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pickup_chat.application.dto.principal import Principal
from pickup_chat.application.ports.auth import TokenVerifier
from pickup_chat.application.ports.clock import Clock
from pickup_chat.application.repositories.chat import ChatRepository
from pickup_chat.config import settings
from pickup_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from pickup_chat.infrastructure.ws.manager import ConnectionManager

_bearer_scheme = HTTPBearer(auto_error=False)

_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    return _verifier


def get_store(request: Request) -> ChatRepository:
    return request.app.state.store


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_manager(request: Request) -> ConnectionManager:
    return request.app.state.manager


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> Principal:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
StoreDep = Annotated[ChatRepository, Depends(get_store)]
ClockDep = Annotated[Clock, Depends(get_clock)]
ManagerDep = Annotated[ConnectionManager, Depends(get_manager)]
