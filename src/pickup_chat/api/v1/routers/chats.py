from __future__ import annotations

from fastapi import APIRouter, Query

from pickup_chat.api.deps import CurrentPrincipal, StoreDep
from pickup_chat.api.v1.schemas.common import DetailResponse
from pickup_chat.api.v1.schemas.conversation import ConversationSchema
from pickup_chat.infrastructure.http.mappers import conversation_to_schema
from pickup_chat.services import chat_service

router = APIRouter(prefix="/api", tags=["chats"])


@router.get("/my-chats", response_model=list[ConversationSchema], response_model_by_alias=True)
async def my_chats(
    principal: CurrentPrincipal,
    store: StoreDep,
) -> list[ConversationSchema]:
    summaries = await chat_service.list_chats(principal, store)
    return [conversation_to_schema(s) for s in summaries]


@router.delete("/events/{event_id}/chatroom", response_model=DetailResponse)
async def delete_chatroom(
    event_id: int,
    principal: CurrentPrincipal,
    store: StoreDep,
    other_user_id: str | None = Query(None, alias="otherUserId"),
) -> DetailResponse:
    await chat_service.delete_chatroom(event_id, principal, other_user_id, store)
    return DetailResponse(message="Chatroom deleted successfully")
