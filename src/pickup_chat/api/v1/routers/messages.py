from __future__ import annotations

from fastapi import APIRouter, Query

from pickup_chat.api.deps import ClockDep, CurrentPrincipal, ManagerDep, StoreDep
from pickup_chat.api.v1.schemas.message import MessageSchema, SendMessageRequest
from pickup_chat.infrastructure.http.mappers import message_to_schema
from pickup_chat.services import chat_service

router = APIRouter(prefix="/api/events", tags=["messages"])


@router.get("/{event_id}/messages", response_model=list[MessageSchema], response_model_by_alias=True)
async def list_messages(
    event_id: int,
    principal: CurrentPrincipal,
    store: StoreDep,
    other_user_id: str | None = Query(None, alias="otherUserId"),
) -> list[MessageSchema]:
    messages = await chat_service.list_messages(event_id, principal, other_user_id, store)
    return [message_to_schema(m) for m in messages]


@router.post(
    "/{event_id}/messages",
    response_model=MessageSchema,
    response_model_by_alias=True,
    status_code=201,
)
async def send_message(
    event_id: int,
    body: SendMessageRequest,
    principal: CurrentPrincipal,
    store: StoreDep,
    clock: ClockDep,
    manager: ManagerDep,
) -> MessageSchema:
    message = await chat_service.send_message(
        event_id,
        principal,
        body.content,
        body.receiver_id,
        body.message_type,
        body.metadata,
        store,
        clock,
    )
    event = await store.get_event(event_id)
    schema = message_to_schema(message)
    if event is not None:
        await manager.fan_out(schema, principal.user_id, chat_service.push_recipients(message, event))
    return schema


@router.post("/{event_id}/messages/read")
async def mark_read(
    event_id: int,
    principal: CurrentPrincipal,
    store: StoreDep,
    other_user_id: str | None = Query(None, alias="otherUserId"),
) -> dict[str, int]:
    marked = await chat_service.mark_read(event_id, principal, other_user_id, store)
    return {"marked": marked}
