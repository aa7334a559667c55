from __future__ import annotations

from pickup_chat.application.dto.principal import Principal
from pickup_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from pickup_chat.domain.entities.event import EventSummary


def assert_event_chat_access(
    principal: Principal,
    event: EventSummary | None,
) -> EventSummary:
    """Raise if the event doesn't exist or the caller is neither host nor accepted participant."""
    if event is None:
        raise NotFoundError("Event not found")
    if not event.is_member(principal.user_id):
        raise ForbiddenError("Not a participant of this event")
    return event


def assert_valid_receiver(
    principal: Principal,
    event: EventSummary,
    receiver_id: str | None,
) -> None:
    if receiver_id is None:
        return
    if receiver_id == principal.user_id:
        raise ValidationError("Cannot send a message to yourself")
    if not event.is_member(receiver_id):
        raise ValidationError("Receiver is not a participant of this event")
