"""Seed development data: two events, three users and a few messages."""
from __future__ import annotations

import logging
from datetime import timedelta

from pickup_chat.application.ports.clock import Clock
from pickup_chat.domain.entities.event import EventSummary
from pickup_chat.domain.entities.user import UserProfile
from pickup_chat.infrastructure.memory.chat_store import InMemoryChatStore

logger = logging.getLogger(__name__)

USERS = [
    UserProfile(id="host-1", email="maya@example.com", first_name="Maya", last_name="Ortiz"),
    UserProfile(id="player-1", email="leo@example.com", first_name="Leo", last_name="Park"),
    UserProfile(id="player-2", email="sam@example.com"),
]

EVENTS = [
    EventSummary(
        id=1,
        title="Sunday Pickup Basketball",
        sport="basketball",
        host_id="host-1",
        participant_ids=frozenset({"player-1", "player-2"}),
    ),
    EventSummary(
        id=2,
        title="Evening Tennis Doubles",
        sport="tennis",
        host_id="player-1",
        participant_ids=frozenset({"host-1"}),
    ),
]

MESSAGES = [
    (1, "player-1", "host-1", "Hey, is there still a spot open?"),
    (1, "host-1", "player-1", "Yes! See you at 10."),
    (1, "player-2", None, "Who's bringing the ball?"),
    (2, "host-1", "player-1", "Can we move to 7pm?"),
]


async def seed(store: InMemoryChatStore, clock: Clock) -> None:
    for user in USERS:
        store.add_user(user)
    for event in EVENTS:
        store.add_event(event)

    start = clock.now() - timedelta(minutes=len(MESSAGES))
    for offset, (event_id, sender_id, receiver_id, content) in enumerate(MESSAGES):
        await store.create(
            event_id=event_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            message_type="text",
            metadata=None,
            created_at=start + timedelta(minutes=offset),
        )
    logger.info("Seeded %d events with %d messages", len(EVENTS), len(MESSAGES))
