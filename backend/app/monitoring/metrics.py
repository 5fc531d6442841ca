"""Metric definitions for the chat subsystem."""

from __future__ import annotations

from .registry import registry


chat_messages_total = registry.counter(
    "chat_messages_total",
    "Number of chat messages accepted, by payload type.",
    label_names=("type",),
)

chat_rooms_created_total = registry.counter(
    "chat_rooms_created_total",
    "Number of chat rooms persisted, by room type.",
    label_names=("type",),
)

chat_direct_room_races_total = registry.counter(
    "chat_direct_room_races_total",
    "Direct room inserts that lost a first-contact race and reused the winner's room.",
)

chat_read_receipts_total = registry.counter(
    "chat_read_receipts_total",
    "Read receipts written by mark-read operations.",
)

chat_presence_heartbeats_total = registry.counter(
    "chat_presence_heartbeats_total",
    "Presence heartbeats received, by reported state.",
    label_names=("state",),
)
