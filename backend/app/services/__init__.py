"""Chat services: rooms, messages, receipts, presence and visibility."""

from .notifications import MESSAGE_POSTED, ROOM_CREATED, chat_event_hub, log_event

__all__ = [
    "chat_event_hub",
    "log_event",
    "MESSAGE_POSTED",
    "ROOM_CREATED",
]
