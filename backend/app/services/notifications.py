"""In-process event hub handing chat events to external collaborators."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, Iterable, List

logger = logging.getLogger(__name__)

ROOM_CREATED = "room_created"
MESSAGE_POSTED = "message_posted"

Subscriber = Callable[[dict[str, Any]], Awaitable[None]]


class ChatEventHub:
    """Fans chat events out to subscribers such as mailers or activity logs."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def subscribe(self, event_type: str, subscriber: Subscriber) -> None:
        async with self._lock:
            subscribers = self._subscribers[event_type]
            if subscriber not in subscribers:
                subscribers.append(subscriber)

    async def unsubscribe(self, event_type: str, subscriber: Subscriber) -> None:
        async with self._lock:
            subscribers = self._subscribers.get(event_type)
            if not subscribers:
                return
            if subscriber in subscribers:
                subscribers.remove(subscriber)
            if not subscribers:
                self._subscribers.pop(event_type, None)

    async def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        async with self._lock:
            targets = list(self._subscribers.get(event_type, ()))
        event = {"type": event_type, **payload}
        for subscriber in targets:
            try:
                await subscriber(event)
            except Exception:
                logger.exception("Chat event subscriber failed for %s", event_type)

    async def room_created(self, room_id: int, room_type: str, member_ids: Iterable[int]) -> None:
        await self.publish(
            ROOM_CREATED,
            {"room_id": room_id, "room_type": room_type, "member_ids": sorted(set(member_ids))},
        )

    async def message_posted(
        self,
        room_id: int,
        message_id: int,
        sender_id: int,
        recipient_ids: Iterable[int],
        mentioned_ids: Iterable[int],
    ) -> None:
        await self.publish(
            MESSAGE_POSTED,
            {
                "room_id": room_id,
                "message_id": message_id,
                "sender_id": sender_id,
                "recipient_ids": sorted(set(recipient_ids)),
                "mentioned_ids": list(mentioned_ids),
            },
        )


async def log_event(event: dict[str, Any]) -> None:
    logger.info("chat event %s: %s", event["type"], event)


chat_event_hub = ChatEventHub()
"""Singleton hub shared across request handlers."""
