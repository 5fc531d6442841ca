"""Timer-driven polling loop for the chat API.

Two timers run while the loop is started: a presence timer that heartbeats
and refreshes the online list and room list, and, while a room is open, a
message timer that re-fetches that room and acknowledges it. Ticks are
scheduled against the clock (``start + k * interval``) and each tick runs as
its own task, so a slow response never pushes later ticks back.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from .client import ChatApiClient, ChatApiError
from .state import ConversationState

logger = logging.getLogger(__name__)

Tick = Callable[[], Awaitable[None]]


@dataclass(slots=True)
class SyncConfig:
    """Connection and timer settings for :class:`SyncLoop`."""

    base_url: str
    token: str
    message_interval: float = 2.0
    heartbeat_interval: float = 30.0
    timeout: float = 10.0


class SyncLoop:
    """Keeps a :class:`ConversationState` in sync with the server by polling."""

    def __init__(
        self,
        config: SyncConfig,
        *,
        api: ChatApiClient | None = None,
        state: ConversationState | None = None,
    ) -> None:
        self.config = config
        self.api = api or ChatApiClient(config.base_url, config.token, timeout=config.timeout)
        self.state = state or ConversationState()
        self._presence_timer: asyncio.Task[None] | None = None
        self._message_timer: asyncio.Task[None] | None = None
        self._ticks: set[asyncio.Task[Any]] = set()
        self._room_generation = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._presence_timer = asyncio.create_task(
            self._every(self.config.heartbeat_interval, self._presence_tick, immediate=True),
            name="teamchat-presence",
        )

    async def stop(self) -> None:
        """Cancel every timer and in-flight tick, then report the user offline."""

        self._running = False
        await self.close_room()
        await self._cancel(self._presence_timer)
        self._presence_timer = None

        pending = list(self._ticks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._ticks.clear()

        try:
            await self.api.heartbeat(False)
        except ChatApiError as exc:
            logger.warning("Offline heartbeat failed: %s", exc)

    async def open_room(self, room_id: int) -> list[dict[str, Any]]:
        """Load a room, acknowledge it and keep polling it until closed."""

        await self.close_room()
        generation = self._room_generation
        self.state.open_room_id = room_id
        try:
            payload = await self.api.get_messages(room_id, mark_read=False)
        except ChatApiError:
            if generation == self._room_generation:
                self.state.open_room_id = None
            raise
        # Another open_room or close_room ran while we waited; it owns the room now.
        if generation != self._room_generation or not self.state.apply_messages(room_id, payload):
            return []
        await self._acknowledge(room_id)
        if generation != self._room_generation:
            return []

        self._message_timer = asyncio.create_task(
            self._every(self.config.message_interval, lambda: self._message_tick(room_id)),
            name=f"teamchat-room-{room_id}",
        )
        return self.state.messages.get(room_id, [])

    async def close_room(self) -> None:
        self._room_generation += 1
        await self._cancel(self._message_timer)
        self._message_timer = None
        self.state.open_room_id = None

    async def materialize(self, partner_id: int) -> int:
        """Resolve a virtual room to its persisted direct room id."""

        room_id = self.state.room_for_partner(partner_id)
        if room_id is not None:
            return room_id
        room = await self.api.create_direct_room(partner_id)
        self.state.remember_partner(partner_id, room["id"])
        return room["id"]

    async def send_text(
        self, text: str, *, room_id: int | None = None, partner_id: int | None = None
    ) -> dict[str, Any]:
        target = await self._resolve_target(room_id, partner_id)
        message = await self.api.send_text(target, text)
        await self._after_send(target, message)
        return message

    async def send_file(
        self,
        file_name: str,
        content: bytes,
        *,
        content_type: str | None = None,
        room_id: int | None = None,
        partner_id: int | None = None,
    ) -> dict[str, Any]:
        target = await self._resolve_target(room_id, partner_id)
        message = await self.api.send_file(target, file_name, content, content_type=content_type)
        await self._after_send(target, message)
        return message

    async def refresh_rooms(self) -> None:
        try:
            payload = await self.api.list_rooms()
        except ChatApiError as exc:
            logger.warning("Room list refresh failed: %s", exc)
            return
        self.state.apply_rooms(payload)

    async def _resolve_target(self, room_id: int | None, partner_id: int | None) -> int:
        if room_id is not None:
            return room_id
        if partner_id is None:
            raise ValueError("Either room_id or partner_id is required")
        return await self.materialize(partner_id)

    async def _after_send(self, room_id: int, message: dict[str, Any]) -> None:
        if room_id == self.state.open_room_id:
            self.state.append_message(room_id, message)
        await self.refresh_rooms()

    async def _acknowledge(self, room_id: int) -> None:
        # Local reset stands even if the request fails; the next room poll corrects it.
        self.state.mark_read_locally(room_id)
        try:
            await self.api.mark_read(room_id)
        except ChatApiError as exc:
            logger.warning("Marking room %s read failed: %s", room_id, exc)

    async def _message_tick(self, room_id: int) -> None:
        if self.state.open_room_id != room_id:
            return
        try:
            payload = await self.api.get_messages(room_id, mark_read=False)
        except ChatApiError as exc:
            logger.warning("Message poll for room %s failed: %s", room_id, exc)
            return
        if not self.state.apply_messages(room_id, payload):
            logger.debug("Discarded messages of room %s fetched after it was closed", room_id)
            return
        await self._acknowledge(room_id)
        await self.refresh_rooms()

    async def _presence_tick(self) -> None:
        try:
            await self.api.heartbeat(True)
        except ChatApiError as exc:
            logger.warning("Heartbeat failed: %s", exc)
        try:
            self.state.apply_online(await self.api.online_users())
        except ChatApiError as exc:
            logger.warning("Online users refresh failed: %s", exc)
        await self.refresh_rooms()

    async def _every(self, interval: float, tick: Tick, *, immediate: bool = False) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        step = 0 if immediate else 1
        while True:
            delay = started + step * interval - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            self._spawn(tick())
            now = loop.time()
            # Missed slots are skipped rather than fired back to back.
            step = max(step + 1, int((now - started) // interval) + 1)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._ticks.add(task)
        task.add_done_callback(self._tick_done)

    def _tick_done(self, task: asyncio.Task[Any]) -> None:
        self._ticks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Sync tick failed", exc_info=exc)

    @staticmethod
    async def _cancel(task: asyncio.Task[Any] | None) -> None:
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
