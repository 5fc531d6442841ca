"""Local mirror of the conversation list, open room and presence."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class ConversationState:
    rooms: list[dict[str, Any]] = field(default_factory=list)
    conversations: list[dict[str, Any]] = field(default_factory=list)
    recent_by_user: dict[int, list[dict[str, Any]]] = field(default_factory=dict)
    messages: dict[int, list[dict[str, Any]]] = field(default_factory=dict)
    unread: dict[int, int] = field(default_factory=dict)
    online: set[int] = field(default_factory=set)
    partner_rooms: dict[int, int] = field(default_factory=dict)
    open_room_id: int | None = None

    @property
    def total_unread(self) -> int:
        return sum(self.unread.values())

    @property
    def virtual_rooms(self) -> list[dict[str, Any]]:
        return [entry for entry in self.conversations if entry.get("kind") == "virtual"]

    def apply_rooms(self, payload: dict[str, Any]) -> None:
        """Replace the room list with the server's view."""

        self.rooms = list(payload.get("rooms", []))
        self.conversations = list(payload.get("conversations", []))
        self.recent_by_user = {
            int(user_id): list(messages)
            for user_id, messages in (payload.get("recentByUser") or {}).items()
        }
        self.unread = {room["id"]: room.get("unread_count", 0) for room in self.rooms}
        for entry in self.conversations:
            partner = entry.get("partner")
            if entry.get("kind") == "room" and entry.get("type") == "direct" and partner:
                self.partner_rooms[partner["id"]] = entry["room_id"]

    def apply_messages(self, room_id: int, payload: dict[str, Any]) -> bool:
        """Store a message list; a response for a room that is no longer open is dropped."""

        if room_id != self.open_room_id:
            return False
        self.messages[room_id] = list(payload.get("messages", []))
        return True

    def append_message(self, room_id: int, message: dict[str, Any]) -> None:
        known = self.messages.setdefault(room_id, [])
        if all(existing.get("id") != message.get("id") for existing in known):
            known.append(message)

    def mark_read_locally(self, room_id: int) -> None:
        self.unread[room_id] = 0
        for room in self.rooms:
            if room.get("id") == room_id:
                room["unread_count"] = 0
        for entry in self.conversations:
            if entry.get("room_id") == room_id:
                entry["unread_count"] = 0

    def apply_online(self, users: list[dict[str, Any]]) -> None:
        self.online = {user["id"] for user in users}

    def remember_partner(self, partner_id: int, room_id: int) -> None:
        self.partner_rooms[partner_id] = room_id

    def room_for_partner(self, partner_id: int) -> int | None:
        return self.partner_rooms.get(partner_id)
