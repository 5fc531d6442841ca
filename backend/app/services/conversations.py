"""Conversation list projection: real rooms plus virtual direct rooms.

A virtual room stands for a direct conversation the viewer could start with a
visible colleague. It is never stored and has no id; the first send against it
goes through :func:`materialize`, which resolves to the persisted direct room.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.config import get_settings
from app.models import ChatMessage, ChatRoom, ChatRoomMember, RoomType, User
from app.services.directory import visible_candidates
from app.services.messages import latest_messages
from app.services.receipts import unread_summary
from app.services.rooms import (
    find_or_create_direct_room,
    list_rooms_for_user,
    other_member,
    room_display_name,
)

settings = get_settings()


@dataclass(slots=True)
class RoomEntry:
    room: ChatRoom
    display_name: str
    unread_count: int
    last_message: ChatMessage | None


@dataclass(slots=True)
class VirtualRoom:
    partner: User
    preview: ChatMessage | None = None

    @property
    def room_id(self) -> None:
        return None

    @property
    def unread_count(self) -> int:
        return 0

    @property
    def display_name(self) -> str:
        return self.partner.name


@dataclass(slots=True)
class ConversationList:
    entries: list[RoomEntry | VirtualRoom] = field(default_factory=list)
    recent_by_user: dict[int, list[ChatMessage]] = field(default_factory=dict)

    @property
    def rooms(self) -> list[RoomEntry]:
        return [entry for entry in self.entries if isinstance(entry, RoomEntry)]

    @property
    def virtual_rooms(self) -> list[VirtualRoom]:
        return [entry for entry in self.entries if isinstance(entry, VirtualRoom)]


def recent_messages_by_user(
    db: Session, viewer: User, limit: int | None = None
) -> dict[int, list[ChatMessage]]:
    """Latest messages per author across group rooms the viewer belongs to."""

    limit = limit or settings.chat_recent_preview_limit
    group_room_ids = (
        select(ChatRoomMember.room_id)
        .join(ChatRoom, ChatRoom.id == ChatRoomMember.room_id)
        .where(ChatRoomMember.user_id == viewer.id, ChatRoom.type == RoomType.GROUP)
    )
    ranked = (
        select(
            ChatMessage.id.label("message_id"),
            func.row_number()
            .over(
                partition_by=ChatMessage.sender_id,
                order_by=(ChatMessage.created_at.desc(), ChatMessage.id.desc()),
            )
            .label("position"),
        )
        .where(ChatMessage.room_id.in_(group_room_ids))
        .subquery()
    )
    stmt = (
        select(ChatMessage)
        .join(ranked, ranked.c.message_id == ChatMessage.id)
        .where(ranked.c.position <= limit)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .options(selectinload(ChatMessage.sender))
    )

    grouped: dict[int, list[ChatMessage]] = defaultdict(list)
    for message in db.execute(stmt).scalars():
        grouped[message.sender_id].append(message)
    return dict(grouped)


def project_conversation_list(db: Session, viewer: User) -> ConversationList:
    """Real rooms in activity order, then one virtual room per uncovered candidate."""

    rooms = list_rooms_for_user(db, viewer)
    unread = unread_summary(db, viewer)
    recent = recent_messages_by_user(db, viewer)
    last_messages = latest_messages(db, [room.id for room in rooms])

    entries: list[RoomEntry | VirtualRoom] = []
    covered: set[int] = set()
    for room in rooms:
        if room.type == RoomType.DIRECT:
            partner = other_member(room, viewer)
            if partner is not None:
                covered.add(partner.id)
        entries.append(
            RoomEntry(
                room=room,
                display_name=room_display_name(room, viewer),
                unread_count=unread.get(room.id, 0),
                last_message=last_messages.get(room.id),
            )
        )

    for candidate in visible_candidates(db, viewer):
        if candidate.id in covered:
            continue
        previews = recent.get(candidate.id)
        entries.append(VirtualRoom(partner=candidate, preview=previews[0] if previews else None))

    return ConversationList(entries=entries, recent_by_user=recent)


def materialize(db: Session, viewer: User, target: VirtualRoom | User | int) -> ChatRoom:
    """Turn a virtual room (or its partner) into the persisted direct room."""

    partner = target.partner if isinstance(target, VirtualRoom) else target
    return find_or_create_direct_room(db, viewer, partner)
