"""Room and membership storage for direct and group chats."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.config import get_settings
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models import ChatRoom, ChatRoomMember, RoomType, User, direct_pair_key
from app.monitoring.metrics import chat_direct_room_races_total, chat_rooms_created_total
from app.services.directory import is_visible_candidate

logger = logging.getLogger(__name__)
settings = get_settings()


def _room_query():
    return select(ChatRoom).options(
        selectinload(ChatRoom.members).selectinload(ChatRoomMember.user)
    )


def get_room(db: Session, room_id: int) -> ChatRoom:
    room = db.execute(_room_query().where(ChatRoom.id == room_id)).scalar_one_or_none()
    if room is None:
        raise NotFoundError("Room not found")
    return room


def require_membership(db: Session, room_id: int, user: User) -> ChatRoom:
    """Load a room the user belongs to, or fail with 404/403."""

    room = get_room(db, room_id)
    if user.id not in room.member_ids:
        raise ForbiddenError("Not a room member")
    return room


def list_rooms_for_user(db: Session, viewer: User) -> list[ChatRoom]:
    """Rooms of the viewer, most recent activity first; silent rooms go last."""

    stmt = (
        _room_query()
        .join(ChatRoomMember, ChatRoomMember.room_id == ChatRoom.id)
        .where(ChatRoomMember.user_id == viewer.id)
        .order_by(
            ChatRoom.last_message_at.is_(None),
            ChatRoom.last_message_at.desc(),
            ChatRoom.created_at.desc(),
            ChatRoom.id.desc(),
        )
    )
    return list(db.execute(stmt).scalars().unique().all())


def _find_direct_room(db: Session, pair_key: str) -> ChatRoom | None:
    stmt = _room_query().where(ChatRoom.direct_key == pair_key)
    return db.execute(stmt).scalar_one_or_none()


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_or_create_direct_room(
    db: Session, viewer: User, other: User | int
) -> tuple[ChatRoom, bool]:
    """Return the direct room of ``viewer`` and ``other``, creating it on first contact.

    The room and both memberships are committed together. If another request
    creates the same pair concurrently, the unique ``direct_key`` rejects our
    insert and the winner's room is returned instead.
    """

    other_user = other if isinstance(other, User) else _get_user(db, other)
    if other_user.id == viewer.id:
        raise ValidationError("Cannot start a direct conversation with yourself")
    if not is_visible_candidate(viewer, other_user):
        raise ForbiddenError("User is not available for chat")

    pair_key = direct_pair_key(viewer.id, other_user.id)
    existing = _find_direct_room(db, pair_key)
    if existing is not None:
        return existing, False

    room = ChatRoom(type=RoomType.DIRECT, direct_key=pair_key, created_by=viewer.id)
    room.members = [
        ChatRoomMember(user_id=viewer.id),
        ChatRoomMember(user_id=other_user.id),
    ]
    db.add(room)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        winner = _find_direct_room(db, pair_key)
        if winner is None:
            raise
        chat_direct_room_races_total.inc()
        logger.info("Direct room race for pair %s resolved to room %s", pair_key, winner.id)
        return winner, False

    chat_rooms_created_total.inc(type=RoomType.DIRECT.value)
    logger.info("Created direct room %s for pair %s", room.id, pair_key)
    return get_room(db, room.id), True


def find_or_create_direct_room(db: Session, viewer: User, other: User | int) -> ChatRoom:
    room, _ = get_or_create_direct_room(db, viewer, other)
    return room


def create_group_room(
    db: Session,
    creator: User,
    name: str | None,
    member_user_ids: Iterable[int],
    project_id: int | None = None,
) -> ChatRoom:
    """Create a named group room for the creator and the given members."""

    clean_name = (name or "").strip()
    if not clean_name:
        raise ValidationError("Group name is required")
    if len(clean_name) > settings.chat_group_name_max_length:
        raise ValidationError("Group name is too long")

    member_ids = {int(user_id) for user_id in member_user_ids} - {creator.id}
    if not member_ids:
        raise ValidationError("At least one other member is required")

    members = db.execute(select(User).where(User.id.in_(member_ids))).scalars().all()
    missing = member_ids - {member.id for member in members}
    if missing:
        raise ValidationError("Some users were not found")
    for member in members:
        if not is_visible_candidate(creator, member):
            raise ForbiddenError("Some users are not available for chat")

    room = ChatRoom(
        type=RoomType.GROUP,
        name=clean_name,
        project_id=project_id,
        created_by=creator.id,
    )
    room.members = [
        ChatRoomMember(user_id=user_id) for user_id in sorted(member_ids | {creator.id})
    ]
    db.add(room)
    db.commit()
    chat_rooms_created_total.inc(type=RoomType.GROUP.value)
    logger.info("Created group room %s with %d members", room.id, len(room.members))
    return get_room(db, room.id)


def other_member(room: ChatRoom, viewer: User) -> User | None:
    """The counterpart of a direct room, if present."""

    return next(
        (member.user for member in room.members if member.user_id != viewer.id),
        None,
    )


def room_display_name(room: ChatRoom, viewer: User) -> str:
    if room.type == RoomType.DIRECT:
        other = other_member(room, viewer)
        return other.name if other is not None else "Unknown User"
    return room.name or "Group Chat"
