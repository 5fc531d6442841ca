"""Chat rooms, messages, read receipts and presence endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.config import get_settings
from app.core.storage import StoredFile, store_upload
from app.database import get_db
from app.models import ChatMessage, ChatRoom, MessageType, RoomType, User
from app.schemas import (
    ConversationRead,
    MarkReadResponse,
    MessageRead,
    OnlineStatusUpdate,
    OnlineUser,
    PublicUser,
    RoomCreate,
    RoomListResponse,
    RoomMessagesResponse,
    RoomRead,
    SuccessResponse,
)
from app.services import chat_event_hub
from app.services.conversations import RoomEntry, VirtualRoom, project_conversation_list
from app.services.directory import visible_candidates
from app.services.mentions import resolve_mentions
from app.services.messages import append_message, latest_message, list_messages
from app.services.presence import heartbeat, list_online_users
from app.services.receipts import mark_room_read, unread_count
from app.services.rooms import (
    create_group_room,
    get_or_create_direct_room,
    require_membership,
    room_display_name,
)

router = APIRouter(prefix="/chat", tags=["chat"])
settings = get_settings()
logger = logging.getLogger(__name__)


def _room_members(room: ChatRoom) -> list[User]:
    return [member.user for member in room.members if member.user is not None]


def _serialize_message(message: ChatMessage, members: list[User] | None = None) -> MessageRead:
    mentions = resolve_mentions(message.body, members) if members else []
    return MessageRead(
        id=message.id,
        room_id=message.room_id,
        sender_id=message.sender_id,
        sender=PublicUser.model_validate(message.sender) if message.sender else None,
        message=message.body,
        type=message.type,
        file_path=message.file_path,
        file_url=message.file_url,
        file_name=message.file_name,
        content_type=message.content_type,
        file_size=message.file_size,
        created_at=message.created_at,
        mentions=mentions,
    )


def _serialize_room(
    room: ChatRoom,
    viewer: User,
    *,
    unread: int = 0,
    last_message: ChatMessage | None = None,
) -> RoomRead:
    members = _room_members(room)
    return RoomRead(
        id=room.id,
        name=room.name,
        display_name=room_display_name(room, viewer),
        type=room.type,
        project_id=room.project_id,
        created_by=room.created_by,
        created_at=room.created_at,
        last_message_at=room.last_message_at,
        members=[PublicUser.model_validate(member) for member in members],
        unread_count=unread,
        last_message=_serialize_message(last_message, members) if last_message else None,
    )


def _serialize_entry(entry: RoomEntry | VirtualRoom, viewer: User) -> ConversationRead:
    if isinstance(entry, VirtualRoom):
        return ConversationRead(
            kind="virtual",
            room_id=None,
            display_name=entry.display_name,
            type=RoomType.DIRECT,
            unread_count=0,
            last_message=_serialize_message(entry.preview) if entry.preview else None,
            partner=PublicUser.model_validate(entry.partner),
        )

    room = entry.room
    partner = None
    if room.type == RoomType.DIRECT:
        partner = next(
            (user for user in _room_members(room) if user.id != viewer.id),
            None,
        )
    return ConversationRead(
        kind="room",
        room_id=room.id,
        display_name=entry.display_name,
        type=room.type,
        unread_count=entry.unread_count,
        last_message=(
            _serialize_message(entry.last_message, _room_members(room))
            if entry.last_message
            else None
        ),
        partner=PublicUser.model_validate(partner) if partner else None,
    )


@router.get("/rooms", response_model=RoomListResponse)
async def list_rooms(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> RoomListResponse:
    """Return the viewer's rooms, virtual direct rooms and recent group messages."""

    projection = project_conversation_list(db, current_user)
    rooms = [
        _serialize_room(
            entry.room,
            current_user,
            unread=entry.unread_count,
            last_message=entry.last_message,
        )
        for entry in projection.rooms
    ]
    recent = {
        user_id: [_serialize_message(message) for message in messages]
        for user_id, messages in projection.recent_by_user.items()
    }
    return RoomListResponse(
        rooms=rooms,
        recent_by_user=recent,
        conversations=[_serialize_entry(entry, current_user) for entry in projection.entries],
    )


@router.get("/rooms/{room_id}/messages", response_model=RoomMessagesResponse)
async def get_room_messages(
    room_id: int,
    mark_read: bool | None = Query(
        default=None,
        description="Mark the listed messages read; defaults to CHAT_MARK_READ_ON_VIEW",
    ),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> RoomMessagesResponse:
    """Return every message of a room the user belongs to, oldest first."""

    room = require_membership(db, room_id, current_user)
    should_mark = settings.chat_mark_read_on_view if mark_read is None else mark_read
    if should_mark:
        mark_room_read(db, room, current_user)
    messages = list_messages(db, room, current_user)

    members = _room_members(room)
    last_message = messages[-1] if messages else None
    return RoomMessagesResponse(
        room=_serialize_room(
            room,
            current_user,
            unread=unread_count(db, room, current_user),
            last_message=last_message,
        ),
        messages=[_serialize_message(message, members) for message in messages],
    )


@router.post(
    "/rooms/{room_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    room_id: int,
    message: str | None = Form(default=None),
    type: MessageType = Form(default=MessageType.TEXT),
    file: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageRead:
    """Append a text, file or image message to a room."""

    room = require_membership(db, room_id, current_user)

    stored: StoredFile | None = None
    if file is not None and file.filename:
        stored = await store_upload(room.id, file)

    try:
        created = append_message(db, room, current_user, type, body=message, stored_file=stored)
    except Exception:
        if stored is not None:
            logger.info("Discarding upload %s for rejected message in room %s", stored.relative_path, room.id)
            stored.discard()
        raise

    members = _room_members(room)
    payload = _serialize_message(created, members)
    await chat_event_hub.message_posted(
        room_id=room.id,
        message_id=created.id,
        sender_id=current_user.id,
        recipient_ids=[member.id for member in members if member.id != current_user.id],
        mentioned_ids=payload.mentions,
    )
    return payload


@router.post("/rooms", response_model=RoomRead, status_code=status.HTTP_201_CREATED)
async def create_room(
    payload: RoomCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> RoomRead:
    """Create a group room, or return the direct room with the given user."""

    if payload.type == RoomType.DIRECT:
        room, created = get_or_create_direct_room(db, current_user, payload.user_ids[0])
    else:
        room = create_group_room(
            db,
            current_user,
            payload.name,
            payload.user_ids,
            project_id=payload.project_id,
        )
        created = True

    if created:
        await chat_event_hub.room_created(
            room_id=room.id,
            room_type=room.type.value,
            member_ids=room.member_ids,
        )

    return _serialize_room(
        room,
        current_user,
        unread=unread_count(db, room, current_user),
        last_message=latest_message(db, room.id),
    )


@router.post("/rooms/{room_id}/mark-read", response_model=MarkReadResponse)
async def mark_read(
    room_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MarkReadResponse:
    """Record read receipts for every message the user has not read yet."""

    room = require_membership(db, room_id, current_user)
    marked = mark_room_read(db, room, current_user)
    return MarkReadResponse(success=True, marked=marked)


@router.post("/online-status", response_model=SuccessResponse)
async def update_online_status(
    payload: OnlineStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    heartbeat(db, current_user, payload.is_online)
    return SuccessResponse(success=True)


@router.get("/online-users", response_model=list[OnlineUser])
async def get_online_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[OnlineUser]:
    """Return users whose latest heartbeat reported them online."""

    return [
        OnlineUser(id=user.id, name=user.name, email=user.email, last_seen_at=last_seen_at)
        for user, last_seen_at in list_online_users(db)
    ]


@router.get("/team-members", response_model=list[PublicUser])
async def get_team_members(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[PublicUser]:
    """Return the users the current user may start a conversation with."""

    return [PublicUser.model_validate(user) for user in visible_candidates(db, current_user)]
