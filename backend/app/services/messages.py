"""Append-only message storage for chat rooms."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.config import get_settings
from app.core.errors import FileTooLargeError, ForbiddenError, ValidationError
from app.core.storage import StoredFile
from app.models import ChatMessage, ChatRoom, MessageType, User, utcnow
from app.monitoring.metrics import chat_messages_total

logger = logging.getLogger(__name__)
settings = get_settings()

ATTACHMENT_TYPES: frozenset[MessageType] = frozenset({MessageType.FILE, MessageType.IMAGE})


def _validate_payload(
    kind: MessageType, body: str | None, stored_file: StoredFile | None
) -> str | None:
    text = body.strip() if body is not None else None
    if text == "":
        text = None

    if text is not None and len(text) > settings.chat_message_max_length:
        raise ValidationError(
            f"Message must be at most {settings.chat_message_max_length} characters"
        )

    if kind == MessageType.TEXT:
        if text is None:
            raise ValidationError("Message text is required")
        if stored_file is not None:
            raise ValidationError("Text messages cannot carry a file")
        return text

    if stored_file is None:
        raise ValidationError("A file is required for file and image messages")
    if stored_file.file_size > settings.chat_max_file_size:
        raise FileTooLargeError()
    if (
        kind == MessageType.IMAGE
        and stored_file.content_type
        and not stored_file.content_type.startswith("image/")
    ):
        raise ValidationError("Image messages require an image file")
    return text


def append_message(
    db: Session,
    room: ChatRoom,
    sender: User,
    kind: MessageType | str,
    body: str | None = None,
    stored_file: StoredFile | None = None,
) -> ChatMessage:
    """Validate and persist a message, bumping the room's activity timestamp."""

    if sender.id not in room.member_ids:
        raise ForbiddenError("Not a room member")

    try:
        kind = MessageType(kind)
    except ValueError:
        raise ValidationError("Unknown message type") from None

    text = _validate_payload(kind, body, stored_file)

    now = utcnow()
    message = ChatMessage(
        room_id=room.id,
        sender_id=sender.id,
        body=text,
        type=kind,
        created_at=now,
    )
    if stored_file is not None:
        message.file_path = stored_file.relative_path
        message.file_name = stored_file.file_name
        message.content_type = stored_file.content_type
        message.file_size = stored_file.file_size
    room.last_message_at = now
    db.add(message)
    db.add(room)
    db.commit()
    db.refresh(message)

    chat_messages_total.inc(type=kind.value)
    logger.debug("Stored %s message %s in room %s", kind.value, message.id, room.id)
    return message


def list_messages(db: Session, room: ChatRoom, viewer: User) -> list[ChatMessage]:
    """All messages of the room, oldest first; equal timestamps ordered by id."""

    if viewer.id not in room.member_ids:
        raise ForbiddenError("Not a room member")

    stmt = (
        select(ChatMessage)
        .where(ChatMessage.room_id == room.id)
        .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        .options(selectinload(ChatMessage.sender))
    )
    return list(db.execute(stmt).scalars().all())


def latest_message(db: Session, room_id: int) -> ChatMessage | None:
    stmt = (
        select(ChatMessage)
        .where(ChatMessage.room_id == room_id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(1)
        .options(selectinload(ChatMessage.sender))
    )
    return db.execute(stmt).scalar_one_or_none()


def latest_messages(db: Session, room_ids: Iterable[int]) -> dict[int, ChatMessage]:
    """Newest message of each room in one query; silent rooms are absent."""

    room_ids = list(room_ids)
    if not room_ids:
        return {}

    ranked = (
        select(
            ChatMessage.id.label("message_id"),
            func.row_number()
            .over(
                partition_by=ChatMessage.room_id,
                order_by=(ChatMessage.created_at.desc(), ChatMessage.id.desc()),
            )
            .label("position"),
        )
        .where(ChatMessage.room_id.in_(room_ids))
        .subquery()
    )
    stmt = (
        select(ChatMessage)
        .join(ranked, ranked.c.message_id == ChatMessage.id)
        .where(ranked.c.position == 1)
        .options(selectinload(ChatMessage.sender))
    )
    return {message.room_id: message for message in db.execute(stmt).scalars()}
