"""Read receipts and the unread counts derived from them.

Unread counts are always computed from the receipt ledger at read time. There
is no cached counter to drift: a message that arrives while a mark-read is in
flight simply stays unread until the next mark-read.
"""

from __future__ import annotations

import logging

from sqlalchemy import and_, exists, func, select
from sqlalchemy.orm import Session

from app.core.errors import ForbiddenError
from app.database import insert_ignore
from app.models import ChatMessage, ChatMessageRead, ChatRoom, ChatRoomMember, User, utcnow
from app.monitoring.metrics import chat_read_receipts_total

logger = logging.getLogger(__name__)


def _unread_condition(viewer_id: int):
    receipt_exists = exists().where(
        and_(
            ChatMessageRead.message_id == ChatMessage.id,
            ChatMessageRead.user_id == viewer_id,
        )
    )
    return and_(ChatMessage.sender_id != viewer_id, ~receipt_exists)


def mark_room_read(db: Session, room: ChatRoom, viewer: User) -> int:
    """Record receipts for every unread foreign message; returns how many were new.

    Safe to repeat: receipts that already exist (for example written by a
    concurrent request) are skipped by the insert itself.
    """

    if viewer.id not in room.member_ids:
        raise ForbiddenError("Not a room member")

    stmt = select(ChatMessage.id).where(
        ChatMessage.room_id == room.id,
        _unread_condition(viewer.id),
    )
    message_ids = list(db.execute(stmt).scalars().all())
    if not message_ids:
        return 0

    now = utcnow()
    inserted = insert_ignore(
        db,
        ChatMessageRead.__table__,
        ({"message_id": message_id, "user_id": viewer.id, "created_at": now} for message_id in message_ids),
    )
    db.commit()

    if inserted:
        chat_read_receipts_total.inc(amount=inserted)
    logger.debug("User %s read %d messages in room %s", viewer.id, inserted, room.id)
    return inserted


def unread_count(db: Session, room: ChatRoom, viewer: User) -> int:
    stmt = select(func.count(ChatMessage.id)).where(
        ChatMessage.room_id == room.id,
        _unread_condition(viewer.id),
    )
    return db.execute(stmt).scalar_one()


def unread_summary(db: Session, viewer: User) -> dict[int, int]:
    """Unread count per room for every room the viewer belongs to."""

    room_ids = db.execute(
        select(ChatRoomMember.room_id).where(ChatRoomMember.user_id == viewer.id)
    ).scalars().all()
    summary = {room_id: 0 for room_id in room_ids}
    if not summary:
        return summary

    stmt = (
        select(ChatMessage.room_id, func.count(ChatMessage.id))
        .where(ChatMessage.room_id.in_(list(summary)), _unread_condition(viewer.id))
        .group_by(ChatMessage.room_id)
    )
    for room_id, count in db.execute(stmt):
        summary[room_id] = count
    return summary
