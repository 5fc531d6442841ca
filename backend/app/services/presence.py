"""Heartbeat-based online presence.

Records are never expired in the background. A client that crashes without
sending an offline heartbeat stays online until it reports again, unless the
``chat_presence_stale_after_seconds`` read-time window is configured.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import insert_ignore
from app.models import User, UserPresence, utcnow
from app.monitoring.metrics import chat_presence_heartbeats_total

settings = get_settings()


def heartbeat(db: Session, user: User, is_online: bool) -> None:
    """Upsert the user's presence with ``last_seen_at = now``."""

    now = utcnow()
    insert_ignore(
        db,
        UserPresence.__table__,
        [{"user_id": user.id, "is_online": is_online, "last_seen_at": now}],
    )
    db.execute(
        update(UserPresence)
        .where(UserPresence.user_id == user.id)
        .values(is_online=is_online, last_seen_at=now)
    )
    db.commit()
    chat_presence_heartbeats_total.inc(state="online" if is_online else "offline")


def _online_filter(stale_after_seconds: int | None):
    conditions = [UserPresence.is_online.is_(True)]
    if stale_after_seconds:
        conditions.append(UserPresence.last_seen_at >= utcnow() - timedelta(seconds=stale_after_seconds))
    return conditions


def list_online(db: Session, stale_after_seconds: int | None = None) -> set[int]:
    """Ids of users whose latest heartbeat reported them online."""

    if stale_after_seconds is None:
        stale_after_seconds = settings.chat_presence_stale_after_seconds
    stmt = select(UserPresence.user_id).where(*_online_filter(stale_after_seconds))
    return set(db.execute(stmt).scalars().all())


def list_online_users(db: Session) -> list[tuple[User, datetime | None]]:
    stmt = (
        select(User, UserPresence.last_seen_at)
        .join(UserPresence, UserPresence.user_id == User.id)
        .where(*_online_filter(settings.chat_presence_stale_after_seconds))
        .order_by(User.name, User.id)
    )
    return [(user, last_seen_at) for user, last_seen_at in db.execute(stmt).all()]
